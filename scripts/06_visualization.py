"""
06_visualization.py
===================
Stage 6: Map previews and accuracy figures.

Replaces the Code Editor map panel: the composite (true colour) and the
classification (green = rice field, red = non-rice field) are rendered
server-side and downloaded as PNG thumbnails. Accuracy figures are drawn
locally with matplotlib from the stage 4 metrics.

Outputs (outputs/figures/):
- composite_2023.png, classification_2023.png
- fig_confusion_matrix.{pdf,png}
- fig_class_accuracy.{pdf,png}
"""

import os
import sys
import urllib.request
import numpy as np

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
import gee_config
from gee_config import MAP_YEAR, MAP_ZOOM
from scripts.figure_style import (
    setup_journal_style, save_figure, SINGLE_COL_WIDTH, CLASS_NAMES,
    METRIC_COLORS
)
from scripts.utils import (
    get_composite_vis_params, get_classification_vis_params, log
)

import matplotlib.pyplot as plt


# ============================================================
# MAP PREVIEWS (GEE thumbnails)
# ============================================================

def preview_dimensions(zoom=MAP_ZOOM):
    """Thumbnail size for a map zoom level (1024 px at zoom 11)."""
    return int(min(max(1024 * 2 ** (zoom - 11), 256), 4096))


def export_map_preview(image, vis_params, region, output_path, zoom=MAP_ZOOM):
    """Render `image` with `vis_params` over `region` and save it as PNG."""
    params = dict(vis_params)
    params.update({
        'region': region,
        'dimensions': preview_dimensions(zoom),
        'format': 'png',
    })
    url = image.getThumbURL(params)
    os.makedirs(os.path.dirname(output_path), exist_ok=True)
    urllib.request.urlretrieve(url, output_path)
    log(f"  [OK] {output_path}")
    return output_path


# ============================================================
# ACCURACY FIGURES
# ============================================================

def _class_label(class_id):
    return CLASS_NAMES.get(class_id, f'Class {class_id}')


def plot_confusion_matrix(matrix, class_order, output_path):
    """Error matrix heatmap: rows reference, columns predicted."""
    setup_journal_style()
    cm = np.asarray(matrix, dtype=float)
    row_sums = cm.sum(axis=1, keepdims=True)
    share = np.divide(cm, row_sums, out=np.zeros_like(cm), where=row_sums > 0)

    fig, ax = plt.subplots(figsize=(SINGLE_COL_WIDTH, SINGLE_COL_WIDTH))
    im = ax.imshow(share, cmap='YlGn', vmin=0, vmax=1)
    labels = [_class_label(c) for c in class_order]
    ticks = list(range(len(labels)))
    ax.set_xticks(ticks)
    ax.set_yticks(ticks)
    ax.set_xticklabels(labels)
    ax.set_yticklabels(labels)
    ax.set_xlabel('Predicted')
    ax.set_ylabel('Reference')

    for i in range(cm.shape[0]):
        for j in range(cm.shape[1]):
            color = 'white' if share[i, j] > 0.6 else 'black'
            ax.text(j, i, f'{int(cm[i, j])}', ha='center', va='center',
                    fontsize=9, color=color)

    fig.colorbar(im, ax=ax, fraction=0.046, pad=0.04, label='Row share')
    saved = save_figure(fig, output_path)
    plt.close(fig)
    return saved


def plot_class_accuracies(class_table, output_path):
    """Grouped bars of consumer's/producer's accuracy and F1 per class."""
    setup_journal_style()
    metrics = list(METRIC_COLORS)
    x = np.arange(len(class_table))
    width = 0.8 / len(metrics)

    fig, ax = plt.subplots(figsize=(SINGLE_COL_WIDTH, SINGLE_COL_WIDTH * 0.75))
    for k, metric in enumerate(metrics):
        ax.bar(x + (k - 1) * width, class_table[metric], width,
               color=METRIC_COLORS[metric],
               label=metric.replace('_', ' ').capitalize())
    ax.set_xticks(x)
    ax.set_xticklabels(class_table['name'])
    ax.set_ylim(0, 1.05)
    ax.set_ylabel('Accuracy')
    ax.legend(loc='lower right')

    saved = save_figure(fig, output_path)
    plt.close(fig)
    return saved


# ============================================================
# MAIN
# ============================================================

def main(composite, classified, aoi, metrics, class_table, previews=True):
    log("=" * 60)
    log("STAGE 6: MAP PREVIEWS AND FIGURES")
    log("=" * 60)

    fig_dir = gee_config.FIGURE_DIR
    outputs = []

    if previews:
        region = aoi.geometry()
        outputs.append(export_map_preview(
            composite, get_composite_vis_params(), region,
            os.path.join(fig_dir, f'composite_{MAP_YEAR}.png')))
        outputs.append(export_map_preview(
            classified, get_classification_vis_params(), region,
            os.path.join(fig_dir, f'classification_{MAP_YEAR}.png')))

    outputs += plot_confusion_matrix(
        metrics['confusion_matrix'], metrics['class_order'],
        os.path.join(fig_dir, 'fig_confusion_matrix'))
    outputs += plot_class_accuracies(
        class_table, os.path.join(fig_dir, 'fig_class_accuracy'))

    return outputs


if __name__ == '__main__':
    print("Run via run_analysis.py: figures need the stage 1-4 results.")
