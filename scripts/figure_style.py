"""
Shared figure style for the Bantul rice-field classification figures.
Provides: rcParams, class palette, size constants, save helpers.
"""

import os
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt


# ============================================================
# SIZE CONSTANTS (single/double column)
# ============================================================

SINGLE_COL_WIDTH = 3.54  # 90 mm
DOUBLE_COL_WIDTH = 7.48  # 190 mm

DPI_SAVE = 300
DPI_DISPLAY = 150

# ============================================================
# CLASS PALETTE (matches the GEE map palette)
# ============================================================

CLASS_COLORS = {
    0: '#1a9850',  # Rice field - green
    1: '#d73027',  # Non-rice field - red
}

CLASS_NAMES = {
    0: 'Rice field',
    1: 'Non-rice field',
}

METRIC_COLORS = {
    'consumers_accuracy': '#4575b4',
    'producers_accuracy': '#91bfdb',
    'f1_score': '#fc8d59',
}


def setup_journal_style():
    """Configure matplotlib rcParams for compact report figures."""
    plt.rcParams.update({
        'font.family': 'serif',
        'font.serif': ['Times New Roman', 'Times', 'DejaVu Serif'],
        'font.size': 8,
        'axes.labelsize': 9,
        'axes.titlesize': 10,
        'xtick.labelsize': 8,
        'ytick.labelsize': 8,
        'legend.fontsize': 7,

        'axes.spines.top': False,
        'axes.spines.right': False,
        'axes.linewidth': 0.6,
        'axes.grid': False,

        'legend.frameon': True,
        'legend.framealpha': 0.9,
        'legend.edgecolor': '0.8',

        'figure.dpi': DPI_DISPLAY,
        'savefig.dpi': DPI_SAVE,
        'savefig.bbox': 'tight',
        'savefig.pad_inches': 0.05,
    })
    return plt


def save_figure(fig, filepath, also_png=True, also_pdf=True):
    """Save figure in PDF (vector) and/or PNG (raster) formats."""
    base, _ = os.path.splitext(filepath)
    os.makedirs(os.path.dirname(base) or '.', exist_ok=True)
    saved = []

    if also_pdf:
        fig.savefig(base + '.pdf')
        print(f"  [OK] {base}.pdf")
        saved.append(base + '.pdf')

    if also_png:
        fig.savefig(base + '.png', dpi=DPI_SAVE)
        print(f"  [OK] {base}.png")
        saved.append(base + '.png')

    return saved
