"""
run_analysis.py
===============
Master script: supervised rice-field classification, Bantul 2023.

Stages:
  1. Landsat 9 preprocessing + median composite
  2. Training / validation samples (70/30 random split)
  3. Random Forest classification (100 trees)
  4. Accuracy assessment (error matrix)
  5. Vector export of rice-field polygons (shapefile -> Drive)
  6. Map previews and accuracy figures

Usage:
    python run_analysis.py [--no-export] [--wait] [--no-figures] [--no-previews]
    python run_analysis.py --verify path/to/Classification_Result_2023.shp
"""

import os
import sys
import time
import argparse
import importlib
from datetime import datetime

PROJECT_DIR = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, PROJECT_DIR)

from gee_config import initialize, MAP_YEAR
from scripts.utils import require_assets, get_study_assets, save_json, log

preprocessing_mod = importlib.import_module('scripts.01_preprocessing')
training_mod = importlib.import_module('scripts.02_training_samples')
classification_mod = importlib.import_module('scripts.03_classification')
accuracy_mod = importlib.import_module('scripts.04_accuracy_assessment')
export_mod = importlib.import_module('scripts.05_vector_export')
visualization_mod = importlib.import_module('scripts.06_visualization')


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description=f'Supervised rice-field classification (Landsat 9, {MAP_YEAR})')
    parser.add_argument('--no-export', action='store_true',
                        help='Do not start the shapefile export task')
    parser.add_argument('--wait', action='store_true',
                        help='Poll the export task until it finishes')
    parser.add_argument('--no-figures', action='store_true',
                        help='Skip map previews and accuracy figures')
    parser.add_argument('--no-previews', action='store_true',
                        help='Draw accuracy figures but skip GEE map thumbnails')
    parser.add_argument('--save-samples', action='store_true',
                        help='Download the sample table to outputs/training_samples.csv')
    parser.add_argument('--verify', metavar='SHP',
                        help='Verify a downloaded export and exit')
    return parser.parse_args(argv)


def run_pipeline(assets, export=True, wait=False, figures=True, previews=True,
                 save_samples=False):
    t0 = time.time()

    composite, composite_meta = preprocessing_mod.main(assets)
    training, validation, sample_stats = training_mod.main(
        composite, assets, save_csv=save_samples)
    classifier, classified, class_info = classification_mod.main(
        composite, training, assets['aoi_ricefield'])
    metrics, class_table = accuracy_mod.main(validation, classifier)
    task = export_mod.main(classified, assets['aoi_ricefield'], export=export, wait=wait)

    if figures:
        visualization_mod.main(composite, classified, assets['aoi'], metrics,
                               class_table, previews=previews)

    summary = {
        'year': MAP_YEAR,
        'n_images': composite_meta['n_images'],
        'n_training': sample_stats['n_training'],
        'n_validation': sample_stats['n_validation'],
        'overall_accuracy': round(metrics['overall_accuracy'], 4),
        'kappa': round(metrics['kappa'], 4),
        'confusion_matrix': metrics['confusion_matrix'],
        'consumers_accuracy': metrics['consumers_accuracy'],
        'producers_accuracy': metrics['producers_accuracy'],
        'f1_score': metrics['f1_score'],
        'feature_importance': class_info['feature_importance'],
        'class_areas_ha': class_info['class_areas_ha'],
        'export_task_id': getattr(task, 'id', None),
    }
    save_json(summary, 'classification_metrics.json')

    log("\n  CLASSIFICATION SUMMARY:")
    log(f"  {'Year':<8} {'OA':>8} {'Kappa':>8} {'Train':>8} {'Val':>8}")
    log("  " + "-" * 44)
    log(f"  {MAP_YEAR:<8} {summary['overall_accuracy']:>7.1%} {summary['kappa']:>8.4f} "
        f"{summary['n_training']:>8} {summary['n_validation']:>8}")
    log(f"  Time: {time.time() - t0:.0f}s")
    return summary


def main(argv=None):
    args = parse_args(argv)

    if args.verify:
        export_mod.verify_shapefile(args.verify)
        return None

    log("=" * 60)
    log("SUPERVISED LAND COVER CLASSIFICATION - BANTUL")
    log(f"Run date: {datetime.now().strftime('%Y-%m-%d %H:%M')}")
    log("=" * 60)

    require_assets()
    initialize()
    assets = get_study_assets()
    return run_pipeline(
        assets,
        export=not args.no_export,
        wait=args.wait,
        figures=not args.no_figures,
        previews=not args.no_previews,
        save_samples=args.save_samples,
    )


if __name__ == '__main__':
    main()
