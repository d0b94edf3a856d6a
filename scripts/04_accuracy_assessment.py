"""
04_accuracy_assessment.py
=========================
Stage 4: Accuracy assessment on the hold-out validation samples.

Classifies the validation set with the trained Random Forest and builds an
error matrix (rows = reference 'lc', columns = predicted 'classification').
GEE metrics (OA, Kappa, consumer's/producer's accuracy, F1) are fetched in a
single getInfo() call and recomputed locally with numpy from the matrix as a
consistency check.

CM Indexing Note:
    GEE indexes the error matrix by class value. With classes 0 (rice field)
    and 1 (non-rice field) the matrix is 2x2 and index == class value.
    producersAccuracy() comes back as a column (k x 1), consumersAccuracy()
    as a row (1 x k); both are flattened here.

Outputs:
- outputs/accuracy_assessment.json
- outputs/class_metrics.csv
"""

import ee
import os
import sys
import numpy as np
import pandas as pd
from datetime import datetime

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
import gee_config
from gee_config import CLASS_PROPERTY, PREDICTED_PROPERTY, CLASSES, RF_PARAMS
from scripts.utils import save_json, log


METRIC_KEYS = ['overall_accuracy', 'kappa', 'consumers_accuracy',
               'producers_accuracy', 'f1_score']


# ============================================================
# GEE ERROR MATRIX
# ============================================================

def _flatten(values):
    return [float(v) for v in np.asarray(values, dtype=float).ravel()]


def evaluate_classification_performance(validation_predict,
                                        reference=CLASS_PROPERTY,
                                        predicted=PREDICTED_PROPERTY):
    """
    Build the validation error matrix and fetch all GEE metrics at once.

    Returns:
        dict with confusion_matrix, class_order and the METRIC_KEYS values
    """
    valid_cm = validation_predict.errorMatrix(reference, predicted)
    info = ee.Dictionary({
        'matrix': valid_cm.array(),
        'order': valid_cm.order(),
        'accuracy': valid_cm.accuracy(),
        'kappa': valid_cm.kappa(),
        'consumers': valid_cm.consumersAccuracy(),
        'producers': valid_cm.producersAccuracy(),
        'fscore': valid_cm.fscore(),
    }).getInfo()

    return {
        'confusion_matrix': info['matrix'],
        'class_order': info['order'],
        'overall_accuracy': float(info['accuracy']),
        'kappa': float(info['kappa']),
        'consumers_accuracy': _flatten(info['consumers']),
        'producers_accuracy': _flatten(info['producers']),
        'f1_score': _flatten(info['fscore']),
    }


def print_metrics(metrics):
    log(f"  Validation Confusion Matrix RF: {metrics['confusion_matrix']}")
    log(f"  Overall Accuracy RF: {metrics['overall_accuracy']:.4f}")
    log(f"  Kappa Score RF: {metrics['kappa']:.4f}")
    log(f"  Consumer Accuracy RF: {[round(v, 4) for v in metrics['consumers_accuracy']]}")
    log(f"  Producer Accuracy RF: {[round(v, 4) for v in metrics['producers_accuracy']]}")
    log(f"  F1 Score RF: {[round(v, 4) for v in metrics['f1_score']]}")


# ============================================================
# LOCAL RECOMPUTATION (numpy)
# ============================================================

def metrics_from_confusion_matrix(matrix):
    """
    Recompute the error matrix metrics.

    Args:
        matrix: (k,k) array, rows = reference, cols = predicted

    Returns:
        dict with the METRIC_KEYS values; zero denominators give 0
    """
    cm = np.asarray(matrix, dtype=float)
    total = cm.sum()
    diag = np.diag(cm)
    row_sums = cm.sum(axis=1)
    col_sums = cm.sum(axis=0)

    oa = diag.sum() / total if total > 0 else 0.0

    # Chance agreement
    pe = (row_sums * col_sums).sum() / total ** 2 if total > 0 else 0.0
    kappa = (oa - pe) / (1 - pe) if pe < 1 else 0.0

    producers = np.divide(diag, row_sums, out=np.zeros_like(diag), where=row_sums > 0)
    consumers = np.divide(diag, col_sums, out=np.zeros_like(diag), where=col_sums > 0)
    denom = producers + consumers
    f1 = np.divide(2 * producers * consumers, denom,
                   out=np.zeros_like(diag), where=denom > 0)

    return {
        'overall_accuracy': float(oa),
        'kappa': float(kappa),
        'consumers_accuracy': consumers.tolist(),
        'producers_accuracy': producers.tolist(),
        'f1_score': f1.tolist(),
    }


def cross_check(server, local, tol=1e-6):
    """Names of the metrics where GEE and the numpy recomputation disagree."""
    mismatches = []
    for key in METRIC_KEYS:
        a = np.nan_to_num(np.asarray(server[key], dtype=float))
        b = np.asarray(local[key], dtype=float)
        if a.shape != b.shape or not np.allclose(a, b, atol=tol):
            mismatches.append(key)
    return mismatches


def class_metrics_table(metrics, class_order=None):
    """Per-class consumer's/producer's accuracy and F1 as a DataFrame."""
    order = class_order if class_order is not None else sorted(CLASSES)
    rows = []
    for idx, class_id in enumerate(order):
        # Value-indexed matrix when it is large enough, positional otherwise
        i = class_id if class_id < len(metrics['f1_score']) else idx
        rows.append({
            'class': class_id,
            'name': CLASSES.get(class_id, {}).get('name', f'Class {class_id}'),
            'consumers_accuracy': round(metrics['consumers_accuracy'][i], 4),
            'producers_accuracy': round(metrics['producers_accuracy'][i], 4),
            'f1_score': round(metrics['f1_score'][i], 4),
        })
    return pd.DataFrame(rows)


# ============================================================
# MAIN
# ============================================================

def main(validation, classifier):
    log("=" * 60)
    log("STAGE 4: ACCURACY ASSESSMENT")
    log(f"Run date: {datetime.now().strftime('%Y-%m-%d %H:%M')}")
    log("=" * 60)

    validation_predict = validation.classify(classifier)
    metrics = evaluate_classification_performance(validation_predict)
    print_metrics(metrics)

    local = metrics_from_confusion_matrix(metrics['confusion_matrix'])
    mismatches = cross_check(metrics, local)
    if mismatches:
        log(f"  WARNING: GEE and local metrics differ for {', '.join(mismatches)}")
    else:
        log("  Local recomputation matches GEE metrics")

    table = class_metrics_table(metrics, metrics['class_order'])
    os.makedirs(gee_config.OUTPUT_DIR, exist_ok=True)
    table.to_csv(os.path.join(gee_config.OUTPUT_DIR, 'class_metrics.csv'), index=False)
    log("  >> Saved: class_metrics.csv")

    report = {
        'title': 'Accuracy Assessment Report - Bantul rice field classification',
        'date': datetime.now().strftime('%Y-%m-%d %H:%M'),
        'methodology': {
            'classifier': 'Random Forest (smileRandomForest)',
            'n_trees': RF_PARAMS['numberOfTrees'],
            'features': 'All Landsat 9 composite bands',
            'split': '70% training, 30% validation (randomColumn)',
        },
        'metrics': metrics,
        'local_mismatches': mismatches,
    }
    save_json(report, 'accuracy_assessment.json')

    log("\nNext step: 05_vector_export.py")
    return metrics, table


if __name__ == '__main__':
    print("Run via run_analysis.py: the validation set and classifier come from stages 2-3.")
