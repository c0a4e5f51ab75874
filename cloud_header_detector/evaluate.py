"""
Accuracy measurement against labeled data.

The labeled CSV holds a ``url`` (or ``domain``) column and the expected
``cloud_provider``. Every row is classified and compared with its label.
"""

import asyncio
from typing import Dict, List

import pandas as pd
from sklearn.metrics import (
    accuracy_score,
    classification_report,
    precision_score,
    recall_score,
)

from .batch import TARGET_COLUMNS

LABEL_COLUMN = "cloud_provider"


def evaluate_predictions(true_labels: List[str], predictions: List[str]) -> Dict:
    """Compute accuracy, weighted precision/recall and a per-label report."""
    if not true_labels:
        return {
            "accuracy": 0.0,
            "precision": 0.0,
            "recall": 0.0,
            "classification_report": {},
        }

    labels = sorted(set(true_labels) | set(predictions))
    return {
        "accuracy": accuracy_score(true_labels, predictions),
        "precision": precision_score(
            true_labels,
            predictions,
            labels=labels,
            average="weighted",
            zero_division=0,
        ),
        "recall": recall_score(
            true_labels,
            predictions,
            labels=labels,
            average="weighted",
            zero_division=0,
        ),
        "classification_report": classification_report(
            true_labels,
            predictions,
            labels=labels,
            zero_division=0,
            output_dict=True,
        ),
    }


def run_evaluation(detector, test_file_path: str) -> Dict:
    """Run the detector over labeled data and return accuracy metrics."""
    print(f"Running evaluation with file: {test_file_path}")

    df = pd.read_csv(test_file_path, dtype=str)
    target_column = next((c for c in TARGET_COLUMNS if c in df.columns), None)
    if target_column is None or LABEL_COLUMN not in df.columns:
        raise ValueError(
            f"CSV must contain a 'url' or 'domain' column and a '{LABEL_COLUMN}' column"
        )
    df = df.dropna(subset=[target_column, LABEL_COLUMN])

    all_results = []
    for _, row in df.iterrows():
        target = row[target_column].strip()
        true_label = row[LABEL_COLUMN].strip()

        verdict = asyncio.run(detector.detect(target))
        all_results.append(
            {
                "target": target,
                "true_label": true_label,
                "predicted_label": verdict["provider"],
                "confidence": verdict["confidence"],
                "correct": verdict["provider"] == true_label,
            }
        )
        print(f"{target}: True={true_label}, Predicted={verdict['provider']}")

    metrics = evaluate_predictions(
        [r["true_label"] for r in all_results],
        [r["predicted_label"] for r in all_results],
    )
    metrics["total"] = len(all_results)
    metrics["all_results"] = all_results
    return metrics
