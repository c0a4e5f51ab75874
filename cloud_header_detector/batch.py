"""
Batch classification of CSV files.

Input files carry either a ``url`` or a ``domain`` column. Results are
written back as CSV, one row per distinct site.
"""

import asyncio
from typing import List

import pandas as pd
from tqdm import tqdm

from .rules import domain_key, meets_confidence

RESULT_COLUMNS = ["url", "domain", "provider", "confidence", "signals"]
TARGET_COLUMNS = ("url", "domain")


def load_targets(path: str) -> List[str]:
    """Read the URLs to classify from a CSV file."""
    df = pd.read_csv(path, dtype=str)
    column = next((c for c in TARGET_COLUMNS if c in df.columns), None)
    if column is None:
        raise ValueError("CSV must contain a 'url' or 'domain' column")

    targets = df[column].dropna().str.strip()
    return [target for target in targets if target]


def dedupe_targets(urls: List[str]) -> List[str]:
    """Keep the first URL seen for each site."""
    seen = set()
    unique = []
    for url in urls:
        key = domain_key(url)
        if key in seen:
            print(f"Skipping duplicate site: {url}")
            continue
        seen.add(key)
        unique.append(url)
    return unique


def classify_targets(detector, urls: List[str], progress: bool = True) -> pd.DataFrame:
    """Classify every URL sequentially and tabulate the verdicts."""
    rows = []
    for url in tqdm(urls, desc="Detecting cloud providers", disable=not progress):
        verdict = asyncio.run(detector.detect(url))
        rows.append(
            {
                "url": url,
                "domain": domain_key(url),
                "provider": verdict["provider"],
                "confidence": verdict["confidence"],
                "signals": "; ".join(verdict["signals"]),
            }
        )
    return pd.DataFrame(rows, columns=RESULT_COLUMNS)


def summarize_providers(results: pd.DataFrame) -> pd.DataFrame:
    """Provider distribution: count and share of total, largest first."""
    if results.empty:
        return pd.DataFrame(columns=["provider", "count", "percentage"])

    counts = results["provider"].value_counts()
    summary = pd.DataFrame({"provider": counts.index, "count": counts.values})
    summary["percentage"] = (summary["count"] / summary["count"].sum() * 100).round(1)
    summary = summary.sort_values(
        ["count", "provider"], ascending=[False, True]
    ).reset_index(drop=True)
    return summary


def save_results(results: pd.DataFrame, output_file: str):
    """Save results to CSV file."""
    results.to_csv(output_file, index=False, encoding="utf-8")


def filter_by_confidence(results: pd.DataFrame, minimum: str) -> pd.DataFrame:
    """Drop rows whose confidence ranks below ``minimum``."""
    if results.empty:
        return results
    keep = results.apply(lambda row: meets_confidence(row, minimum), axis=1)
    return results[keep].reset_index(drop=True)
