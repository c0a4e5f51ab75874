#!/usr/bin/env python3
"""
Command line entry point: ``cloud-detector``.

    cloud-detector detect example.com
    cloud-detector batch companies.csv -o results.csv
    cloud-detector evaluate data/labeled.csv
    cloud-detector serve --port 8080
"""

import argparse
import asyncio
import json
import sys

from . import settings
from .batch import (
    classify_targets,
    dedupe_targets,
    filter_by_confidence,
    load_targets,
    save_results,
    summarize_providers,
)
from .detector import CloudProviderDetector
from .evaluate import run_evaluation
from .fetchers import RequestsFetcher
from .rules import CONFIDENCE_LEVELS
from .server import run_server


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cloud-detector",
        description="Detect the cloud provider behind a website from its HTTP headers",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=settings.PROBE_TIMEOUT,
        help=f"Probe timeout in seconds (default: {settings.PROBE_TIMEOUT:g})",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    detect = subparsers.add_parser("detect", help="Classify one or more URLs")
    detect.add_argument("urls", nargs="+", help="URLs or bare domains")
    detect.add_argument("--json", action="store_true", help="Print verdicts as JSON")

    batch = subparsers.add_parser("batch", help="Classify the sites listed in a CSV")
    batch.add_argument("input_csv", help="CSV file with a 'url' or 'domain' column")
    batch.add_argument(
        "--output", "-o", default=settings.DEFAULT_OUTPUT_FILE, help="Output CSV file"
    )
    batch.add_argument(
        "--min-confidence",
        choices=CONFIDENCE_LEVELS,
        default="low",
        help="Only keep verdicts at or above this confidence",
    )
    batch.add_argument(
        "--no-dedupe",
        action="store_true",
        help="Classify repeated sites again instead of skipping them",
    )

    evaluate = subparsers.add_parser(
        "evaluate", help="Measure accuracy against a labeled CSV"
    )
    evaluate.add_argument(
        "labeled_csv", help="CSV with 'url' or 'domain' and 'cloud_provider' columns"
    )

    serve = subparsers.add_parser("serve", help="Run the HTTP detection endpoint")
    serve.add_argument("--host", default=settings.SERVER_HOST)
    serve.add_argument("--port", type=int, default=settings.SERVER_PORT)

    return parser


def print_verdict(url: str, verdict: dict):
    print(f"🔍 {url}")
    print(f"   Provider:   {verdict['provider']}")
    print(f"   Confidence: {verdict['confidence']}")
    for signal in verdict["signals"]:
        print(f"   • {signal}")


def run_detect(args) -> int:
    detector = CloudProviderDetector(timeout=args.timeout)
    verdicts = asyncio.run(detector.detect_many(args.urls))

    if args.json:
        print(json.dumps(verdicts if len(verdicts) > 1 else verdicts[0], indent=2))
    else:
        for url, verdict in zip(args.urls, verdicts):
            print_verdict(url, verdict)
    return 0


def run_batch(args) -> int:
    try:
        urls = load_targets(args.input_csv)
    except (OSError, ValueError) as e:
        print(f"Error reading input CSV: {e}")
        return 1

    if not args.no_dedupe:
        urls = dedupe_targets(urls)

    print(f"Starting analysis of {len(urls)} websites...")
    fetcher = RequestsFetcher(timeout=args.timeout)
    try:
        results = classify_targets(CloudProviderDetector(fetcher=fetcher), urls)
    finally:
        fetcher.close()

    results = filter_by_confidence(results, args.min_confidence)
    save_results(results, args.output)

    print("\n📊 Provider Distribution:")
    for _, row in summarize_providers(results).iterrows():
        print(f"{row['provider']}: {row['count']} websites ({row['percentage']}%)")

    print(f"\nDetailed results saved to: {args.output}")
    return 0


def run_evaluate(args) -> int:
    fetcher = RequestsFetcher(timeout=args.timeout)
    try:
        metrics = run_evaluation(CloudProviderDetector(fetcher=fetcher), args.labeled_csv)
    except (OSError, ValueError) as e:
        print(f"Evaluation failed: {e}")
        return 1
    finally:
        fetcher.close()

    print(f"\n🎯 Accuracy on {metrics['total']} samples: {metrics['accuracy']:.2f}")
    print(f"   Precision (weighted): {metrics['precision']:.2f}")
    print(f"   Recall (weighted):    {metrics['recall']:.2f}")
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "detect":
        return run_detect(args)
    if args.command == "batch":
        return run_batch(args)
    if args.command == "evaluate":
        return run_evaluate(args)

    run_server(
        host=args.host,
        port=args.port,
        detector=CloudProviderDetector(timeout=args.timeout),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
