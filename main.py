import argparse
import json
import logging
import sys

from preprocessing.dataset import DatasetParseError
from qualitycheck.analyzer import QualityAnalyzer
from qualitycheck.config import AnalysisConfig


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dqcheck",
        description="Score the quality of a CSV or JSON dataset and explain the result."
    )
    parser.add_argument("path", help="CSV or JSON file to analyse")
    parser.add_argument("--no-llm", action="store_true", help="use the built-in analysis only")
    parser.add_argument("--provider", choices=["gemini", "local_hf"], help="narrative provider")
    parser.add_argument("--model", help="model name for the narrative provider")
    parser.add_argument("--timeout", type=float, help="seconds to wait for the narrative provider")
    parser.add_argument("--engine", choices=["auto", "pandas", "polars"], help="CSV reader")
    parser.add_argument("--output", "-o", help="where to write the JSON report")
    parser.add_argument("--listing", action="store_true", help="print the marketplace listing if eligible")
    parser.add_argument("--quiet", "-q", action="store_true", help="suppress progress output")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.WARNING if args.quiet else logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    overrides = {
        "use_llm": False if args.no_llm else None,
        "llm_provider": args.provider,
        "llm_model": args.model,
        "llm_timeout": args.timeout,
        "engine": args.engine,
        "output_path": args.output,
    }
    config = AnalysisConfig.from_env(**{k: v for k, v in overrides.items() if v is not None})

    try:
        analyzer = QualityAnalyzer(args.path, config=config, verbose=not args.quiet)
    except (DatasetParseError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    assessment = analyzer.analyze().assessment

    print(f"\nQuality score: {assessment.score}/100 ({assessment.label}) - {assessment.analysis_method}\n")
    print(assessment.narrative)

    report_path = analyzer.export_report()
    print(f"\n✅ Report generated: {report_path}")

    if args.listing:
        listing = analyzer.marketplace_listing()
        if listing is None:
            print("Dataset is not eligible for the marketplace (score below 75)")
        else:
            print(json.dumps(listing, indent=2))

    return 0


if __name__ == "__main__":
    sys.exit(main())
