import asyncio
import argparse
import json
import logging
import sys
from dataclasses import replace

from core.config import load_config
from core.engine import Engine
from core.validation import load_validation_cases, run_validation
from models.detection import FrameworkDetectionResult
from models.framework import Framework


def _filter_result(result: FrameworkDetectionResult, min_confidence: float) -> FrameworkDetectionResult:
    """Drop frameworks below a user-chosen confidence on top of the publish thresholds."""
    if min_confidence <= 0.0:
        return result
    kept = [d for d in result.detected_frameworks if d.confidence >= min_confidence]
    return replace(
        result,
        detected_frameworks=kept,
        confidence_summary={d.framework: d.confidence for d in kept},
    )


def main():
    parser = argparse.ArgumentParser(description="Project framework detection CLI")
    parser.add_argument("project_path", nargs="?", help="Path to the project to analyze")
    parser.add_argument("--confidence-threshold", type=float, default=0.0, help="Minimum confidence to include")
    parser.add_argument("--config", type=str, help="Path to a YAML configuration file")
    parser.add_argument("--rules-dir", type=str, help="Directory with frameworks/*.yaml and cross_validation.yaml")
    parser.add_argument("--exclude", type=str, nargs="+", help="Exclude specific frameworks (e.g., --exclude React Vue)")
    parser.add_argument("--no-cache", action="store_true", help="Disable the in-memory result cache")
    parser.add_argument("--log-level", type=str, default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging verbosity level (default: INFO)")
    parser.add_argument("--list-frameworks", action="store_true", help="List all detectable frameworks and exit")
    parser.add_argument("--validate", type=str, metavar="CASES_FILE", help="Run a YAML validation suite instead of a single project")
    args = parser.parse_args()

    # Configure logging
    logging.basicConfig(
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        level=getattr(logging, args.log_level),
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    logger = logging.getLogger(__name__)

    try:
        config = load_config(args.config)
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)
    config = config.with_overrides(
        rules_dir=args.rules_dir,
        exclude_frameworks=args.exclude,
        cache_enabled=False if args.no_cache else None,
    )

    if args.exclude:
        unknown = [name for name in args.exclude if Framework.from_name(name) is Framework.UNKNOWN]
        if unknown:
            logger.error(f"Invalid framework names: {', '.join(unknown)}")
            logger.info(f"Available frameworks: {', '.join(f.value for f in Framework if f is not Framework.UNKNOWN)}")
            sys.exit(1)

    engine = Engine(config)

    # List frameworks if requested
    if args.list_frameworks:
        print("Detectable frameworks:")
        for rule in sorted(engine.rules, key=lambda r: r.name):
            ecosystems = ", ".join(e.value for e in rule.dispatch)
            print(f"  - {rule.name} ({ecosystems})")
        return

    if args.validate:
        async def validate():
            cases = load_validation_cases(args.validate)
            report = await run_validation(engine, cases)
            print(json.dumps(report.to_dict(), indent=2))
            return report

        report = asyncio.run(validate())
        if report.failed:
            sys.exit(1)
        return

    # Require a path if not listing or validating
    if not args.project_path:
        parser.error("project_path is required unless using --list-frameworks or --validate")

    logger.info(f"Starting detection for {args.project_path} with confidence threshold {args.confidence_threshold}")

    async def run():
        logger = logging.getLogger(__name__)
        result = await engine.detect(args.project_path)
        logger.info(f"Analysis complete, found {len(result.detected_frameworks)} frameworks before filtering")

        filtered = _filter_result(result, args.confidence_threshold)
        logger.info(f"After confidence filtering: {len(filtered.detected_frameworks)} frameworks")

        print(json.dumps(filtered.to_dict(), indent=2))

    try:
        asyncio.run(run())
    except (FileNotFoundError, NotADirectoryError, PermissionError) as e:
        logger.error(f"Cannot analyze project: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
