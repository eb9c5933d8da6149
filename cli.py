# cli.py

import argparse
import sys
import json
import logging
from config import SystemConfig
from core.exceptions import (ConfigError, DimensionMismatch, DuplicateIdentifier,
                             FeatureFileError, InvalidN, QueryNotFound, UnknownMetric)
from core.metrics import build_registry
from core.ranker import rank_with_scores
from utils.file_utils import read_feature_csv
from utils.logging_config import log_operation, setup_logging

logger = logging.getLogger(__name__)

# Distinct exit codes per failure kind
EXIT_CODES = {
    InvalidN: 2,
    UnknownMetric: 3,
    QueryNotFound: 4,
    DimensionMismatch: 5,
    DuplicateIdentifier: 6,
    FeatureFileError: 7,
    ConfigError: 9,
}
EXIT_DISPLAY_ERROR = 8


def positive_int(value: str) -> int:
    """argparse type for counts that must be at least 1"""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def match_command(args, config: SystemConfig) -> int:
    """Find the top N matches for a target image from the command line"""
    metric_name = args.metric or config.ranking.default_metric
    n = args.n if args.n is not None else config.ranking.top_n
    n_workers = args.workers if args.workers is not None else config.ranking.n_workers

    print(f"Find similar images for image {args.target} from feature file {args.feature_file}")

    # Reject bad arguments before reading the feature file
    if isinstance(n, bool) or not isinstance(n, int) or n <= 0:
        raise InvalidN(n)
    if isinstance(n_workers, bool) or not isinstance(n_workers, int) or n_workers < 1:
        raise ConfigError(f"n_workers must be a positive integer, got {n_workers!r}")
    registry = build_registry(config.metrics)
    metric = registry.resolve(metric_name)
    dataset = read_feature_csv(args.feature_file)

    matches = rank_with_scores(dataset, args.target, metric.name, n,
                               registry=registry, n_workers=n_workers)
    log_operation(logger, 'match', target=args.target, metric=metric.name,
                  n=n, dataset_size=len(dataset), returned=len(matches))

    print("Output filenames: " + " ".join(m.identifier for m in matches))
    print(f"\nTop {len(matches)} matches ({metric.name}, {metric.direction.value}):")
    for i, m in enumerate(matches, 1):
        print(f"{i}. {m.identifier} (score: {m.score:.4f})")

    # Save results to JSON if requested
    if args.output:
        output_data = [
            {"identifier": m.identifier, "score": float(m.score)}
            for m in matches
        ]
        with open(args.output, 'w') as f:
            json.dump(output_data, f, indent=2)
        print(f"\nResults saved to: {args.output}")

    if args.show:
        from utils.image_utils import resolve_image_paths, show_matches
        target_path, = resolve_image_paths([args.target], args.image_root)
        match_paths = resolve_image_paths([m.identifier for m in matches], args.image_root)
        try:
            show_matches(target_path, match_paths, config.display)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return EXIT_DISPLAY_ERROR

    return 0


def metrics_command(args, config: SystemConfig) -> int:
    """List registered distance metrics"""
    registry = build_registry(config.metrics)
    for metric in registry:
        aliases = ", ".join(registry.aliases_for(metric.name))
        print(f"{metric.name:<28} {metric.direction.value:<11} [{aliases}]  {metric.description}")
    return 0


def main_cli(argv=None) -> int:
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(
        description="Image Feature Matcher - Command Line Interface"
    )
    parser.add_argument('-c', '--config', default="config.yaml",
                        help='Path to YAML configuration file')
    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # Match command
    match_parser = subparsers.add_parser('match', help='Find the top N matching images')
    match_parser.add_argument('target', help='Target image filename, as listed in the feature file')
    match_parser.add_argument('feature_file', help='CSV feature file')
    match_parser.add_argument('n', type=int, nargs='?', default=None,
                              help='Number of matches to return (default: ranking.top_n)')
    match_parser.add_argument('metric', nargs='?', default=None,
                              help='Distance metric name or alias (see "metrics")')
    match_parser.add_argument('-w', '--workers', type=positive_int, default=None,
                              help='Threads used to score entries')
    match_parser.add_argument('-o', '--output', help='Output JSON file for results')
    match_parser.add_argument('--show', action='store_true',
                              help='Display the target and matched images')
    match_parser.add_argument('--image-root', default=None,
                              help='Directory that image identifiers are relative to')
    match_parser.set_defaults(func=match_command)

    # Metrics command
    metrics_parser = subparsers.add_parser('metrics', help='List available distance metrics')
    metrics_parser.set_defaults(func=metrics_command)

    # Parse arguments
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    # Execute command
    try:
        config = SystemConfig.load(args.config)
        setup_logging(config)
        return args.func(args, config)
    except tuple(EXIT_CODES) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CODES[type(e)]

if __name__ == "__main__":
    sys.exit(main_cli())
