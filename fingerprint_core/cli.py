"""
Command-line interface for minutiae extraction and verification.

Usage:
    fingerprint-match extract IMAGE [--gallery] [--output FEATURES.json]
    fingerprint-match verify PROBE REFERENCE [REFERENCE ...]
"""

import argparse
import sys
from dataclasses import replace
from typing import List, Optional

from fingerprint_core.descriptors.descriptor_matching import MinutiaeMatchingPipeline
from fingerprint_core.utils.config import DEFAULT_CONFIG, Config, load_config
from fingerprint_core.utils.io import load_image, save_feature_set
from fingerprint_core.utils.logger import setup_logging_from_config


def _load_config(path: Optional[str]) -> Config:
    return load_config(path) if path else DEFAULT_CONFIG


def run_extract(args: argparse.Namespace, config: Config) -> int:
    """
    Extract minutiae from one image and print or save them.

    Args:
        args: Parsed command-line arguments
        config: Loaded configuration

    Returns:
        Process exit code
    """
    pipeline = MinutiaeMatchingPipeline(config)

    image = load_image(args.image)
    features = pipeline.extract_features(image, from_gallery=args.gallery)

    counts = features.count_by_type()
    print(f"Minutiae: {len(features)} "
          f"(endings: {counts['ENDING']}, bifurcations: {counts['BIFURCATION']})")

    if args.output:
        save_feature_set(features, args.output)
        print(f"Features saved to {args.output}")

    return 0


def run_verify(args: argparse.Namespace, config: Config) -> int:
    """
    Verify a probe against one or more reference images.

    Args:
        args: Parsed command-line arguments
        config: Loaded configuration

    Returns:
        0 on match, 1 on no match
    """
    pipeline = MinutiaeMatchingPipeline(config)

    probe = load_image(args.probe)
    references = []
    for path in args.references:
        try:
            references.append(load_image(path))
        except (FileNotFoundError, ValueError) as e:
            print(f"Warning: {e}", file=sys.stderr)
            references.append(None)

    result = pipeline.verify_against_gallery(
        probe,
        references,
        probe_from_gallery=args.probe_gallery,
        references_from_gallery=not args.references_enhanced
    )

    print("=" * 60)
    print("VERIFICATION RESULT")
    print("=" * 60)
    print(f"References processed: {result.processed}, failed: {result.failed}")

    if result.best is None:
        print("No valid matches found")
        return 1

    best = result.best
    print(f"Best reference: {args.references[result.best_index]}")
    print(f"Similarity:     {best.similarity_score:.4f}")
    print(f"Confidence:     {best.confidence:.4f}")
    print(f"Decision:       {'MATCH' if best.is_match else 'NO MATCH'}")

    return 0 if best.is_match else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Contactless-to-contact fingerprint minutiae matching"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to YAML configuration file"
    )
    parser.add_argument(
        "--log_level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override the configured logging level"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    extract = subparsers.add_parser("extract", help="Extract minutiae from an image")
    extract.add_argument("image", type=str, help="Path to fingerprint image")
    extract.add_argument(
        "--gallery",
        action="store_true",
        help="Image is an unenhanced contact-based photo"
    )
    extract.add_argument(
        "--output",
        type=str,
        default=None,
        help="Write the feature set to this JSON file"
    )
    extract.set_defaults(func=run_extract)

    verify = subparsers.add_parser("verify", help="Verify a probe against references")
    verify.add_argument("probe", type=str, help="Path to contactless probe image")
    verify.add_argument(
        "references",
        type=str,
        nargs="+",
        help="Paths to contact-based reference images of one identity"
    )
    verify.add_argument(
        "--probe_gallery",
        action="store_true",
        help="Probe is an unenhanced photo and needs enhancement"
    )
    verify.add_argument(
        "--references_enhanced",
        action="store_true",
        help="References are already enhanced"
    )
    verify.set_defaults(func=run_verify)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = _load_config(args.config)
    logging_config = config.logging
    if args.log_level:
        logging_config = replace(logging_config, level=args.log_level)
    setup_logging_from_config(logging_config)

    return args.func(args, config)


if __name__ == "__main__":
    sys.exit(main())
