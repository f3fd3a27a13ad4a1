"""Command line entry point: apply a saved fitted blueprint to a CSV file.

Usage::

    blueprint-bake artifacts/blueprint.json data/test.csv -o data/test_baked.csv
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

import pandas as pd

from .blueprint import FittedBlueprint
from .errors import BlueprintError
from .utils.log import configure_logging


logger = logging.getLogger(__name__)


def _build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="blueprint-bake",
        description="Apply a saved fitted blueprint to a CSV file and write the result as CSV.",
    )
    p.add_argument("blueprint", type=Path, help="JSON file written by FittedBlueprint.save().")
    p.add_argument("data", type=Path, help="CSV file to transform.")
    p.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Output CSV path. If omitted, the result is written to stdout.",
    )
    p.add_argument("--sep", default=",", help="Field separator of the input and output CSV (default: ',').")
    p.add_argument("--log-level", default="INFO", help="Logging level (default: INFO).")
    return p


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI and return the process exit code."""
    args = _build_arg_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        fitted = FittedBlueprint.load(args.blueprint)
        raw = pd.read_csv(args.data, sep=args.sep)
        logger.info("Loaded %d rows from %s", len(raw), args.data)
        baked = fitted.bake(raw)
    except (BlueprintError, OSError) as exc:
        logger.error("%s", exc)
        for note in getattr(exc, "__notes__", []):
            logger.error("%s", note)
        return 1

    if args.output is None:
        baked.to_csv(sys.stdout, sep=args.sep, index=False)
    else:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        baked.to_csv(args.output, sep=args.sep, index=False)
        logger.info("Wrote %d rows x %d columns to %s", *baked.shape, args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
