"""Command-line entrypoint: answer one question against one bid package.

    python -m pairing_query.cli "show me 4-day pairings" --source 12
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from pairing_query.app import create_app
from pairing_query.config.logging import configure_logging
from pairing_query.config.settings import load_settings
from pairing_query.pipeline.orchestrator import PipelineStage

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pairing-query",
        description="Ask a natural-language question about the pairings of a bid package.",
    )
    parser.add_argument("question", help="the question, e.g. \"top 5 high credit turns\"")
    parser.add_argument("--source", type=int, required=True, help="bid package id to search")
    parser.add_argument(
        "--seniority",
        type=float,
        default=None,
        help="seniority percentile (lower is more senior); tunes overall ranking",
    )
    parser.add_argument("--log-level", default=None, help="overrides LOG_LEVEL")
    return parser


async def main(argv: list[str] | None = None) -> int:
    """Run one query and print the answer."""

    args = build_parser().parse_args(argv)

    settings = load_settings()
    configure_logging(args.log_level)

    app = create_app(settings)
    await app.pool.open(wait=True)

    try:
        result = await app.pipeline.run_query(args.question, args.source, args.seniority)
    finally:
        logger.info("shutting down")
        await app.pool.close()

    print(result.response)
    return 1 if result.stage == PipelineStage.failed else 0


def run() -> None:
    raise SystemExit(asyncio.run(main()))


if __name__ == "__main__":
    run()
