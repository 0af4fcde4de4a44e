"""
Candle Pipeline - Main Entry Point

Reads trades from a CSV file and writes 5m/30m/240m candles (or the
configured granularities), one CSV file per granularity.

Environment Variables:
    LOG_LEVEL: Logging level (default: "INFO")
    PIPELINE_CONFIG: YAML config path, used when --config is not given
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from dataflow.errors import PipelineError
from engine.config.loader import ConfigLoader
from engine.runtime.coordinator import PipelineCoordinator, PipelineResult

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ohlc-pipeline",
        description="Aggregate session trades into OHLC candles.",
    )
    parser.add_argument(
        "-f", "--flag",
        dest="input_path",
        default=None,
        help="Path to the file with trades (default: trades.csv).",
    )
    parser.add_argument(
        "-c", "--config",
        default=os.getenv("PIPELINE_CONFIG"),
        help="YAML pipeline config.",
    )
    parser.add_argument(
        "-o", "--output-dir",
        default=None,
        help="Directory for the candle files (default: current directory).",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO").upper(),
        type=str.upper,
        choices=LOG_LEVELS,
        help="Logging level.",
    )
    return parser


async def main(args: argparse.Namespace) -> PipelineResult:
    """
    Load the config, set the pipeline up and run it.

    Raises:
        PipelineError: On any fatal setup error
    """
    loader = ConfigLoader(args.config)
    config = loader.load(input_path=args.input_path, output_dir=args.output_dir)

    logger.info("=" * 60)
    logger.info("Candle Pipeline Starting")
    logger.info("=" * 60)
    logger.info(f"Input: {config.input_path}")
    logger.info(f"Granularities: {config.granularities}")
    logger.info(f"Deadline: {config.deadline_seconds}s")

    coordinator = PipelineCoordinator(config)
    coordinator.setup()

    result = await coordinator.run()

    metrics = coordinator.get_metrics()
    logger.info(
        f"Metrics: {metrics['rows_read']} rows, "
        f"{metrics['trades_forwarded']} trades, sinks: {metrics['sinks']}"
    )
    return result


def cli(argv: Optional[List[str]] = None) -> int:
    """Console entry point. Returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.log_level not in LOG_LEVELS:
        parser.error(f"invalid log level {args.log_level!r} (choose from {', '.join(LOG_LEVELS)})")

    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        asyncio.run(main(args))
    except PipelineError as e:
        logger.error(f"Pipeline setup failed: {e}")
        print(f"ohlc-pipeline: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.info("Shutting down...")
        return 130

    return 0


if __name__ == "__main__":
    sys.exit(cli())
