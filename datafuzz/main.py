"""
DataFusion Fuzzing Framework

Randomized stability and differential testing of the DataFusion query engine:
- random tables (Arrow batches or CREATE TABLE + INSERT)
- random views and SELECT queries over them
- oracles that look for crashes, wrong results and configuration dependence
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from .config import TABLE_CREATION_MODES, RunnerConfig
from .context import GlobalContext
from .display import StatusDisplay
from .errors import ConfigError
from .models import RunSummary
from .oracles import ORACLES
from .runner import run_fuzzer
from .stats import format_report
from .utils import save_report, setup_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_BUGS_FOUND = 1
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="datafuzz",
        description="Randomized differential and stability fuzzer for DataFusion",
    )
    # Every option defaults to None so only explicit flags override the config file
    parser.add_argument("-c", "--config", help="JSON config file")
    parser.add_argument("-s", "--seed", type=int, help="base seed of the run")
    parser.add_argument("-r", "--rounds", type=int, help="number of rounds")
    parser.add_argument("-q", "--queries-per-round", type=int, dest="queries_per_round")
    parser.add_argument("-t", "--timeout", type=float, dest="timeout_seconds",
                        help="per-query timeout in seconds")
    parser.add_argument("-l", "--log-path", dest="log_path", help="directory for fuzzer.log and bugs.log")
    parser.add_argument("-d", "--display-logs", action="store_true", default=None, dest="display_logs",
                        help="also print logs to stdout (ignored while the live display is on)")
    parser.add_argument("--enable-tui", action="store_true", dest="enable_tui", help="show the live status display")
    parser.add_argument("--no-tui", action="store_false", dest="enable_tui", help="disable the live status display")
    parser.add_argument("--max-column-count", type=int, dest="max_column_count")
    parser.add_argument("--max-row-count", type=int, dest="max_row_count")
    parser.add_argument("--max-expr-level", type=int, dest="max_expr_level")
    parser.add_argument("--max-table-count", type=int, dest="max_table_count")
    parser.add_argument("--max-insert-per-table", type=int, dest="max_insert_per_table")
    parser.add_argument("--table-creation-mode", choices=TABLE_CREATION_MODES, dest="table_creation_mode")
    parser.add_argument("--oracle", action="append", dest="oracles", choices=sorted(ORACLES),
                        help="enable an oracle, may be repeated")
    parser.set_defaults(enable_tui=None)
    return parser


async def main(config: RunnerConfig) -> RunSummary:
    """Run the fuzzer, with the live display alongside when enabled"""
    ctx = GlobalContext(config)
    finished = asyncio.Event()

    display_task = None
    if config.enable_tui:
        display_task = asyncio.create_task(StatusDisplay(ctx.stats).run(finished))

    try:
        summary = await run_fuzzer(ctx)
    finally:
        finished.set()
        if display_task is not None:
            await display_task

    report = format_report(ctx.stats.snapshot())
    print(report)
    if config.log_path:
        save_report(report, config.log_path)

    logger.info(f"Fuzzing completed. Total queries: {summary.queries_executed}")
    logger.info(f"Bugs found: {summary.bugs_found}")
    return summary


def cli(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = RunnerConfig.from_cli(args)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    setup_logging(config)
    summary = asyncio.run(main(config))
    return EXIT_BUGS_FOUND if summary.bugs_found else EXIT_OK


if __name__ == "__main__":
    sys.exit(cli())
