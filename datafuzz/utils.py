"""
Utility functions for the fuzzer: logging setup and table dumps
"""

import io
import logging
import os
import sys
from datetime import datetime
from typing import List, Optional

import pyarrow as pa
from rich.console import Console
from rich.table import Table

from .config import RunnerConfig
from .context import GlobalContext
from .errors import EngineError
from .models import column_values
from .value_generator import format_time, format_timestamp

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
FUZZER_LOG = "fuzzer.log"
BUGS_LOG = "bugs.log"
DISPLAY_ROWS = 3


def setup_logging(config: RunnerConfig) -> List[logging.Handler]:
    """
    Attach the run's handlers to the root logger.

    fuzzer.log gets every INFO+ record, bugs.log only ERROR records (the
    non-whitelisted failures). Logs go to stdout only when asked for and the
    live display is off. Handlers from an earlier call are replaced.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_datafuzz", False):
            root.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    handlers: List[logging.Handler] = []

    if config.log_path:
        os.makedirs(config.log_path, exist_ok=True)
        fuzzer_handler = logging.FileHandler(os.path.join(config.log_path, FUZZER_LOG), encoding='utf-8')
        fuzzer_handler.setLevel(logging.INFO)
        bugs_handler = logging.FileHandler(os.path.join(config.log_path, BUGS_LOG), encoding='utf-8')
        bugs_handler.setLevel(logging.ERROR)
        handlers += [fuzzer_handler, bugs_handler]

    if config.display_logs and not config.enable_tui:
        stdout_handler = logging.StreamHandler(sys.stdout)
        stdout_handler.setLevel(logging.INFO)
        handlers.append(stdout_handler)

    for handler in handlers:
        handler.setFormatter(formatter)
        handler._datafuzz = True
        root.addHandler(handler)
    root.setLevel(logging.INFO)
    return handlers


def _render_column(column) -> List[str]:
    arrow_type = column.type
    values = column_values(column)
    if pa.types.is_time64(arrow_type) and arrow_type.unit == "ns":
        return ["NULL" if v is None else format_time(v) for v in values]
    if pa.types.is_timestamp(arrow_type) and arrow_type.unit == "ns":
        return ["NULL" if v is None else _render_timestamp(v, arrow_type.tz) for v in values]
    return ["NULL" if v is None else str(v) for v in values]


def _render_timestamp(nanoseconds: int, timezone: Optional[str]) -> str:
    try:
        return format_timestamp(nanoseconds, timezone)
    except OverflowError:
        # outside the years datetime can name
        return f"{nanoseconds}ns"


def format_batches(title: str, batches: List[pa.RecordBatch], schema: Optional[pa.Schema] = None) -> str:
    """Render record batches as a text table"""
    table = pa.Table.from_batches(batches, schema=schema)
    rendered = Table(title=title)
    for name in table.column_names:
        rendered.add_column(name)
    for row in zip(*(_render_column(column) for column in table.columns)):
        rendered.add_row(*row)

    buffer = io.StringIO()
    Console(file=buffer, width=200, color_system=None).print(rendered)
    return buffer.getvalue()


def display_all_tables(ctx: GlobalContext):
    """Log up to three rows of every registered table"""
    runtime = ctx.runtime_context
    engine = runtime.engine
    for table in runtime.list_tables():
        sql = f"SELECT * FROM {table.name} LIMIT {DISPLAY_ROWS}"
        try:
            batches = engine.execute_sync(sql)
            schema = engine.schema_of(sql)
        except EngineError as e:
            logger.warning(f"Failed to display table {table.name}: {e}")
            continue
        try:
            rendered = format_batches(f"Table: {table.name}", batches, schema)
        except (pa.ArrowException, ValueError, OverflowError) as e:
            logger.warning(f"Failed to render table {table.name}: {e}")
            continue
        logger.info("\n" + rendered)


def save_report(report: str, output_dir: str, filename: Optional[str] = None) -> str:
    """Save the final report next to the logs"""
    os.makedirs(output_dir, exist_ok=True)
    if filename is None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filename = f"fuzz_report_{timestamp}.txt"

    output_path = os.path.join(output_dir, filename)
    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(report)

    logger.info(f"Report saved to {output_path}")
    return output_path
