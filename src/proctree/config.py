"""Runtime configuration and logging setup for proctree."""

import argparse
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from textual.logging import TextualHandler

from proctree.monitor import DEFAULT_POLL_RATE
from proctree.search import ViewMode
from proctree.sorting import SortKey
from proctree.tree import FALLBACK_ROOT_LIMIT

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(slots=True)
class MonitorConfig:
    """Settings for a proctree session."""

    refresh_interval: float = DEFAULT_POLL_RATE
    fallback_root_limit: int = FALLBACK_ROOT_LIMIT
    view_mode: ViewMode = ViewMode.TREE
    sort_key: SortKey = SortKey.NAME
    log_level: str = "WARNING"
    log_file: str | None = None


def _positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from None
    if number <= 0:
        raise argparse.ArgumentTypeError("interval must be positive")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="proctree",
        description="Live process-hierarchy monitor.",
    )
    parser.add_argument(
        "--interval",
        type=_positive_float,
        default=DEFAULT_POLL_RATE,
        help="seconds between refreshes (default: %(default)s)",
    )
    parser.add_argument(
        "--sort",
        choices=[key.value for key in SortKey],
        default=SortKey.NAME.value,
        help="initial sort criterion (default: %(default)s)",
    )
    parser.add_argument("--flat", action="store_true", help="start in flat list mode")
    parser.add_argument("--log-file", default=None, help="also write logs to this file")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="logging threshold (default: %(default)s)",
    )
    return parser


def parse_args(argv: Sequence[str] | None = None) -> MonitorConfig:
    """Build a MonitorConfig from command-line arguments."""
    args = build_parser().parse_args(argv)
    return MonitorConfig(
        refresh_interval=args.interval,
        view_mode=ViewMode.FLAT if args.flat else ViewMode.TREE,
        sort_key=SortKey(args.sort),
        log_level=args.log_level,
        log_file=args.log_file,
    )


def configure_logging(level: str = "WARNING", log_file: str | None = None) -> None:
    """
    Route proctree logs to the Textual devtools console.

    Writing to stderr would corrupt the terminal UI, so records go through
    TextualHandler and, optionally, a plain log file.
    """
    handlers: list[logging.Handler] = [TextualHandler()]
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handlers.append(file_handler)
    logging.basicConfig(level=level, handlers=handlers, force=True)
