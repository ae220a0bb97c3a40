"""
Progress Reporting - Observer interface for pipeline progress.
"""

import logging
from typing import Protocol

from token_exporter.models import ItemResult, ItemState, RunSummary


logger = logging.getLogger(__name__)


class ProgressReporter(Protocol):
    def on_item_complete(self, result: ItemResult) -> None:
        ...

    def on_window_complete(self, window_index: int, total_windows: int, summary: RunSummary) -> None:
        ...

    def on_run_complete(self, summary: RunSummary) -> None:
        ...


class LoggingProgressReporter:
    """Logs running counts after each window and a final summary."""

    def __init__(self, every_n_windows: int = 1) -> None:
        self._every = max(1, every_n_windows)

    def on_item_complete(self, result: ItemResult) -> None:
        # failures are already logged as warnings by the pipeline
        if result.state != ItemState.FAILED:
            logger.debug(f"{result.symbol} on {result.source_chain}: {result.state.value}")

    def on_window_complete(self, window_index: int, total_windows: int, summary: RunSummary) -> None:
        if window_index % self._every and window_index != total_windows:
            return
        logger.info(
            f"Window {window_index}/{total_windows}: "
            f"{summary.processed}/{summary.planned} items "
            f"(done={summary.done}, skipped={summary.skipped}, failed={summary.failed})"
        )

    def on_run_complete(self, summary: RunSummary) -> None:
        logger.info(
            f"Export finished in {summary.duration_seconds:.1f}s: "
            f"{summary.done} written, {summary.skipped} skipped, {summary.failed} failed, "
            f"{summary.duplicates} duplicates dropped"
        )
        for kind, count in sorted(summary.failures_by_kind.items(), key=lambda kv: kv[0].value):
            logger.info(f"  {kind.value}: {count}")


class NullProgressReporter:
    """Reporter that ignores every event."""

    def on_item_complete(self, result: ItemResult) -> None:
        pass

    def on_window_complete(self, window_index: int, total_windows: int, summary: RunSummary) -> None:
        pass

    def on_run_complete(self, summary: RunSummary) -> None:
        pass
