"""
Checkpoint emission sinks.

A checkpoint is an observability snapshot; sinks decide where it goes.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import asdict
from typing import Protocol

from catalog_scraper.scraping.logging_utils import log_event
from catalog_scraper.scraping.types import Checkpoint

logger = logging.getLogger(__name__)


class CheckpointSink(Protocol):
    def emit(self, checkpoint: Checkpoint) -> None:
        ...


class LoggingCheckpointSink:
    """
    Writes each checkpoint as one structured log line.
    """

    def __init__(self, *, level: int = logging.INFO) -> None:
        self._level = level

    def emit(self, checkpoint: Checkpoint) -> None:
        log_event(
            logger,
            self._level,
            "checkpoint_saved",
            scope=checkpoint.scope,
            iteration_index=checkpoint.iteration_index,
            timestamp=checkpoint.timestamp.isoformat(),
            **asdict(checkpoint.counters),
        )


class CallbackCheckpointSink:
    def __init__(self, callback: Callable[[Checkpoint], None]) -> None:
        self._callback = callback

    def emit(self, checkpoint: Checkpoint) -> None:
        self._callback(checkpoint)
