"""Timing utilities for performance measurement."""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Generator

from .metrics import MetricsClient, get_metrics_client


class TimingContext:
    """Context manager that measures a block and reports it as a timing metric."""

    def __init__(
        self,
        name: str,
        tags: dict[str, str] | None = None,
        emit_metric: bool = True,
        client: MetricsClient | None = None,
    ):
        self.name = name
        self.tags = tags or {}
        self.emit_metric = emit_metric
        self.client = client
        self.start_time: float = 0
        self.elapsed_ms: float = 0

    def __enter__(self) -> "TimingContext":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.elapsed_ms = (time.perf_counter() - self.start_time) * 1000
        if not self.emit_metric:
            return
        tags = dict(self.tags)
        if exc_type is not None:
            tags["error"] = exc_type.__name__
        (self.client or get_metrics_client()).timing(self.name, self.elapsed_ms, tags)


@contextmanager
def timed(
    name: str,
    tags: dict[str, str] | None = None,
    emit_metric: bool = True,
    client: MetricsClient | None = None,
) -> Generator[TimingContext, None, None]:
    """Context manager for timing code blocks.

    Usage:
        with timed("plan_engine.generate") as t:
            build_plan()
        print(f"Took {t.elapsed_ms:.2f}ms")
    """
    ctx = TimingContext(name, tags, emit_metric, client)
    with ctx:
        yield ctx
