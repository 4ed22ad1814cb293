"""Prometheus metrics for prompt-condenser.

Provides a NoopRecorder (zero overhead when disabled) and a PrometheusRecorder
behind a shared interface.  Use create_recorder() to pick the right one.

The pipeline hands every invocation to the recorder as a CompressionRecord,
plus one record_symbol_usage() call per distinct symbol it substituted.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from typing import Protocol


@dataclass
class CompressionRecord:
    """One pipeline invocation, successful or not."""

    strategy: str
    original_tokens: int
    compressed_tokens: int
    compression_ratio: float
    tokens_saved: int
    processing_time: float
    semantic_score: float
    success: bool = True
    error_type: str | None = None
    timestamp: float = field(default_factory=time.time)

    def as_dict(self) -> dict:
        return asdict(self)


class MetricsRecorder(Protocol):
    """Interface shared by Noop and Prometheus recorders."""

    def record_compression(self, record: CompressionRecord) -> None: ...
    def record_symbol_usage(self, symbol: str, concept: str, count: int = 1) -> None: ...
    def record_floor_reached(self, strategy: str) -> None: ...


class NoopRecorder:
    """No-op implementation; every method is a pass-through."""

    def record_compression(self, record: CompressionRecord) -> None:
        pass

    def record_symbol_usage(self, symbol: str, concept: str, count: int = 1) -> None:
        pass

    def record_floor_reached(self, strategy: str) -> None:
        pass


class PrometheusRecorder:
    """Records metrics using prometheus_client."""

    def __init__(self, registry=None):
        from prometheus_client import Counter, Histogram

        if registry is None:
            from prometheus_client import REGISTRY
            registry = REGISTRY

        self._registry = registry

        self.requests_total = Counter(
            "prompt_condenser_requests_total",
            "Compression requests by outcome",
            ["strategy", "outcome"],
            registry=registry,
        )
        self.input_tokens_total = Counter(
            "prompt_condenser_input_tokens_total",
            "Estimated tokens before compression",
            ["strategy"],
            registry=registry,
        )
        self.output_tokens_total = Counter(
            "prompt_condenser_output_tokens_total",
            "Estimated tokens after compression",
            ["strategy"],
            registry=registry,
        )
        self.saved_tokens_total = Counter(
            "prompt_condenser_saved_tokens_total",
            "Tokens saved (input - output, positive only)",
            ["strategy"],
            registry=registry,
        )
        self.compression_ratio = Histogram(
            "prompt_condenser_compression_ratio",
            "Size reduction per request, percent (higher = better)",
            ["strategy"],
            buckets=(0, 5, 10, 20, 30, 40, 50, 60, 70, 80, 90, 100),
            registry=registry,
        )
        self.semantic_score = Histogram(
            "prompt_condenser_semantic_score",
            "Heuristic meaning-preservation estimate per request",
            ["strategy"],
            buckets=(40, 50, 60, 70, 80, 90, 95, 100),
            registry=registry,
        )
        self.processing_seconds = Histogram(
            "prompt_condenser_processing_seconds",
            "Wall clock time per pipeline run",
            ["strategy"],
            registry=registry,
        )
        self.symbol_usage_total = Counter(
            "prompt_condenser_symbol_usage_total",
            "Symbol substitutions by symbol",
            ["symbol", "concept"],
            registry=registry,
        )
        self.pruning_floor_total = Counter(
            "prompt_condenser_pruning_floor_total",
            "Runs where the pruning floor stopped removal before the target",
            ["strategy"],
            registry=registry,
        )

    def record_compression(self, record: CompressionRecord) -> None:
        outcome = "success" if record.success else (record.error_type or "error")
        self.requests_total.labels(strategy=record.strategy, outcome=outcome).inc()
        if not record.success:
            return
        self.input_tokens_total.labels(strategy=record.strategy).inc(record.original_tokens)
        self.output_tokens_total.labels(strategy=record.strategy).inc(record.compressed_tokens)
        if record.tokens_saved > 0:
            self.saved_tokens_total.labels(strategy=record.strategy).inc(record.tokens_saved)
        self.compression_ratio.labels(strategy=record.strategy).observe(record.compression_ratio)
        self.semantic_score.labels(strategy=record.strategy).observe(record.semantic_score)
        self.processing_seconds.labels(strategy=record.strategy).observe(record.processing_time)

    def record_symbol_usage(self, symbol: str, concept: str, count: int = 1) -> None:
        self.symbol_usage_total.labels(symbol=symbol, concept=concept).inc(count)

    def record_floor_reached(self, strategy: str) -> None:
        self.pruning_floor_total.labels(strategy=strategy).inc()


@contextmanager
def timer():
    """Context manager that yields a callable returning elapsed seconds."""
    start = time.monotonic()
    elapsed = None

    def get_elapsed() -> float:
        nonlocal elapsed
        if elapsed is None:
            elapsed = time.monotonic() - start
        return elapsed

    yield get_elapsed
    if elapsed is None:
        elapsed = time.monotonic() - start


def create_recorder(enabled: bool = False, port: int = 9090) -> NoopRecorder | PrometheusRecorder:
    """Factory: start metrics HTTP server when enabled, return appropriate recorder."""
    if not enabled:
        return NoopRecorder()

    from prometheus_client import start_http_server

    recorder = PrometheusRecorder()
    start_http_server(port)
    return recorder
