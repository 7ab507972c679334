# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #
"""
Observability helpers shared by all client services.

Three process-wide facilities:

* ``get_structured_logger`` - event-style logging with fixed context fields
  and an optional one-line JSON rendering
* ``metrics`` - in-memory counters, gauges and histograms, read back with
  ``metrics.get_stats()``
* ``tracing`` - OpenTelemetry spans, off until :func:`enable_tracing` is called

Example:
    >>> from utils.observability import get_structured_logger, metrics
    >>>
    >>> structured_logger = get_structured_logger(__name__, service_name="MissionService")
    >>> structured_logger.info("mission_claimed", extra={"mission_id": 12, "gold_reward": 50})
    >>> metrics.increment("missions.claims.total")
"""

import json
import logging
import sys
import time
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Dict, Iterator, List, Optional, Sequence

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Status, StatusCode

# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_BUILTINS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


# ============================================================================ #
# Structured Logging                                                           #
# ============================================================================ #

class JSONFormatter(logging.Formatter):
    """Render a record as one JSON object per line.

    ``{"ts": ..., "level": "INFO", "logger": "umbra.missions", "event": "mission_claimed",
    "service": "MissionService", "mission_id": 12}``
    """

    def __init__(self, service_name: str = "umbra"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
            "service": self.service_name,
        }
        entry.update(
            (key, value) for key, value in vars(record).items() if key not in _RECORD_BUILTINS
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class StructuredLogger(logging.LoggerAdapter):
    """Adapter that merges its fixed context into every call's ``extra``."""

    def process(self, msg, kwargs):
        kwargs["extra"] = {**kwargs.get("extra", {}), **self.extra}
        return msg, kwargs


def get_structured_logger(
    name: str,
    service_name: str = "umbra",
    use_json: bool = False,
    context: Optional[Dict[str, Any]] = None,
) -> StructuredLogger:
    """
    Return a :class:`StructuredLogger` for *name*.

    The logger keeps propagating to the ``umbra`` tree.  Only with
    ``use_json`` does it get its own stdout handler (and stops propagating so
    events are not printed twice).
    """
    base = logging.getLogger(name)
    if use_json and not base.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter(service_name))
        base.addHandler(handler)
        base.propagate = False

    return StructuredLogger(base, {"service": service_name, **(context or {})})


# ============================================================================ #
# Metrics                                                                      #
# ============================================================================ #

def _metric_key(name: str, tags: Optional[Dict[str, str]]) -> str:
    if not tags:
        return name
    rendered = ",".join(f"{key}={tags[key]}" for key in sorted(tags))
    return f"{name}{{{rendered}}}"


def _summarize(values: Sequence[float]) -> Dict[str, float]:
    ordered = sorted(values)
    count = len(ordered)
    total = sum(ordered)
    return {
        "count": count,
        "sum": total,
        "min": ordered[0],
        "max": ordered[-1],
        "mean": total / count,
        "p50": ordered[count // 2],
        "p95": ordered[min(count - 1, int(count * 0.95))],
    }


class MetricsCollector:
    """
    Thread-safe in-memory metrics.

    Tags are folded into the key (``events.published{topic=inventory}``).
    Timers record ``<name>.duration_ms`` histograms.
    """

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._lock = Lock()
        self._counters: Dict[str, int] = defaultdict(int)
        self._gauges: Dict[str, float] = {}
        self._histograms: Dict[str, List[float]] = defaultdict(list)
        self._started_at = clock()

    def increment(self, name: str, value: int = 1, tags: Optional[Dict[str, str]] = None) -> None:
        with self._lock:
            self._counters[_metric_key(name, tags)] += value

    def gauge(self, name: str, value: float, tags: Optional[Dict[str, str]] = None) -> None:
        with self._lock:
            self._gauges[_metric_key(name, tags)] = value

    def histogram(self, name: str, value: float, tags: Optional[Dict[str, str]] = None) -> None:
        with self._lock:
            self._histograms[_metric_key(name, tags)].append(value)

    def counter(self, name: str, tags: Optional[Dict[str, str]] = None) -> int:
        """Current value of one counter (0 when never incremented)."""
        with self._lock:
            return self._counters.get(_metric_key(name, tags), 0)

    @contextmanager
    def timer(self, name: str, tags: Optional[Dict[str, str]] = None) -> Iterator[None]:
        started = self._clock()
        try:
            yield
        finally:
            self.histogram(f"{name}.duration_ms", (self._clock() - started) * 1000, tags)

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            counters = dict(self._counters)
            gauges = dict(self._gauges)
            histograms = {name: list(values) for name, values in self._histograms.items() if values}
            uptime = self._clock() - self._started_at

        return {
            "counters": counters,
            "gauges": gauges,
            "histograms": {name: _summarize(values) for name, values in histograms.items()},
            "uptime_seconds": uptime,
        }

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._gauges.clear()
            self._histograms.clear()
            self._started_at = self._clock()


metrics = MetricsCollector()


# ============================================================================ #
# Tracing                                                                      #
# ============================================================================ #

class TracingManager:
    """
    OpenTelemetry spans around claims and purchases.

    While disabled, :meth:`trace` yields ``None`` and costs nothing, so call
    sites guard attribute writes with ``if span is not None``.
    """

    def __init__(self, service_name: str = "umbra", enabled: bool = False):
        self.service_name = service_name
        self.tracer = None
        if enabled:
            self.enable(service_name)

    @property
    def enabled(self) -> bool:
        return self.tracer is not None

    def enable(self, service_name: Optional[str] = None) -> None:
        """Install a console-exporting tracer provider (once per process)."""
        if self.tracer is not None:
            return
        if service_name:
            self.service_name = service_name
        provider = TracerProvider(resource=Resource(attributes={"service.name": self.service_name}))
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        trace.set_tracer_provider(provider)
        self.tracer = trace.get_tracer("umbra")

    @contextmanager
    def trace(self, name: str, attributes: Optional[Dict[str, Any]] = None):
        if self.tracer is None:
            yield None
            return

        with self.tracer.start_as_current_span(name, attributes=attributes or {}) as span:
            try:
                yield span
            except Exception as e:
                span.set_status(Status(StatusCode.ERROR, str(e)))
                span.record_exception(e)
                raise


tracing = TracingManager()


def enable_tracing(service_name: str = "umbra") -> TracingManager:
    """Turn on tracing for every module holding the shared ``tracing`` instance."""
    tracing.enable(service_name)
    return tracing
