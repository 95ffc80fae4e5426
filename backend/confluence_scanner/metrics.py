"""
Confluence Scanner — Prometheus-Compatible Metrics

In-process counters rendered in the Prometheus text format:

  http_requests_total{method, route, status}
  http_request_duration_seconds{method, route}   (summary, p50 / p95)
  scans_total{source, outcome}                   (source: provider | supplied)
  signals_total{direction, pattern, timeframe}

Requests are labelled by route template (e.g. /v1/api/scan), never by the
raw URL, so label cardinality stays bounded.
"""

from __future__ import annotations

import time
from collections import Counter, defaultdict, deque
from typing import Iterable, Optional

from fastapi import APIRouter
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from confluence_scanner.models import Signal

# Most recent samples kept per (method, route) for the latency quantiles
_LATENCY_WINDOW = 1000

_requests: Counter = Counter()
_latencies: dict[tuple[str, str], deque] = defaultdict(lambda: deque(maxlen=_LATENCY_WINDOW))
_scans: Counter = Counter()
_signals: Counter = Counter()


def record_request(method: str, route: str, status_code: int, duration: float) -> None:
    _requests[(method, route, status_code)] += 1
    _latencies[(method, route)].append(duration)


def record_scan(source: str, signal: Optional[Signal]) -> None:
    """Count one scan; `source` is "provider" or "supplied"."""
    _scans[(source, "no_signal" if signal is None else "signal")] += 1
    if signal is not None:
        _signals[(signal.direction.value, signal.pattern.value, signal.timeframe)] += 1


def reset_metrics() -> None:
    for store in (_requests, _latencies, _scans, _signals):
        store.clear()


def _route_of(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class MetricsMiddleware(BaseHTTPMiddleware):
    """Times every request except the scrape itself."""

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        record_request(request.method, _route_of(request), response.status_code, time.perf_counter() - started)
        return response


# ────────────────────────────────────────────────
# Exposition
# ────────────────────────────────────────────────

def _labels(names: tuple[str, ...], values: tuple) -> str:
    return ",".join(f'{n}="{v}"' for n, v in zip(names, values))


def _counter(name: str, help_text: str, label_names: tuple[str, ...], samples: Counter) -> Iterable[str]:
    yield f"# HELP {name} {help_text}"
    yield f"# TYPE {name} counter"
    for key, value in sorted(samples.items()):
        yield f"{name}{{{_labels(label_names, key)}}} {value}"
    yield ""


def _quantile(ordered: list[float], q: float) -> float:
    return ordered[min(int(len(ordered) * q), len(ordered) - 1)]


def _latency_summary() -> Iterable[str]:
    name = "http_request_duration_seconds"
    yield f"# HELP {name} HTTP request latency over the most recent requests."
    yield f"# TYPE {name} summary"
    for key, samples in sorted(_latencies.items()):
        if not samples:
            continue
        ordered = sorted(samples)
        labels = _labels(("method", "route"), key)
        for q in (0.5, 0.95):
            yield f'{name}{{{labels},quantile="{q}"}} {_quantile(ordered, q):.6f}'
        yield f"{name}_sum{{{labels}}} {sum(ordered):.6f}"
        yield f"{name}_count{{{labels}}} {len(ordered)}"
    yield ""


def render_metrics() -> str:
    return "\n".join([
        *_counter("http_requests_total", "HTTP requests by route and status.",
                  ("method", "route", "status"), _requests),
        *_latency_summary(),
        *_counter("scans_total", "Symbol scans by data source and outcome.",
                  ("source", "outcome"), _scans),
        *_counter("signals_total", "Confluence signals emitted.",
                  ("direction", "pattern", "timeframe"), _signals),
    ])


metrics_router = APIRouter()


@metrics_router.get("/metrics", include_in_schema=False)
async def get_metrics():
    return PlainTextResponse(render_metrics(), media_type="text/plain; version=0.0.4; charset=utf-8")
