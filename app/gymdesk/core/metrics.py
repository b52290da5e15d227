from __future__ import annotations

from dataclasses import dataclass

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST

from app.gymdesk.core.config import settings


@dataclass
class MetricsSnapshot:
    content: bytes
    content_type: str


class Metrics:
    def __init__(self) -> None:
        self.enabled = bool(settings.METRICS_ENABLED)
        self._registry = None
        self._http_requests_total = None
        self._http_request_duration_ms = None
        self._idempotency_replay_total = None
        self._lock_wait_timeout_total = None
        self._permission_denied_total = None
        self._shift_transitions_total = None
        self._shift_reconciliation_total = None
        self._sales_recorded_total = None
        self._insufficient_stock_total = None
        if self.enabled:
            self._initialize_registry()

    def _initialize_registry(self) -> None:
        self._registry = CollectorRegistry()
        self._http_requests_total = Counter(
            "http_requests_total",
            "HTTP requests by route/method/status.",
            ["route", "method", "status"],
            registry=self._registry,
        )
        self._http_request_duration_ms = Histogram(
            "http_request_duration_ms",
            "HTTP request latency in milliseconds.",
            ["route", "method", "status"],
            buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000, 30000),
            registry=self._registry,
        )
        self._idempotency_replay_total = Counter(
            "idempotency_replay_total",
            "Idempotent replay responses.",
            registry=self._registry,
        )
        self._lock_wait_timeout_total = Counter(
            "lock_wait_timeout_total",
            "Lock wait timeout occurrences.",
            registry=self._registry,
        )
        self._permission_denied_total = Counter(
            "permission_denied_total",
            "Forbidden decisions (role, module, ownership or tenant scope).",
            registry=self._registry,
        )
        self._shift_transitions_total = Counter(
            "shift_transitions_total",
            "Cash shift lifecycle transitions.",
            ["transition"],
            registry=self._registry,
        )
        self._shift_reconciliation_total = Counter(
            "shift_reconciliation_total",
            "Closed shifts by reconciliation outcome.",
            ["status", "forced"],
            registry=self._registry,
        )
        self._sales_recorded_total = Counter(
            "sales_recorded_total",
            "Sales persisted against an open shift.",
            registry=self._registry,
        )
        self._insufficient_stock_total = Counter(
            "insufficient_stock_total",
            "Sales rejected for insufficient stock.",
            registry=self._registry,
        )

    def reset(self) -> None:
        if not self.enabled:
            return
        self._initialize_registry()

    def record_http_request(self, *, route: str, method: str, status_code: int, latency_ms: float) -> None:
        if not self.enabled:
            return
        labels = {"route": route, "method": method, "status": str(status_code)}
        self._http_requests_total.labels(**labels).inc()
        self._http_request_duration_ms.labels(**labels).observe(latency_ms)

    def increment_idempotency_replay(self) -> None:
        if not self.enabled:
            return
        self._idempotency_replay_total.inc()

    def increment_lock_wait_timeout(self) -> None:
        if not self.enabled:
            return
        self._lock_wait_timeout_total.inc()

    def increment_permission_denied(self) -> None:
        if not self.enabled:
            return
        self._permission_denied_total.inc()

    def record_shift_transition(self, transition: str) -> None:
        if not self.enabled:
            return
        self._shift_transitions_total.labels(transition=transition).inc()

    def record_reconciliation(self, *, status: str, forced: bool) -> None:
        if not self.enabled:
            return
        self._shift_reconciliation_total.labels(status=status, forced=str(forced).lower()).inc()

    def increment_sales_recorded(self) -> None:
        if not self.enabled:
            return
        self._sales_recorded_total.inc()

    def increment_insufficient_stock(self) -> None:
        if not self.enabled:
            return
        self._insufficient_stock_total.inc()

    def render(self) -> MetricsSnapshot:
        if not self.enabled:
            return MetricsSnapshot(content=b"metrics_disabled\n", content_type="text/plain")
        return MetricsSnapshot(content=generate_latest(self._registry), content_type=CONTENT_TYPE_LATEST)


metrics = Metrics()
