"""
Request Ledger Module

In-process, append-only record of every completion request a provider makes,
plus the usage and cost aggregates computed from it.

Design Decisions:
- One ledger per provider instance; nothing outside the provider appends
- Appends and snapshots share a lock so readers never see a half-written record
- Queries work on a snapshot and never touch the stored records
- Nothing is persisted: a restart starts from an empty ledger
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from github_reviewer.models import ModelCostSummary, UsageAnalytics

UNKNOWN_MODEL = "unknown"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with ledger timestamps."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass
class CallRecord:
    """
    One attempted completion request.

    ``total_tokens`` is only set together with both token counts, and ``cost``
    only when the resolved model had a pricing entry.
    """
    prompt: str
    options: Dict[str, Any]
    success: bool
    latency_ms: float
    timestamp: datetime = field(default_factory=utc_now)
    raw_response: Any = None
    error: Optional[BaseException] = None
    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None
    total_tokens: Optional[int] = None
    cost: Optional[float] = None

    @property
    def model(self) -> str:
        return str(self.options.get("model") or UNKNOWN_MODEL)


class RequestLedger:
    """
    Ordered collection of CallRecords with derived analytics.

    Usage:
        ledger = RequestLedger()
        ledger.append(record)
        stats = ledger.usage_analytics(start=monday, end=friday)
    """

    def __init__(self, records: Optional[Iterable[CallRecord]] = None):
        self._lock = threading.Lock()
        self._records: List[CallRecord] = list(records or [])

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def append(self, record: CallRecord) -> None:
        with self._lock:
            self._records.append(record)

    def records(self) -> List[CallRecord]:
        """Snapshot of all records in insertion order."""
        with self._lock:
            return list(self._records)

    def clear(self) -> None:
        with self._lock:
            self._records = []

    def usage_analytics(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> UsageAnalytics:
        """
        Aggregate the records whose timestamp lies in ``[start, end]``.

        Either bound may be omitted. Missing costs and token counts count as
        zero; average latency is zero for an empty selection.
        """
        selected = self.records()
        if start is not None:
            start = as_utc(start)
            selected = [r for r in selected if r.timestamp >= start]
        if end is not None:
            end = as_utc(end)
            selected = [r for r in selected if r.timestamp <= end]

        requests_by_model: Dict[str, int] = {}
        for record in selected:
            requests_by_model[record.model] = requests_by_model.get(record.model, 0) + 1

        successful = sum(1 for r in selected if r.success)
        total_latency = sum(r.latency_ms for r in selected)

        return UsageAnalytics(
            total_requests=len(selected),
            successful_requests=successful,
            failed_requests=len(selected) - successful,
            input_tokens=sum(r.input_tokens or 0 for r in selected),
            output_tokens=sum(r.output_tokens or 0 for r in selected),
            total_tokens=sum(r.total_tokens or 0 for r in selected),
            total_cost=sum(r.cost or 0.0 for r in selected),
            average_latency_ms=total_latency / len(selected) if selected else 0.0,
            requests_by_model=requests_by_model,
        )

    def cost_breakdown(self) -> Dict[str, ModelCostSummary]:
        """Requests, tokens and cost per model over the whole ledger."""
        breakdown: Dict[str, ModelCostSummary] = {}
        for record in self.records():
            summary = breakdown.setdefault(record.model, ModelCostSummary())
            summary.requests += 1
            summary.tokens += record.total_tokens or 0
            summary.cost += record.cost or 0.0
        return breakdown
