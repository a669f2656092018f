import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from collections.abc import Sequence

from .histogram import LatencyHistogram
from .models import QueryResult, EndpointReport

logger = logging.getLogger(__name__)

LATENCY_THRESHOLD_MS = 1000.0
FAILURE_WEIGHT = 0.7
LATENCY_WEIGHT = 0.3


@dataclass(frozen=True)
class MetricsSnapshot:
    success_count: int
    failure_count: int
    latencies: LatencyHistogram


class MetricsAccumulator:
    """Counters and latency histogram shared by the workers of one query window."""

    def __init__(self, significant_digits: int = 3) -> None:
        self.success_count = 0
        self.failure_count = 0
        self.latencies = LatencyHistogram(significant_digits)
        self._lock = asyncio.Lock()

    async def record_success(self, latency_s: float) -> None:
        latency_us = int(latency_s * 1_000_000)
        async with self._lock:
            self.success_count += 1
            if not self.latencies.record(latency_us):
                logger.debug(f"Latency sample {latency_us}us dropped by recorder")

    async def record_failure(self) -> None:
        async with self._lock:
            self.failure_count += 1

    async def snapshot(self) -> MetricsSnapshot:
        async with self._lock:
            return MetricsSnapshot(
                success_count=self.success_count,
                failure_count=self.failure_count,
                latencies=self.latencies.copy(),
            )


class Severity(str, Enum):
    HEALTHY = "healthy"
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"

    @classmethod
    def from_score(cls, score: float) -> "Severity":
        if score < 10.0:
            return cls.HEALTHY
        if score < 30.0:
            return cls.MILD
        if score < 60.0:
            return cls.MODERATE
        return cls.SEVERE


def calculate_flakiness_score(failure_rate: float, p99_latency_ms: float) -> float:
    """Blend failure rate (70%) and p99 latency severity (30%) into 0-100."""
    latency_severity = min(max(p99_latency_ms, 0.0) / LATENCY_THRESHOLD_MS, 1.0)
    score = (failure_rate * FAILURE_WEIGHT) + (latency_severity * LATENCY_WEIGHT)
    return min(max(score * 100.0, 0.0), 100.0)


def compute_query_result(query: str, snapshot: MetricsSnapshot) -> QueryResult:
    success = snapshot.success_count
    failure = snapshot.failure_count
    total = success + failure
    failure_rate = failure / total if total > 0 else 0.0

    hist = snapshot.latencies
    if success > 0 and not hist.is_empty():
        p50 = hist.value_at_quantile(0.50) / 1000.0
        p95 = hist.value_at_quantile(0.95) / 1000.0
        p99 = hist.value_at_quantile(0.99) / 1000.0
        avg = hist.mean / 1000.0
        lo = hist.min / 1000.0
        hi = hist.max / 1000.0
    else:
        p50 = p95 = p99 = avg = lo = hi = 0.0

    logger.debug(
        f"Computing query result for {query}: total={total}, "
        f"success={success}, failures={failure}"
    )

    return QueryResult(
        query=query,
        success_count=success,
        failure_count=failure,
        total_requests=total,
        failure_rate=failure_rate,
        p50_latency_ms=p50,
        p95_latency_ms=p95,
        p99_latency_ms=p99,
        avg_latency_ms=avg,
        min_latency_ms=lo,
        max_latency_ms=hi,
    )


def compute_endpoint_report(
    endpoint: str,
    query_results: Sequence[QueryResult],
    duration_s: float,
) -> EndpointReport:
    if not query_results:
        raise ValueError(
            f"Cannot build a report for {endpoint}: at least one query result is required"
        )

    total_success = sum(r.success_count for r in query_results)
    total_failure = sum(r.failure_count for r in query_results)
    total_requests = total_success + total_failure
    overall_failure_rate = (
        total_failure / total_requests if total_requests > 0 else 0.0
    )

    # Queries cut short by a stop before their first probe carry no latency signal
    tested = [r for r in query_results if r.total_requests > 0]
    avg_p99 = sum(r.p99_latency_ms for r in tested) / len(tested) if tested else 0.0
    flakiness_score = calculate_flakiness_score(overall_failure_rate, avg_p99)

    logger.info(
        f"Endpoint {endpoint}: requests={total_requests}, "
        f"failure_rate={overall_failure_rate * 100:.1f}%, avg_p99={avg_p99:.1f}ms, "
        f"flakiness={flakiness_score:.1f}"
    )

    return EndpointReport(
        endpoint=endpoint,
        overall_success_rate=1.0 - overall_failure_rate,
        overall_failure_rate=overall_failure_rate,
        flakiness_score=flakiness_score,
        total_requests=total_requests,
        test_duration_secs=int(duration_s) if float(duration_s).is_integer() else duration_s,
        queries=list(query_results),
    )
