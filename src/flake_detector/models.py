from dataclasses import dataclass
from typing import Any, Union
from collections.abc import Callable

from pydantic import BaseModel, ConfigDict


@dataclass(frozen=True)
class ProbeSuccess:
    latency_s: float


@dataclass(frozen=True)
class ProbeFailure:
    reason: str
    # HTTP status for application-level failures, None for transport errors
    status: int | None = None


ProbeOutcome = Union[ProbeSuccess, ProbeFailure]


class QueryResult(BaseModel):
    """Statistics for one query against one endpoint over a test window."""

    model_config = ConfigDict(frozen=True)

    query: str
    success_count: int
    failure_count: int
    total_requests: int
    failure_rate: float
    p50_latency_ms: float
    p95_latency_ms: float
    p99_latency_ms: float
    avg_latency_ms: float
    min_latency_ms: float
    max_latency_ms: float


class EndpointReport(BaseModel):
    """Roll-up of every query result for one endpoint."""

    model_config = ConfigDict(frozen=True)

    endpoint: str
    overall_success_rate: float
    overall_failure_rate: float
    flakiness_score: float
    total_requests: int
    test_duration_secs: int | float
    queries: list[QueryResult]


# Metrics callback: callable accepting a query result dict
MetricsCallback = Callable[[dict[str, Any]], None]
