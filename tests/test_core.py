import asyncio
import time

import aiohttp
import pytest
from rich.console import Console

from flake_detector.config import DetectorConfig
from flake_detector.core import FlakeDetector
from flake_detector.rendering import render_summary

from conftest import endpoint_url


def make_detector(
    endpoints, queries=("status",), metrics_callback=None, stop_event=None, **overrides
) -> FlakeDetector:
    options = {"duration_s": 0.3, "concurrency": 2, "timeout_s": 1, "pause_s": 0.01}
    options.update(overrides)
    config = DetectorConfig(endpoints=list(endpoints), queries=list(queries), **options)
    return FlakeDetector(
        config,
        metrics_callback=metrics_callback,
        stop_event=stop_event,
        use_progress_bar=False,
    )


class TestWorkerPool:
    @pytest.mark.asyncio
    async def test_steady_success_paced_by_pause(self, rpc_server):
        # 50ms probe + 100ms pause over 1s -> roughly 6-7 probes
        detector = make_detector(
            [endpoint_url(rpc_server, "slow")], duration_s=1.0, concurrency=1, pause_s=0.1
        )
        async with aiohttp.ClientSession() as session:
            result = await detector.test_query(session, detector.config.endpoints[0], "status")

        assert result.failure_count == 0
        assert 4 <= result.success_count <= 8
        assert result.total_requests == result.success_count
        assert 45.0 <= result.p50_latency_ms <= 150.0
        assert result.min_latency_ms <= result.p50_latency_ms <= result.max_latency_ms

    @pytest.mark.asyncio
    async def test_always_failing_query(self, rpc_server):
        detector = make_detector([endpoint_url(rpc_server, "fail")])
        async with aiohttp.ClientSession() as session:
            result = await detector.test_query(session, detector.config.endpoints[0], "status")

        assert result.total_requests > 0
        assert result.failure_rate == 1.0
        assert result.p50_latency_ms == 0.0
        assert result.max_latency_ms == 0.0

    @pytest.mark.asyncio
    async def test_spawns_one_task_per_concurrency_slot(self, rpc_server):
        # Pause longer than the window: each worker probes exactly once
        detector = make_detector(
            [endpoint_url(rpc_server, "ok")], duration_s=0.1, concurrency=3, pause_s=0.3
        )
        async with aiohttp.ClientSession() as session:
            result = await detector.test_query(session, detector.config.endpoints[0], "status")

        assert result.total_requests == 3
        assert result.success_count == 3

    @pytest.mark.asyncio
    async def test_soft_deadline_finishes_in_flight_probe(self, rpc_server):
        detector = make_detector(
            [endpoint_url(rpc_server, "slow")], duration_s=0.1, concurrency=2, pause_s=0.0
        )
        start = time.perf_counter()
        async with aiohttp.ClientSession() as session:
            result = await detector.test_query(session, detector.config.endpoints[0], "status")
        elapsed = time.perf_counter() - start

        assert result.failure_count == 0
        assert result.success_count >= 2
        # duration + at most one in-flight probe, with scheduling slack
        assert elapsed < 0.1 + 0.05 + 0.5


class TestRun:
    @pytest.mark.asyncio
    async def test_reports_follow_configuration_order(self, rpc_server):
        seen = []
        endpoints = [endpoint_url(rpc_server, "ok"), endpoint_url(rpc_server, "fail")]
        detector = make_detector(
            endpoints, queries=("health", "status"), metrics_callback=seen.append
        )

        reports = await detector.run()

        assert [r.endpoint for r in reports] == endpoints
        for report in reports:
            assert [q.query for q in report.queries] == ["health", "status"]
            assert report.total_requests == sum(q.total_requests for q in report.queries)
            assert 0.0 <= report.flakiness_score <= 100.0

        healthy, down = reports
        assert healthy.overall_failure_rate == 0.0
        assert down.overall_failure_rate == 1.0
        assert down.flakiness_score == pytest.approx(70.0)
        assert [d["query"] for d in seen] == ["health", "status", "health", "status"]

    @pytest.mark.asyncio
    async def test_flaky_endpoint_scores_between_bands(self, rpc_server):
        detector = make_detector([endpoint_url(rpc_server, "flaky")], concurrency=1)
        (report,) = await detector.run()

        assert 0.0 < report.overall_failure_rate < 1.0
        assert 0.0 < report.flakiness_score < 70.0

    @pytest.mark.asyncio
    async def test_unreachable_endpoint_still_reports(self):
        detector = make_detector(["http://127.0.0.1:9"], duration_s=0.2, timeout_s=0.5)
        (report,) = await detector.run()

        assert report.total_requests > 0
        assert report.overall_failure_rate == 1.0

    @pytest.mark.asyncio
    async def test_stop_event_ends_windows_early(self, rpc_server):
        stop_event = asyncio.Event()
        stop_event.set()
        detector = make_detector(
            [endpoint_url(rpc_server, "ok")], duration_s=30, stop_event=stop_event
        )

        start = time.perf_counter()
        (report,) = await detector.run()

        assert time.perf_counter() - start < 5
        assert report.total_requests == 0
        assert report.flakiness_score == 0.0
        assert report.queries[0].failure_rate == 0.0

    @pytest.mark.asyncio
    async def test_endpoints_after_stop_are_reported_as_not_tested(self, rpc_server):
        stop_event = asyncio.Event()
        stop_event.set()
        endpoints = [endpoint_url(rpc_server, "ok"), "http://127.0.0.1:9"]
        detector = make_detector(endpoints, queries=("health", "status"), stop_event=stop_event)

        reports = await detector.run()

        assert [r.endpoint for r in reports] == endpoints
        assert all(r.total_requests == 0 for r in reports)

        console = Console(record=True, width=120, color_system=None)
        render_summary(reports, console)
        text = console.export_text()
        assert "http://127.0.0.1:9 - not tested" in text
        assert "healthy" not in text

    @pytest.mark.asyncio
    async def test_saturated_latency_through_worker_pool(self, rpc_server):
        # One ~1.1s probe per window: p99 past the 1000ms saturation point
        detector = make_detector(
            [endpoint_url(rpc_server, "sluggish")],
            duration_s=0.2,
            concurrency=1,
            timeout_s=3,
            pause_s=0.01,
        )
        (report,) = await detector.run()

        query = report.queries[0]
        assert query.failure_count == 0
        assert query.success_count >= 1
        assert query.p99_latency_ms >= 1000.0
        assert report.overall_failure_rate == 0.0
        assert report.flakiness_score == pytest.approx(30.0)
