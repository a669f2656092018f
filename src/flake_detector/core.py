import asyncio
import aiohttp
import logging

from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TimeElapsedColumn, MofNCompleteColumn

from . import __version__
from .config import DetectorConfig
from .models import EndpointReport, QueryResult, ProbeSuccess, MetricsCallback
from .utils import now
from .metrics import MetricsAccumulator, compute_query_result, compute_endpoint_report
from .probe import probe_endpoint_query
from .rendering import render_query_result


logger = logging.getLogger(__name__)


class FlakeDetector:
    def __init__(
        self,
        config: DetectorConfig,
        metrics_callback: MetricsCallback | None = None,
        stop_event: asyncio.Event | None = None,
        use_progress_bar: bool = True,
        console=None,
    ) -> None:
        self.config = config
        self.metrics_callback = metrics_callback
        self.stop_event = stop_event
        self.use_progress_bar = use_progress_bar
        self.console = console
        self.default_headers = {"User-Agent": f"flake-detector/{__version__}"}

        logger.info(
            f"Initialized FlakeDetector with {len(config.endpoints)} endpoints, "
            f"{len(config.queries)} queries, duration={config.duration_s}s, "
            f"concurrency={config.concurrency}, timeout={config.timeout_s}s"
        )

    def _stop_requested(self) -> bool:
        return self.stop_event is not None and self.stop_event.is_set()

    # ────────────────────────────────
    # Worker Loop
    # ────────────────────────────────

    async def _run_continuous_tests(
        self,
        session: aiohttp.ClientSession,
        endpoint: str,
        query: str,
        deadline: float,
        metrics: MetricsAccumulator,
        worker_id: int,
    ) -> None:
        while now() < deadline and not self._stop_requested():
            outcome = await probe_endpoint_query(session, endpoint, query)
            if isinstance(outcome, ProbeSuccess):
                await metrics.record_success(outcome.latency_s)
            else:
                logger.debug(f"[W{worker_id}] {query} failed: {outcome.reason}")
                await metrics.record_failure()

            await asyncio.sleep(self.config.pause_s)

        logger.debug(f"Worker {worker_id} stopped")

    # ────────────────────────────────
    # Per-Query Worker Pool
    # ────────────────────────────────

    async def test_query(
        self, session: aiohttp.ClientSession, endpoint: str, query: str
    ) -> QueryResult:
        logger.info(f"Testing query {query} on {endpoint}")
        if self.console is not None:
            self.console.print(f"  → Testing query: [bright_white]{escape(query)}[/]", highlight=False)
        metrics = MetricsAccumulator()
        deadline = now() + self.config.duration_s

        workers = [
            asyncio.create_task(
                self._run_continuous_tests(session, endpoint, query, deadline, metrics, i)
            )
            for i in range(self.config.concurrency)
        ]
        await asyncio.gather(*workers)

        snapshot = await metrics.snapshot()
        result = compute_query_result(query, snapshot)

        logger.info(
            f"Query {query}: success={result.success_count}, "
            f"failures={result.failure_count}, "
            f"failure_rate={result.failure_rate * 100:.1f}%, "
            f"p50={result.p50_latency_ms:.1f}ms p99={result.p99_latency_ms:.1f}ms"
        )
        if self.console is not None:
            render_query_result(result, self.console)
        if self.metrics_callback:
            self.metrics_callback(result.model_dump())
        return result

    # ────────────────────────────────
    # Per-Endpoint Run
    # ────────────────────────────────

    async def test_endpoint(self, endpoint: str, progress=None) -> EndpointReport:
        logger.info(f"Testing endpoint: {endpoint}")
        if self.console is not None:
            self.console.print(f"\n🔍 Testing endpoint: [bright_cyan]{escape(endpoint)}[/]")

        task_id = None
        if progress is not None:
            task_id = progress.add_task(
                f"[cyan]{escape(endpoint)}", total=len(self.config.queries)
            )

        timeout = aiohttp.ClientTimeout(total=self.config.timeout_s)
        connector = aiohttp.TCPConnector(limit=0)
        query_results: list[QueryResult] = []
        async with aiohttp.ClientSession(
            connector=connector, timeout=timeout, headers=self.default_headers
        ) as session:
            for query in self.config.queries:
                query_results.append(await self.test_query(session, endpoint, query))
                if progress is not None and task_id is not None:
                    progress.advance(task_id)

        return compute_endpoint_report(endpoint, query_results, self.config.duration_s)

    # ────────────────────────────────
    # Main Runner
    # ────────────────────────────────

    async def run(self) -> list[EndpointReport]:
        logger.info("Starting flake detection run...")

        progress = None
        if self.use_progress_bar:
            progress = Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                MofNCompleteColumn(),
                TimeElapsedColumn(),
                console=self.console,
            )
            progress.start()

        reports: list[EndpointReport] = []
        try:
            for endpoint in self.config.endpoints:
                reports.append(await self.test_endpoint(endpoint, progress))
        finally:
            if progress:
                progress.stop()

        logger.info(f"Run completed: {len(reports)} endpoints tested")
        return reports
