from rich.console import Console
from rich.markup import escape

from .config import DetectorConfig
from .metrics import Severity
from .models import EndpointReport, QueryResult

RULE = "═" * 51

SEVERITY_EMOJI = {
    Severity.HEALTHY: "🟢",
    Severity.MILD: "🟡",
    Severity.MODERATE: "🟠",
    Severity.SEVERE: "🔴",
}

SEVERITY_COLOR = {
    Severity.HEALTHY: "bright_green",
    Severity.MILD: "bright_yellow",
    Severity.MODERATE: "bright_magenta",
    Severity.SEVERE: "bright_red",
}


def status_emoji(score: float) -> str:
    return SEVERITY_EMOJI[Severity.from_score(score)]


def render_banner(config: DetectorConfig, console: Console) -> None:
    console.print("[bright_blue]╔══════════════════════════════════════════════════╗[/]")
    console.print("[bold bright_white]║     RPC FLAKE DETECTOR                           ║[/]")
    console.print("[bright_blue]╚══════════════════════════════════════════════════╝[/]")
    console.print("\n⚙ Configuration:")
    console.print(f"  Endpoints: {len(config.endpoints)}")
    console.print(f"  Test Duration: {config.duration_s:g}s")
    console.print(f"  Queries: {escape(', '.join(config.queries))}", highlight=False)
    console.print(f"  Concurrency: {config.concurrency}")
    console.print(f"  Timeout: {config.timeout_s:g}s")


def render_query_result(result: QueryResult, console: Console) -> None:
    console.print(
        f"    ✓ Success: [bright_green]{result.success_count}[/] | "
        f"✗ Failure: [bright_red]{result.failure_count}[/] | "
        f"Rate: [bright_yellow]{result.failure_rate * 100:.1f}%[/]"
    )
    console.print(
        f"    Latency: p50={result.p50_latency_ms:.1f}ms "
        f"p95={result.p95_latency_ms:.1f}ms p99={result.p99_latency_ms:.1f}ms"
    )


def render_summary(reports: list[EndpointReport], console: Console) -> None:
    console.print(f"\n[bright_blue]{RULE}[/]")
    console.print("[bold bright_white]           FLAKINESS DETECTION SUMMARY[/]")
    console.print(f"[bright_blue]{RULE}[/]")

    for report in reports:
        if report.total_requests == 0:
            console.print(
                f"\n⚪ [bright_cyan]{escape(report.endpoint)}[/] - [dim]not tested[/]",
                highlight=False,
            )
            continue

        severity = Severity.from_score(report.flakiness_score)
        color = SEVERITY_COLOR[severity]
        console.print(
            f"\n{SEVERITY_EMOJI[severity]} [bright_cyan]{escape(report.endpoint)}[/] - "
            f"Flakiness Score: [bold {color}]{report.flakiness_score:.1f}[/]/100 "
            f"({severity.value})",
            highlight=False,
        )
        console.print(
            f"  Success Rate: [bright_green]{report.overall_success_rate * 100:.1f}%[/] | "
            f"Total Requests: {report.total_requests}"
        )

    console.print(f"\n[bright_blue]{RULE}[/]")
