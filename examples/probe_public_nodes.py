"""
Quick sanity run: probe a couple of public Cosmos RPC nodes for a short window.
Run: uv run examples/probe_public_nodes.py
"""
import asyncio
import os

from rich.console import Console

from flake_detector import DetectorConfig, FlakeDetector
from flake_detector.rendering import render_summary

ENDPOINTS = [
    "https://cosmos-rpc.publicnode.com",
    "https://rpc.cosmos.directory/cosmoshub",
]


async def main():
    config = DetectorConfig(
        endpoints=ENDPOINTS,
        queries=["health", "status", "abci_info"],
        duration_s=float(os.getenv("FLAKE_DETECTOR_DURATION", "10")),
        concurrency=3,
        timeout_s=5,
        pause_s=0.2,
    )
    console = Console()
    reports = await FlakeDetector(config, console=console).run()
    render_summary(reports, console)

    worst = max(reports, key=lambda r: r.flakiness_score)
    print(f"\nFlakiest endpoint: {worst.endpoint} ({worst.flakiness_score:.1f}/100)")

if __name__ == "__main__":
    asyncio.run(main())
