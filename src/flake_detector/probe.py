import asyncio
import logging

import aiohttp

from .models import ProbeOutcome, ProbeSuccess, ProbeFailure
from .utils import now

logger = logging.getLogger(__name__)


def build_query_url(endpoint: str, query: str) -> str:
    return f"{endpoint.rstrip('/')}/{query}"


async def probe_endpoint_query(
    session: aiohttp.ClientSession, endpoint: str, query: str
) -> ProbeOutcome:
    """
    Issue a single GET for `query` against `endpoint` and classify the outcome.

    Latency covers send through to the response status; the body is not read.
    Timeouts come from the session's ClientTimeout. No retries.
    """
    url = build_query_url(endpoint, query)
    start = now()
    try:
        async with session.get(url) as resp:
            latency = now() - start
            if 200 <= resp.status < 300:
                return ProbeSuccess(latency)
            logger.debug(f"Probe {url} returned HTTP {resp.status}")
            return ProbeFailure(f"HTTP {resp.status}", resp.status)
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        reason = str(e) or e.__class__.__name__
        logger.debug(f"Probe {url} failed: {reason}")
        return ProbeFailure(f"Request failed: {reason}")
