import asyncio

import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

FLAKY_CALLS = web.AppKey("flaky_calls", int)


def build_rpc_app() -> web.Application:
    """Local stand-in for an RPC node. The first path segment picks the behavior."""
    app = web.Application()
    app[FLAKY_CALLS] = 0

    async def ok(request):
        return web.json_response({"query": request.match_info["query"]})

    async def slow(request):
        await asyncio.sleep(0.05)
        return web.json_response({"query": request.match_info["query"]})

    async def hang(request):
        await asyncio.sleep(2.0)
        return web.json_response({})

    async def sluggish(request):
        await asyncio.sleep(1.1)
        return web.json_response({})

    async def fail(request):
        return web.json_response({"error": "internal"}, status=500)

    async def flaky(request):
        request.app[FLAKY_CALLS] += 1
        if request.app[FLAKY_CALLS] % 2:
            return web.json_response({})
        return web.json_response({"error": "unavailable"}, status=503)

    app.router.add_get("/ok/{query}", ok)
    app.router.add_get("/slow/{query}", slow)
    app.router.add_get("/hang/{query}", hang)
    app.router.add_get("/sluggish/{query}", sluggish)
    app.router.add_get("/fail/{query}", fail)
    app.router.add_get("/flaky/{query}", flaky)
    return app


@pytest_asyncio.fixture
async def rpc_server():
    server = TestServer(build_rpc_app())
    await server.start_server()
    yield server
    await server.close()


def endpoint_url(server: TestServer, behavior: str) -> str:
    return str(server.make_url(f"/{behavior}"))
