from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.types import Receive, Scope, Send

from .broadcast import BroadcastEngine
from .directory import InstanceDirectory
from .gateway import BroadcastGateway
from .settings import Settings, settings as default_settings

log = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, gateway: BroadcastGateway | None = None) -> FastAPI:
    """Build the broadcast gateway application.

    When ``gateway`` is given it is used as-is (tests inject one wired to
    mock transports). Otherwise the lifespan opens the HTTP clients and
    builds the directory, engine and gateway from ``settings``.
    """
    cfg = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.gateway is not None:
            yield
            await app.state.gateway.drain()
            return
        kube = httpx.AsyncClient(verify=cfg.kube_verify(), timeout=cfg.broadcast_timeout_s)
        downstream = httpx.AsyncClient(timeout=cfg.broadcast_timeout_s, follow_redirects=False)
        async with kube, downstream:
            app.state.gateway = BroadcastGateway(
                directory=InstanceDirectory(kube, cfg),
                engine=BroadcastEngine(downstream),
                prefix=cfg.route_prefix,
                default_port=cfg.default_target_port,
            )
            yield
            await app.state.gateway.drain()

    app = FastAPI(title="k8s-broadcast", lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)
    app.state.gateway = gateway

    # Mounted rather than routed so every method, including custom verbs such
    # as PURGE, reaches the gateway.
    app.mount("/", broadcast_endpoint)

    return app


async def broadcast_endpoint(scope: Scope, receive: Receive, send: Send) -> None:
    """Raw ASGI handler in front of the gateway.

    Uses the undecoded path so encoded delimiters (``%3F``, ``%2F``) stay
    part of the downstream path instead of being re-parsed.
    """
    request = Request(scope, receive)
    log.debug(
        "Full request details method=%s url=%s headers=%s",
        request.method,
        request.url,
        dict(request.headers),
    )
    raw_path = scope.get("raw_path") or scope["path"].encode("utf-8")
    query_string = scope.get("query_string", b"")
    gw: BroadcastGateway = request.app.state.gateway
    status, body = await gw.handle(request.method, raw_path.decode("latin-1"), query_string.decode("latin-1"))
    await PlainTextResponse(body, status_code=status)(scope, receive, send)
