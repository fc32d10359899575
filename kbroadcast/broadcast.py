from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Awaitable, Sequence, Union

import httpx

from .models import BroadcastResult, BroadcastTemplate

log = logging.getLogger(__name__)

Targets = Union[Sequence[str], Awaitable[Sequence[str]]]


class BroadcastEngine:
    """Sends one request per target, all at once, and never raises.

    Every target gets exactly one attempt. Any HTTP status counts as a
    response; transport errors are reported in the result for that target.
    """

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def broadcast(self, targets: Targets, template: BroadcastTemplate) -> list[BroadcastResult]:
        if inspect.isawaitable(targets):
            try:
                targets = await targets
            except Exception as e:
                log.error("Failed to resolve broadcast targets: %s: %s", type(e).__name__, e)
                return []
        addresses = list(targets)
        log.debug("Starting broadcast to %s with %s", addresses, template)
        # gather keeps input order; _send never raises so nothing short-circuits.
        results = await asyncio.gather(*(self._send(ip, template) for ip in addresses))
        return list(results)

    async def _send(self, ip: str, template: BroadcastTemplate) -> BroadcastResult:
        url = None
        try:
            url = template.url_for(ip)
            log.debug("Broadcasting to %s url=%s method=%s", ip, url, template.method)
            resp = await self.client.request(template.method, url)
            log.info("Broadcast to %s: %s", url, resp.status_code)
            log.debug("Response headers from %s: %s", ip, dict(resp.headers))
            return BroadcastResult(ip=ip, status=resp.status_code)
        except Exception as e:
            error = f"{type(e).__name__}: {e}"
            log.error("Failed to send to %s: %s", ip, error)
            log.debug(
                "Broadcast failure ip=%s port=%s path=%s method=%s url=%s",
                ip,
                template.port,
                template.path,
                template.method,
                url,
            )
            return BroadcastResult(ip=ip, status=None, error=error)
