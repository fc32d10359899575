from __future__ import annotations

import asyncio
import logging
from urllib.parse import parse_qsl, unquote_plus

from .broadcast import BroadcastEngine
from .directory import InstanceDirectory
from .models import BroadcastResult, BroadcastTemplate

log = logging.getLogger(__name__)

PORT_PARAM = "_port"
WAIT_PARAM = "_wait"
CONTROL_PARAMS = {PORT_PARAM, WAIT_PARAM}

NOT_FOUND = "Not Found"
BROADCAST_COMPLETE = "Broadcast complete"
BROADCAST_STARTED = "Broadcast started"


def parse_port(raw: str | None, default: int) -> int:
    # Plain ASCII digits only; int() would also take "8_081" or " 8081 ".
    if raw is None or not (raw.isascii() and raw.isdigit()):
        return default
    port = int(raw)
    if not 0 < port < 65536:
        return default
    return port


def split_query(query_string: str) -> tuple[dict[str, str], str]:
    """Separate the control parameters from the ones forwarded downstream.

    Forwarded pairs keep their original encoding and order. For repeated
    control parameters the last value wins.
    """
    control = {k: v for k, v in parse_qsl(query_string, keep_blank_values=True) if k in CONTROL_PARAMS}
    forwarded = [
        pair
        for pair in query_string.split("&")
        if pair and unquote_plus(pair.split("=", 1)[0]) not in CONTROL_PARAMS
    ]
    return control, "&".join(forwarded)


def parse_broadcast_request(
    method: str,
    path: str,
    query_string: str,
    prefix: str = "/broadcast",
    default_port: int = 8080,
) -> tuple[BroadcastTemplate, bool] | None:
    """Turn an inbound broadcast request into (template, wait).

    Returns None when the path is outside the broadcast prefix.
    """
    if not path.startswith(prefix):
        return None
    downstream = path[len(prefix):]
    control, forwarded = split_query(query_string)
    template = BroadcastTemplate(
        method=method,
        port=parse_port(control.get(PORT_PARAM), default_port),
        path=downstream or "/",
        query=forwarded,
    )
    return template, control.get(WAIT_PARAM) == "true"


class BroadcastGateway:
    """Routes inbound requests: resolve targets, fan out, shape the reply."""

    def __init__(
        self,
        directory: InstanceDirectory,
        engine: BroadcastEngine,
        prefix: str = "/broadcast",
        default_port: int = 8080,
    ):
        self.directory = directory
        self.engine = engine
        self.prefix = prefix
        self.default_port = default_port
        # Strong references to fire-and-forget broadcasts until they finish.
        self.pending: set[asyncio.Task] = set()

    async def handle(self, method: str, path: str, query_string: str = "") -> tuple[int, str]:
        parsed = parse_broadcast_request(method, path, query_string, self.prefix, self.default_port)
        if parsed is None:
            log.info("No match for %s", path)
            return 404, NOT_FOUND
        template, wait = parsed

        # Resolution runs as its own task; dispatch waits on it.
        targets = asyncio.ensure_future(self.directory.resolve_targets())
        job = asyncio.ensure_future(self.engine.broadcast(targets, template))

        if wait:
            results = await job
            self._log_results(template, results)
            return 200, BROADCAST_COMPLETE

        self.pending.add(job)
        job.add_done_callback(lambda t: self._finished(t, template))
        return 202, BROADCAST_STARTED

    def _finished(self, task: asyncio.Task, template: BroadcastTemplate) -> None:
        self.pending.discard(task)
        if task.cancelled():
            log.warning("Broadcast cancelled (async): %s %s", template.method, template.path)
            return
        exc = task.exception()
        if exc is not None:
            log.error("Broadcast error (async): %s: %s", type(exc).__name__, exc)
            return
        self._log_results(template, task.result())

    def _log_results(self, template: BroadcastTemplate, results: list[BroadcastResult]) -> None:
        failed = sum(1 for r in results if not r.ok)
        log.info(
            "Broadcast %s %s finished: %d targets, %d failed",
            template.method,
            template.path,
            len(results),
            failed,
        )
        log.debug("Broadcast results %s", [r.as_log_dict() for r in results])

    async def drain(self) -> None:
        """Wait for all fire-and-forget broadcasts still running."""
        while self.pending:
            await asyncio.gather(*list(self.pending), return_exceptions=True)
