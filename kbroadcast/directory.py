from __future__ import annotations

import logging
import time
from typing import Callable

import httpx
from pydantic import ValidationError

from .models import PodList
from .settings import Settings

log = logging.getLogger(__name__)


class InstanceDirectory:
    """Resolves the pod IPs matching a label selector, cached for a short TTL.

    Only a successful query advances ``last_fetch``; a failed one returns []
    and the next call queries again. A cached list is only served while it
    is non-empty.
    """

    def __init__(self, client: httpx.AsyncClient, settings: Settings, clock: Callable[[], float] = time.monotonic):
        self.client = client
        self.settings = settings
        self.clock = clock
        self.ttl_s = settings.cache_duration_s
        self.cache: list[str] = []
        self.last_fetch: float | None = None
        self.fetch_count = 0
        self._token: str | None = None

    @property
    def pods_url(self) -> str:
        return f"{self.settings.kube_api}/api/v1/namespaces/{self.settings.namespace}/pods"

    def _headers(self) -> dict[str, str]:
        if self._token is None:
            self._token = self.settings.resolve_token()
        return {"Authorization": f"Bearer {self._token}"}

    def _is_fresh(self, now: float) -> bool:
        if self.last_fetch is None or not self.cache:
            return False
        return now - self.last_fetch < self.ttl_s

    async def resolve_targets(self) -> list[str]:
        now = self.clock()
        if self._is_fresh(now):
            log.debug("Returning cached pod list %s", self.cache)
            return list(self.cache)

        log.debug(
            "Fetching pods namespace=%s labelSelector=%s",
            self.settings.namespace,
            self.settings.label_selector,
        )
        self.fetch_count += 1
        try:
            resp = await self.client.get(
                self.pods_url,
                params={"labelSelector": self.settings.label_selector},
                headers=self._headers(),
            )
        except Exception as e:
            log.error("Failed to fetch pods: %s: %s", type(e).__name__, e)
            return []

        if not resp.is_success:
            log.error("Failed to fetch pods: HTTP %s %s", resp.status_code, resp.text)
            return []

        try:
            pods = PodList.model_validate_json(resp.content)
        except ValidationError as e:
            log.error("Failed to fetch pods: invalid pod list: %s", e)
            return []

        self.cache = pods.addresses()
        self.last_fetch = now
        log.debug("Fetched pods %s", self.cache)
        return list(self.cache)
