from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class BroadcastTemplate:
    """What gets replayed against every instance: method, port, path, query."""

    method: str
    port: int
    path: str = "/"
    query: str = ""

    def url_for(self, address: str) -> str:
        path = self.path if self.path.startswith("/") else f"/{self.path}"
        host = f"[{address}]" if ":" in address and not address.startswith("[") else address
        url = f"http://{host}:{self.port}{path}"
        if self.query:
            url = f"{url}?{self.query}"
        return url


class BroadcastResult(BaseModel):
    ip: str = Field(..., description="Instance address the request was sent to")
    status: int | None = Field(None, description="HTTP status returned by the instance, None on transport failure")
    error: str | None = Field(None, description="Transport error, if any")

    @property
    def ok(self) -> bool:
        return self.error is None

    def as_log_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"ip": self.ip, "status": self.status}
        if self.error is not None:
            data["error"] = self.error
        return data


# Subset of the control-plane pod list that discovery consumes.


class PodStatus(BaseModel):
    model_config = ConfigDict(extra="ignore")

    podIP: str | None = None


class Pod(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: PodStatus | None = None

    @property
    def address(self) -> str | None:
        if self.status is None:
            return None
        return self.status.podIP or None


class PodList(BaseModel):
    model_config = ConfigDict(extra="ignore")

    items: list[Pod] = Field(default_factory=list)

    def addresses(self) -> list[str]:
        return [pod.address for pod in self.items if pod.address]
