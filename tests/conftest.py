from __future__ import annotations

import httpx
import pytest

from kbroadcast.broadcast import BroadcastEngine
from kbroadcast.directory import InstanceDirectory
from kbroadcast.gateway import BroadcastGateway
from kbroadcast.settings import Settings

PODS_PATH = "/api/v1/namespaces/default/pods"


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeKube:
    """Control-plane stand-in serving a pod list, or a failure when asked to."""

    def __init__(self, ips=("10.0.0.1", "10.0.0.2"), status_code: int = 200):
        self.ips = list(ips)
        self.status_code = status_code
        self.fail_with: Exception | None = None
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            raise self.fail_with
        if request.url.path != PODS_PATH:
            return httpx.Response(404, text="Not Found")
        if request.headers.get("authorization") != "Bearer fake-token":
            return httpx.Response(401, text="Unauthorized: missing or invalid Authorization header")
        if self.status_code != 200:
            return httpx.Response(self.status_code, text="upstream trouble")
        items = [{"metadata": {"name": f"pod-{i}"}, "status": {"podIP": ip}} for i, ip in enumerate(self.ips)]
        return httpx.Response(200, json={"kind": "PodList", "items": items})

    @property
    def calls(self) -> int:
        return len(self.requests)


class FakeInstances:
    """Records every request the engine sends to the instances."""

    def __init__(self, status_code: int = 200):
        self.status_code = status_code
        self.unreachable: set[str] = {"256.256.256.256"}
        self.requests: list[tuple[str, str]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.host in self.unreachable:
            raise httpx.ConnectError("Connection refused", request=request)
        self.requests.append((request.method, str(request.url)))
        return httpx.Response(self.status_code, text="OK")


@pytest.fixture()
def test_settings() -> Settings:
    return Settings(token="fake-token", cache_duration_ms=500)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def kube() -> FakeKube:
    return FakeKube()


@pytest.fixture()
def instances() -> FakeInstances:
    return FakeInstances()


@pytest.fixture()
def make_directory(test_settings, clock, kube):
    def _make(settings: Settings | None = None) -> InstanceDirectory:
        client = httpx.AsyncClient(transport=httpx.MockTransport(kube))
        return InstanceDirectory(client, settings or test_settings, clock=clock)

    return _make


@pytest.fixture()
def make_engine(instances):
    def _make(handler=None) -> BroadcastEngine:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler or instances))
        return BroadcastEngine(client)

    return _make


@pytest.fixture()
def gateway(make_directory, make_engine) -> BroadcastGateway:
    return BroadcastGateway(make_directory(), make_engine())
