from __future__ import annotations

import os
from dataclasses import dataclass

DEBUG_TOKENS = {"true", "1", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_debug(name: str = "DEBUG") -> bool:
    """DEBUG accepts a comma separated list, e.g. DEBUG=kbroadcast,true."""
    raw = os.getenv(name) or ""
    return any(token.strip() in DEBUG_TOKENS for token in raw.lower().split(","))


@dataclass(frozen=True)
class Settings:
    # Discovery
    namespace: str = "default"
    label_selector: str = "app=my-app"
    cache_duration_ms: int = 1_000
    kube_api: str = "https://kubernetes.default.svc"
    kube_ca_path: str = "/var/run/secrets/kubernetes.io/serviceaccount/ca.crt"
    token: str | None = None
    token_path: str = "/var/run/secrets/kubernetes.io/serviceaccount/token"

    # Gateway
    host: str = "0.0.0.0"
    port: int = 1993
    route_prefix: str = "/broadcast"
    default_target_port: int = 8080
    broadcast_timeout_s: int = 10

    debug: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            namespace=os.getenv("NAMESPACE") or cls.namespace,
            label_selector=os.getenv("LABEL_SELECTOR") or cls.label_selector,
            cache_duration_ms=_env_int("CACHE_DURATION_MS", cls.cache_duration_ms),
            kube_api=os.getenv("KUBE_API", cls.kube_api).rstrip("/"),
            kube_ca_path=os.getenv("KUBE_CA_PATH", cls.kube_ca_path),
            token=os.getenv("TOKEN") or None,
            token_path=os.getenv("TOKEN_PATH", cls.token_path),
            host=os.getenv("HOST", cls.host),
            port=_env_int("PORT", cls.port),
            default_target_port=_env_int("DEFAULT_TARGET_PORT", cls.default_target_port),
            broadcast_timeout_s=_env_int("BROADCAST_TIMEOUT_S", cls.broadcast_timeout_s),
            debug=_env_debug(),
        )

    @property
    def cache_duration_s(self) -> float:
        return self.cache_duration_ms / 1000.0

    def resolve_token(self) -> str:
        """Return the bearer token for the control plane.

        TOKEN wins; otherwise the mounted service-account token is read.
        A missing file yields "" so the control plane rejects the query
        (handled as a discovery failure) instead of crashing at startup.
        """
        if self.token:
            return self.token
        try:
            with open(self.token_path, encoding="utf-8") as fh:
                return fh.read().strip()
        except OSError:
            return ""

    def kube_verify(self) -> str | bool:
        # In-cluster CA when mounted, otherwise the default trust store.
        if os.path.isfile(self.kube_ca_path):
            return self.kube_ca_path
        return True


settings = Settings.from_env()
