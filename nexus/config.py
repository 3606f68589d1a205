from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Union

DEFAULT_PORT = 8443
DEFAULT_ENDPOINT = "getConnectParams"
DEFAULT_CACHE_TTL_SECONDS = 60.0  # Nexus rate-limits getConnectParams
DEFAULT_HTTP_TIMEOUT_SECONDS = 10.0


def _env_bool(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "y", "on")


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class NexusConfig:
    port: int = DEFAULT_PORT
    endpoint: str = DEFAULT_ENDPOINT
    cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS
    http_timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS

    # TLS: verification is always on unless explicitly disabled for lab use.
    ca_bundle: Optional[str] = None
    insecure_skip_tls_verify: bool = False

    @property
    def tls_verify(self) -> Union[bool, str]:
        """Value for `requests`' `verify=` argument."""
        if self.insecure_skip_tls_verify:
            return False
        return self.ca_bundle or True

    def url_for(self, address: str) -> str:
        return f"https://{address}:{self.port}/{self.endpoint}"


@lru_cache(maxsize=1)
def load_nexus_config() -> NexusConfig:
    """
    Load Nexus client configuration from env.

    Recommended vars:
    - NEXUS_PORT=8443
    - NEXUS_ENDPOINT=getConnectParams
    - NEXUS_CACHE_TTL_SECONDS=60
    - NEXUS_HTTP_TIMEOUT_SECONDS=10
    - NEXUS_CA_BUNDLE=/etc/ssl/nexus-ca.pem
    - NEXUS_INSECURE_SKIP_TLS_VERIFY=0 (lab only)
    """
    port = int(_env_float("NEXUS_PORT", DEFAULT_PORT))
    if not (0 < port < 65536):
        port = DEFAULT_PORT

    endpoint = (os.getenv("NEXUS_ENDPOINT", "") or "").strip().strip("/") or DEFAULT_ENDPOINT

    return NexusConfig(
        port=port,
        endpoint=endpoint,
        cache_ttl_seconds=max(1.0, min(_env_float("NEXUS_CACHE_TTL_SECONDS", DEFAULT_CACHE_TTL_SECONDS), 3600.0)),
        http_timeout_seconds=max(
            1.0, min(_env_float("NEXUS_HTTP_TIMEOUT_SECONDS", DEFAULT_HTTP_TIMEOUT_SECONDS), 120.0)
        ),
        ca_bundle=(os.getenv("NEXUS_CA_BUNDLE", "") or "").strip() or None,
        insecure_skip_tls_verify=_env_bool("NEXUS_INSECURE_SKIP_TLS_VERIFY", False),
    )
