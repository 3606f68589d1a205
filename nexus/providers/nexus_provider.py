"""
Nexus provider: fetches connect params for one extension.

One POST per call, no retries. Every failure is returned as a `FetchFailure`
value; callers decide whether to retry (the policy cache simply refetches on
its next miss).
"""

from __future__ import annotations

import json
import logging
import socket
from typing import Optional, Protocol, runtime_checkable

import requests
from pydantic import ValidationError

from nexus.config import NexusConfig, load_nexus_config
from nexus.core.models import (
    ConnectParamsPayload,
    EmptyBody,
    FetchResult,
    HttpError,
    MissingField,
    NoRoute,
    ParseError,
    TransportError,
)
from nexus.providers.directory import Directory, Resolver, resolve_route

logger = logging.getLogger(__name__)


@runtime_checkable
class NexusProvider(Protocol):
    def fetch(self, extension_id: str) -> FetchResult: ...


def build_session(config: NexusConfig) -> requests.Session:
    session = requests.Session()
    session.verify = config.tls_verify
    if config.insecure_skip_tls_verify:
        logger.warning("TLS certificate verification is DISABLED for Nexus requests - only use for lab testing!")
    return session


def parse_connect_params(extension_id: str, body: str) -> FetchResult:
    """Parse a `getConnectParams` response body into a PolicyRecord."""
    try:
        data = json.loads(body)
    except (ValueError, RecursionError) as e:
        logger.error(f"Failed to parse JSON response for extension [{extension_id}]: {e}")
        return ParseError(extension_id=extension_id, message=str(e))

    if not isinstance(data, dict):
        logger.error(f"Unexpected JSON payload for extension [{extension_id}]: {type(data).__name__}")
        return ParseError(extension_id=extension_id, message=f"expected object, got {type(data).__name__}")

    try:
        payload = ConnectParamsPayload.model_validate(data)
    except ValidationError as e:
        errors = e.errors()
        missing = [err for err in errors if err.get("type") == "missing"]
        if missing:
            name = str(missing[0]["loc"][0])
            logger.error(f"Response for extension [{extension_id}] is missing field [{name}]")
            return MissingField(extension_id=extension_id, name=name)
        logger.error(f"Invalid connect params for extension [{extension_id}]: {errors[0].get('msg')}")
        return ParseError(extension_id=extension_id, message=str(errors[0].get("msg", "")))

    return payload.to_record()


class DefaultNexusProvider:
    """
    Fetches connect params from the Nexus controller on the account's PBX.

    The configured `requests.Session` is exposed via `session` so the host can
    reuse it for other Nexus calls.
    """

    def __init__(
        self,
        directory: Directory,
        *,
        config: Optional[NexusConfig] = None,
        resolver: Resolver = socket.gethostbyname,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.directory = directory
        self.config = config or load_nexus_config()
        self.resolver = resolver
        self._session = session or build_session(self.config)

    @property
    def session(self) -> requests.Session:
        return self._session

    def fetch(self, extension_id: str) -> FetchResult:
        route = resolve_route(extension_id, self.directory, self.resolver)
        if isinstance(route, NoRoute):
            return route

        url = self.config.url_for(route.address)
        logger.debug(f"Fetching connect params for extension [{extension_id}] via {route.source.value} account: {url}")

        try:
            response = self._session.post(
                url,
                data={"domain": route.domain, "extension": route.extension},
                timeout=self.config.http_timeout_seconds,
            )
        except requests.RequestException as e:
            logger.error(f"Request for extension [{extension_id}] failed: {type(e).__name__}: {e}")
            return TransportError(extension_id=extension_id, message=f"{type(e).__name__}: {e}")

        if not (200 <= response.status_code < 300):
            logger.error(f"Failed to fetch connect params for extension [{extension_id}]: {response.status_code}")
            return HttpError(extension_id=extension_id, status=response.status_code)

        body = response.text
        if not body or not body.strip():
            logger.error(f"Response body is empty for extension [{extension_id}]")
            return EmptyBody(extension_id=extension_id)

        return parse_connect_params(extension_id, body)
