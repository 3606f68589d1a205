"""
Account directory and route resolution for Nexus requests.

A request for extension X is routed through:
1. the local account registered as X (request carries that account's own extension), or
2. the default account (request carries X explicitly), or
3. nowhere (NoRoute).

The controller lives on the account's PBX domain. The domain is resolved via DNS;
a resolution failure falls back to the bare domain string instead of failing.
"""

from __future__ import annotations

import logging
import socket
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, Optional, Protocol, Union, runtime_checkable

from nexus.core.models import Account, NoRoute

logger = logging.getLogger(__name__)


@runtime_checkable
class Directory(Protocol):
    def find_account_by_extension(self, extension_id: str) -> Optional[Account]: ...

    def default_account(self) -> Optional[Account]: ...


class StaticDirectory:
    """In-memory directory for hosts that already know their registered accounts."""

    def __init__(self, accounts: Iterable[Account] = (), default_extension: Optional[str] = None) -> None:
        self._accounts: Dict[str, Account] = {}
        for account in accounts:
            # First registration wins, matching account-list iteration order.
            self._accounts.setdefault(account.extension_id, account)
        self._default_extension = default_extension

    def find_account_by_extension(self, extension_id: str) -> Optional[Account]:
        return self._accounts.get(extension_id)

    def default_account(self) -> Optional[Account]:
        if self._default_extension is None:
            return None
        return self._accounts.get(self._default_extension)


# ---------------------------------------------------------------------------
# DNS
# ---------------------------------------------------------------------------

Resolver = Callable[[str], str]


@dataclass(frozen=True)
class Resolved:
    address: str


@dataclass(frozen=True)
class Fallback:
    address: str  # the unresolved domain
    error: str


def strip_port(domain: str) -> str:
    return domain.split(":", 1)[0]


def resolve_address(domain: str, resolver: Resolver = socket.gethostbyname) -> Union[Resolved, Fallback]:
    try:
        return Resolved(address=resolver(domain))
    except (OSError, UnicodeError) as e:
        logger.warning(f"Failed to resolve domain [{domain}], using it as address: {e}")
        return Fallback(address=domain, error=str(e))


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


class RouteSource(str, Enum):
    LOCAL = "local"
    DEFAULT = "default"


@dataclass(frozen=True)
class Route:
    source: RouteSource
    address: str
    domain: str
    extension: str  # value of the `extension` form field
    dns_fallback: bool = False


def resolve_route(
    extension_id: str,
    directory: Directory,
    resolver: Resolver = socket.gethostbyname,
) -> Union[Route, NoRoute]:
    """Pick the account to route through and resolve its PBX address."""
    account = directory.find_account_by_extension(extension_id)
    if account is not None:
        source = RouteSource.LOCAL
        extension = account.extension_id
    else:
        logger.debug(f"No local account for extension [{extension_id}], trying default account")
        account = directory.default_account()
        if account is None:
            logger.error(f"No account available to fetch params for extension [{extension_id}]")
            return NoRoute(extension_id=extension_id)
        source = RouteSource.DEFAULT
        extension = extension_id

    domain = strip_port(account.domain or "").strip()
    if not domain:
        logger.error(f"Account [{account.extension_id}] has no domain, cannot route extension [{extension_id}]")
        return NoRoute(extension_id=extension_id)

    resolution = resolve_address(domain, resolver)
    return Route(
        source=source,
        address=resolution.address,
        domain=domain,
        extension=extension,
        dns_fallback=isinstance(resolution, Fallback),
    )
