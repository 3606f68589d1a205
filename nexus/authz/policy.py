"""Guest access decisions over Nexus connect params.

Decisions fail open: whenever a record for an involved extension is unavailable,
the action is allowed.
"""

from __future__ import annotations

import logging
import socket
from typing import Optional

import requests

from nexus.authz.cache import PolicyCache
from nexus.config import NexusConfig, load_nexus_config
from nexus.core.models import FetchFailure, PolicyRecord
from nexus.providers.directory import Directory, Resolver
from nexus.providers.nexus_provider import DefaultNexusProvider, NexusProvider

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pure decisions
# ---------------------------------------------------------------------------


def decide_chat_page(record: Optional[PolicyRecord]) -> bool:
    if record is None:
        return True
    return not (record.is_guest and not record.guest_to_admin_messaging_enabled)


def decide_outgoing_chat(
    from_record: Optional[PolicyRecord],
    to_record: Optional[PolicyRecord],
    is_group_chat: bool,
) -> bool:
    if from_record is None or to_record is None:
        return True
    if from_record.is_guest and to_record.is_guest:
        return False
    if from_record.is_guest and is_group_chat:
        return False
    if from_record.is_guest and not from_record.guest_to_admin_messaging_enabled:
        return False
    return True


def decide_outgoing_call(from_record: Optional[PolicyRecord], to_record: Optional[PolicyRecord]) -> bool:
    if from_record is None or to_record is None:
        return True
    return not (from_record.is_guest and to_record.is_guest and not from_record.guest_to_guest_calling_enabled)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class ConnectPolicyService:
    """
    Cache-or-fetch front for connect params plus the three guest access checks.

    Safe to call from any worker thread. Concurrent misses for the same
    extension may each fetch; the last write wins.
    """

    def __init__(self, provider: NexusProvider, cache: PolicyCache) -> None:
        self.provider = provider
        self.cache = cache

    def get_or_fetch(self, extension_id: Optional[str]) -> Optional[PolicyRecord]:
        """
        Return connect params for an extension, from cache while fresh.

        A missing or empty extension id yields None without a request: an empty
        id has no account of its own and would only query the controller for "".
        """
        if not extension_id:
            logger.error("Extension is null")
            return None

        record = self.cache.get_fresh(extension_id)
        if record is not None:
            logger.debug(f"Using cached connect params for extension [{extension_id}]")
            return record

        try:
            result = self.provider.fetch(extension_id)
        except Exception as e:
            # Third-party directories/resolvers may raise; decisions must still resolve.
            logger.exception(f"Unexpected error fetching connect params for extension [{extension_id}]: {e}")
            return None
        if isinstance(result, FetchFailure):
            logger.warning(f"No connect params for extension [{extension_id}]: {result.reason}")
            return None

        self.cache.put(extension_id, result)
        return result

    def chat_page_enabled(self, extension_id: Optional[str]) -> bool:
        allowed = decide_chat_page(self.get_or_fetch(extension_id))
        if not allowed:
            logger.info(f"Guest [{extension_id}] without admin messaging rights - disabling conversations page")
        return allowed

    def outgoing_chat_allowed(
        self,
        from_extension: Optional[str],
        to_extension: Optional[str],
        is_group_chat: bool,
    ) -> bool:
        logger.info(
            f"outgoing_chat_allowed - from: {from_extension}, to: {to_extension}, is_group_chat: {is_group_chat}"
        )
        from_record = self.get_or_fetch(from_extension)
        to_record = self.get_or_fetch(to_extension)

        if from_record is None or to_record is None:
            logger.warning("Connect params unavailable for sender or recipient, allowing outgoing message by default")
            return True

        allowed = decide_outgoing_chat(from_record, to_record, is_group_chat)
        if not allowed:
            logger.warning(
                f"Guest extension [{from_extension}] is not allowed to message [{to_extension}] "
                f"(recipient_guest={to_record.is_guest}, group_chat={is_group_chat}, "
                f"admin_messaging={from_record.guest_to_admin_messaging_enabled})"
            )
        return allowed

    def outgoing_call_allowed(self, from_extension: Optional[str], to_extension: Optional[str]) -> bool:
        from_record = self.get_or_fetch(from_extension)
        to_record = self.get_or_fetch(to_extension)

        if from_record is None or to_record is None:
            logger.warning("Connect params unavailable for caller or callee, allowing outgoing call by default")
            return True

        allowed = decide_outgoing_call(from_record, to_record)
        if not allowed:
            logger.warning(
                f"Guest extension [{from_extension}] is not allowed to call [{to_extension}] "
                "because guest-to-guest calling is disabled"
            )
        return allowed


def build_policy_service(
    directory: Directory,
    *,
    config: Optional[NexusConfig] = None,
    resolver: Resolver = socket.gethostbyname,
    session: Optional[requests.Session] = None,
) -> ConnectPolicyService:
    """Wire provider, cache and service from config (env-loaded when omitted)."""
    cfg = config or load_nexus_config()
    provider = DefaultNexusProvider(directory, config=cfg, resolver=resolver, session=session)
    return ConnectPolicyService(provider, PolicyCache(ttl_seconds=cfg.cache_ttl_seconds))
