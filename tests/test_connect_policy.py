"""
Decision tables for guest chat/call access.
"""

from __future__ import annotations

import itertools

import pytest

from nexus.authz.cache import PolicyCache
from nexus.authz.policy import (
    ConnectPolicyService,
    decide_chat_page,
    decide_outgoing_call,
    decide_outgoing_chat,
)
from nexus.core.models import ParseError, PolicyRecord


def _rec(guest: bool, admin_msg: bool = True, g2g_call: bool = True) -> PolicyRecord:
    return PolicyRecord(
        is_guest=guest,
        guest_to_admin_messaging_enabled=admin_msg,
        guest_to_guest_calling_enabled=g2g_call,
    )


ALL_RECORDS = [_rec(g, a, c) for g, a, c in itertools.product([True, False], repeat=3)]


@pytest.fixture
def service_for(make_provider):
    def _build(records):  # type: ignore[no-untyped-def]
        provider = make_provider(records)
        return ConnectPolicyService(provider, PolicyCache()), provider

    return _build


# ---------------------------------------------------------------------------
# chat page
# ---------------------------------------------------------------------------


def test_chat_page_disabled_only_for_guest_without_admin_messaging():
    for rec in ALL_RECORDS:
        expected = not (rec.is_guest and not rec.guest_to_admin_messaging_enabled)
        assert decide_chat_page(rec) is expected
    assert decide_chat_page(None) is True


def test_chat_page_enabled_via_service(service_for):
    svc, _ = service_for({"100": _rec(True, admin_msg=False), "200": _rec(False)})
    assert svc.chat_page_enabled("100") is False
    assert svc.chat_page_enabled("200") is True
    assert svc.chat_page_enabled("999") is True
    assert svc.chat_page_enabled(None) is True


# ---------------------------------------------------------------------------
# outgoing chat
# ---------------------------------------------------------------------------


def test_outgoing_chat_guest_to_guest_denied():
    for frm, to in itertools.product(ALL_RECORDS, ALL_RECORDS):
        if frm.is_guest and to.is_guest:
            assert decide_outgoing_chat(frm, to, False) is False
            assert decide_outgoing_chat(frm, to, True) is False


def test_outgoing_chat_guest_group_chat_denied_regardless_of_recipient():
    for frm, to in itertools.product(ALL_RECORDS, ALL_RECORDS):
        if frm.is_guest:
            assert decide_outgoing_chat(frm, to, True) is False


def test_outgoing_chat_guest_without_admin_messaging_denied():
    frm = _rec(True, admin_msg=False)
    assert decide_outgoing_chat(frm, _rec(False), False) is False
    assert decide_outgoing_chat(_rec(True, admin_msg=True), _rec(False), False) is True


def test_outgoing_chat_non_guest_sender_always_allowed():
    for frm, to in itertools.product(ALL_RECORDS, ALL_RECORDS):
        if not frm.is_guest:
            assert decide_outgoing_chat(frm, to, False) is True
            assert decide_outgoing_chat(frm, to, True) is True


@pytest.mark.parametrize("is_group_chat", [True, False])
def test_outgoing_chat_fails_open_when_either_record_absent(is_group_chat):
    guest = _rec(True, admin_msg=False)
    assert decide_outgoing_chat(None, guest, is_group_chat) is True
    assert decide_outgoing_chat(guest, None, is_group_chat) is True
    assert decide_outgoing_chat(None, None, is_group_chat) is True


def test_outgoing_chat_fetches_both_even_when_first_absent(service_for):
    svc, provider = service_for({"200": _rec(False)})
    assert svc.outgoing_chat_allowed("404", "200", False) is True
    assert provider.calls == ["404", "200"]


# ---------------------------------------------------------------------------
# outgoing call
# ---------------------------------------------------------------------------


def test_outgoing_call_table():
    for frm, to in itertools.product(ALL_RECORDS, ALL_RECORDS):
        expected = not (frm.is_guest and to.is_guest and not frm.guest_to_guest_calling_enabled)
        assert decide_outgoing_call(frm, to) is expected

    assert decide_outgoing_call(None, _rec(True, g2g_call=False)) is True
    assert decide_outgoing_call(_rec(True, g2g_call=False), None) is True


def test_outgoing_call_fetches_both_even_when_first_absent(service_for):
    svc, provider = service_for({"101": _rec(True)})
    assert svc.outgoing_call_allowed(None, "101") is True
    assert svc.outgoing_call_allowed("404", "101") is True
    # "101" is fetched on the first call and served from cache on the second.
    assert provider.calls == ["101", "404"]


# ---------------------------------------------------------------------------
# scenarios
# ---------------------------------------------------------------------------


def test_scenario_guest_and_admin(service_for):
    svc, provider = service_for(
        {
            "100": _rec(True, admin_msg=False),
            "200": _rec(False),
        }
    )
    assert svc.outgoing_chat_allowed("100", "200", False) is False
    assert svc.outgoing_chat_allowed("200", "100", False) is True
    assert svc.outgoing_call_allowed("100", "200") is True
    # Each extension fetched once; later calls are cache hits.
    assert sorted(provider.calls) == ["100", "200"]


@pytest.mark.parametrize("g2g_call,expected", [(True, True), (False, False)])
def test_scenario_guest_to_guest_call(service_for, g2g_call, expected):
    svc, _ = service_for(
        {
            "100": _rec(True, g2g_call=g2g_call),
            "101": _rec(True, g2g_call=False),
        }
    )
    assert svc.outgoing_call_allowed("100", "101") is expected


def test_scenario_parse_error_falls_back_to_permissive(service_for):
    svc, _ = service_for(
        {
            "100": ParseError(extension_id="100", message="Expecting value"),
            "101": _rec(True, admin_msg=False, g2g_call=False),
        }
    )
    assert svc.chat_page_enabled("100") is True
    assert svc.outgoing_chat_allowed("100", "101", True) is True
    assert svc.outgoing_call_allowed("101", "100") is True
    assert len(svc.cache) == 1
