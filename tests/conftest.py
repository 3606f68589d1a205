"""
Pytest config.

Local imports like `import nexus` rely on the repo root being on sys.path. When
invoking a global `pytest` entrypoint that doesn't happen reliably during
collection, so we pin it here.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


def _ensure_repo_root_on_syspath() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_str = str(repo_root)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


_ensure_repo_root_on_syspath()


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProvider:
    """Serves canned fetch results and records every fetch."""

    def __init__(self, results=None) -> None:  # type: ignore[no-untyped-def]
        self.results = dict(results or {})
        self.calls = []

    def fetch(self, extension_id):  # type: ignore[no-untyped-def]
        from nexus.core.models import NoRoute

        self.calls.append(extension_id)
        return self.results.get(extension_id, NoRoute(extension_id=extension_id))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_provider():
    return FakeProvider


@pytest.fixture(autouse=True)
def _clear_nexus_config_cache():
    """`load_nexus_config` is lru_cached; tests set env vars per case."""
    from nexus.config import load_nexus_config

    load_nexus_config.cache_clear()
    yield
    load_nexus_config.cache_clear()
