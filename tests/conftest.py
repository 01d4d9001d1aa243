"""
Shared pytest fixtures for bound-preview tests.

This module provides:
- A deterministic clock for session/nonce tests
- A REST server with ``pages`` and ``posts`` collections
- A preview manager wired to that server with a short debounce

Usage:
    Fixtures are auto-discovered by pytest; request them by argument name.
"""

import sys
from pathlib import Path
import pytest

# Ensure bound_preview package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from bound_preview.core.logging import configure_logging
from bound_preview.core.settings import BoundPreviewSettings
from bound_preview.manager import PreviewManager
from bound_preview.rest.resources import ResourceCollection, register_collection_routes
from bound_preview.rest.server import RestServer

EDITOR_CAPS = frozenset({"edit_pages", "edit_posts"})


def pytest_configure(config: pytest.Config) -> None:
    """Route structlog through stdlib logging before any logger is first used."""
    configure_logging(level="DEBUG", format="console", force=True)


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)
        if test_path.parts[0] == "api":
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Clock
# =============================================================================


class FakeClock:
    """Manually advanced ``time.time`` replacement."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# =============================================================================
# REST fixtures
# =============================================================================


@pytest.fixture
def pages() -> ResourceCollection:
    collection = ResourceCollection(name="pages", edit_capability="edit_pages")
    collection.add(4, title="Sample Page", content="<p>Hello</p>", status="publish", password="")
    collection.add(7, title="About & Contact", content="<p>About</p>", status="draft", password="")
    return collection


@pytest.fixture
def posts() -> ResourceCollection:
    collection = ResourceCollection(name="posts", edit_capability="edit_posts")
    collection.add(1, title="Hello world!", content="<p>Welcome</p>", status="publish", password="")
    return collection


@pytest.fixture
def server(pages: ResourceCollection, posts: ResourceCollection) -> RestServer:
    srv = RestServer()
    register_collection_routes(srv, pages)
    register_collection_routes(srv, posts)
    return srv


@pytest.fixture
def settings() -> BoundPreviewSettings:
    return BoundPreviewSettings(
        debounce_seconds=0.01,
        nonce_secret="test-secret",
        rest_api_root="http://testserver/rest",
        _env_file=None,
    )


@pytest.fixture
def manager(settings: BoundPreviewSettings, server: RestServer, clock: FakeClock) -> PreviewManager:
    return PreviewManager(settings, server=server, capabilities=EDITOR_CAPS, clock=clock)

