import asyncio
import os
import sys
from contextlib import asynccontextmanager
from typing import Dict, List, Optional

import pytest

# Ensure project root is on sys.path for imports like `core.*`
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

# Configure pytest-asyncio
pytest_plugins = ('pytest_asyncio',)

from browser.session import PageSession
from extractors.classes import CLASS_ATTRIBUTES_JS
from extractors.data_attributes import ATTRIBUTE_NAMES_JS
from extractors.head_tags import HEAD_ELEMENTS_JS
from extractors.scripts import SCRIPT_ELEMENTS_JS
from extractors.window_variables import WINDOW_PROBE_JS
from models.scan import Target


class FakeRequest:
    def __init__(self, url: str, method: str = "GET", resource_type: str = "xhr"):
        self.url = url
        self.method = method
        self.resource_type = resource_type


class FakePage:
    """Stands in for a Playwright page, answering the extractors' DOM probes from fixed data."""

    def __init__(self, scripts: List[Dict] = None, window: Dict[str, object] = None,
                 classes: Dict[str, int] = None, attributes: List[Dict] = None,
                 head: List[Dict] = None, requests: List[FakeRequest] = None,
                 goto_delay: float = 0.0, goto_error: Optional[BaseException] = None,
                 failing_probes=(), close_on_probe: bool = False):
        self.scripts = scripts or []
        self.window = window or {}
        self.classes = classes or {}
        self.attributes = attributes or []
        self.head = head or []
        self.requests = requests or []
        self.goto_delay = goto_delay
        self.goto_error = goto_error
        self.failing_probes = set(failing_probes)
        self.close_on_probe = close_on_probe
        self.closed = False
        self.visited: List[str] = []
        self._listeners: Dict[str, List] = {}

    def on(self, event, handler):
        self._listeners.setdefault(event, []).append(handler)

    def remove_listener(self, event, handler):
        self._listeners.get(event, []).remove(handler)

    def is_closed(self) -> bool:
        return self.closed

    async def close(self):
        self.closed = True

    async def goto(self, url, wait_until=None, timeout=None):
        self.visited.append(url)
        for request in self.requests:
            for handler in self._listeners.get("request", []):
                handler(request)
        if self.goto_delay:
            await asyncio.sleep(self.goto_delay)
        if self.goto_error is not None:
            raise self.goto_error

    async def evaluate(self, expression, arg=None):
        if self.close_on_probe:
            self.closed = True
            raise RuntimeError("Target page, context or browser has been closed")
        if expression in self.failing_probes:
            raise RuntimeError("Selector engine error")
        if expression == SCRIPT_ELEMENTS_JS:
            return [
                {"src": s.get("src", ""), "srcAttr": s.get("srcAttr", s.get("src", "")),
                 "id": s.get("id", ""), "text": s.get("text", "")}
                for s in self.scripts
            ]
        if expression == WINDOW_PROBE_JS:
            return [
                {"name": name, "exists": name in self.window,
                 "value": str(self.window[name]) if name in self.window else None}
                for name in arg
            ]
        if expression == CLASS_ATTRIBUTES_JS:
            return [[value, count] for value, count in self.classes.items()]
        if expression == ATTRIBUTE_NAMES_JS:
            return [dict(a) for a in self.attributes]
        if expression == HEAD_ELEMENTS_JS:
            return [
                {"tag": h.get("tag"), "href": h.get("href"), "rel": h.get("rel")}
                for h in self.head
            ]
        raise AssertionError(f"Unexpected expression: {expression[:40]}")


class FakeContext:
    def __init__(self, cookies: List[Dict] = None):
        self._cookies = cookies or []
        self.closed = False

    async def cookies(self):
        return [dict(c) for c in self._cookies]

    async def close(self):
        self.closed = True


def make_session(page: FakePage = None, cookies: List[Dict] = None,
                 target: Target = None) -> PageSession:
    """Build a session over fakes with network capture wired like the real providers."""
    page = page or FakePage()
    target = target or Target(customer="Acme", page_label="Homepage", url="https://acme.test/")
    session = PageSession(target=target, page=page, context=FakeContext(cookies))
    session.network.attach(page)
    return session


class FakeSessionProvider:
    """Hands out fake sessions per URL and records how many are open at once."""

    def __init__(self, pages: Dict[str, FakePage] = None, default_page_factory=None,
                 acquire_errors: Dict[str, BaseException] = None):
        self.pages = pages or {}
        self.default_page_factory = default_page_factory or FakePage
        self.acquire_errors = acquire_errors or {}
        self.open_sessions = 0
        self.max_open_sessions = 0
        self.acquired: List[str] = []
        self.released: List[str] = []
        self.started = False
        self.stopped = False

    async def start(self):
        self.started = True

    async def close(self):
        self.stopped = True

    @asynccontextmanager
    async def acquire(self, target: Target):
        if target.url in self.acquire_errors:
            raise self.acquire_errors[target.url]
        page = self.pages.get(target.url) or self.default_page_factory()
        self.open_sessions += 1
        self.max_open_sessions = max(self.max_open_sessions, self.open_sessions)
        self.acquired.append(target.url)
        try:
            yield make_session(page, target=target)
        finally:
            self.open_sessions -= 1
            self.released.append(target.url)


@pytest.fixture
def acme_target():
    return Target(customer="Acme", page_label="Homepage", url="https://acme.test/")
