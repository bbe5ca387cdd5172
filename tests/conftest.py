"""
In-memory stand-ins for the Playwright objects the core touches.

A FakePage serves FakeDocuments keyed by URL. A document maps CSS selectors
to element lists, keeps a separate list of text-searchable elements for
``get_by_text``, and can emit page events on navigation.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import pytest

from storeprobe.core.config import PageTimings


@dataclass
class FakeElement:
    text: str = ""
    visible: bool = True
    enabled: bool = True
    attrs: dict[str, str] = field(default_factory=dict)
    bbox: Optional[dict[str, float]] = None
    children: dict[str, list["FakeElement"]] = field(default_factory=dict)
    fail_on_enabled: bool = False
    visibility_error: Optional[str] = None

    async def is_visible(self) -> bool:
        if self.visibility_error:
            raise RuntimeError(self.visibility_error)
        return self.visible

    async def is_enabled(self) -> bool:
        if self.fail_on_enabled:
            raise RuntimeError("Element is not attached to the DOM")
        return self.enabled

    async def inner_text(self) -> str:
        return self.text

    async def text_content(self) -> str:
        return self.text

    async def get_attribute(self, name: str) -> Optional[str]:
        return self.attrs.get(name)

    async def bounding_box(self) -> Optional[dict[str, float]]:
        return self.bbox

    async def query_selector_all(self, selector: str) -> list["FakeElement"]:
        return list(self.children.get(selector, []))


class FakeLocator:
    def __init__(self, elements: list[FakeElement]) -> None:
        self._elements = elements

    async def count(self) -> int:
        return len(self._elements)

    def nth(self, index: int) -> FakeElement:
        return self._elements[index]


@dataclass
class FakeDocument:
    selectors: dict[str, list[FakeElement]] = field(default_factory=dict)
    texts: list[FakeElement] = field(default_factory=list)
    scan_result: Optional[list[dict[str, Any]]] = None
    broken_selectors: set[str] = field(default_factory=set)
    time_to_interactive: int = 120
    events: list[tuple[str, Any]] = field(default_factory=list)


class FakePage:
    def __init__(
        self,
        sites: dict[str, FakeDocument] | None = None,
        unreachable: set[str] | None = None,
    ) -> None:
        self.sites = sites or {}
        self.unreachable = unreachable or set()
        self.document: Optional[FakeDocument] = None
        self.url = "about:blank"
        self.visited: list[str] = []
        self.default_timeout: Optional[int] = None
        self.listeners: dict[str, list[Callable[[Any], None]]] = {}

    async def goto(self, url: str, wait_until: str | None = None, timeout: int | None = None) -> None:
        self.visited.append(url)
        if url in self.unreachable:
            raise RuntimeError(f"net::ERR_NAME_NOT_RESOLVED at {url}")
        self.url = url
        self.document = self.sites.get(url, FakeDocument())
        for event, payload in self.document.events:
            self.emit(event, payload)

    async def wait_for_timeout(self, timeout: float) -> None:
        return None

    async def wait_for_load_state(self, state: str = "load", timeout: float | None = None) -> None:
        return None

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        if self.document is None:
            return None
        if arg is None:
            return self.document.time_to_interactive
        return self.document.scan_result

    async def query_selector_all(self, selector: str) -> list[FakeElement]:
        if self.document is None:
            return []
        if selector in self.document.broken_selectors:
            raise RuntimeError(f"Unexpected token in selector {selector!r}")
        return list(self.document.selectors.get(selector, []))

    async def query_selector(self, selector: str) -> Optional[FakeElement]:
        found = await self.query_selector_all(selector)
        return found[0] if found else None

    def get_by_text(self, text: str, exact: bool = False) -> FakeLocator:
        if self.document is None:
            return FakeLocator([])
        needle = text.lower()
        return FakeLocator([el for el in self.document.texts if needle in el.text.lower()])

    def on(self, event: str, handler: Callable[[Any], None]) -> None:
        self.listeners.setdefault(event, []).append(handler)

    def remove_listener(self, event: str, handler: Callable[[Any], None]) -> None:
        self.listeners.get(event, []).remove(handler)

    def emit(self, event: str, payload: Any) -> None:
        for handler in list(self.listeners.get(event, [])):
            handler(payload)

    def set_default_timeout(self, timeout: float) -> None:
        self.default_timeout = int(timeout)


class FakeContext:
    def __init__(self, page: FakePage) -> None:
        self.page = page
        self.closed = False

    async def new_page(self) -> FakePage:
        return self.page

    async def close(self) -> None:
        self.closed = True


class FakeSession:
    def __init__(self, page: FakePage) -> None:
        self.page = page
        self.contexts: list[FakeContext] = []
        self.requests: list[tuple[Any, bool]] = []

    @asynccontextmanager
    async def isolated_context(self, viewport: Any, mobile: bool = False):
        self.requests.append((viewport, mobile))
        context = FakeContext(self.page)
        self.contexts.append(context)
        try:
            yield context
        finally:
            await context.close()


def product_document(
    title: str | None = "Classic Tee",
    price: str | None = "$19.99",
    cart: str | None = "Add to Cart",
    availability: str | None = None,
    images: list[FakeElement] | None = None,
) -> FakeDocument:
    """Build a storefront page with the requested elements present."""
    selectors: dict[str, list[FakeElement]] = {}
    if title is not None:
        selectors["h1"] = [FakeElement(title)]
    if price is not None:
        selectors[
            '[class*="price" i]:not([class*="compare" i]):not([class*="was" i]):not([class*="original" i])'
        ] = [FakeElement(price)]
    if cart is not None:
        selectors['button[type="submit"]'] = [FakeElement(cart)]
    if availability is not None:
        selectors['[class*="availability" i]'] = [FakeElement(availability)]
    if images:
        selectors['img[src], img[data-src], [style*="background-image"]'] = images
    return FakeDocument(selectors=selectors)


@pytest.fixture
def no_delays() -> PageTimings:
    return PageTimings(settle_delay_ms=0, quiescence_timeout_ms=0, image_settle_delay_ms=0)
