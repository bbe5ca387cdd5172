"""
Element Locator - layered search for semantically meaningful elements.

Markup on third-party storefronts is unknown and inconsistent, so an element
is searched with four strategies in fixed priority order:

1. Structural selectors (optionally constrained by content patterns)
2. Visible text search
3. Attribute fragment search
4. Full-document content scan (only when content patterns exist)

The first strategy that yields a visible candidate wins. Failures inside a
strategy only skip the current candidate; absence is a normal outcome.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Awaitable, Callable, Optional

from playwright.async_api import ElementHandle, Locator, Page

from storeprobe.core.models import ContentPattern, ElementSpec, LocateResult, LocateStrategy

logger = logging.getLogger("storeprobe.locator")

StrategyFn = Callable[[Page, ElementSpec], Awaitable[Optional[LocateResult]]]

MAX_TEXT_CANDIDATES = 10
MAX_SCAN_CANDIDATES = 500

_WHITESPACE = re.compile(r"\s+")

_CONTENT_SCAN_SCRIPT = r"""
({patterns, limit}) => {
  const compiled = patterns.map((p) =>
    p.kind === 'regex' ? new RegExp(p.source, p.flags) : p.value.toLowerCase()
  );
  const skipped = new Set(['HTML', 'HEAD', 'BODY', 'SCRIPT', 'STYLE', 'NOSCRIPT', 'TEMPLATE']);
  const selectorFor = (el) => {
    if (el.id) return '#' + CSS.escape(el.id);
    if (typeof el.className === 'string') {
      const classes = el.className.split(/\s+/).filter((c) => c.length > 0);
      if (classes.length > 0) return '.' + CSS.escape(classes[0]);
    }
    return el.tagName.toLowerCase();
  };

  const found = [];
  const indexOf = new Map();
  for (const el of document.querySelectorAll('*')) {
    if (found.length >= limit) break;
    if (skipped.has(el.tagName)) continue;
    const rect = el.getBoundingClientRect();
    if (rect.width === 0 || rect.height === 0) continue;
    const style = window.getComputedStyle(el);
    if (style.display === 'none' || style.visibility === 'hidden') continue;
    const text = (el.textContent || '').trim();
    if (!text) continue;
    const matched = [];
    compiled.forEach((p, i) => {
      if (typeof p === 'string' ? text.toLowerCase().includes(p) : p.test(text)) matched.push(i);
    });
    if (matched.length === 0) continue;

    let parent = null;
    for (let a = el.parentElement; a; a = a.parentElement) {
      if (indexOf.has(a)) { parent = indexOf.get(a); break; }
    }
    indexOf.set(el, found.length);
    found.push({
      index: found.length,
      parent,
      selector: selectorFor(el),
      text: text.replace(/\s+/g, ' ').slice(0, 1000),
      patterns: matched,
    });
  }
  return found;
}
"""


def normalize_text(raw: str | None) -> str:
    return _WHITESPACE.sub(" ", raw or "").strip()


async def element_text(element: ElementHandle | Locator) -> str:
    try:
        raw = await element.inner_text()
    except Exception:
        raw = await element.text_content()
    return normalize_text(raw)


def pattern_payload(pattern: ContentPattern) -> dict[str, Any]:
    """Translate a content pattern into the shape the in-page scan understands."""
    if isinstance(pattern, re.Pattern):
        flags = ""
        if pattern.flags & re.IGNORECASE:
            flags += "i"
        if pattern.flags & re.MULTILINE:
            flags += "m"
        if pattern.flags & re.DOTALL:
            flags += "s"
        return {"kind": "regex", "source": pattern.pattern, "flags": flags}
    return {"kind": "literal", "value": pattern}


async def locate_by_selectors(page: Page, spec: ElementSpec) -> Optional[LocateResult]:
    constrained = bool(spec.content_patterns)
    for selector in spec.selectors:
        try:
            candidates = await page.query_selector_all(selector)
        except Exception as e:
            logger.debug(f"[Locator] Selector '{selector}' failed: {e}")
            continue
        for element in candidates:
            try:
                if not await element.is_visible():
                    continue
                text = await element_text(element)
            except Exception:
                continue
            if not text:
                continue
            if not constrained:
                return LocateResult(element, text, selector, LocateStrategy.CSS)
            if spec.matches_content(text):
                return LocateResult(element, text, selector, LocateStrategy.CSS_PATTERN)
    return None


async def locate_by_text(page: Page, spec: ElementSpec) -> Optional[LocateResult]:
    for pattern in spec.text_patterns:
        try:
            locator = page.get_by_text(pattern, exact=False)
            count = await locator.count()
        except Exception:
            continue
        for index in range(min(count, MAX_TEXT_CANDIDATES)):
            candidate = locator.nth(index)
            try:
                if not await candidate.is_visible():
                    continue
                text = normalize_text(await candidate.text_content())
            except Exception:
                continue
            return LocateResult(candidate, text, f"text:{pattern}", LocateStrategy.TEXT)
    return None


async def locate_by_attributes(page: Page, spec: ElementSpec) -> Optional[LocateResult]:
    for attribute in spec.attributes:
        selector = attribute.selector()
        try:
            candidates = await page.query_selector_all(selector)
        except Exception:
            continue
        for element in candidates:
            try:
                if not await element.is_visible():
                    continue
                text = normalize_text(await element.text_content())
            except Exception:
                continue
            if text:
                return LocateResult(element, text, selector, LocateStrategy.ATTRIBUTE)
    return None


def pick_scan_candidate(candidates: list[dict[str, Any]], pattern_count: int) -> Optional[dict[str, Any]]:
    """Choose the scan match to report.

    Patterns are tried in order. For a pattern, the first matching node in
    document order is taken and then replaced by matching descendants while
    the matches stay nested; the first match outside that chain ends the walk.
    """
    parents = {candidate["index"]: candidate.get("parent") for candidate in candidates}

    def descends_from(index: int, ancestor: int) -> bool:
        current = parents.get(index)
        while current is not None:
            if current == ancestor:
                return True
            current = parents.get(current)
        return False

    for pattern_index in range(pattern_count):
        best: Optional[dict[str, Any]] = None
        for candidate in candidates:
            if pattern_index not in candidate.get("patterns", ()):
                continue
            if best is None or descends_from(candidate["index"], best["index"]):
                best = candidate
            else:
                break
        if best is not None:
            return best
    return None


async def locate_by_content_scan(page: Page, spec: ElementSpec) -> Optional[LocateResult]:
    if not spec.content_patterns:
        return None
    payload = {
        "patterns": [pattern_payload(pattern) for pattern in spec.content_patterns],
        "limit": MAX_SCAN_CANDIDATES,
    }
    try:
        candidates = await page.evaluate(_CONTENT_SCAN_SCRIPT, payload)
        found = pick_scan_candidate(candidates or [], len(spec.content_patterns))
        if found is None:
            return None
        selector = str(found["selector"])
        element = await page.query_selector(selector)
    except Exception as e:
        logger.debug(f"[Locator] Content scan failed for {spec.kind.value}: {e}")
        return None
    if element is None:
        return None
    return LocateResult(element, normalize_text(found.get("text")), selector, LocateStrategy.CONTENT_SEARCH)


class ElementLocator:
    """Composes the search strategies in fixed priority order."""

    STRATEGIES: tuple[StrategyFn, ...] = (
        locate_by_selectors,
        locate_by_text,
        locate_by_attributes,
        locate_by_content_scan,
    )

    def __init__(self, strategies: tuple[StrategyFn, ...] | None = None) -> None:
        self._strategies = strategies if strategies is not None else self.STRATEGIES

    async def locate(self, page: Page, spec: ElementSpec) -> Optional[LocateResult]:
        for strategy in self._strategies:
            try:
                result = await strategy(page, spec)
            except Exception as e:
                logger.debug(f"[Locator] Strategy {strategy.__name__} raised: {e}")
                continue
            if result is not None:
                logger.debug(
                    f"[Locator] {spec.kind.value}: matched '{result.selector}' via {result.strategy.value}"
                )
                return result
        logger.debug(f"[Locator] {spec.kind.value}: no strategy matched")
        return None
