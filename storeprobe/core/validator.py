"""
Product Page Validator

Navigates to one product page, lets client-side rendering settle, and checks
the six element kinds a purchasable product page is expected to expose. A
page passes when it shows a title, a price and a way to buy (either an
add-to-cart control or a variant picker that gates it).
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from storeprobe.core.config import PageTimings, TestSettings
from storeprobe.core.element_specs import (
    ELEMENT_SPECS,
    VARIANT_CONTAINER_SELECTOR,
    VARIANT_OPTION_SELECTOR,
)
from storeprobe.core.locator import ElementLocator
from storeprobe.core.models import (
    AddToCartCheck,
    Clickability,
    ElementKind,
    LocateResult,
    PageResult,
    ProductElements,
)

logger = logging.getLogger("storeprobe.validator")

DESCRIPTION_MAX_CHARS = 200

_TIME_TO_INTERACTIVE_SCRIPT = """
() => {
  const entries = performance.getEntriesByType('navigation');
  if (entries.length && entries[0].domInteractive) return Math.round(entries[0].domInteractive);
  const t = performance.timing;
  if (t && t.domInteractive && t.navigationStart) return t.domInteractive - t.navigationStart;
  return 0;
}
"""


def derive_stock_flag(text: str) -> Optional[bool]:
    """Map availability text to True, False or None (unknown).

    Negative phrases are checked first because "unavailable" contains
    "available".
    """
    lowered = text.lower()
    if "out of stock" in lowered or "unavailable" in lowered:
        return False
    if "in stock" in lowered or "available" in lowered:
        return True
    return None


async def check_clickable(check: AddToCartCheck, located: LocateResult) -> None:
    try:
        clickable = await located.element.is_enabled() and await located.element.is_visible()
    except Exception as e:
        logger.debug(f"[Validator] Clickability check failed, assuming clickable: {e}")
        check.clickable = True
        check.clickability = Clickability.ASSUMED
        return
    check.clickable = clickable
    check.clickability = Clickability.CLICKABLE if clickable else Clickability.NOT_CLICKABLE


class ProductPageValidator:
    def __init__(
        self,
        locator: ElementLocator | None = None,
        timings: PageTimings | None = None,
    ) -> None:
        self._locator = locator or ElementLocator()
        self._timings = timings or PageTimings()

    async def _navigate(self, page: Page, url: str, settings: TestSettings) -> None:
        await page.goto(url, wait_until="domcontentloaded", timeout=settings.timeout_ms)
        if self._timings.settle_delay_ms > 0:
            await page.wait_for_timeout(self._timings.settle_delay_ms)
        # Playwright treats timeout=0 as unbounded.
        if self._timings.quiescence_timeout_ms <= 0:
            return
        try:
            await page.wait_for_load_state("networkidle", timeout=self._timings.quiescence_timeout_ms)
        except PlaywrightError:
            logger.debug(f"[Validator] Network did not go idle for {url}, continuing")

    async def _time_to_interactive(self, page: Page) -> int:
        try:
            value = await page.evaluate(_TIME_TO_INTERACTIVE_SCRIPT)
            return max(0, int(value or 0))
        except Exception:
            return 0

    async def _locate(self, page: Page, kind: ElementKind) -> Optional[LocateResult]:
        return await self._locator.locate(page, ELEMENT_SPECS[kind])

    async def _count_variants(self, page: Page, result: PageResult) -> None:
        variants = result.elements.variants
        try:
            for container in await page.query_selector_all(VARIANT_CONTAINER_SELECTOR):
                options = await container.query_selector_all(VARIANT_OPTION_SELECTOR)
                if options:
                    variants.count = len(options)
                    variants.selector = "container-based"
                    variants.strategy = "container"
                    break

            if variants.count == 0:
                located = await self._locate(page, ElementKind.VARIANTS)
                if located:
                    variants.count = len(await page.query_selector_all(located.selector))
                    variants.selector = located.selector
                    variants.strategy = located.strategy.value
                    variants.text = located.text
        except Exception as e:
            result.errors.append(f"Variant detection error: {e}")

        variants.present = variants.count > 0

    async def validate(self, page: Page, url: str, settings: TestSettings) -> PageResult:
        result = PageResult(url=url, elements=ProductElements())
        elements = result.elements
        start = time.perf_counter()

        try:
            await self._navigate(page, url, settings)
            result.performance.load_time_ms = int((time.perf_counter() - start) * 1000)
            result.performance.time_to_interactive_ms = await self._time_to_interactive(page)

            title = await self._locate(page, ElementKind.TITLE)
            if title:
                elements.title.record(title)

            price = await self._locate(page, ElementKind.PRICE)
            if price:
                elements.price.record(price)

            cart = await self._locate(page, ElementKind.ADD_TO_CART)
            if cart:
                elements.add_to_cart.record(cart)
                await check_clickable(elements.add_to_cart, cart)

            description = await self._locate(page, ElementKind.DESCRIPTION)
            if description:
                elements.description.record(description, max_text=DESCRIPTION_MAX_CHARS)

            await self._count_variants(page, result)

            availability = await self._locate(page, ElementKind.AVAILABILITY)
            if availability:
                elements.availability.record(availability)
                elements.availability.in_stock = derive_stock_flag(availability.text)

            result.passed = elements.verdict()
            logger.info(
                f"[Validator] {url}: "
                f"title={elements.title.present}({elements.title.strategy or '-'}) "
                f"price={elements.price.present}({elements.price.strategy or '-'}) "
                f"add_to_cart={elements.add_to_cart.present}({elements.add_to_cart.strategy or '-'}) "
                f"variants={elements.variants.count}({elements.variants.strategy or '-'}) "
                f"availability={elements.availability.present} "
                f"passed={result.passed}"
            )
        except Exception as e:
            result.errors.append(str(e) or e.__class__.__name__)
            result.passed = False
            logger.error(f"[Validator] Error testing product page {url}: {e}")

        return result
