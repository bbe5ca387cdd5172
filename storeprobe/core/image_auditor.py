from __future__ import annotations

import logging
import re
from typing import Optional
from urllib.parse import urljoin

from playwright.async_api import ElementHandle, Page

from storeprobe.core.config import PageTimings
from storeprobe.core.models import ImageRecord

logger = logging.getLogger("storeprobe.images")

IMAGE_SELECTOR = 'img[src], img[data-src], [style*="background-image"]'

_BACKGROUND_URL = re.compile(
    r"background-image\s*:\s*url\(\s*['\"]?([^'\")]+?)['\"]?\s*\)",
    re.IGNORECASE,
)


def background_image_url(style: str | None) -> Optional[str]:
    if not style:
        return None
    match = _BACKGROUND_URL.search(style)
    return match.group(1).strip() if match else None


class ImageAuditor:
    """Reports which images on each page are rendered and at what size.

    Visibility stands in for "loaded"; no byte-level fetch is checked.
    """

    def __init__(self, timings: PageTimings | None = None) -> None:
        self._timings = timings or PageTimings()

    async def _resolve_source(self, node: ElementHandle) -> tuple[Optional[str], str]:
        src = await node.get_attribute("src") or await node.get_attribute("data-src")
        if not src:
            src = background_image_url(await node.get_attribute("style"))
        alt = await node.get_attribute("alt") or ""
        return src, alt

    async def _inspect(self, node: ElementHandle, record: ImageRecord) -> None:
        try:
            if await node.is_visible():
                record.loaded = True
                box = await node.bounding_box()
                if box:
                    record.width = box["width"]
                    record.height = box["height"]
        except Exception as e:
            record.errors.append(str(e))

    async def audit_page(self, page: Page, url: str) -> list[ImageRecord]:
        records: list[ImageRecord] = []
        await page.goto(url, wait_until="domcontentloaded")
        if self._timings.image_settle_delay_ms > 0:
            await page.wait_for_timeout(self._timings.image_settle_delay_ms)

        for node in await page.query_selector_all(IMAGE_SELECTOR):
            try:
                src, alt = await self._resolve_source(node)
            except Exception as e:
                logger.debug(f"[Images] Could not read image attributes on {url}: {e}")
                continue
            if not src:
                continue
            record = ImageRecord(page_url=url, src=urljoin(url, src), alt_text=alt)
            await self._inspect(node, record)
            records.append(record)
        return records

    async def audit(self, page: Page, urls: list[str]) -> list[ImageRecord]:
        records: list[ImageRecord] = []
        for url in urls:
            try:
                page_records = await self.audit_page(page, url)
            except Exception as e:
                logger.error(f"[Images] Error testing images on {url}: {e}")
                continue
            loaded = sum(1 for record in page_records if record.loaded)
            logger.info(f"[Images] {url}: {loaded}/{len(page_records)} images visible")
            records.extend(page_records)
        return records
