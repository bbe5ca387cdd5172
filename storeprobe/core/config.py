from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlparse


PLATFORMS = ("shopify", "bigcommerce", "other")

MOBILE_VIEWPORT_WIDTH = 390
MOBILE_VIEWPORT_HEIGHT = 844


@dataclass(frozen=True)
class Viewport:
    width: int = 1920
    height: int = 1080

    def as_playwright(self) -> dict[str, int]:
        return {"width": self.width, "height": self.height}


@dataclass(frozen=True)
class TestSettings:
    __test__ = False

    timeout_ms: int = 30_000
    viewport: Viewport = field(default_factory=Viewport)
    mobile_test: bool = False


@dataclass(frozen=True)
class TestTypes:
    __test__ = False

    product_page_test: bool = True
    image_validation: bool = True
    error_detection: bool = True


@dataclass(frozen=True)
class ProductPage:
    url: str
    identifier: str = ""


@dataclass(frozen=True)
class TestConfiguration:
    __test__ = False

    configuration_id: str
    product_pages: tuple[ProductPage, ...]
    name: str = ""
    target_url: str = ""
    platform: str = "other"
    test_settings: TestSettings = field(default_factory=TestSettings)
    test_types: TestTypes = field(default_factory=TestTypes)

    @property
    def urls(self) -> list[str]:
        return [page.url for page in self.product_pages]

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "TestConfiguration":
        pages_raw = payload.get("product_pages") or []
        if not pages_raw:
            raise ValueError("configuration requires at least one product page")

        pages: list[ProductPage] = []
        for item in pages_raw:
            if isinstance(item, str):
                item = {"url": item}
            if not isinstance(item, dict):
                raise ValueError(f"product page must be a URL or an object: {item!r}")
            url = str(item.get("url", "")).strip()
            if urlparse(url).scheme not in ("http", "https"):
                raise ValueError(f"product page URL must be http(s): {url!r}")
            pages.append(ProductPage(url=url, identifier=str(item.get("identifier", ""))))

        platform = str(payload.get("platform", "other"))
        if platform not in PLATFORMS:
            raise ValueError(f"unknown platform: {platform!r}")

        settings_raw = payload.get("test_settings") or {}
        viewport_raw = settings_raw.get("viewport") or {}
        viewport = Viewport(
            width=int(viewport_raw.get("width", 1920)),
            height=int(viewport_raw.get("height", 1080)),
        )
        if viewport.width <= 0 or viewport.height <= 0:
            raise ValueError("viewport dimensions must be positive")
        settings = TestSettings(
            timeout_ms=int(settings_raw.get("timeout_ms", 30_000)),
            viewport=viewport,
            mobile_test=bool(settings_raw.get("mobile_test", False)),
        )
        if settings.timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")

        types_raw = payload.get("test_types") or {}
        test_types = TestTypes(
            product_page_test=bool(types_raw.get("product_page_test", True)),
            image_validation=bool(types_raw.get("image_validation", True)),
            error_detection=bool(types_raw.get("error_detection", True)),
        )

        return cls(
            configuration_id=str(payload.get("configuration_id") or payload.get("id") or "adhoc"),
            product_pages=tuple(pages),
            name=str(payload.get("name", "")),
            target_url=str(payload.get("target_url", "")),
            platform=platform,
            test_settings=settings,
            test_types=test_types,
        )


@dataclass(frozen=True)
class PageTimings:
    settle_delay_ms: int = 2_000
    quiescence_timeout_ms: int = 5_000
    image_settle_delay_ms: int = 2_000


@dataclass(frozen=True)
class ProbeSettings:
    headless: bool = True
    results_dir: str = "/tmp/storeprobe-results"
    openai_api_key: str | None = None
    analysis_model: str = "gpt-4o-mini"
    log_level: str = "INFO"
    extra_chromium_args: tuple[str, ...] = (
        "--no-sandbox",
        "--disable-setuid-sandbox",
        "--disable-dev-shm-usage",
    )


def load_settings() -> ProbeSettings:
    """Build process settings from environment variables."""
    return ProbeSettings(
        headless=os.getenv("STOREPROBE_HEADLESS", "true").lower() == "true",
        results_dir=os.getenv("STOREPROBE_RESULTS_DIR", "/tmp/storeprobe-results"),
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        analysis_model=os.getenv("STOREPROBE_ANALYSIS_MODEL", "gpt-4o-mini"),
        log_level=os.getenv("STOREPROBE_LOG_LEVEL", "INFO").upper(),
    )
