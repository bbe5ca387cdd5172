from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Pattern, Union

from playwright.async_api import ElementHandle, Locator


ContentPattern = Union[str, Pattern[str]]


class ElementKind(str, Enum):
    TITLE = "title"
    PRICE = "price"
    ADD_TO_CART = "add_to_cart"
    DESCRIPTION = "description"
    VARIANTS = "variants"
    AVAILABILITY = "availability"


class LocateStrategy(str, Enum):
    CSS = "css"
    CSS_PATTERN = "css-pattern"
    TEXT = "text"
    ATTRIBUTE = "attribute"
    CONTENT_SEARCH = "content-search"


class ExecutionStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class Clickability(str, Enum):
    CLICKABLE = "clickable"
    NOT_CLICKABLE = "not-clickable"
    ASSUMED = "unknown-assumed-true"
    ABSENT = "absent"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def pattern_matches(pattern: ContentPattern, text: str) -> bool:
    """Regex patterns are searched, plain strings match as case-insensitive substrings."""
    if isinstance(pattern, re.Pattern):
        return pattern.search(text) is not None
    return pattern.lower() in text.lower()


@dataclass(frozen=True)
class AttributePattern:
    name: str
    value: str = ""

    def selector(self) -> str:
        # An empty fragment would never match a `*=` selector, so it means "attribute present".
        if not self.value:
            return f"[{self.name}]"
        escaped = self.value.replace('"', '\\"')
        return f'[{self.name}*="{escaped}"]'


@dataclass(frozen=True)
class ElementSpec:
    kind: ElementKind
    selectors: tuple[str, ...] = ()
    text_patterns: tuple[str, ...] = ()
    content_patterns: tuple[ContentPattern, ...] = ()
    attributes: tuple[AttributePattern, ...] = ()

    def matches_content(self, text: str) -> bool:
        return any(pattern_matches(pattern, text) for pattern in self.content_patterns)


@dataclass(frozen=True)
class LocateResult:
    element: ElementHandle | Locator = field(repr=False)
    text: str
    selector: str
    strategy: LocateStrategy


@dataclass
class ElementCheck:
    present: bool = False
    text: str = ""
    selector: str = ""
    strategy: str = ""

    def record(self, located: LocateResult, max_text: int | None = None) -> None:
        self.present = True
        self.text = located.text if max_text is None else located.text[:max_text]
        self.selector = located.selector
        self.strategy = located.strategy.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "present": self.present,
            "text": self.text,
            "selector": self.selector,
            "strategy": self.strategy,
        }


@dataclass
class AddToCartCheck(ElementCheck):
    clickable: bool = False
    clickability: Clickability = Clickability.ABSENT

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["clickable"] = self.clickable
        payload["clickability"] = self.clickability.value
        return payload


@dataclass
class VariantsCheck(ElementCheck):
    count: int = 0

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["count"] = self.count
        return payload


@dataclass
class AvailabilityCheck(ElementCheck):
    in_stock: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["in_stock"] = "unknown" if self.in_stock is None else self.in_stock
        return payload


@dataclass
class ProductElements:
    title: ElementCheck = field(default_factory=ElementCheck)
    price: ElementCheck = field(default_factory=ElementCheck)
    add_to_cart: AddToCartCheck = field(default_factory=AddToCartCheck)
    description: ElementCheck = field(default_factory=ElementCheck)
    variants: VariantsCheck = field(default_factory=VariantsCheck)
    availability: AvailabilityCheck = field(default_factory=AvailabilityCheck)

    def verdict(self) -> bool:
        return (
            self.title.present
            and self.price.present
            and (self.add_to_cart.present or self.variants.present)
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title.to_dict(),
            "price": self.price.to_dict(),
            "add_to_cart": self.add_to_cart.to_dict(),
            "description": self.description.to_dict(),
            "variants": self.variants.to_dict(),
            "availability": self.availability.to_dict(),
        }


@dataclass
class PagePerformance:
    load_time_ms: int = 0
    time_to_interactive_ms: int = 0


@dataclass
class PageResult:
    url: str
    passed: bool = False
    elements: ProductElements = field(default_factory=ProductElements)
    performance: PagePerformance = field(default_factory=PagePerformance)
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "passed": self.passed,
            "elements": self.elements.to_dict(),
            "performance": {
                "load_time_ms": self.performance.load_time_ms,
                "time_to_interactive_ms": self.performance.time_to_interactive_ms,
            },
            "errors": list(self.errors),
        }


@dataclass
class ImageRecord:
    page_url: str
    src: str
    alt_text: str = ""
    loaded: bool = False
    width: float = 0.0
    height: float = 0.0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "page_url": self.page_url,
            "src": self.src,
            "alt_text": self.alt_text,
            "loaded": self.loaded,
            "dimensions": {"width": self.width, "height": self.height},
            "errors": list(self.errors),
        }


@dataclass(frozen=True)
class ScriptError:
    message: str
    source: str
    timestamp: datetime
    page_url: str = ""


@dataclass(frozen=True)
class NetworkError:
    url: str
    status: int
    status_text: str
    timestamp: datetime
    page_url: str = ""


@dataclass(frozen=True)
class ConsoleWarning:
    message: str
    timestamp: datetime
    page_url: str = ""


@dataclass
class ErrorCollection:
    script_errors: list[ScriptError] = field(default_factory=list)
    network_errors: list[NetworkError] = field(default_factory=list)
    console_warnings: list[ConsoleWarning] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "script_errors": [
                {
                    "message": e.message,
                    "source": e.source,
                    "page_url": e.page_url,
                    "timestamp": e.timestamp.isoformat(),
                }
                for e in self.script_errors
            ],
            "network_errors": [
                {
                    "url": e.url,
                    "status": e.status,
                    "status_text": e.status_text,
                    "page_url": e.page_url,
                    "timestamp": e.timestamp.isoformat(),
                }
                for e in self.network_errors
            ],
            "console_warnings": [
                {"message": e.message, "page_url": e.page_url, "timestamp": e.timestamp.isoformat()}
                for e in self.console_warnings
            ],
        }


@dataclass(frozen=True)
class NarrativeAnalysis:
    summary: str
    recommendations: tuple[str, ...]
    risk_level: RiskLevel
    score: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary,
            "recommendations": list(self.recommendations),
            "risk_level": self.risk_level.value,
            "score": self.score,
        }


@dataclass
class TestExecutionResult:
    """Aggregate outcome of one execution.

    The status leaves ``running`` exactly once; any further transition raises.
    """

    __test__ = False

    execution_id: str
    configuration_id: str
    status: ExecutionStatus = ExecutionStatus.RUNNING
    start_time: datetime = field(default_factory=utc_now)
    end_time: datetime | None = None
    duration_ms: int | None = None
    page_results: list[PageResult] = field(default_factory=list)
    image_records: list[ImageRecord] = field(default_factory=list)
    errors: ErrorCollection = field(default_factory=ErrorCollection)
    analysis: NarrativeAnalysis | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status != ExecutionStatus.RUNNING

    def _finish(self, status: ExecutionStatus) -> None:
        if self.is_terminal:
            raise RuntimeError(
                f"ILLEGAL_STATUS_TRANSITION: {self.status.value} -> {status.value}"
            )
        self.status = status
        if self.end_time is None:
            self.stamp_end()

    def stamp_end(self) -> None:
        self.end_time = utc_now()
        self.duration_ms = int((self.end_time - self.start_time).total_seconds() * 1000)

    def as_status(self, status: ExecutionStatus) -> "TestExecutionResult":
        """Shallow copy carrying ``status``; this result keeps its own."""
        return replace(self, status=status)

    def mark_completed(self) -> None:
        self._finish(ExecutionStatus.COMPLETED)

    def mark_failed(self) -> None:
        self._finish(ExecutionStatus.FAILED)

    def mark_cancelled(self) -> None:
        self._finish(ExecutionStatus.CANCELLED)

    def to_dict(self) -> dict[str, Any]:
        return {
            "execution_id": self.execution_id,
            "configuration_id": self.configuration_id,
            "status": self.status.value,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration_ms": self.duration_ms,
            "results": {
                "product_page_tests": [page.to_dict() for page in self.page_results],
                "image_validation": [image.to_dict() for image in self.image_records],
                "error_detection": self.errors.to_dict(),
            },
            "analysis": self.analysis.to_dict() if self.analysis else None,
        }
