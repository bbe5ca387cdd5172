from __future__ import annotations

import logging
from typing import Any

from playwright.async_api import ConsoleMessage, Page, Response

from storeprobe.core.models import (
    ConsoleWarning,
    ErrorCollection,
    NetworkError,
    ScriptError,
    utc_now,
)

logger = logging.getLogger("storeprobe.errors")


def first_stack_frame(stack: str | None) -> str:
    """Return the first frame line of a JS stack; line 0 repeats the message."""
    if not stack:
        return ""
    lines = stack.split("\n")
    return lines[1].strip() if len(lines) > 1 else ""


class ErrorCollector:
    """Append-only log of runtime errors observed on one page for one execution.

    Each kind is capped at ``max_events``; later observations are counted as
    dropped rather than evicting earlier ones.
    """

    def __init__(self, max_events: int = 500) -> None:
        self._max_events = max_events
        self._page: Page | None = None
        self._script_errors: list[ScriptError] = []
        self._network_errors: list[NetworkError] = []
        self._console_warnings: list[ConsoleWarning] = []
        self._dropped = 0

    @property
    def dropped(self) -> int:
        return self._dropped

    @property
    def attached(self) -> bool:
        return self._page is not None

    async def attach(self, page: Page) -> None:
        if self._page is not None:
            return
        self._page = page
        page.on("pageerror", self._on_page_error)
        page.on("response", self._on_response)
        page.on("console", self._on_console)

    async def detach(self) -> None:
        if not self._page:
            return
        self._page.remove_listener("pageerror", self._on_page_error)
        self._page.remove_listener("response", self._on_response)
        self._page.remove_listener("console", self._on_console)
        self._page = None

    def _current_url(self) -> str:
        return self._page.url if self._page is not None else ""

    def _append(self, bucket: list[Any], event: Any) -> None:
        if len(bucket) >= self._max_events:
            self._dropped += 1
            if self._dropped == 1:
                logger.warning(f"[Errors] Event cap of {self._max_events} reached, dropping further events")
            return
        bucket.append(event)

    def _on_page_error(self, error: Any) -> None:
        message = getattr(error, "message", None) or str(error)
        self._append(
            self._script_errors,
            ScriptError(
                message=message,
                source=first_stack_frame(getattr(error, "stack", None)),
                timestamp=utc_now(),
                page_url=self._current_url(),
            ),
        )

    def _on_response(self, response: Response) -> None:
        if response.ok:
            return
        self._append(
            self._network_errors,
            NetworkError(
                url=response.url,
                status=response.status,
                status_text=response.status_text,
                timestamp=utc_now(),
                page_url=self._current_url(),
            ),
        )

    def _on_console(self, message: ConsoleMessage) -> None:
        if message.type != "warning":
            return
        self._append(
            self._console_warnings,
            ConsoleWarning(message=message.text, timestamp=utc_now(), page_url=self._current_url()),
        )

    def drain(self) -> ErrorCollection:
        collection = ErrorCollection(
            script_errors=list(self._script_errors),
            network_errors=list(self._network_errors),
            console_warnings=list(self._console_warnings),
        )
        logger.info(
            f"[Errors] Collected {len(collection.script_errors)} script errors, "
            f"{len(collection.network_errors)} network errors, "
            f"{len(collection.console_warnings)} console warnings"
        )
        return collection
