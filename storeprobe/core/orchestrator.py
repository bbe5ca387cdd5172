"""
Test Run Orchestrator

Drives one execution end to end: persists a ``running`` record, opens an
isolated browser context, validates every configured product page in order,
audits their images, drains the captured runtime errors, attaches the
narrative analysis and persists the final status.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from playwright.async_api import Page

from storeprobe.core.analysis import NarrativeAnalyzer
from storeprobe.core.config import TestConfiguration
from storeprobe.core.error_collector import ErrorCollector
from storeprobe.core.image_auditor import ImageAuditor
from storeprobe.core.models import ExecutionStatus, PageResult, TestExecutionResult
from storeprobe.core.session import BrowserSession
from storeprobe.core.store import InMemoryResultStore, ResultStore
from storeprobe.core.validator import ProductPageValidator

logger = logging.getLogger("storeprobe.orchestrator")


class TestRunOrchestrator:
    __test__ = False

    def __init__(
        self,
        session: BrowserSession,
        store: ResultStore | None = None,
        analyzer: NarrativeAnalyzer | None = None,
        validator: ProductPageValidator | None = None,
        auditor: ImageAuditor | None = None,
    ) -> None:
        self._session = session
        self._store = store or InMemoryResultStore()
        self._analyzer = analyzer or NarrativeAnalyzer()
        self._validator = validator or ProductPageValidator()
        self._auditor = auditor or ImageAuditor()

    @property
    def store(self) -> ResultStore:
        return self._store

    async def _validate_pages(
        self,
        page: Page,
        configuration: TestConfiguration,
    ) -> list[PageResult]:
        results: list[PageResult] = []
        for url in configuration.urls:
            results.append(await self._validator.validate(page, url, configuration.test_settings))
        return results

    async def run(
        self,
        configuration: TestConfiguration,
        execution_id: Optional[str] = None,
    ) -> TestExecutionResult:
        result = TestExecutionResult(
            execution_id=execution_id or str(uuid.uuid4()),
            configuration_id=configuration.configuration_id,
        )
        logger.info(
            f"[Orchestrator] Starting execution {result.execution_id} "
            f"({len(configuration.product_pages)} pages)"
        )

        try:
            await self._store.save(result)

            settings = configuration.test_settings
            types = configuration.test_types
            async with self._session.isolated_context(
                settings.viewport, mobile=settings.mobile_test
            ) as context:
                page = await context.new_page()
                page.set_default_timeout(settings.timeout_ms)

                collector: ErrorCollector | None = None
                if types.error_detection:
                    collector = ErrorCollector()
                    await collector.attach(page)

                try:
                    if types.product_page_test:
                        result.page_results = await self._validate_pages(page, configuration)
                    if types.image_validation:
                        result.image_records = await self._auditor.audit(page, configuration.urls)
                finally:
                    if collector is not None:
                        result.errors = collector.drain()
                        await collector.detach()

            result.analysis = await self._analyzer.analyze(result)
            # Status stays running until the completed snapshot is persisted.
            result.stamp_end()
            await self._store.save(result.as_status(ExecutionStatus.COMPLETED))
            result.mark_completed()
        except Exception:
            logger.exception(f"[Orchestrator] Execution {result.execution_id} failed")
            result.mark_failed()
            try:
                await self._store.save(result)
            except Exception as save_error:
                logger.error(f"[Orchestrator] Could not persist failed execution: {save_error}")
            raise

        passed = sum(1 for page_result in result.page_results if page_result.passed)
        logger.info(
            f"[Orchestrator] Execution {result.execution_id} completed: "
            f"{passed}/{len(result.page_results)} pages passed, "
            f"{len(result.image_records)} images, {result.duration_ms}ms"
        )
        return result
