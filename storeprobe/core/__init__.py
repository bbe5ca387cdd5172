"""Core module containing the storeprobe validation engines."""

from storeprobe.core.analysis import NarrativeAnalyzer
from storeprobe.core.config import ProbeSettings, TestConfiguration, load_settings
from storeprobe.core.error_collector import ErrorCollector
from storeprobe.core.image_auditor import ImageAuditor
from storeprobe.core.locator import ElementLocator
from storeprobe.core.orchestrator import TestRunOrchestrator
from storeprobe.core.session import BrowserSession, SessionConfig
from storeprobe.core.store import FileResultStore, InMemoryResultStore, ResultStore
from storeprobe.core.validator import ProductPageValidator

__all__ = [
    "BrowserSession",
    "ElementLocator",
    "ErrorCollector",
    "FileResultStore",
    "ImageAuditor",
    "InMemoryResultStore",
    "NarrativeAnalyzer",
    "ProbeSettings",
    "ProductPageValidator",
    "ResultStore",
    "SessionConfig",
    "TestConfiguration",
    "TestRunOrchestrator",
    "load_settings",
]
