"""
storeprobe - command line entry point

Runs one execution against a JSON configuration file and prints the result
document. Exits 0 when the execution completed and 1 when it failed.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import uuid
from dataclasses import replace
from typing import Any, Optional, Sequence

from storeprobe.core.analysis import NarrativeAnalyzer
from storeprobe.core.config import ProbeSettings, TestConfiguration, load_settings
from storeprobe.core.orchestrator import TestRunOrchestrator
from storeprobe.core.session import BrowserSession, SessionConfig
from storeprobe.core.store import FileResultStore

logger = logging.getLogger("storeprobe.cli")


def load_configuration(path: str) -> TestConfiguration:
    with open(path, "r", encoding="utf-8") as handle:
        return TestConfiguration.from_dict(json.load(handle))


async def _run(configuration: TestConfiguration, settings: ProbeSettings) -> tuple[bool, dict[str, Any]]:
    session = BrowserSession(SessionConfig.from_settings(settings))
    store = FileResultStore(settings.results_dir)
    orchestrator = TestRunOrchestrator(
        session,
        store=store,
        analyzer=NarrativeAnalyzer.from_settings(settings),
    )
    execution_id = str(uuid.uuid4())
    try:
        result = await orchestrator.run(configuration, execution_id=execution_id)
        return True, result.to_dict()
    except Exception as e:
        logger.error(f"[CLI] Execution {execution_id} failed: {e}")
        snapshot = await store.load(execution_id)
        return False, snapshot or {"execution_id": execution_id, "status": "failed", "error": str(e)}
    finally:
        await session.close()


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Validate ecommerce product pages in a headless browser")
    parser.add_argument("--config", required=True, help="Path to a JSON test configuration")
    parser.add_argument("--output", type=str, default="", help="Optional output path for the result JSON")
    parser.add_argument("--results-dir", type=str, default="", help="Directory for persisted result snapshots")
    parser.add_argument("--headful", action="store_true", help="Show the browser window")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    settings = load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    if args.results_dir:
        settings = replace(settings, results_dir=args.results_dir)
    if args.headful:
        settings = replace(settings, headless=False)

    try:
        configuration = load_configuration(args.config)
    except (OSError, ValueError) as e:
        logger.error(f"[CLI] Invalid configuration {args.config}: {e}")
        return 1

    completed, payload = asyncio.run(_run(configuration, settings))
    text = json.dumps(payload, indent=2, sort_keys=True)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as handle:
            handle.write(text)
            handle.write("\n")
    print(text)
    return 0 if completed else 1


if __name__ == "__main__":
    sys.exit(main())
