from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any

from storeprobe.core.models import TestExecutionResult

logger = logging.getLogger("storeprobe.store")


class ResultStore:
    async def save(self, result: TestExecutionResult) -> None:
        raise NotImplementedError

    async def load(self, execution_id: str) -> dict[str, Any] | None:
        raise NotImplementedError


class InMemoryResultStore(ResultStore):
    def __init__(self) -> None:
        self._snapshots: dict[str, dict[str, Any]] = {}
        self.history: list[dict[str, Any]] = []

    async def save(self, result: TestExecutionResult) -> None:
        snapshot = result.to_dict()
        self._snapshots[result.execution_id] = snapshot
        self.history.append(snapshot)

    async def load(self, execution_id: str) -> dict[str, Any] | None:
        return self._snapshots.get(execution_id)


class FileResultStore(ResultStore):
    """One JSON document per execution, replaced atomically on every save."""

    def __init__(self, root_dir: str = "/tmp/storeprobe-results") -> None:
        self._root = Path(root_dir)
        self._root.mkdir(parents=True, exist_ok=True)
        self._lock = asyncio.Lock()

    def _path(self, execution_id: str) -> Path:
        safe = execution_id.replace("/", "_")
        return self._root / f"{safe}.json"

    @staticmethod
    def _write(target: Path, payload: str) -> None:
        tmp = target.with_suffix(".json.tmp")
        with tmp.open("w", encoding="utf-8") as file_handle:
            file_handle.write(payload)
            file_handle.flush()
            os.fsync(file_handle.fileno())
        os.replace(tmp, target)

    @staticmethod
    def _read(path: Path) -> dict[str, Any] | None:
        if not path.exists():
            return None
        with path.open("r", encoding="utf-8") as file_handle:
            return json.load(file_handle)

    async def save(self, result: TestExecutionResult) -> None:
        payload = json.dumps(result.to_dict(), sort_keys=True, indent=2, ensure_ascii=True)
        async with self._lock:
            await asyncio.to_thread(self._write, self._path(result.execution_id), payload)
        logger.debug(f"[Store] Saved {result.execution_id} ({result.status.value})")

    async def load(self, execution_id: str) -> dict[str, Any] | None:
        return await asyncio.to_thread(self._read, self._path(execution_id))
