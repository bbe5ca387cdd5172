from pathlib import Path

import pytest

from storeprobe.core.models import ExecutionStatus, PageResult, TestExecutionResult
from storeprobe.core.store import FileResultStore, InMemoryResultStore


def _result() -> TestExecutionResult:
    result = TestExecutionResult(execution_id="exec-42", configuration_id="cfg-1")
    result.page_results.append(PageResult(url="https://shop.test/p", passed=True))
    return result


@pytest.mark.asyncio
async def test_file_store_overwrites_snapshot(tmp_path: Path) -> None:
    """Test a second save replaces the stored snapshot."""
    store = FileResultStore(root_dir=str(tmp_path / "results"))
    result = _result()

    await store.save(result)
    result.mark_completed()
    await store.save(result)

    snapshot = await store.load("exec-42")
    assert snapshot is not None
    assert snapshot["status"] == "completed"
    assert snapshot["results"]["product_page_tests"][0]["url"] == "https://shop.test/p"
    assert sorted(p.name for p in (tmp_path / "results").iterdir()) == ["exec-42.json"]
    assert await store.load("missing") is None


@pytest.mark.asyncio
async def test_in_memory_store_keeps_history() -> None:
    """Test every save is kept in history."""
    store = InMemoryResultStore()
    result = _result()

    await store.save(result)
    result.mark_failed()
    await store.save(result)

    assert [s["status"] for s in store.history] == ["running", "failed"]
    assert (await store.load("exec-42"))["status"] == ExecutionStatus.FAILED.value


def test_status_leaves_running_once() -> None:
    """Test a terminal status cannot change again."""
    result = _result()
    result.mark_completed()

    with pytest.raises(RuntimeError, match="ILLEGAL_STATUS_TRANSITION"):
        result.mark_failed()
    assert result.status == ExecutionStatus.COMPLETED
