"""
Tests for durable last-result persistence.
"""

from __future__ import annotations

import json
import tempfile
from pathlib import Path

from elementcapture.domain.entities.capture import CaptureResult, StyleTraceEntry
from elementcapture.domain.entities.font import FontDescriptor
from elementcapture.infrastructure.store.json_store import JsonResultStore
from elementcapture.infrastructure.store.memory_store import MemoryResultStore


def test_json_store_persistence():
    """Test that the JSON store persists and retrieves the last result."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "last_result.json"
        store = JsonResultStore(path=str(path))

        result = CaptureResult.rendered(
            request_id="abc",
            format="png",
            image=b"\x89PNG\r\n",
            fonts=[FontDescriptor("Brand", "italic", 700)],
            system_fonts=[FontDescriptor("sans-serif")],
            styles=[StyleTraceEntry("div:nth-child(1)", "color:red;")],
        )
        store.set_last(result)

        # A fresh store reads the same file
        retrieved = JsonResultStore(path=str(path)).get_last()

        assert retrieved == result
        assert json.loads(path.read_text(encoding="utf-8"))["requestId"] == "abc"


def test_json_store_keeps_errors_and_cancellations():
    """Test that failed and cancelled outcomes survive a reload."""
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonResultStore(path=str(Path(tmpdir) / "r.json"))

        store.set_last(CaptureResult.failed("f1", "Capture timed out", "jpeg"))
        failed = store.get_last()
        assert failed.error == "Capture timed out"
        assert failed.format == "jpeg"

        store.set_last(CaptureResult.selection_cancelled("c1"))
        assert store.get_last().cancelled


def test_json_store_clear():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "r.json"
        store = JsonResultStore(path=str(path))
        store.set_last(CaptureResult.rendered("x", "svg", svg="<svg/>"))

        store.clear()

        assert store.get_last() is None
        assert not path.exists()
        store.clear()


def test_corrupted_file_reads_as_empty():
    """Test that a corrupted or foreign file does not break reads."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "r.json"
        store = JsonResultStore(path=str(path))

        path.write_text("{not json", encoding="utf-8")
        assert store.get_last() is None

        path.write_text(json.dumps({"type": "render-complete"}), encoding="utf-8")
        assert store.get_last() is None

        path.write_text(json.dumps(["a", "b"]), encoding="utf-8")
        assert store.get_last() is None


def test_no_temp_file_left_behind():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonResultStore(path=str(Path(tmpdir) / "r.json"))
        store.set_last(CaptureResult.rendered("x", "svg", svg="<svg/>"))
        assert sorted(p.name for p in Path(tmpdir).iterdir()) == ["r.json"]


def test_memory_store():
    store = MemoryResultStore()
    assert store.get_last() is None
    result = CaptureResult.rendered("x", "svg", svg="<svg/>")
    store.set_last(result)
    assert store.get_last() is result
    store.clear()
    assert store.get_last() is None
