# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Tests for batch.py."""

import json
import threading
from pathlib import Path
from typing import Any

import pytest

from pdfmeta.batch import BatchEngine, ManifestItem, load_manifest
from pdfmeta.exceptions import (
    BatchFailedError,
    FileAccessError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from pdfmeta.model import BatchRequest, MetadataPatch, ShowRequest
from pdfmeta.service import MetadataService
from pdfmeta.templates import TemplateStore


def _write_manifest(path: Path, items: Any) -> Path:
    path.write_text(json.dumps({"items": items}), encoding="utf-8")
    return path


class RecordingService:
    """Service double recording the requests it receives."""

    def __init__(self, fail_on: set[str] | None = None) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.fail_on = fail_on or set()

    def _record(self, op: str, request: Any, input_path: str) -> None:
        self.calls.append((op, request))
        if input_path in self.fail_on:
            raise NotFoundError(f"read pdf {input_path!r}: missing")

    def show(self, request, cancel_event=None):
        self._record("show", request, request.input_path)

    def set(self, request, cancel_event=None):
        self._record("set", request, request.io.input_path)

    def unset(self, request, cancel_event=None):
        self._record("unset", request, request.io.input_path)

    def template_apply(self, request, cancel_event=None):
        self._record("template-apply", request, request.io.input_path)


class TestLoadManifest:
    """Tests for load_manifest."""

    def test_all_keys(self, tmp_dir: Path) -> None:
        """Every item key is parsed."""
        path = _write_manifest(
            tmp_dir / "m.json",
            [
                {
                    "op": "set",
                    "input": "a.pdf",
                    "output": "b.pdf",
                    "set": {"title": "T", "creationDate": "2024-01-01"},
                },
                {"op": "unset", "input": "c.pdf", "inPlace": True, "unset": ["title"]},
                {"op": "unset", "input": "d.pdf", "inPlace": True, "unsetAll": True},
                {"op": "template-apply", "input": "e.pdf", "output": "f.pdf", "template": "base"},
            ],
        )

        items = load_manifest(path)

        assert items[0] == ManifestItem(
            op="set",
            input="a.pdf",
            output="b.pdf",
            set=MetadataPatch(title="T", creation_date="2024-01-01"),
        )
        assert items[1].in_place is True
        assert items[1].unset == ["title"]
        assert items[2].unset_all is True
        assert items[3].template == "base"

    def test_empty_path(self) -> None:
        """An empty path is a validation error."""
        with pytest.raises(ValidationError, match="manifest path is required"):
            load_manifest("")

    def test_missing_file(self, tmp_dir: Path) -> None:
        """A missing manifest is a not-found error."""
        with pytest.raises(NotFoundError, match="read manifest"):
            load_manifest(tmp_dir / "missing.json")

    def test_directory(self, tmp_dir: Path) -> None:
        """An unreadable manifest is an I/O error."""
        with pytest.raises(FileAccessError):
            load_manifest(tmp_dir)

    def test_bad_json(self, tmp_dir: Path) -> None:
        """Undecodable JSON is a validation error."""
        path = tmp_dir / "m.json"
        path.write_text("{broken")

        with pytest.raises(ValidationError, match="decode manifest json"):
            load_manifest(path)

    @pytest.mark.parametrize("content", ['{"items": []}', "{}", '{"items": null}'])
    def test_no_items(self, tmp_dir: Path, content: str) -> None:
        """A manifest needs at least one item."""
        path = tmp_dir / "m.json"
        path.write_text(content)

        with pytest.raises(ValidationError, match="manifest must include at least one item"):
            load_manifest(path)

    @pytest.mark.parametrize(
        "item",
        [
            "not an object",
            {"op": 1, "input": "a.pdf"},
            {"op": "set", "inPlace": "yes"},
            {"op": "unset", "unset": "title"},
            {"op": "unset", "unset": [1]},
            {"op": "set", "set": {"title": 5}},
        ],
    )
    def test_bad_item_types(self, tmp_dir: Path, item: Any) -> None:
        """Wrongly typed item values are rejected."""
        path = _write_manifest(tmp_dir / "m.json", [item])

        with pytest.raises(ValidationError):
            load_manifest(path)


class TestBatchEngine:
    """Tests for BatchEngine.run with a recording service."""

    def test_requests_mapped(self) -> None:
        """Items are turned into the matching service requests."""
        service = RecordingService()
        items = [
            ManifestItem(op="show", input="a.pdf"),
            ManifestItem(op="set", input="b.pdf", output="c.pdf", set=MetadataPatch(title="T")),
            ManifestItem(op="unset", input="d.pdf", in_place=True, unset=["title"]),
            ManifestItem(op="template-apply", input="e.pdf", output="f.pdf", template="base"),
        ]

        result = BatchEngine(service).run(items, strict=True)

        assert result.total == 4
        assert result.succeeded == 4
        assert [op for op, _ in service.calls] == ["show", "set", "unset", "template-apply"]
        set_request = service.calls[1][1]
        assert set_request.io.output_path == "c.pdf"
        assert set_request.changes.title == "T"
        assert set_request.strict is True
        unset_request = service.calls[2][1]
        assert unset_request.io.in_place is True
        assert unset_request.fields == ["title"]
        assert service.calls[3][1].name == "base"

    def test_stops_on_first_failure(self) -> None:
        """Without continue_on_error the run stops at the first failure."""
        service = RecordingService(fail_on={"bad.pdf"})
        items = [
            ManifestItem(op="show", input="a.pdf"),
            ManifestItem(op="show", input="bad.pdf"),
            ManifestItem(op="show", input="c.pdf"),
        ]

        with pytest.raises(BatchFailedError) as exc_info:
            BatchEngine(service).run(items)

        result = exc_info.value.result
        assert result.total == 3
        assert result.succeeded == 1
        assert result.failed == 1
        assert len(result.items) == 2
        assert result.items[1].status == "error"
        assert "missing" in result.items[1].error
        assert str(exc_info.value) == "batch completed with 1 failure(s)"
        assert exc_info.value.exit_code == 1

    def test_continue_on_error(self) -> None:
        """With continue_on_error every item runs."""
        service = RecordingService(fail_on={"bad.pdf"})
        items = [
            ManifestItem(op="show", input="a.pdf"),
            ManifestItem(op="show", input="bad.pdf"),
            ManifestItem(op="show", input="c.pdf"),
        ]

        with pytest.raises(BatchFailedError) as exc_info:
            BatchEngine(service).run(items, continue_on_error=True)

        result = exc_info.value.result
        assert [item.status for item in result.items] == ["ok", "error", "ok"]
        assert (result.succeeded, result.failed) == (2, 1)

    def test_unsupported_op(self) -> None:
        """Unknown operations fail the item."""
        with pytest.raises(BatchFailedError) as exc_info:
            BatchEngine(RecordingService()).run([ManifestItem(op="explode", input="a.pdf")])

        assert exc_info.value.result.items[0].error == "unsupported op 'explode'"

    def test_missing_input(self) -> None:
        """Items without input fail without calling the service."""
        service = RecordingService()

        with pytest.raises(BatchFailedError) as exc_info:
            BatchEngine(service).run([ManifestItem(op="show")])

        assert exc_info.value.result.items[0].error == "input is required"
        assert service.calls == []

    def test_progress_callback(self) -> None:
        """The callback is called after each item."""
        progress: list[tuple[int, int, str]] = []
        items = [ManifestItem(op="show", input="a.pdf"), ManifestItem(op="show", input="b.pdf")]

        BatchEngine(RecordingService()).run(
            items, on_progress=lambda i, n, p: progress.append((i, n, p))
        )

        assert progress == [(0, 2, "a.pdf"), (1, 2, "b.pdf")]

    def test_cancelled(self) -> None:
        """A set cancel event stops the batch before the next item."""
        cancel_event = threading.Event()
        cancel_event.set()
        service = RecordingService()

        with pytest.raises(InternalError, match="batch canceled"):
            BatchEngine(service).run([ManifestItem(op="show", input="a.pdf")], cancel_event=cancel_event)
        assert service.calls == []


class TestBatchEndToEnd:
    """Batch runs against real files through MetadataService."""

    @pytest.fixture
    def service(self, store_path: Path) -> MetadataService:
        return MetadataService(template_store=TemplateStore(store_path))

    def _manifest(self, tmp_dir: Path, minimal_pdf: Path) -> Path:
        return _write_manifest(
            tmp_dir / "manifest.json",
            [
                {
                    "op": "set",
                    "input": str(minimal_pdf),
                    "output": str(tmp_dir / "one.pdf"),
                    "set": {"title": "One"},
                },
                {
                    "op": "set",
                    "input": str(tmp_dir / "missing.pdf"),
                    "output": str(tmp_dir / "two.pdf"),
                    "set": {"title": "Two"},
                },
                {
                    "op": "set",
                    "input": str(minimal_pdf),
                    "output": str(tmp_dir / "three.pdf"),
                    "set": {"title": "Three"},
                },
            ],
        )

    def test_continue_on_error(self, service: MetadataService, tmp_dir: Path, minimal_pdf: Path) -> None:
        """A missing file fails only its own item."""
        manifest = self._manifest(tmp_dir, minimal_pdf)

        with pytest.raises(BatchFailedError) as exc_info:
            service.batch(BatchRequest(manifest_path=str(manifest), continue_on_error=True))

        result = exc_info.value.result
        assert (result.total, result.succeeded, result.failed) == (3, 2, 1)
        assert result.items[1].status == "error"
        assert (tmp_dir / "one.pdf").exists()
        assert not (tmp_dir / "two.pdf").exists()
        assert (tmp_dir / "three.pdf").exists()
        shown = service.show(ShowRequest(input_path=str(tmp_dir / "three.pdf")))
        assert shown.metadata.title == "Three"

    def test_stop_on_error(self, service: MetadataService, tmp_dir: Path, minimal_pdf: Path) -> None:
        """Without continue-on-error later items are not processed."""
        manifest = self._manifest(tmp_dir, minimal_pdf)

        with pytest.raises(BatchFailedError) as exc_info:
            service.batch(BatchRequest(manifest_path=str(manifest)))

        result = exc_info.value.result
        assert len(result.items) == 2
        assert (result.total, result.succeeded, result.failed) == (3, 1, 1)
        assert not (tmp_dir / "three.pdf").exists()

    def test_all_succeed(self, service: MetadataService, tmp_dir: Path, minimal_pdf: Path) -> None:
        """A clean run returns the result."""
        manifest = _write_manifest(
            tmp_dir / "manifest.json",
            [
                {"op": "show", "input": str(minimal_pdf)},
                {
                    "op": "unset",
                    "input": str(minimal_pdf),
                    "output": str(tmp_dir / "cleared.pdf"),
                    "unsetAll": True,
                },
            ],
        )

        result = service.batch(BatchRequest(manifest_path=str(manifest)), show_progress=True)

        assert (result.total, result.succeeded, result.failed) == (2, 2, 0)
        assert result.items[1].output_path == str(tmp_dir / "cleared.pdf")

    def test_strict_applies_to_items(self, service: MetadataService, tmp_dir: Path, minimal_pdf: Path) -> None:
        """Strict mode rejects item dates that lenient mode would fix."""
        manifest = _write_manifest(
            tmp_dir / "manifest.json",
            [
                {
                    "op": "set",
                    "input": str(minimal_pdf),
                    "output": str(tmp_dir / "out.pdf"),
                    "set": {"creationDate": "2024-01-15"},
                }
            ],
        )

        with pytest.raises(BatchFailedError) as exc_info:
            service.batch(BatchRequest(manifest_path=str(manifest), strict=True))
        assert "RFC3339" in exc_info.value.result.items[0].error

        result = service.batch(BatchRequest(manifest_path=str(manifest)))
        assert result.succeeded == 1
