# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Batch execution of show/set/unset/template-apply operations from a manifest.

Manifest format::

    {"items": [{"op": "set", "input": "a.pdf", "output": "b.pdf",
                "set": {"title": "Report"}}, ...]}

Item keys: ``op``, ``input``, ``output``, ``inPlace``, ``set``, ``unset``,
``unsetAll`` and ``template``.
"""

import enum
import json
import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from tqdm import tqdm

from .exceptions import (
    BatchFailedError,
    FileAccessError,
    NotFoundError,
    PDFMetaError,
    ValidationError,
)
from .model import (
    BatchItemResult,
    BatchRequest,
    BatchResult,
    IOOptions,
    MetadataPatch,
    ServiceProtocol,
    SetRequest,
    ShowRequest,
    TemplateApplyRequest,
    UnsetRequest,
)
from .utils import check_cancelled

logger = logging.getLogger(__name__)

STATUS_OK = "ok"
STATUS_ERROR = "error"


class Operation(enum.Enum):
    """Operations allowed in a manifest item."""

    SHOW = "show"
    SET = "set"
    UNSET = "unset"
    TEMPLATE_APPLY = "template-apply"


@dataclass
class ManifestItem:
    """One manifest entry.

    Attributes:
        op: Operation name as written in the manifest.
        input: Source PDF.
        output: Destination PDF for write operations.
        in_place: Replace the source PDF.
        set: Patch for ``set``.
        unset: Field identifiers for ``unset``.
        unset_all: Clear every field for ``unset``.
        template: Template name for ``template-apply``.
    """

    op: str
    input: str = ""
    output: str = ""
    in_place: bool = False
    set: MetadataPatch = field(default_factory=MetadataPatch)
    unset: list[str] = field(default_factory=list)
    unset_all: bool = False
    template: str = ""

    @property
    def io(self) -> IOOptions:
        return IOOptions(input_path=self.input, output_path=self.output, in_place=self.in_place)


def _typed(item: Mapping[str, Any], key: str, kind: type, default: Any, index: int) -> Any:
    value = item.get(key)
    if value is None:
        return default
    if not isinstance(value, kind):
        raise ValidationError(f"manifest item {index}: {key!r} must be a {kind.__name__}")
    return value


def _parse_item(raw: Any, index: int) -> ManifestItem:
    if not isinstance(raw, Mapping):
        raise ValidationError(f"manifest item {index}: must be a JSON object")
    unset = _typed(raw, "unset", list, [], index)
    if not all(isinstance(name, str) for name in unset):
        raise ValidationError(f"manifest item {index}: 'unset' must list field names")
    return ManifestItem(
        op=_typed(raw, "op", str, "", index),
        input=_typed(raw, "input", str, "", index),
        output=_typed(raw, "output", str, "", index),
        in_place=_typed(raw, "inPlace", bool, False, index),
        set=MetadataPatch.from_dict(_typed(raw, "set", Mapping, None, index)),
        unset=list(unset),
        unset_all=_typed(raw, "unsetAll", bool, False, index),
        template=_typed(raw, "template", str, "", index),
    )


def load_manifest(path: str | Path) -> list[ManifestItem]:
    """Loads and checks a batch manifest.

    Args:
        path: Manifest JSON file.

    Returns:
        The manifest items in file order.

    Raises:
        ValidationError: If the path is empty, the JSON cannot be decoded,
            or there are no items.
        NotFoundError: If the manifest does not exist.
        FileAccessError: If the manifest cannot be read.
    """
    path = str(path)
    if not path:
        raise ValidationError("manifest path is required")

    try:
        raw = Path(path).read_bytes()
    except FileNotFoundError as e:
        raise NotFoundError(f"read manifest {path!r}: {e}") from e
    except OSError as e:
        raise FileAccessError(f"read manifest {path!r}: {e}") from e

    try:
        manifest = json.loads(raw)
    except ValueError as e:
        raise ValidationError(f"decode manifest json: {e}") from e
    if not isinstance(manifest, Mapping):
        raise ValidationError("decode manifest json: top level must be an object")

    items = manifest.get("items") or []
    if not isinstance(items, list):
        raise ValidationError("manifest 'items' must be a list")
    if not items:
        raise ValidationError("manifest must include at least one item")
    return [_parse_item(item, i) for i, item in enumerate(items)]


class BatchEngine:
    """Runs manifest items in order through a service."""

    def __init__(self, runner: ServiceProtocol) -> None:
        self._runner = runner

    def _run_item(
        self,
        item: ManifestItem,
        strict: bool,
        cancel_event: threading.Event | None,
    ) -> None:
        if item.op == Operation.SHOW.value:
            self._runner.show(ShowRequest(input_path=item.input), cancel_event)
        elif item.op == Operation.SET.value:
            self._runner.set(
                SetRequest(io=item.io, changes=item.set, strict=strict), cancel_event
            )
        elif item.op == Operation.UNSET.value:
            self._runner.unset(
                UnsetRequest(
                    io=item.io, fields=item.unset, unset_all=item.unset_all, strict=strict
                ),
                cancel_event,
            )
        elif item.op == Operation.TEMPLATE_APPLY.value:
            self._runner.template_apply(
                TemplateApplyRequest(name=item.template, io=item.io, strict=strict),
                cancel_event,
            )
        else:
            raise ValidationError(f"unsupported op {item.op!r}")

    def execute_item(
        self,
        item: ManifestItem,
        strict: bool = False,
        cancel_event: threading.Event | None = None,
    ) -> tuple[BatchItemResult, PDFMetaError | None]:
        """Runs one item.

        Returns:
            The item result and the error it raised, if any.
        """
        entry = BatchItemResult(input_path=item.input, output_path=item.output)
        if not item.input:
            entry.status = STATUS_ERROR
            entry.error = "input is required"
            return entry, ValidationError(entry.error)

        try:
            self._run_item(item, strict, cancel_event)
        except PDFMetaError as e:
            logger.error("Batch item %s (%s) failed: %s", item.input, item.op, e)
            entry.status = STATUS_ERROR
            entry.error = str(e)
            return entry, e

        entry.status = STATUS_OK
        return entry, None

    def run(
        self,
        items: list[ManifestItem],
        *,
        continue_on_error: bool = False,
        strict: bool = False,
        on_progress: Callable[[int, int, str], None] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> BatchResult:
        """Runs already loaded items.

        Args:
            items: Manifest items.
            continue_on_error: Keep going after a failed item.
            strict: Strict date validation for write operations.
            on_progress: Optional callback(current_idx, total, input_path)
                called after each item.
            cancel_event: Optional cancellation event, checked before each
                item.

        Returns:
            The batch result.

        Raises:
            BatchFailedError: If any item failed; carries the result.
            InternalError: If cancelled.
        """
        result = BatchResult(total=len(items))
        for idx, item in enumerate(items):
            check_cancelled(cancel_event, "batch")

            entry, error = self.execute_item(item, strict, cancel_event)
            result.items.append(entry)
            if on_progress is not None:
                on_progress(idx, len(items), item.input)

            if error is None:
                result.succeeded += 1
                continue
            result.failed += 1
            if not continue_on_error:
                break

        logger.info(
            "Batch completed: %d succeeded, %d failed of %d",
            result.succeeded,
            result.failed,
            result.total,
        )
        if result.failed:
            raise BatchFailedError(result)
        return result

    def execute(
        self,
        request: BatchRequest,
        cancel_event: threading.Event | None = None,
        show_progress: bool = False,
    ) -> BatchResult:
        """Loads the manifest named by ``request`` and runs it.

        Args:
            request: Manifest path and run options.
            cancel_event: Optional cancellation event.
            show_progress: Show a progress bar on stderr (only on a terminal).

        Returns:
            The batch result when every item succeeded.

        Raises:
            BatchFailedError: If any item failed; carries the result.
            PDFMetaError: If the manifest cannot be loaded, or on
                cancellation.
        """
        items = load_manifest(request.manifest_path)

        progress_bar = None
        if show_progress:
            progress_bar = tqdm(
                total=len(items),
                desc="Processing",
                unit="item",
                ncols=80,
                disable=None,
            )

        def _on_progress(current_idx: int, total: int, input_path: str) -> None:
            if progress_bar is not None:
                progress_bar.update(1)
                progress_bar.set_postfix_str(Path(input_path).name)

        try:
            return self.run(
                items,
                continue_on_error=request.continue_on_error,
                strict=request.strict,
                on_progress=_on_progress if show_progress else None,
                cancel_event=cancel_event,
            )
        finally:
            if progress_bar is not None:
                progress_bar.close()
