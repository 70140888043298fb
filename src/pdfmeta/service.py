# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Application service behind the CLI and the batch engine."""

import logging
import threading

from . import validate
from .batch import BatchEngine
from .model import (
    BatchRequest,
    BatchResult,
    IOOptions,
    MetadataReadResult,
    MetadataStoreProtocol,
    MetadataWriteRequest,
    SetRequest,
    ShowRequest,
    ShowResult,
    TemplateApplyRequest,
    TemplateRecord,
    TemplateSaveRequest,
    TemplateStoreProtocol,
    UnsetRequest,
)
from .store import MetadataStore
from .templates import TemplateStore

logger = logging.getLogger(__name__)


class MetadataService:
    """Validates requests, normalizes values and delegates to the stores.

    Args:
        metadata_store: PDF metadata backend; defaults to :class:`MetadataStore`.
        template_store: Template backend; defaults to a :class:`TemplateStore`
            at the default location.
    """

    def __init__(
        self,
        metadata_store: MetadataStoreProtocol | None = None,
        template_store: TemplateStoreProtocol | None = None,
    ) -> None:
        self._metadata = metadata_store if metadata_store is not None else MetadataStore()
        self._templates = template_store if template_store is not None else TemplateStore()
        self._batch_engine = BatchEngine(self)

    def _show_result(
        self, input_path: str, read: MetadataReadResult, strict: bool
    ) -> ShowResult:
        metadata, normalized = validate.normalize_metadata(read.metadata, strict)
        return ShowResult(
            input_path=input_path,
            metadata=metadata,
            encrypted=read.encrypted,
            info_found=read.info_found,
            xmp_found=read.xmp_found,
            normalized=read.normalized or normalized,
        )

    def show(self, request: ShowRequest, cancel_event: threading.Event | None = None) -> ShowResult:
        """Reads metadata from a single PDF."""
        validate.show_request(request)
        read = self._metadata.read(request.input_path, cancel_event)
        return self._show_result(request.input_path, read, strict=False)

    def set(self, request: SetRequest, cancel_event: threading.Event | None = None) -> ShowResult:
        """Applies a metadata patch and writes the result.

        Returns:
            The written metadata; ``input_path`` is the effective output path.

        Raises:
            ValidationError: If the request is invalid, or a date is invalid
                in strict mode.
            PDFMetaError: From the metadata store.
        """
        validate.set_request(request)
        patch = validate.normalize_patch(request.changes, request.strict)
        read = self._metadata.write(
            MetadataWriteRequest(
                input_path=request.io.input_path,
                output_path=request.io.output_path,
                in_place=request.io.in_place,
                strict=request.strict,
                patch=patch,
            ),
            cancel_event,
        )
        return self._show_result(request.io.effective_output_path, read, request.strict)

    def unset(self, request: UnsetRequest, cancel_event: threading.Event | None = None) -> ShowResult:
        """Clears the selected fields (or all of them) and writes the result."""
        validate.unset_request(request)
        fields = validate.normalize_fields(request.fields)
        read = self._metadata.write(
            MetadataWriteRequest(
                input_path=request.io.input_path,
                output_path=request.io.output_path,
                in_place=request.io.in_place,
                strict=request.strict,
                unset=fields,
                unset_all=request.unset_all,
            ),
            cancel_event,
        )
        return self._show_result(request.io.effective_output_path, read, request.strict)

    def batch(
        self,
        request: BatchRequest,
        cancel_event: threading.Event | None = None,
        show_progress: bool = False,
    ) -> BatchResult:
        """Runs a batch manifest; see :meth:`BatchEngine.execute`."""
        return self._batch_engine.execute(request, cancel_event, show_progress)

    def template_save(
        self, request: TemplateSaveRequest, cancel_event: threading.Event | None = None
    ) -> TemplateRecord:
        """Saves a template with trimmed name, note and values."""
        validate.template_save_request(request)
        record = TemplateRecord(
            name=request.name.strip(),
            note=request.note.strip(),
            metadata=validate.normalize_patch(request.metadata, strict=False),
        )
        return self._templates.save(record, request.force, cancel_event)

    def template_apply(
        self, request: TemplateApplyRequest, cancel_event: threading.Event | None = None
    ) -> ShowResult:
        """Applies the named template's patch via :meth:`set`."""
        validate.template_apply_request(request)
        record = self._templates.get(request.name, cancel_event)
        logger.debug("Applying template %r to %s", record.name, request.io.input_path)
        return self.set(
            SetRequest(
                io=IOOptions(
                    input_path=request.io.input_path,
                    output_path=request.io.output_path,
                    in_place=request.io.in_place,
                ),
                changes=record.metadata,
                strict=request.strict,
            ),
            cancel_event,
        )

    def template_list(self, cancel_event: threading.Event | None = None) -> list[TemplateRecord]:
        return self._templates.list(cancel_event)

    def template_show(self, name: str, cancel_event: threading.Event | None = None) -> TemplateRecord:
        return self._templates.get(name, cancel_event)

    def template_delete(self, name: str, cancel_event: threading.Event | None = None) -> None:
        self._templates.delete(name, cancel_event)
