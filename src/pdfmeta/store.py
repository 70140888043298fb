# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""File-backed metadata store: read and incrementally update PDFs."""

import logging
import threading

from .exceptions import EncryptedPDFError, FileAccessError, InternalError, ValidationError
from .model import (
    MetadataReadResult,
    MetadataWriteRequest,
    apply_patch,
    apply_unset,
)
from .pdf import PDFDocument, read_native_metadata, write_incremental
from .utils import check_cancelled, write_atomic
from .xmp import marshal

logger = logging.getLogger(__name__)


def _write_target(request: MetadataWriteRequest) -> str:
    if request.in_place:
        return request.input_path
    if not request.output_path:
        raise ValidationError("output path is required unless in-place mode is used")
    return request.output_path


class MetadataStore:
    """Reads and writes PDF metadata through :mod:`pdfmeta.pdf`."""

    def read(self, path: str, cancel_event: threading.Event | None = None) -> MetadataReadResult:
        """Reads merged Info/XMP metadata from a PDF.

        Args:
            path: PDF file path.
            cancel_event: Optional cancellation event.

        Returns:
            The merged metadata and section presence flags.

        Raises:
            PDFMetaError: From opening the document, or on cancellation.
        """
        check_cancelled(cancel_event)
        doc = PDFDocument.open(path)
        native = read_native_metadata(doc.data)
        logger.debug(
            "Read %s: version=%s encrypted=%s info=%s xmp=%s",
            path,
            doc.version,
            doc.encrypted,
            native.info_found,
            native.xmp_found,
        )
        return MetadataReadResult(
            metadata=native.metadata,
            encrypted=doc.encrypted,
            info_found=native.info_found,
            xmp_found=native.xmp_found,
        )

    def write(
        self, request: MetadataWriteRequest, cancel_event: threading.Event | None = None
    ) -> MetadataReadResult:
        """Applies a patch and unset selection and writes the updated PDF.

        The patch is applied first, then the unset selection. The result is
        written as an incremental update to the destination via an atomic
        replace.

        Args:
            request: Source, destination and changes.
            cancel_event: Optional cancellation event.

        Returns:
            The metadata as written, with both sections reported present.

        Raises:
            ValidationError: If no input or destination is given.
            EncryptedPDFError: If the source PDF is encrypted.
            MalformedPDFError: If the PDF structure cannot be updated.
            InternalError: If the XMP packet cannot be encoded, or on
                cancellation.
            FileAccessError: If the destination cannot be written.
        """
        check_cancelled(cancel_event)
        if not request.input_path:
            raise ValidationError("input path is required")
        target = _write_target(request)

        doc = PDFDocument.open(request.input_path)
        if doc.encrypted:
            raise EncryptedPDFError("cannot write encrypted pdf")

        current = read_native_metadata(doc.data).metadata
        updated = apply_unset(apply_patch(current, request.patch), request.unset, request.unset_all)

        try:
            packet = marshal(updated)
        except (UnicodeEncodeError, ValueError) as e:
            raise InternalError(f"encode xmp packet: {e}") from e

        out = write_incremental(doc.data, updated, packet)

        check_cancelled(cancel_event)
        try:
            write_atomic(target, out)
        except OSError as e:
            raise FileAccessError(f"write {target!r}: {e}") from e

        logger.info("Wrote metadata to %s (%d bytes)", target, len(out))
        return MetadataReadResult(
            metadata=updated,
            encrypted=False,
            info_found=True,
            xmp_found=True,
        )
