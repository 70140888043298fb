# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Custom exceptions for pdfmeta.

Every exception carries a stable :class:`ErrorCode` which the CLI maps to
both the process exit code and the rendered error payload.
"""

import enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .model import BatchResult


class ErrorCode(enum.Enum):
    """Stable error kinds surfaced as ``code`` in JSON output."""

    UNKNOWN = "unknown"
    USAGE = "usage"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    PDF_ENCRYPTED = "pdf_encrypted"
    PDF_MALFORMED = "pdf_malformed"
    IO = "io"
    INTERNAL = "internal"


EXIT_CODES = {
    ErrorCode.UNKNOWN: 1,
    ErrorCode.USAGE: 2,
    ErrorCode.VALIDATION: 3,
    ErrorCode.NOT_FOUND: 4,
    ErrorCode.CONFLICT: 5,
    ErrorCode.PDF_ENCRYPTED: 6,
    ErrorCode.PDF_MALFORMED: 7,
    ErrorCode.IO: 8,
    ErrorCode.INTERNAL: 9,
}


class PDFMetaError(Exception):
    """Base exception for all pdfmeta errors."""

    code = ErrorCode.UNKNOWN

    @property
    def exit_code(self) -> int:
        return EXIT_CODES[self.code]


class UsageError(PDFMetaError):
    """Command-line arguments were misused."""

    code = ErrorCode.USAGE


class ValidationError(PDFMetaError):
    """Input shape rejected before any work began."""

    code = ErrorCode.VALIDATION


class NotFoundError(PDFMetaError):
    """File or template missing."""

    code = ErrorCode.NOT_FOUND


class ConflictError(PDFMetaError):
    """Template save would overwrite an existing template."""

    code = ErrorCode.CONFLICT


class EncryptedPDFError(PDFMetaError):
    """Write attempted on a PDF whose trailer references /Encrypt."""

    code = ErrorCode.PDF_ENCRYPTED


class MalformedPDFError(PDFMetaError):
    """PDF envelope checks failed."""

    code = ErrorCode.PDF_MALFORMED


class FileAccessError(PDFMetaError):
    """File system failure other than a missing file."""

    code = ErrorCode.IO


class InternalError(PDFMetaError):
    """Encoding failure, cancellation or corrupt internal state."""

    code = ErrorCode.INTERNAL


class XMPDecodeError(InternalError):
    """An XMP packet could not be decoded."""


class BatchFailedError(PDFMetaError):
    """At least one batch item failed.

    The partial or complete :class:`~pdfmeta.model.BatchResult` is kept on
    ``result`` so callers can still render the per-item outcome.
    """

    def __init__(self, result: "BatchResult") -> None:
        super().__init__(f"batch completed with {result.failed} failure(s)")
        self.result = result


def exit_code_for(exc: BaseException | None) -> int:
    """Maps an exception to the process exit code.

    Args:
        exc: The raised exception, or None on success.

    Returns:
        0 for None, the code's exit status for pdfmeta errors, 1 otherwise.
    """
    if exc is None:
        return 0
    if isinstance(exc, PDFMetaError):
        return exc.exit_code
    return EXIT_CODES[ErrorCode.UNKNOWN]
