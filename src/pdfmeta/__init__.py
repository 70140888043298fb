# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""pdfmeta - Read and edit PDF document metadata."""

from importlib.metadata import PackageNotFoundError, version

from .exceptions import (
    BatchFailedError,
    ConflictError,
    EncryptedPDFError,
    ErrorCode,
    FileAccessError,
    InternalError,
    MalformedPDFError,
    NotFoundError,
    PDFMetaError,
    UsageError,
    ValidationError,
    XMPDecodeError,
)
from .model import Field, Metadata, MetadataPatch
from .service import MetadataService
from .store import MetadataStore
from .templates import TemplateStore

try:
    __version__ = version("pdfmeta")
except PackageNotFoundError:
    __version__ = "unknown"

__all__ = [
    "__version__",
    "MetadataService",
    "MetadataStore",
    "TemplateStore",
    "Field",
    "Metadata",
    "MetadataPatch",
    "ErrorCode",
    "PDFMetaError",
    "UsageError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "EncryptedPDFError",
    "MalformedPDFError",
    "FileAccessError",
    "InternalError",
    "XMPDecodeError",
    "BatchFailedError",
]
