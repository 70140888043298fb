# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Loaded PDF envelope: raw bytes plus header, version and encryption checks."""

import logging
from pathlib import Path

from ..exceptions import FileAccessError, MalformedPDFError, NotFoundError, ValidationError
from .lexer import find_header_offset, has_encrypt_marker, parse_version

logger = logging.getLogger(__name__)


class PDFDocument:
    """A PDF read whole into memory for one read or read-modify-write.

    Use :meth:`open` or :meth:`from_bytes` to construct instances.
    """

    def __init__(self, path: str, data: bytes, header_offset: int) -> None:
        self._path = path
        self._data = data
        self._header_offset = header_offset
        self._version = parse_version(data, header_offset)
        self._encrypted = has_encrypt_marker(data)

    @classmethod
    def open(cls, path: str | Path) -> "PDFDocument":
        """Reads and parses a PDF file.

        Args:
            path: Path to the PDF file.

        Returns:
            The parsed document.

        Raises:
            ValidationError: If the path is empty.
            NotFoundError: If the file does not exist.
            FileAccessError: If the file cannot be read.
            MalformedPDFError: If the file is empty or has no PDF header.
        """
        path = str(path)
        if not path:
            raise ValidationError("input path is required")

        try:
            data = Path(path).read_bytes()
        except FileNotFoundError as e:
            raise NotFoundError(f"read pdf {path!r}: {e}") from e
        except OSError as e:
            raise FileAccessError(f"read pdf {path!r}: {e}") from e

        logger.debug("Read %d bytes from %s", len(data), path)
        return cls.from_bytes(path, data)

    @classmethod
    def from_bytes(cls, path: str, data: bytes) -> "PDFDocument":
        """Parses a PDF envelope from in-memory bytes.

        Raises:
            MalformedPDFError: If ``data`` is empty or has no ``%PDF-``
                header within the first 1024 bytes.
        """
        if not data:
            raise MalformedPDFError("pdf is empty")
        header_offset = find_header_offset(data)
        if header_offset < 0:
            raise MalformedPDFError("missing PDF header")
        return cls(path, bytes(data), header_offset)

    @property
    def path(self) -> str:
        return self._path

    @property
    def header_offset(self) -> int:
        return self._header_offset

    @property
    def version(self) -> str:
        return self._version

    @property
    def encrypted(self) -> bool:
        """True if the last trailer names ``/Encrypt``."""
        return self._encrypted

    @property
    def data(self) -> bytes:
        """The document bytes; immutable, so callers cannot alter the buffer."""
        return self._data

    def __repr__(self) -> str:
        return (
            f"PDFDocument(path={self._path!r}, version={self._version!r}, "
            f"size={len(self._data)}, encrypted={self._encrypted})"
        )
