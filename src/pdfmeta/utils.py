# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Utility functions shared across pdfmeta."""

import logging
import os
import sys
import tempfile
import threading
from pathlib import Path

from .exceptions import InternalError

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

DEFAULT_FILE_MODE = 0o644
TEMP_PREFIX = ".pdfmeta-tmp-"


def setup_logging(verbose: bool = False, quiet: bool = False) -> logging.Logger:
    """Configures logging for pdfmeta.

    Args:
        verbose: If True, DEBUG level is used.
        quiet: If True, only ERROR and higher are output.
            Takes precedence over verbose.

    Returns:
        Configured logger for pdfmeta.
    """
    # WARNING by default so that --json output on the terminal stays parseable
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.WARNING

    pdfmeta_logger = logging.getLogger("pdfmeta")
    pdfmeta_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    pdfmeta_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    pdfmeta_logger.addHandler(handler)

    logger.debug("Logging configured with level: %s", logging.getLevelName(level))
    return pdfmeta_logger


def check_cancelled(cancel_event: threading.Event | None, what: str = "operation") -> None:
    """Raises InternalError if the cancellation event has been set.

    Args:
        cancel_event: Optional event shared with the caller.
        what: Label used in the error message.

    Raises:
        InternalError: If ``cancel_event`` is set.
    """
    if cancel_event is not None and cancel_event.is_set():
        logger.info("%s canceled", what.capitalize())
        raise InternalError(f"{what} canceled")


def _sync_directory(directory: Path) -> None:
    """Flushes directory metadata (the rename) to disk where supported."""
    if not hasattr(os, "O_DIRECTORY"):
        return
    fd = os.open(directory, os.O_RDONLY | os.O_DIRECTORY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def write_atomic(path: Path | str, data: bytes, mode: int = DEFAULT_FILE_MODE) -> None:
    """Writes ``data`` to ``path`` via a same-directory temp file and rename.

    The destination is either left untouched or fully replaced; a partially
    written file is never visible under ``path``.

    Args:
        path: Destination file.
        data: Full file content.
        mode: Permission bits applied to the new file.

    Raises:
        ValueError: If ``path`` is empty.
        OSError: If any file system step fails. The temp file is removed
            when the failure happens before the rename.
    """
    if not str(path):
        raise ValueError("path is required")
    path = Path(path)

    directory = path.parent
    directory.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=TEMP_PREFIX, dir=directory)
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            os.chmod(tmp, mode)
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        try:
            tmp.unlink()
        except FileNotFoundError:
            pass
        raise

    _sync_directory(directory)
    logger.debug("Wrote %d bytes to %s", len(data), path)
