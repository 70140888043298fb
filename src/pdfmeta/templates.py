# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""JSON file store for named metadata templates.

The file holds ``{"templates": [...]}`` sorted by name. Every change
rewrites the whole file through :func:`pdfmeta.utils.write_atomic`, so
concurrent writers are last-writer-wins and never leave a torn file.
"""

import json
import logging
import os
import threading
from pathlib import Path

from .exceptions import (
    ConflictError,
    FileAccessError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from .model import TemplateRecord
from .utils import check_cancelled, write_atomic

logger = logging.getLogger(__name__)

STORE_ENV_VAR = "PDFMETA_TEMPLATE_STORE"
DEFAULT_STORE_PATH = Path(".pdfmeta") / "templates.json"


def resolve_store_path(path: str | Path | None = None) -> Path:
    """Resolves the template store location.

    Args:
        path: Explicit path; takes precedence when non-blank.

    Returns:
        The explicit path, else ``$PDFMETA_TEMPLATE_STORE``, else
        ``~/.pdfmeta/templates.json``.
    """
    if path is not None and str(path).strip():
        return Path(path)
    env_path = os.environ.get(STORE_ENV_VAR, "").strip()
    if env_path:
        return Path(env_path)
    return Path.home() / DEFAULT_STORE_PATH


def _require_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise ValidationError("template name is required")
    return name


class TemplateStore:
    """Template persistence backed by a single JSON file."""

    def __init__(self, path: str | Path | None = None) -> None:
        self._explicit_path = path

    @property
    def path(self) -> Path:
        return resolve_store_path(self._explicit_path)

    def _load(self) -> list[TemplateRecord]:
        path = self.path
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as e:
            raise FileAccessError(f"read template store {str(path)!r}: {e}") from e

        if not raw.strip():
            return []

        try:
            state = json.loads(raw)
            records = [TemplateRecord.from_dict(item) for item in state.get("templates") or []]
        except (ValueError, AttributeError, TypeError, ValidationError) as e:
            raise InternalError(f"decode template store: {e}") from e
        return sorted(records, key=lambda r: r.name)

    def _store(self, records: list[TemplateRecord]) -> None:
        path = self.path
        state = {"templates": [r.to_dict() for r in sorted(records, key=lambda r: r.name)]}
        data = (json.dumps(state, indent=2, ensure_ascii=False) + "\n").encode("utf-8")
        try:
            write_atomic(path, data)
        except OSError as e:
            raise FileAccessError(f"write template store {str(path)!r}: {e}") from e
        logger.debug("Stored %d template(s) in %s", len(records), path)

    def save(
        self,
        record: TemplateRecord,
        force: bool = False,
        cancel_event: threading.Event | None = None,
    ) -> TemplateRecord:
        """Saves a template.

        Args:
            record: Template to persist; its name is trimmed.
            force: Replace an existing template with the same name.
            cancel_event: Optional cancellation event.

        Returns:
            The stored record.

        Raises:
            ValidationError: If the name is blank.
            ConflictError: If the name exists and ``force`` is False.
        """
        check_cancelled(cancel_event)
        record = TemplateRecord(
            name=_require_name(record.name), metadata=record.metadata, note=record.note
        )
        records = self._load()
        for i, existing in enumerate(records):
            if existing.name == record.name:
                if not force:
                    raise ConflictError(f"template {record.name!r} already exists")
                records[i] = record
                break
        else:
            records.append(record)
        self._store(records)
        logger.info("Saved template %r", record.name)
        return record

    def get(self, name: str, cancel_event: threading.Event | None = None) -> TemplateRecord:
        """Returns the template named ``name``.

        Raises:
            ValidationError: If the name is blank.
            NotFoundError: If no such template exists.
        """
        check_cancelled(cancel_event)
        name = _require_name(name)
        for record in self._load():
            if record.name == name:
                return record
        raise NotFoundError(f"template {name!r} not found")

    def list(self, cancel_event: threading.Event | None = None) -> list[TemplateRecord]:
        """Returns all templates sorted by name."""
        check_cancelled(cancel_event)
        return self._load()

    def delete(self, name: str, cancel_event: threading.Event | None = None) -> None:
        """Deletes the template named ``name``.

        Raises:
            ValidationError: If the name is blank.
            NotFoundError: If no such template exists.
        """
        check_cancelled(cancel_event)
        name = _require_name(name)
        records = self._load()
        remaining = [r for r in records if r.name != name]
        if len(remaining) == len(records):
            raise NotFoundError(f"template {name!r} not found")
        self._store(remaining)
        logger.info("Deleted template %r", name)
