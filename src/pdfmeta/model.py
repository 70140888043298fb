# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Metadata model, patch merge semantics and request/result types.

The canonical :class:`Metadata` record holds eight string fields where the
empty string means "absent". A :class:`MetadataPatch` holds the same fields
as ``str | None`` where None means "leave untouched"; a patch never deletes,
deletion goes through :func:`apply_unset`.
"""

from __future__ import annotations

import dataclasses
import enum
import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from .exceptions import ValidationError


class Field(str, enum.Enum):
    """Supported metadata keys, valued by their CLI/manifest identifier."""

    TITLE = "title"
    AUTHOR = "author"
    SUBJECT = "subject"
    KEYWORDS = "keywords"
    CREATOR = "creator"
    PRODUCER = "producer"
    CREATION_DATE = "creation-date"
    MOD_DATE = "mod-date"

    @property
    def attr(self) -> str:
        """Attribute name on :class:`Metadata` and :class:`MetadataPatch`."""
        return self.value.replace("-", "_")

    @property
    def json_key(self) -> str:
        """camelCase key used in JSON documents."""
        head, *rest = self.value.split("-")
        return head + "".join(part.capitalize() for part in rest)

    @property
    def label(self) -> str:
        """Display label used by the text formatter."""
        return "".join(part.capitalize() for part in self.value.split("-"))


# Canonical ordering used by validation and output
ALL_FIELDS: tuple[Field, ...] = (
    Field.TITLE,
    Field.AUTHOR,
    Field.SUBJECT,
    Field.KEYWORDS,
    Field.CREATOR,
    Field.PRODUCER,
    Field.CREATION_DATE,
    Field.MOD_DATE,
)

DATE_FIELDS: tuple[Field, ...] = (Field.CREATION_DATE, Field.MOD_DATE)


@dataclass
class Metadata:
    """Normalized Info/XMP-compatible values.

    Attributes:
        title: Document title (Info /Title, XMP dc:title).
        author: Document author (Info /Author, XMP dc:creator).
        subject: Document subject (Info /Subject, XMP dc:description).
        keywords: Keywords (Info /Keywords, XMP pdf:Keywords).
        creator: Creating application (Info /Creator, XMP xmp:CreatorTool).
        producer: Producing application (Info /Producer, XMP pdf:Producer).
        creation_date: RFC3339 timestamp or PDF date token.
        mod_date: RFC3339 timestamp or PDF date token.
    """

    title: str = ""
    author: str = ""
    subject: str = ""
    keywords: str = ""
    creator: str = ""
    producer: str = ""
    creation_date: str = ""
    mod_date: str = ""

    def get(self, f: Field) -> str:
        return getattr(self, f.attr)

    def is_empty(self) -> bool:
        return all(self.get(f) == "" for f in ALL_FIELDS)

    def to_dict(self) -> dict[str, str]:
        """Returns the JSON shape, omitting empty fields."""
        return {f.json_key: self.get(f) for f in ALL_FIELDS if self.get(f) != ""}


@dataclass
class MetadataPatch:
    """Partial metadata change; None means untouched, "" means clear."""

    title: str | None = None
    author: str | None = None
    subject: str | None = None
    keywords: str | None = None
    creator: str | None = None
    producer: str | None = None
    creation_date: str | None = None
    mod_date: str | None = None

    def get(self, f: Field) -> str | None:
        return getattr(self, f.attr)

    def has_any(self) -> bool:
        """Returns True when at least one field is explicitly present."""
        return any(self.get(f) is not None for f in ALL_FIELDS)

    def to_dict(self) -> dict[str, str]:
        return {f.json_key: self.get(f) for f in ALL_FIELDS if self.get(f) is not None}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> MetadataPatch:
        """Builds a patch from its camelCase JSON shape.

        Unknown keys are ignored.

        Raises:
            ValidationError: If a present value is not a string or null.
        """
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ValidationError("metadata patch must be a JSON object")
        values: dict[str, str | None] = {}
        for f in ALL_FIELDS:
            value = data.get(f.json_key)
            if value is not None and not isinstance(value, str):
                raise ValidationError(f"{f.value} must be a string")
            values[f.attr] = value
        return cls(**values)


def apply_patch(cur: Metadata, patch: MetadataPatch) -> Metadata:
    """Returns ``cur`` with every non-None patch field written over it."""
    changes = {f.attr: patch.get(f) for f in ALL_FIELDS if patch.get(f) is not None}
    return dataclasses.replace(cur, **changes)


def apply_unset(cur: Metadata, fields: Iterable[Field], unset_all: bool = False) -> Metadata:
    """Returns ``cur`` with the named fields cleared, or an empty record for ``unset_all``."""
    if unset_all:
        return Metadata()
    return dataclasses.replace(cur, **{Field(f).attr: "" for f in fields})


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


@dataclass
class IOOptions:
    """Write destination.

    Attributes:
        input_path: Source PDF.
        output_path: Destination PDF; mutually exclusive with in_place.
        in_place: Replace the source file atomically.
    """

    input_path: str
    output_path: str = ""
    in_place: bool = False

    @property
    def effective_output_path(self) -> str:
        if self.in_place:
            return self.input_path
        return self.output_path or self.input_path


@dataclass
class ShowRequest:
    input_path: str


@dataclass
class SetRequest:
    io: IOOptions
    changes: MetadataPatch = field(default_factory=MetadataPatch)
    strict: bool = False


@dataclass
class UnsetRequest:
    io: IOOptions
    fields: list[str] = field(default_factory=list)
    unset_all: bool = False
    strict: bool = False


@dataclass
class BatchRequest:
    manifest_path: str
    continue_on_error: bool = False
    strict: bool = False


@dataclass
class TemplateSaveRequest:
    name: str
    metadata: MetadataPatch = field(default_factory=MetadataPatch)
    note: str = ""
    force: bool = False


@dataclass
class TemplateApplyRequest:
    name: str
    io: IOOptions
    strict: bool = False


@dataclass
class MetadataWriteRequest:
    """Low-level write performed by a metadata store.

    Attributes:
        input_path: Source PDF.
        output_path: Destination PDF when not writing in place.
        in_place: Replace the source file.
        strict: Strict validation flag carried from the request.
        patch: Fields to set.
        unset: Fields to clear after the patch is applied.
        unset_all: Clear every field after the patch is applied.
    """

    input_path: str
    output_path: str = ""
    in_place: bool = False
    strict: bool = False
    patch: MetadataPatch = field(default_factory=MetadataPatch)
    unset: list[Field] = field(default_factory=list)
    unset_all: bool = False


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class MetadataReadResult:
    """Raw outcome of a metadata store read or write.

    Attributes:
        metadata: Merged XMP/Info view.
        encrypted: True if the trailer references /Encrypt.
        info_found: True if an Info dictionary was read.
        xmp_found: True if an XMP packet was decoded.
        normalized: True if values were rewritten during normalization.
    """

    metadata: Metadata
    encrypted: bool = False
    info_found: bool = False
    xmp_found: bool = False
    normalized: bool = False


@dataclass
class ShowResult:
    """Display model for read and write operations."""

    input_path: str
    metadata: Metadata
    encrypted: bool = False
    info_found: bool = False
    xmp_found: bool = False
    normalized: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "inputPath": self.input_path,
            "encrypted": self.encrypted,
            "metadata": self.metadata.to_dict(),
            "infoFound": self.info_found,
            "xmpFound": self.xmp_found,
            "normalized": self.normalized,
        }


@dataclass
class BatchItemResult:
    input_path: str
    status: str = ""
    output_path: str = ""
    error: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"inputPath": self.input_path}
        if self.output_path:
            data["outputPath"] = self.output_path
        data["status"] = self.status
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class BatchResult:
    """Aggregated batch outcome.

    Attributes:
        items: Per-item results in execution order.
        total: Number of items in the manifest.
        succeeded: Items that completed.
        failed: Items that raised.
    """

    items: list[BatchItemResult] = field(default_factory=list)
    total: int = 0
    succeeded: int = 0
    failed: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [item.to_dict() for item in self.items],
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
        }


@dataclass
class TemplateRecord:
    """Persisted named metadata patch."""

    name: str
    metadata: MetadataPatch = field(default_factory=MetadataPatch)
    note: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name}
        if self.note:
            data["note"] = self.note
        data["metadata"] = self.metadata.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TemplateRecord:
        if not isinstance(data, Mapping):
            raise ValueError("template record must be a JSON object")
        name = data.get("name", "")
        note = data.get("note", "") or ""
        if not isinstance(name, str) or not isinstance(note, str):
            raise ValueError("template name and note must be strings")
        return cls(
            name=name,
            note=note,
            metadata=MetadataPatch.from_dict(data.get("metadata")),
        )


# ---------------------------------------------------------------------------
# Contracts
# ---------------------------------------------------------------------------


@runtime_checkable
class MetadataStoreProtocol(Protocol):
    """Reads and writes PDF metadata."""

    def read(
        self, path: str, cancel_event: threading.Event | None = None
    ) -> MetadataReadResult: ...

    def write(
        self, request: MetadataWriteRequest, cancel_event: threading.Event | None = None
    ) -> MetadataReadResult: ...


@runtime_checkable
class TemplateStoreProtocol(Protocol):
    """Persists named metadata templates."""

    def save(
        self,
        record: TemplateRecord,
        force: bool = False,
        cancel_event: threading.Event | None = None,
    ) -> TemplateRecord: ...

    def get(self, name: str, cancel_event: threading.Event | None = None) -> TemplateRecord: ...

    def list(self, cancel_event: threading.Event | None = None) -> list[TemplateRecord]: ...

    def delete(self, name: str, cancel_event: threading.Event | None = None) -> None: ...


@runtime_checkable
class ServiceProtocol(Protocol):
    """Operations exposed to the CLI."""

    def show(
        self, request: ShowRequest, cancel_event: threading.Event | None = None
    ) -> ShowResult: ...

    def set(self, request: SetRequest, cancel_event: threading.Event | None = None) -> ShowResult: ...

    def unset(
        self, request: UnsetRequest, cancel_event: threading.Event | None = None
    ) -> ShowResult: ...

    def batch(
        self,
        request: BatchRequest,
        cancel_event: threading.Event | None = None,
        show_progress: bool = False,
    ) -> BatchResult: ...

    def template_save(
        self, request: TemplateSaveRequest, cancel_event: threading.Event | None = None
    ) -> TemplateRecord: ...

    def template_apply(
        self, request: TemplateApplyRequest, cancel_event: threading.Event | None = None
    ) -> ShowResult: ...

    def template_list(self, cancel_event: threading.Event | None = None) -> list[TemplateRecord]: ...

    def template_show(
        self, name: str, cancel_event: threading.Event | None = None
    ) -> TemplateRecord: ...

    def template_delete(self, name: str, cancel_event: threading.Event | None = None) -> None: ...
