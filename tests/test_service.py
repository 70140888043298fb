# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Tests for service.py."""

import re
from pathlib import Path

import pytest

from pdfmeta.exceptions import (
    ConflictError,
    EncryptedPDFError,
    NotFoundError,
    ValidationError,
)
from pdfmeta.model import (
    ALL_FIELDS,
    IOOptions,
    Metadata,
    MetadataPatch,
    MetadataReadResult,
    SetRequest,
    ShowRequest,
    TemplateApplyRequest,
    TemplateSaveRequest,
    UnsetRequest,
)
from pdfmeta.service import MetadataService
from pdfmeta.templates import TemplateStore


@pytest.fixture
def service(store_path: Path) -> MetadataService:
    return MetadataService(template_store=TemplateStore(store_path))


class StubMetadataStore:
    """Metadata store returning fixed values and recording writes."""

    def __init__(self, metadata: Metadata) -> None:
        self.metadata = metadata
        self.writes = []

    def read(self, path, cancel_event=None):
        return MetadataReadResult(metadata=self.metadata, info_found=True)

    def write(self, request, cancel_event=None):
        self.writes.append(request)
        return MetadataReadResult(metadata=self.metadata, info_found=True, xmp_found=True)


class TestShow:
    """Tests for MetadataService.show."""

    def test_show_minimal(self, service: MetadataService, minimal_pdf: Path) -> None:
        """A PDF without metadata shows empty values."""
        result = service.show(ShowRequest(input_path=str(minimal_pdf)))

        assert result.input_path == str(minimal_pdf)
        assert result.metadata.is_empty()
        assert (result.info_found, result.xmp_found, result.encrypted) == (False, False, False)
        assert result.normalized is False

    def test_show_normalizes(self) -> None:
        """Read values are trimmed and dates canonicalized."""
        stub = StubMetadataStore(Metadata(title="  Padded  ", creation_date="2024/01/15"))
        service = MetadataService(metadata_store=stub)

        result = service.show(ShowRequest(input_path="any.pdf"))

        assert result.metadata.title == "Padded"
        assert result.metadata.creation_date == "2024-01-15T00:00:00Z"
        assert result.normalized is True

    def test_show_requires_input(self, service: MetadataService) -> None:
        """An empty path is rejected before reading."""
        with pytest.raises(ValidationError):
            service.show(ShowRequest(input_path=""))


class TestSet:
    """Tests for MetadataService.set."""

    def test_set_on_minimal_pdf(self, service: MetadataService, minimal_pdf: Path, tmp_dir: Path) -> None:
        """Title and author are written and read back from both sections."""
        out = tmp_dir / "out.pdf"

        result = service.set(
            SetRequest(
                io=IOOptions(input_path=str(minimal_pdf), output_path=str(out)),
                changes=MetadataPatch(title="Release Notes", author="Doc Bot"),
            )
        )
        shown = service.show(ShowRequest(input_path=str(out)))

        assert result.input_path == str(out)
        assert shown.metadata.title == "Release Notes"
        assert shown.metadata.author == "Doc Bot"
        assert shown.info_found is True
        assert shown.xmp_found is True

    def test_set_trims_values(self) -> None:
        """Patch values are trimmed before they reach the store."""
        stub = StubMetadataStore(Metadata())
        service = MetadataService(metadata_store=stub)

        service.set(
            SetRequest(
                io=IOOptions(input_path="in.pdf", in_place=True),
                changes=MetadataPatch(title="  T  "),
            )
        )

        assert stub.writes[0].patch.title == "T"
        assert stub.writes[0].in_place is True

    def test_lenient_date(self, service: MetadataService, minimal_pdf: Path, tmp_dir: Path) -> None:
        """Lenient mode canonicalizes common date layouts."""
        out = tmp_dir / "out.pdf"

        result = service.set(
            SetRequest(
                io=IOOptions(input_path=str(minimal_pdf), output_path=str(out)),
                changes=MetadataPatch(creation_date="2026/02/17"),
            )
        )

        assert result.metadata.creation_date == "2026-02-17T00:00:00Z"
        shown = service.show(ShowRequest(input_path=str(out)))
        assert shown.metadata.creation_date == "2026-02-17T00:00:00Z"

    def test_strict_date(self, service: MetadataService, minimal_pdf: Path, tmp_dir: Path) -> None:
        """Strict mode rejects the same date with a validation error."""
        out = tmp_dir / "out.pdf"

        with pytest.raises(ValidationError) as exc_info:
            service.set(
                SetRequest(
                    io=IOOptions(input_path=str(minimal_pdf), output_path=str(out)),
                    changes=MetadataPatch(creation_date="2026/02/17"),
                    strict=True,
                )
            )

        assert exc_info.value.exit_code == 3
        assert not out.exists()

    def test_encrypted(self, service: MetadataService, encrypted_pdf: Path, tmp_dir: Path) -> None:
        """Writes to encrypted PDFs fail with exit code 6."""
        with pytest.raises(EncryptedPDFError) as exc_info:
            service.set(
                SetRequest(
                    io=IOOptions(input_path=str(encrypted_pdf), output_path=str(tmp_dir / "o.pdf")),
                    changes=MetadataPatch(title="x"),
                )
            )
        assert exc_info.value.exit_code == 6

    def test_missing_input(self, service: MetadataService, tmp_dir: Path) -> None:
        """A missing input file fails with exit code 4."""
        with pytest.raises(NotFoundError) as exc_info:
            service.set(
                SetRequest(
                    io=IOOptions(
                        input_path=str(tmp_dir / "nope.pdf"), output_path=str(tmp_dir / "o.pdf")
                    ),
                    changes=MetadataPatch(title="x"),
                )
            )
        assert exc_info.value.exit_code == 4


class TestUnset:
    """Tests for MetadataService.unset."""

    def test_unset_all_after_set(self, service: MetadataService, minimal_pdf: Path, tmp_dir: Path) -> None:
        """Unsetting everything leaves an empty Info dictionary."""
        first = tmp_dir / "first.pdf"
        second = tmp_dir / "second.pdf"
        service.set(
            SetRequest(
                io=IOOptions(input_path=str(minimal_pdf), output_path=str(first)),
                changes=MetadataPatch(
                    title="T",
                    author="A",
                    subject="S",
                    keywords="K",
                    creator="C",
                    producer="P",
                    creation_date="D:2024",
                    mod_date="D:2025",
                ),
            )
        )

        service.unset(
            UnsetRequest(
                io=IOOptions(input_path=str(first), output_path=str(second)), unset_all=True
            )
        )
        shown = service.show(ShowRequest(input_path=str(second)))

        assert all(shown.metadata.get(f) == "" for f in ALL_FIELDS)
        update = second.read_bytes()[len(first.read_bytes()) :]
        assert re.search(rb"\d+ 0 obj\n<<\n>>\nendobj\n", update)

    def test_unset_selected(self, service: MetadataService, pdf_with_metadata: Path, tmp_dir: Path) -> None:
        """Only the selected fields are removed."""
        out = tmp_dir / "out.pdf"

        result = service.unset(
            UnsetRequest(
                io=IOOptions(input_path=str(pdf_with_metadata), output_path=str(out)),
                fields=["keywords", "title"],
            )
        )

        assert result.metadata.title == ""
        assert result.metadata.keywords == ""
        assert result.metadata.author == "Test Author"

    def test_unset_validation(self, service: MetadataService, minimal_pdf: Path) -> None:
        """Invalid selections are rejected."""
        with pytest.raises(ValidationError):
            service.unset(
                UnsetRequest(io=IOOptions(input_path=str(minimal_pdf), in_place=True))
            )


class TestTemplates:
    """Tests for the template operations."""

    def test_save_twice(self, service: MetadataService) -> None:
        """A second save without force conflicts; with force it replaces."""
        service.template_save(
            TemplateSaveRequest(name="base", metadata=MetadataPatch(author="One"))
        )

        with pytest.raises(ConflictError) as exc_info:
            service.template_save(
                TemplateSaveRequest(name="base", metadata=MetadataPatch(author="Two"))
            )
        assert exc_info.value.exit_code == 5

        service.template_save(
            TemplateSaveRequest(name="base", metadata=MetadataPatch(author="Two"), force=True)
        )
        assert service.template_show("base").metadata.author == "Two"

    def test_save_trims(self, service: MetadataService) -> None:
        """Name, note and values are trimmed."""
        record = service.template_save(
            TemplateSaveRequest(
                name=" base ", note=" house style ", metadata=MetadataPatch(title=" T ")
            )
        )

        assert record.name == "base"
        assert record.note == "house style"
        assert record.metadata.title == "T"

    def test_save_requires_fields(self, service: MetadataService) -> None:
        """A template without values is rejected."""
        with pytest.raises(ValidationError):
            service.template_save(TemplateSaveRequest(name="empty"))

    def test_apply(self, service: MetadataService, minimal_pdf: Path, tmp_dir: Path) -> None:
        """Applying a template writes its values."""
        service.template_save(
            TemplateSaveRequest(
                name="corporate", metadata=MetadataPatch(author="ACME", producer="pdfmeta")
            )
        )
        out = tmp_dir / "out.pdf"

        result = service.template_apply(
            TemplateApplyRequest(
                name="corporate", io=IOOptions(input_path=str(minimal_pdf), output_path=str(out))
            )
        )

        assert result.input_path == str(out)
        assert result.metadata.author == "ACME"
        shown = service.show(ShowRequest(input_path=str(out)))
        assert shown.metadata.producer == "pdfmeta"

    def test_apply_unknown(self, service: MetadataService, minimal_pdf: Path, tmp_dir: Path) -> None:
        """Unknown templates are not found."""
        with pytest.raises(NotFoundError):
            service.template_apply(
                TemplateApplyRequest(
                    name="ghost",
                    io=IOOptions(input_path=str(minimal_pdf), output_path=str(tmp_dir / "o.pdf")),
                )
            )

    def test_list_and_delete(self, service: MetadataService) -> None:
        """Templates are listed sorted and can be deleted."""
        for name in ("b", "a"):
            service.template_save(TemplateSaveRequest(name=name, metadata=MetadataPatch(title=name)))

        assert [r.name for r in service.template_list()] == ["a", "b"]

        service.template_delete("a")
        assert [r.name for r in service.template_list()] == ["b"]
        with pytest.raises(NotFoundError):
            service.template_delete("a")
