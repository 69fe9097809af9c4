"""Tests for matching uploaded documents against a scheme's required labels."""

from __future__ import annotations

import pytest

from src.models.application import SubmittedDocument
from src.services.documents import missing_documents, validate_documents
from src.services.errors import MissingDocumentsError, ValidationError

REQUIRED = ["Aadhaar Card", "Income Certificate", "Previous Year Marksheet"]


def _docs(*names: str) -> list[SubmittedDocument]:
    return [SubmittedDocument(name=n, storage_ref=f"s3://docs/{i}") for i, n in enumerate(names)]


class TestMissingDocuments:
    def test_all_present(self) -> None:
        docs = _docs("Aadhaar Card", "Income Certificate", "Previous Year Marksheet")
        assert missing_documents(REQUIRED, docs) == []

    def test_case_insensitive_substring_match(self) -> None:
        docs = _docs("aadhaar card - front.pdf", "INCOME CERTIFICATE 2024", "previous year marksheet.jpg")
        assert missing_documents(REQUIRED, docs) == []

    def test_whitespace_is_normalised(self) -> None:
        docs = _docs("Aadhaar   Card", "Income\tCertificate", "Previous Year Marksheet")
        assert missing_documents(REQUIRED, docs) == []

    def test_reports_missing_in_scheme_order(self) -> None:
        docs = _docs("Income Certificate")
        assert missing_documents(REQUIRED, docs) == ["Aadhaar Card", "Previous Year Marksheet"]

    def test_one_upload_can_cover_several_labels(self) -> None:
        docs = _docs("Aadhaar Card + Income Certificate + Previous Year Marksheet (combined).pdf")
        assert missing_documents(REQUIRED, docs) == []

    def test_accepts_plain_names(self) -> None:
        assert missing_documents(["Aadhaar Card"], ["my aadhaar card.pdf"]) == []

    def test_no_requirements(self) -> None:
        assert missing_documents([], []) == []


class TestValidateDocuments:
    def test_raises_with_missing_labels(self) -> None:
        with pytest.raises(MissingDocumentsError) as exc_info:
            validate_documents(REQUIRED, _docs("Aadhaar Card", "Income Certificate"))
        err = exc_info.value
        assert err.missing_labels == ["Previous Year Marksheet"]
        assert err.fields == ["documents"]
        assert err.to_dict()["error"] == "missing_documents"

    def test_missing_documents_is_a_validation_error(self) -> None:
        with pytest.raises(ValidationError):
            validate_documents(REQUIRED, [])

    def test_passes_when_complete(self) -> None:
        validate_documents(REQUIRED, _docs(*REQUIRED))
