# ============================================================================
# tests/unit/test_records.py
# ============================================================================
"""
Tests for record types and persisted entities
"""

import pytest

from health_vault.core.records import (
    AbnormalFlag,
    Conversation,
    DocumentType,
    FileType,
    MedicalTestReport,
    MediDocument,
    Prescription,
    TestResult,
    UnknownDocument,
    UploadedFile,
    record_from_dict,
)
from health_vault.core.records.extracted_record import RECORD_TYPES


class TestTaggedUnion:

    def test_every_tag_has_a_variant(self):
        assert set(RECORD_TYPES) == set(DocumentType)
        for document_type, record_type in RECORD_TYPES.items():
            assert record_type.document_type == document_type

    @pytest.mark.parametrize("data,expected", [
        ({"document_type": "medical_test_report"}, MedicalTestReport),
        ({"document_type": "prescription"}, Prescription),
        ({"document_type": "unknown"}, UnknownDocument),
        ({"document_type": "Prescription"}, UnknownDocument),
        ({"document_type": 3}, UnknownDocument),
        ({}, UnknownDocument),
        ("prescription", UnknownDocument),
        (None, UnknownDocument),
    ])
    def test_dispatch(self, data, expected):
        assert type(record_from_dict(data)) is expected

    def test_record_date(self):
        assert MedicalTestReport(report_date="2024-01-01").record_date == "2024-01-01"
        assert Prescription(date="2024-02-02").record_date == "2024-02-02"
        assert UnknownDocument().record_date is None


class TestTestResult:

    def test_flag_kept_with_value_and_range(self):
        result = TestResult(test_name="Hb", value=11.2, reference_range="13-17", abnormal_flag="low")
        assert result.abnormal_flag == AbnormalFlag.LOW
        assert result.is_abnormal

    def test_flag_never_without_range(self):
        result = TestResult(test_name="Hb", value=11.2, abnormal_flag="low")
        assert result.abnormal_flag is None
        assert not result.is_abnormal

    def test_normal_is_not_abnormal(self):
        result = TestResult(value=14, reference_range="13-17", abnormal_flag="normal")
        assert not result.is_abnormal

    def test_value_types_preserved(self):
        assert TestResult.from_dict({"value": 5}).value == 5
        assert TestResult.from_dict({"value": "positive"}).value == "positive"
        assert TestResult.from_dict({"value": True}).value is None
        assert TestResult.from_dict({"value": [1]}).value is None


class TestDocuments:

    def test_file_type_from_mime(self):
        assert FileType.from_mime_type("application/pdf") == FileType.PDF
        assert FileType.from_mime_type("image/jpeg") == FileType.IMAGE
        assert UploadedFile("a.png", "image/png", b"").file_type == FileType.IMAGE

    def test_document_dict_round_trip(self):
        doc = MediDocument(
            file_name="rx.pdf",
            file_type=FileType.PDF,
            file_mime_type="application/pdf",
            document_date="2024-01-01",
            raw_text="text",
            extracted=Prescription(date="2024-01-01"),
            file_data=b"\x00\x01binary",
        )

        data = doc.to_dict(include_file_data=True)
        assert data["extracted"]["document_type"] == "prescription"
        assert MediDocument.from_dict(data) == doc
        assert "file_data" not in doc.to_dict()

    def test_source_date_fallback(self):
        doc = MediDocument(
            file_name="a.png", file_type=FileType.IMAGE, file_mime_type="image/png",
            document_date="", raw_text="", extracted=UnknownDocument(),
            uploaded_at="2024-01-01T00:00:00+00:00",
        )
        assert doc.source_date == "2024-01-01T00:00:00+00:00"


class TestConversation:

    def test_title_from_first_question(self):
        conversation = Conversation()
        conversation.add_message("user", "What is HbA1c?")
        conversation.add_message("assistant", "A measure of average blood sugar.")
        conversation.add_message("user", "Is mine high?")

        assert conversation.title == "What is HbA1c?"
        assert conversation.history()[-1] == {"role": "user", "content": "Is mine high?"}
        assert conversation.updated_at == conversation.messages[-1].timestamp
