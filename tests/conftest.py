# ============================================================================
# FILE: tests/conftest.py
# ============================================================================
"""
Pytest configuration and shared fixtures for testing.
"""

import json
from typing import Any, Dict, List, Optional, Union

import pytest

from health_vault.core.document_store import DocumentStore
from health_vault.core.records import UploadedFile
from health_vault.llm.base import BaseLLMClient, BackendType
from health_vault.utils.exceptions import ModelHTTPError


class FakeLLMClient(BaseLLMClient):
    """
    Scripted stand-in for the chat completions client.

    Each call to complete() pops the next scripted item: a string is
    returned, an exception is raised.
    """

    def __init__(self, responses: Optional[List[Union[str, Exception]]] = None, configured: bool = True):
        super().__init__({})
        self.responses = list(responses or [])
        self.configured = configured
        self.calls: List[Dict[str, Any]] = []

    @property
    def backend_type(self) -> BackendType:
        return BackendType.CHAT_COMPLETIONS

    @property
    def model_name(self) -> str:
        return "fake-model"

    def is_configured(self) -> bool:
        return self.configured

    async def complete(self, system_prompt, messages, temperature=None, max_tokens=None) -> str:
        self.calls.append({
            "system_prompt": system_prompt,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        if not self.responses:
            raise AssertionError("FakeLLMClient ran out of scripted responses")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class FakeTextExtractor:
    """Returns canned text per file name; an Exception value is raised."""

    def __init__(self, texts: Dict[str, Union[str, Exception]]):
        self.texts = texts
        self.seen: List[str] = []

    def extract_text(self, upload: UploadedFile) -> str:
        self.seen.append(upload.file_name)
        value = self.texts[upload.file_name]
        if isinstance(value, Exception):
            raise value
        return value


@pytest.fixture
def make_llm():
    """Factory for scripted LLM clients."""
    return FakeLLMClient


@pytest.fixture
def make_text_extractor():
    return FakeTextExtractor


@pytest.fixture
def http_error():
    """Factory for single-attempt model failures."""
    def _make(status: Optional[int]) -> ModelHTTPError:
        return ModelHTTPError(f"Model API error ({status})", status=status)
    return _make


@pytest.fixture
def sleep_recorder():
    """Injectable async sleep that records requested delays instead of waiting."""
    class _Recorder:
        def __init__(self):
            self.delays: List[float] = []

        async def __call__(self, seconds: float):
            self.delays.append(seconds)

    return _Recorder()


@pytest.fixture
def store(tmp_path):
    """Document store on a throwaway database."""
    return DocumentStore(tmp_path / "vault.db")


@pytest.fixture
def sample_lab_text():
    """One lab line with value, unit and reference range"""
    return "Hemoglobin 11.2 g/dL (13.0-17.0)"


@pytest.fixture
def hemoglobin_report() -> Dict[str, Any]:
    return {
        "document_type": "medical_test_report",
        "patient_name": None,
        "patient_age": None,
        "patient_gender": None,
        "report_date": None,
        "lab_name": None,
        "doctor_name": None,
        "test_results": [
            {
                "test_name": "Hemoglobin",
                "value": 11.2,
                "unit": "g/dL",
                "reference_range": "13.0-17.0",
                "abnormal_flag": "low",
            }
        ],
    }


@pytest.fixture
def hemoglobin_response(hemoglobin_report) -> str:
    """Well-formed model reply for sample_lab_text"""
    return json.dumps(hemoglobin_report)


@pytest.fixture
def prescription_data() -> Dict[str, Any]:
    return {
        "document_type": "prescription",
        "patient_name": "John Doe",
        "age": "45",
        "date": "2024-02-01",
        "doctor_name": "Dr. Smith",
        "hospital_name": "City Hospital",
        "medications": [
            {
                "medicine_name": "Paracetamol",
                "dosage": "500mg",
                "frequency": "twice daily",
                "duration": "5 days",
                "instructions": "after food",
            }
        ],
    }


@pytest.fixture
def sample_pdf_upload():
    return UploadedFile(file_name="report.pdf", mime_type="application/pdf", data=b"%PDF-1.4 fake")
