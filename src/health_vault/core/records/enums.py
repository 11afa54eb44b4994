# ============================================================================
# src/health_vault/core/records/enums.py
# ============================================================================
"""
Record Enums
- Document type tag of an extracted record
- Abnormal flag of a test result
- Kind of uploaded file
"""

from enum import Enum


class DocumentType(str, Enum):
    MEDICAL_TEST_REPORT = "medical_test_report"
    PRESCRIPTION = "prescription"
    UNKNOWN = "unknown"


class AbnormalFlag(str, Enum):
    HIGH = "high"
    LOW = "low"
    NORMAL = "normal"


class FileType(str, Enum):
    PDF = "pdf"
    IMAGE = "image"

    @classmethod
    def from_mime_type(cls, mime_type: str) -> "FileType":
        return cls.PDF if (mime_type or "").lower() == "application/pdf" else cls.IMAGE
