# src/health_vault/core/records/__init__.py

from .enums import DocumentType, AbnormalFlag, FileType
from .extracted_record import (
    TestResult,
    Medication,
    MedicalTestReport,
    Prescription,
    UnknownDocument,
    ExtractedRecord,
    record_from_dict,
)
from .document import UploadedFile, MediDocument, Profile, ChatMessage, Conversation
from .snapshot import SourcedMedication, SourcedTestResult, HealthSnapshot

__all__ = [
    "DocumentType",
    "AbnormalFlag",
    "FileType",
    "TestResult",
    "Medication",
    "MedicalTestReport",
    "Prescription",
    "UnknownDocument",
    "ExtractedRecord",
    "record_from_dict",
    "UploadedFile",
    "MediDocument",
    "Profile",
    "ChatMessage",
    "Conversation",
    "SourcedMedication",
    "SourcedTestResult",
    "HealthSnapshot",
]
