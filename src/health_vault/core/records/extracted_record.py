# ============================================================================
# src/health_vault/core/records/extracted_record.py
# ============================================================================
"""
Extracted Record Types

The structured result of one document, as a tagged union:
- MedicalTestReport: lab report header + ordered test results
- Prescription: prescription header + ordered medications
- UnknownDocument: nothing could be classified

from_dict() on every type is lenient: the model is told to follow the
schema but is not trusted to. Missing keys become None, lists that are not
lists become [], list entries that are not objects are dropped.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional, Union
import math

from .enums import AbnormalFlag, DocumentType


def _opt_str(value: Any) -> Optional[str]:
    """Coerce a scalar to str; anything structured or boolean becomes None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return None


def _opt_value(value: Any) -> Union[int, float, str, None]:
    """Test values keep their JSON type (number or string)."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        return None
    if isinstance(value, (int, float, str)):
        return value
    return None


def _opt_flag(value: Any) -> Optional[AbnormalFlag]:
    if isinstance(value, AbnormalFlag):
        return value
    if not isinstance(value, str):
        return None
    try:
        return AbnormalFlag(value.strip().lower())
    except ValueError:
        return None


def _dict_entries(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


@dataclass
class TestResult:
    """
    One row of a lab report.

    abnormal_flag comes from the model and is only kept when both the value
    and the reference range are present.
    """
    __test__ = False  # not a pytest test class

    test_name: Optional[str] = None
    value: Union[int, float, str, None] = None
    unit: Optional[str] = None
    reference_range: Optional[str] = None
    abnormal_flag: Optional[AbnormalFlag] = None

    def __post_init__(self):
        self.abnormal_flag = _opt_flag(self.abnormal_flag)
        if _is_blank(self.value) or _is_blank(self.reference_range):
            self.abnormal_flag = None

    @property
    def is_abnormal(self) -> bool:
        return self.abnormal_flag in (AbnormalFlag.HIGH, AbnormalFlag.LOW)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "test_name": self.test_name,
            "value": self.value,
            "unit": self.unit,
            "reference_range": self.reference_range,
            "abnormal_flag": self.abnormal_flag.value if self.abnormal_flag else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TestResult":
        return cls(
            test_name=_opt_str(data.get("test_name")),
            value=_opt_value(data.get("value")),
            unit=_opt_str(data.get("unit")),
            reference_range=_opt_str(data.get("reference_range")),
            abnormal_flag=_opt_flag(data.get("abnormal_flag")),
        )


@dataclass
class Medication:
    medicine_name: Optional[str] = None
    dosage: Optional[str] = None
    frequency: Optional[str] = None
    duration: Optional[str] = None
    instructions: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "medicine_name": self.medicine_name,
            "dosage": self.dosage,
            "frequency": self.frequency,
            "duration": self.duration,
            "instructions": self.instructions,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Medication":
        return cls(
            medicine_name=_opt_str(data.get("medicine_name")),
            dosage=_opt_str(data.get("dosage")),
            frequency=_opt_str(data.get("frequency")),
            duration=_opt_str(data.get("duration")),
            instructions=_opt_str(data.get("instructions")),
        )


@dataclass
class MedicalTestReport:
    document_type: ClassVar[DocumentType] = DocumentType.MEDICAL_TEST_REPORT

    patient_name: Optional[str] = None
    patient_age: Optional[str] = None
    patient_gender: Optional[str] = None
    report_date: Optional[str] = None
    lab_name: Optional[str] = None
    doctor_name: Optional[str] = None
    test_results: List[TestResult] = field(default_factory=list)

    @property
    def record_date(self) -> Optional[str]:
        return self.report_date

    def to_dict(self) -> Dict[str, Any]:
        return {
            "document_type": self.document_type.value,
            "patient_name": self.patient_name,
            "patient_age": self.patient_age,
            "patient_gender": self.patient_gender,
            "report_date": self.report_date,
            "lab_name": self.lab_name,
            "doctor_name": self.doctor_name,
            "test_results": [t.to_dict() for t in self.test_results],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MedicalTestReport":
        return cls(
            patient_name=_opt_str(data.get("patient_name")),
            patient_age=_opt_str(data.get("patient_age")),
            patient_gender=_opt_str(data.get("patient_gender")),
            report_date=_opt_str(data.get("report_date")),
            lab_name=_opt_str(data.get("lab_name")),
            doctor_name=_opt_str(data.get("doctor_name")),
            test_results=[TestResult.from_dict(t) for t in _dict_entries(data.get("test_results"))],
        )


@dataclass
class Prescription:
    document_type: ClassVar[DocumentType] = DocumentType.PRESCRIPTION

    patient_name: Optional[str] = None
    age: Optional[str] = None
    date: Optional[str] = None
    doctor_name: Optional[str] = None
    hospital_name: Optional[str] = None
    medications: List[Medication] = field(default_factory=list)

    @property
    def record_date(self) -> Optional[str]:
        return self.date

    def to_dict(self) -> Dict[str, Any]:
        return {
            "document_type": self.document_type.value,
            "patient_name": self.patient_name,
            "age": self.age,
            "date": self.date,
            "doctor_name": self.doctor_name,
            "hospital_name": self.hospital_name,
            "medications": [m.to_dict() for m in self.medications],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Prescription":
        return cls(
            patient_name=_opt_str(data.get("patient_name")),
            age=_opt_str(data.get("age")),
            date=_opt_str(data.get("date")),
            doctor_name=_opt_str(data.get("doctor_name")),
            hospital_name=_opt_str(data.get("hospital_name")),
            medications=[Medication.from_dict(m) for m in _dict_entries(data.get("medications"))],
        )


@dataclass
class UnknownDocument:
    document_type: ClassVar[DocumentType] = DocumentType.UNKNOWN

    @property
    def record_date(self) -> Optional[str]:
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {"document_type": self.document_type.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UnknownDocument":
        return cls()


ExtractedRecord = Union[MedicalTestReport, Prescription, UnknownDocument]

RECORD_TYPES = {
    DocumentType.MEDICAL_TEST_REPORT: MedicalTestReport,
    DocumentType.PRESCRIPTION: Prescription,
    DocumentType.UNKNOWN: UnknownDocument,
}


def record_from_dict(data: Any) -> ExtractedRecord:
    """
    Build the record variant named by data["document_type"].

    Anything that is not an object, or carries no recognised tag, is an
    UnknownDocument.
    """
    if not isinstance(data, dict):
        return UnknownDocument()

    tag = data.get("document_type")
    try:
        document_type = DocumentType(tag) if isinstance(tag, str) else DocumentType.UNKNOWN
    except ValueError:
        document_type = DocumentType.UNKNOWN

    return RECORD_TYPES[document_type].from_dict(data)
