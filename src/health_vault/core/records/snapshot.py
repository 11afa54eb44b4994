# ============================================================================
# src/health_vault/core/records/snapshot.py
# ============================================================================
"""
Health Snapshot Types

The aggregate handed to the chat assistant. Never persisted; rebuilt from
the stored documents whenever it is needed.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from .extracted_record import Medication, TestResult


@dataclass
class SourcedMedication(Medication):
    """Medication plus the document it was cited from."""
    source_doc: str = ""
    source_date: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "source_doc": self.source_doc, "source_date": self.source_date}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SourcedMedication":
        base = Medication.from_dict(data)
        return cls(
            **base.to_dict(),
            source_doc=str(data.get("source_doc") or ""),
            source_date=str(data.get("source_date") or ""),
        )


@dataclass
class SourcedTestResult(TestResult):
    """Test result plus the document it was cited from."""
    source_doc: str = ""
    source_date: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "source_doc": self.source_doc, "source_date": self.source_date}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SourcedTestResult":
        base = TestResult.from_dict(data)
        return cls(
            test_name=base.test_name,
            value=base.value,
            unit=base.unit,
            reference_range=base.reference_range,
            abnormal_flag=base.abnormal_flag,
            source_doc=str(data.get("source_doc") or ""),
            source_date=str(data.get("source_date") or ""),
        )


@dataclass
class HealthSnapshot:
    active_conditions: List[str] = field(default_factory=list)
    current_medications: List[SourcedMedication] = field(default_factory=list)
    latest_labs: List[SourcedTestResult] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.active_conditions or self.current_medications or self.latest_labs)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "active_conditions": list(self.active_conditions),
            "current_medications": [m.to_dict() for m in self.current_medications],
            "latest_labs": [t.to_dict() for t in self.latest_labs],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HealthSnapshot":
        return cls(
            active_conditions=[c for c in data.get("active_conditions") or [] if isinstance(c, str)],
            current_medications=[
                SourcedMedication.from_dict(m)
                for m in data.get("current_medications") or [] if isinstance(m, dict)
            ],
            latest_labs=[
                SourcedTestResult.from_dict(t)
                for t in data.get("latest_labs") or [] if isinstance(t, dict)
            ],
        )
