# ============================================================================
# src/health_vault/pipeline/reconciliation.py
# ============================================================================
"""
Reconciliation

The human review step between model output and storage. The reviewer may
edit any field, add or remove test results and medications, and must give
a document date. apply_reconciliation() is the only gate a record passes
before it is persisted.

Every helper returns a new record; the record under review is never
mutated in place.
"""

from dataclasses import fields, replace
from typing import Any, Optional
import copy
import logging

from ..core.records import (
    ExtractedRecord,
    MedicalTestReport,
    Medication,
    Prescription,
    TestResult,
    UnknownDocument,
)
from ..utils.exceptions import ValidationError

logger = logging.getLogger(__name__)


def infer_document_date(record: ExtractedRecord) -> str:
    """Initial date proposed to the reviewer; "" when the record has none."""
    return (record.record_date or "").strip()


def apply_reconciliation(record: ExtractedRecord, document_date: Optional[str]) -> ExtractedRecord:
    """
    Validate a reviewed record and sync its own date field.

    Raises:
        ValidationError: document_date is missing or blank
    """
    if document_date is None or not str(document_date).strip():
        raise ValidationError("Date is required before saving")

    document_date = str(document_date).strip()
    reviewed = copy.deepcopy(record)

    if isinstance(reviewed, MedicalTestReport):
        reviewed.report_date = document_date
    elif isinstance(reviewed, Prescription):
        reviewed.date = document_date

    return reviewed


def _empty_to_none(value: Any) -> Any:
    if isinstance(value, str) and value == "":
        return None
    return value


def update_fields(record: ExtractedRecord, **changes) -> ExtractedRecord:
    """
    Copy of record with header fields replaced. Empty strings become None.

    Raises:
        ValidationError: a field does not exist on this record type
    """
    if isinstance(record, UnknownDocument):
        if changes:
            raise ValidationError("Unknown documents have no editable fields")
        return UnknownDocument()

    list_field = "test_results" if isinstance(record, MedicalTestReport) else "medications"
    editable = {f.name for f in fields(record)} - {list_field}
    for name in changes:
        if name not in editable:
            raise ValidationError(f"Cannot edit field {name!r} on {record.document_type.value}")

    return replace(copy.deepcopy(record), **{k: _empty_to_none(v) for k, v in changes.items()})


def add_test_result(
    record: MedicalTestReport,
    result: Optional[TestResult] = None,
) -> MedicalTestReport:
    """Append a test result (a blank row by default)."""
    reviewed = copy.deepcopy(record)
    reviewed.test_results.append(copy.deepcopy(result) if result else TestResult())
    return reviewed


def update_test_result(record: MedicalTestReport, index: int, **changes) -> MedicalTestReport:
    """Replace fields of one test result. Empty strings become None."""
    reviewed = copy.deepcopy(record)
    current = reviewed.test_results[index]
    reviewed.test_results[index] = replace(
        current, **{k: _empty_to_none(v) for k, v in changes.items()}
    )
    return reviewed


def remove_test_result(record: MedicalTestReport, index: int) -> MedicalTestReport:
    reviewed = copy.deepcopy(record)
    del reviewed.test_results[index]
    return reviewed


def add_medication(
    record: Prescription,
    medication: Optional[Medication] = None,
) -> Prescription:
    """Append a medication (a blank row by default)."""
    reviewed = copy.deepcopy(record)
    reviewed.medications.append(copy.deepcopy(medication) if medication else Medication())
    return reviewed


def update_medication(record: Prescription, index: int, **changes) -> Prescription:
    """Replace fields of one medication. Empty strings become None."""
    reviewed = copy.deepcopy(record)
    current = reviewed.medications[index]
    reviewed.medications[index] = replace(
        current, **{k: _empty_to_none(v) for k, v in changes.items()}
    )
    return reviewed


def remove_medication(record: Prescription, index: int) -> Prescription:
    reviewed = copy.deepcopy(record)
    del reviewed.medications[index]
    return reviewed
