# ============================================================================
# src/health_vault/core/health_snapshot.py
# ============================================================================
"""
Health Snapshot Aggregation

Folds the stored documents into one recency-biased view for the chat
assistant:
- current_medications: one entry per medicine name
- latest_labs: one entry per test name
- active_conditions: "<test> (high|low)" labels for flagged results

Names are compared lowercased and trimmed. Documents must arrive newest
first; the first occurrence of a name wins and later ones are dropped, so
the most recent document's values are always the ones cited. Nothing is
merged field by field.
"""

from typing import Dict, Iterable, List, TYPE_CHECKING
import logging

from .records import (
    HealthSnapshot,
    MedicalTestReport,
    MediDocument,
    Prescription,
    SourcedMedication,
    SourcedTestResult,
)

if TYPE_CHECKING:
    from .document_store import DocumentStore

logger = logging.getLogger(__name__)


def normalize_name(name: str) -> str:
    return name.strip().lower()


def build_snapshot(documents: Iterable[MediDocument]) -> HealthSnapshot:
    """
    Build the snapshot from documents ordered newest first.

    Pure: the same document sequence always yields an equal snapshot.
    """
    medications: Dict[str, SourcedMedication] = {}
    labs: Dict[str, SourcedTestResult] = {}
    conditions: List[str] = []

    for doc in documents:
        extracted = doc.extracted
        source_doc = doc.file_name
        source_date = doc.source_date

        if isinstance(extracted, Prescription):
            for med in extracted.medications:
                if not med.medicine_name:
                    continue
                key = normalize_name(med.medicine_name)
                if key not in medications:
                    medications[key] = SourcedMedication(
                        **med.to_dict(),
                        source_doc=source_doc,
                        source_date=source_date,
                    )

        elif isinstance(extracted, MedicalTestReport):
            for test in extracted.test_results:
                if not test.test_name:
                    continue
                key = normalize_name(test.test_name)
                if key not in labs:
                    labs[key] = SourcedTestResult(
                        test_name=test.test_name,
                        value=test.value,
                        unit=test.unit,
                        reference_range=test.reference_range,
                        abnormal_flag=test.abnormal_flag,
                        source_doc=source_doc,
                        source_date=source_date,
                    )
                if test.is_abnormal:
                    label = f"{test.test_name} ({test.abnormal_flag.value})"
                    if label not in conditions:
                        conditions.append(label)

    logger.debug(
        f"Snapshot built: {len(medications)} medications, {len(labs)} labs, "
        f"{len(conditions)} conditions"
    )

    return HealthSnapshot(
        active_conditions=conditions,
        current_medications=list(medications.values()),
        latest_labs=list(labs.values()),
    )


def build_health_snapshot(store: "DocumentStore") -> HealthSnapshot:
    """Snapshot of everything currently in the store."""
    return build_snapshot(store.get_all())
