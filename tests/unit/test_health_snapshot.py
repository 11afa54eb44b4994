# ============================================================================
# tests/unit/test_health_snapshot.py
# ============================================================================
"""
Tests for health snapshot aggregation
"""

from health_vault.core.health_snapshot import build_health_snapshot, build_snapshot
from health_vault.core.records import (
    AbnormalFlag,
    FileType,
    MedicalTestReport,
    Medication,
    MediDocument,
    Prescription,
    TestResult,
    UnknownDocument,
)


def _doc(name, extracted, document_date="2024-01-01", uploaded_at="2024-01-01T00:00:00+00:00"):
    return MediDocument(
        file_name=name,
        file_type=FileType.PDF,
        file_mime_type="application/pdf",
        document_date=document_date,
        raw_text="",
        extracted=extracted,
        uploaded_at=uploaded_at,
    )


def _rx(*names):
    return Prescription(medications=[Medication(medicine_name=n, dosage="500mg") for n in names])


def _lab(*results):
    return MedicalTestReport(test_results=list(results))


class TestDedup:

    def test_medication_names_normalised(self):
        newest = _doc("new.pdf", _rx("Paracetamol"), "2024-03-01")
        oldest = _doc("old.pdf", _rx("paracetamol "), "2023-01-01")

        snapshot = build_snapshot([newest, oldest])

        assert len(snapshot.current_medications) == 1
        med = snapshot.current_medications[0]
        assert med.medicine_name == "Paracetamol"
        assert med.source_doc == "new.pdf"
        assert med.source_date == "2024-03-01"

    def test_first_document_wins_regardless_of_dates(self):
        # Ordering is the caller's responsibility
        first = _doc("first.pdf", _rx("paracetamol "), "2020-01-01")
        second = _doc("second.pdf", _rx("Paracetamol"), "2024-01-01")

        snapshot = build_snapshot([first, second])

        assert [m.source_doc for m in snapshot.current_medications] == ["first.pdf"]

    def test_latest_lab_wins_without_merging(self):
        newest = _doc("new.pdf", _lab(TestResult(test_name="HbA1c", value=6.1, unit="%")))
        older = _doc("old.pdf", _lab(TestResult(test_name="hba1c", value=7.4, unit="%",
                                                 reference_range="4-5.6", abnormal_flag="high")))

        snapshot = build_snapshot([newest, older])

        assert len(snapshot.latest_labs) == 1
        assert snapshot.latest_labs[0].value == 6.1
        assert snapshot.latest_labs[0].reference_range is None

    def test_unnamed_entries_ignored(self):
        doc = _doc("a.pdf", _rx(None, ""))
        assert build_snapshot([doc]).current_medications == []

    def test_insertion_order(self):
        docs = [
            _doc("a.pdf", _rx("Metformin", "Aspirin")),
            _doc("b.pdf", _rx("Lisinopril", "aspirin")),
        ]
        names = [m.medicine_name for m in build_snapshot(docs).current_medications]
        assert names == ["Metformin", "Aspirin", "Lisinopril"]


class TestConditions:

    def test_high_and_low_become_conditions(self):
        doc = _doc("cbc.pdf", _lab(
            TestResult(test_name="Hemoglobin", value=11.2, reference_range="13-17", abnormal_flag="low"),
            TestResult(test_name="WBC", value=12.5, reference_range="4-11", abnormal_flag="high"),
            TestResult(test_name="Platelets", value=250, reference_range="150-400", abnormal_flag="normal"),
        ))

        snapshot = build_snapshot([doc])

        assert snapshot.active_conditions == ["Hemoglobin (low)", "WBC (high)"]

    def test_conditions_dedup_by_exact_string(self):
        first = _doc("a.pdf", _lab(TestResult(test_name="Hemoglobin", value=11, reference_range="13-17",
                                              abnormal_flag=AbnormalFlag.LOW)))
        second = _doc("b.pdf", _lab(TestResult(test_name="Hemoglobin", value=10, reference_range="13-17",
                                               abnormal_flag=AbnormalFlag.LOW)))
        third = _doc("c.pdf", _lab(TestResult(test_name="hemoglobin", value=10, reference_range="13-17",
                                              abnormal_flag=AbnormalFlag.LOW)))

        snapshot = build_snapshot([first, second, third])

        assert snapshot.active_conditions == ["Hemoglobin (low)", "hemoglobin (low)"]
        assert len(snapshot.latest_labs) == 1


class TestSnapshotProperties:

    def test_idempotent(self):
        docs = [
            _doc("a.pdf", _rx("Paracetamol")),
            _doc("b.pdf", _lab(TestResult(test_name="Glucose", value=120, reference_range="70-100",
                                          abnormal_flag="high"))),
            _doc("c.pdf", UnknownDocument()),
        ]
        assert build_snapshot(docs) == build_snapshot(docs)
        assert build_snapshot(docs).to_dict() == build_snapshot(docs).to_dict()

    def test_source_date_falls_back_to_upload_time(self):
        doc = _doc("a.pdf", _rx("Aspirin"), document_date="", uploaded_at="2024-05-05T10:00:00+00:00")
        snapshot = build_snapshot([doc])
        assert snapshot.current_medications[0].source_date == "2024-05-05T10:00:00+00:00"

    def test_empty(self):
        snapshot = build_snapshot([])
        assert snapshot.is_empty
        assert snapshot.to_dict() == {"active_conditions": [], "current_medications": [], "latest_labs": []}

    def test_from_store_uses_date_order(self, store):
        store.put(_doc("old.pdf", _rx("Aspirin"), "2023-01-01"))
        store.put(_doc("new.pdf", _rx("aspirin"), "2024-06-01"))

        snapshot = build_health_snapshot(store)

        assert snapshot.current_medications[0].source_doc == "new.pdf"
