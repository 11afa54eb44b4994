# src/health_vault/pipeline/__init__.py
"""
Upload pipeline - batch processing and human review
"""

from .batch_controller import (
    BatchPipelineController,
    BatchProgress,
    BatchStage,
    BatchFileResult,
    FileOutcome,
    ProcessedFile,
)
from .reconciliation import (
    apply_reconciliation,
    infer_document_date,
    update_fields,
    add_test_result,
    update_test_result,
    remove_test_result,
    add_medication,
    update_medication,
    remove_medication,
)

__all__ = [
    "BatchPipelineController",
    "BatchProgress",
    "BatchStage",
    "BatchFileResult",
    "FileOutcome",
    "ProcessedFile",
    "apply_reconciliation",
    "infer_document_date",
    "update_fields",
    "add_test_result",
    "update_test_result",
    "remove_test_result",
    "add_medication",
    "update_medication",
    "remove_medication",
]
