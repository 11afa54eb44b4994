# ============================================================================
# src/health_vault/pipeline/batch_controller.py
# ============================================================================
"""
Batch Upload Pipeline

Drives a queue of uploaded files through text extraction, model extraction
and human review, strictly one file at a time.

Stages:
    DROPZONE ──submit──► PROCESSING ──ok──► CONFIRMING ──confirm/skip──► PROCESSING ...
                             │                                               │
                             └──empty text / error: skip, wait, next ────────┘
                                                  queue exhausted ──► CLOSED

The human decision is a suspension point: submit() and the resolve calls
(confirm / skip) return as soon as a file needs review, and processing
resumes only when the caller resolves it.

Per-file progress goes 0-50% for text extraction and 50-100% for model
extraction. current_index and saved_count only move forward, and only after
the previous file reached a terminal outcome.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Protocol

from .reconciliation import apply_reconciliation, infer_document_date
from ..core.document_store import DocumentStore
from ..core.records import ExtractedRecord, FileType, MediDocument, UploadedFile
from ..extractors.extraction_service import ExtractionService
from ..utils.exceptions import BatchClosedError, HealthVaultError, NoPendingFileError
from ..utils.logging import LogAdapter

logger = logging.getLogger(__name__)


class TextSource(Protocol):
    def extract_text(self, upload: UploadedFile) -> str: ...


class BatchStage(str, Enum):
    DROPZONE = "dropzone"
    PROCESSING = "processing"
    CONFIRMING = "confirming"
    CLOSED = "closed"


class FileOutcome(str, Enum):
    SAVED = "saved"
    SKIPPED = "skipped"        # user skip, or no text in the file
    FAILED = "failed"          # extraction error
    ABANDONED = "abandoned"    # flow closed before a decision


@dataclass
class ProcessedFile:
    """A file that made it through extraction and awaits review."""
    upload: UploadedFile
    raw_text: str
    extracted: ExtractedRecord

    @property
    def file_name(self) -> str:
        return self.upload.file_name

    @property
    def file_type(self) -> FileType:
        return self.upload.file_type

    @property
    def suggested_date(self) -> str:
        return infer_document_date(self.extracted)


@dataclass
class BatchFileResult:
    index: int
    file_name: str
    outcome: FileOutcome
    message: Optional[str] = None
    document_id: Optional[str] = None


@dataclass
class BatchProgress:
    """Point-in-time view of the batch, handed to progress listeners."""
    stage: BatchStage
    current_index: int
    total: int
    saved_count: int
    progress: int = 0
    status_text: str = ""
    error: str = ""
    results: List[BatchFileResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage.value,
            "current_index": self.current_index,
            "total": self.total,
            "saved_count": self.saved_count,
            "progress": self.progress,
            "status_text": self.status_text,
            "error": self.error,
            "results": [
                {
                    "index": r.index,
                    "file_name": r.file_name,
                    "outcome": r.outcome.value,
                    "message": r.message,
                    "document_id": r.document_id,
                }
                for r in self.results
            ],
        }


class BatchPipelineController:
    """
    One upload flow. Create a new controller per flow; a closed controller
    accepts no more files.
    """

    def __init__(
        self,
        store: DocumentStore,
        text_extractor: TextSource,
        extraction_service: ExtractionService,
        config: Optional[Dict[str, Any]] = None,
        on_progress: Optional[Callable[[BatchProgress], None]] = None,
        on_documents_changed: Optional[Callable[[], None]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        config = config or {}
        self.store = store
        self.text_extractor = text_extractor
        self.extraction_service = extraction_service
        self.skip_delay = float(config.get('skip_delay', 1.5))
        self.on_progress = on_progress
        self.on_documents_changed = on_documents_changed
        self._sleep = sleep

        self.stage = BatchStage.DROPZONE
        self.current_index = 0
        self.saved_count = 0
        self.progress_percent = 0
        self.status_text = ""
        self.error = ""
        self.results: List[BatchFileResult] = []

        self._queue: List[UploadedFile] = []
        self._pending: Optional[ProcessedFile] = None
        self._notified = False
        # One driver at a time; later submissions wait their turn
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def total(self) -> int:
        return len(self._queue)

    @property
    def pending(self) -> Optional[ProcessedFile]:
        """The file awaiting review, if any."""
        return self._pending

    @property
    def progress(self) -> BatchProgress:
        return BatchProgress(
            stage=self.stage,
            current_index=self.current_index,
            total=self.total,
            saved_count=self.saved_count,
            progress=self.progress_percent,
            status_text=self.status_text,
            error=self.error,
            results=list(self.results),
        )

    def _notify_progress(self):
        if self.on_progress:
            try:
                self.on_progress(self.progress)
            except Exception as e:
                logger.warning(f"Progress callback error: {e}")

    def _file_log(self, file_name: str, **extra) -> LogAdapter:
        return LogAdapter(logger, {"file_name": file_name, "batch_index": self.current_index, **extra})

    def _report(self, percent: int, status_text: str):
        self.progress_percent = percent
        self.status_text = status_text
        self._notify_progress()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def submit(self, files: Iterable[UploadedFile]) -> BatchProgress:
        """
        Queue files and process until one needs review or the queue runs out.

        Raises:
            BatchClosedError: the flow is closed
        """
        files = list(files)
        if self.stage == BatchStage.CLOSED:
            raise BatchClosedError("Upload flow is closed")
        if not files:
            return self.progress

        self._queue.extend(files)
        logger.info(f"Queued {len(files)} file(s), batch total {self.total}")

        async with self._lock:
            await self._drive()
        return self.progress

    async def confirm(self, record: ExtractedRecord, document_date: str) -> BatchProgress:
        """
        Persist the reviewed record of the pending file and move on.

        Raises:
            NoPendingFileError: no file is awaiting review
            ValidationError: document_date is blank; the file stays pending
        """
        async with self._lock:
            pending = self._require_pending()
            reviewed = apply_reconciliation(record, document_date)

            doc = MediDocument(
                file_name=pending.file_name,
                file_type=pending.file_type,
                file_mime_type=pending.upload.mime_type,
                document_date=document_date.strip(),
                raw_text=pending.raw_text,
                extracted=reviewed,
                file_data=pending.upload.data,
            )
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self.store.put, doc)

            if self.stage == BatchStage.CLOSED:
                self._record_late_save(doc)
                return self.progress

            self._file_log(doc.file_name, document_id=doc.id, status="saved").info(
                f"Saved {doc.file_name} as {reviewed.document_type.value} "
                f"({self.saved_count + 1} saved)"
            )
            self.saved_count += 1
            self._resolve(FileOutcome.SAVED, document_id=doc.id)
            await self._drive()
        return self.progress

    async def skip(self) -> BatchProgress:
        """
        Discard the pending file and move on.

        Raises:
            NoPendingFileError: no file is awaiting review
        """
        async with self._lock:
            pending = self._require_pending()
            logger.info(f"Skipped {pending.file_name} at review")
            self._resolve(FileOutcome.SKIPPED, message="Skipped by user")
            await self._drive()
        return self.progress

    def close(self) -> BatchProgress:
        """
        Close the flow. Files not yet decided are abandoned; saved
        documents stay saved. Work already in flight finishes without
        touching the abandoned files, except a confirm that was mid-write,
        which still counts as saved.
        """
        if self.stage == BatchStage.CLOSED:
            return self.progress

        first_open = self.current_index
        for index in range(first_open, self.total):
            self.results.append(BatchFileResult(
                index=index,
                file_name=self._queue[index].file_name,
                outcome=FileOutcome.ABANDONED,
            ))
        if first_open < self.total:
            logger.info(f"Upload flow closed, {self.total - first_open} file(s) abandoned")

        self._pending = None
        self._close()
        return self.progress

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------
    def _require_pending(self) -> ProcessedFile:
        if self.stage != BatchStage.CONFIRMING or self._pending is None:
            raise NoPendingFileError("No file is awaiting review")
        return self._pending

    def _resolve(self, outcome: FileOutcome, message: Optional[str] = None,
                 document_id: Optional[str] = None):
        if self.stage == BatchStage.CLOSED:
            raise BatchClosedError("Upload flow is closed")
        self.results.append(BatchFileResult(
            index=self.current_index,
            file_name=self._queue[self.current_index].file_name,
            outcome=outcome,
            message=message,
            document_id=document_id,
        ))
        self._pending = None
        self.current_index += 1
        self.stage = BatchStage.PROCESSING

    def _record_late_save(self, doc: MediDocument):
        """
        The flow was closed while doc was being written. The file was
        marked abandoned by close(); it is stored, so count it as saved.
        """
        index = self.current_index
        self.results = [
            BatchFileResult(index=index, file_name=r.file_name,
                            outcome=FileOutcome.SAVED, document_id=doc.id)
            if r.index == index and r.outcome == FileOutcome.ABANDONED else r
            for r in self.results
        ]
        self.saved_count += 1
        self.current_index += 1
        self._file_log(doc.file_name, document_id=doc.id, status="saved").info(
            f"Saved {doc.file_name} after the upload flow was closed"
        )
        self._notify_progress()
        self._signal_documents_changed()

    def _close(self):
        self.stage = BatchStage.CLOSED
        self._notify_progress()
        self._signal_documents_changed()

    def _signal_documents_changed(self):
        if self.saved_count > 0 and not self._notified:
            self._notified = True
            if self.on_documents_changed:
                try:
                    self.on_documents_changed()
                except Exception as e:
                    logger.warning(f"Documents-changed callback error: {e}")

    async def _drive(self):
        """Process queued files until one needs review or the queue is empty."""
        while self.stage not in (BatchStage.CONFIRMING, BatchStage.CLOSED):
            if self.current_index >= self.total:
                logger.info(
                    f"Batch finished: {self.saved_count} of {self.total} file(s) saved"
                )
                self._close()
                return

            self.stage = BatchStage.PROCESSING
            self.error = ""
            upload = self._queue[self.current_index]

            try:
                processed = await self._process_file(upload)
            except HealthVaultError as e:
                message = str(e) or f"Failed to process {upload.file_name}."
                await self._skip_after_failure(upload, FileOutcome.FAILED, message)
                continue
            except Exception as e:
                logger.exception(f"Unexpected error processing {upload.file_name}")
                message = f"Failed to process {upload.file_name}: {e}"
                await self._skip_after_failure(upload, FileOutcome.FAILED, message)
                continue

            if self.stage == BatchStage.CLOSED:
                return

            if processed is None:
                message = f"No text could be extracted from {upload.file_name}. Skipping..."
                await self._skip_after_failure(upload, FileOutcome.SKIPPED, message)
                continue

            self._pending = processed
            self.stage = BatchStage.CONFIRMING
            self._notify_progress()

    async def _skip_after_failure(self, upload: UploadedFile, outcome: FileOutcome, message: str):
        if self.stage == BatchStage.CLOSED:
            return
        self._file_log(upload.file_name, status=outcome.value).warning(
            f"File {self.current_index + 1}/{self.total} ({upload.file_name}): {message}"
        )
        self.error = message
        self._notify_progress()

        # Leave the message up long enough to read
        await self._sleep(self.skip_delay)

        if self.stage == BatchStage.CLOSED:
            return
        self.results.append(BatchFileResult(
            index=self.current_index,
            file_name=upload.file_name,
            outcome=outcome,
            message=message,
        ))
        self.current_index += 1

    async def _process_file(self, upload: UploadedFile) -> Optional[ProcessedFile]:
        """Text → record for one file. None when the file has no text."""
        if upload.file_type == FileType.PDF:
            self._report(20, f"Extracting text from {upload.file_name}...")
        else:
            self._report(20, f"Running OCR on {upload.file_name}...")

        loop = asyncio.get_running_loop()
        text = await loop.run_in_executor(None, self.text_extractor.extract_text, upload)
        if self.stage == BatchStage.CLOSED:
            return None
        self._report(50, f"Extracted text from {upload.file_name}")

        if not (text or "").strip():
            return None

        self._report(60, f"Analyzing {upload.file_name} with AI...")
        extracted = await self.extraction_service.extract_document(text)
        if self.stage == BatchStage.CLOSED:
            return None
        self._report(100, f"Review {upload.file_name}")

        return ProcessedFile(upload=upload, raw_text=text, extracted=extracted)
