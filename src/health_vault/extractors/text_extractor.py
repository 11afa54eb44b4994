# src/health_vault/extractors/text_extractor.py
"""
Text extraction from uploaded PDFs and images.

Extraction cascade:
1. pypdfium2: PDF text layer, best Unicode handling
2. PyPDF2: fallback for PDFs pypdfium2 cannot open
3. Tesseract OCR: image uploads, and PDFs whose text layer is empty

Pages are joined with blank lines. An upload with no readable text yields
"", which the upload flow treats as a skip rather than an error.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple
import io
import logging

import pypdfium2
import PyPDF2
import pytesseract
from PIL import Image

from ..core.records import FileType, UploadedFile
from ..utils.exceptions import TextExtractionError

# Image uploads the flow accepts
IMAGE_EXTENSIONS = {'.png', '.jpg', '.jpeg', '.webp', '.bmp', '.tiff', '.tif', '.gif'}


@dataclass
class TextExtractionResult:
    """Extracted text with the method that produced it."""
    text: str
    method: str = "unknown"
    page_count: int = 0
    warnings: List[str] = field(default_factory=list)


class TextExtractor:
    """
    Upload → raw text.

    Blocking: callers on the event loop run it in an executor.
    """

    # Rendering resolution for OCR of scanned PDF pages
    DEFAULT_DPI = 200

    def __init__(self, ocr_scanned_pdfs: bool = True, language: str = "eng"):
        self.logger = logging.getLogger(__name__)
        self.ocr_scanned_pdfs = ocr_scanned_pdfs
        self.language = language

    def extract_text(self, upload: UploadedFile) -> str:
        """
        Extract text from an upload.

        Raises:
            TextExtractionError: the file could not be read at all
        """
        return self.extract_text_detailed(upload).text

    def extract_text_detailed(self, upload: UploadedFile) -> TextExtractionResult:
        self.logger.debug(f"Extracting text from {upload.file_name}")

        if upload.file_type == FileType.IMAGE or self._looks_like_image(upload.data):
            self.logger.info(f"Running OCR on {upload.file_name}")
            return self._extract_from_image(upload.data)

        return self._extract_from_pdf(upload)

    def _extract_from_pdf(self, upload: UploadedFile) -> TextExtractionResult:
        result = TextExtractionResult(text="")

        try:
            pages = self._extract_with_pypdfium2(upload.data)
            result.method = "pypdfium2"
        except Exception as e:
            self.logger.warning(f"pypdfium2 failed, trying PyPDF2: {e}")
            result.warnings.append(f"pypdfium2 failed: {e}")
            try:
                pages = self._extract_with_pypdf2(upload.data)
                result.method = "pypdf2"
            except Exception as e2:
                self.logger.error(f"PyPDF2 also failed on {upload.file_name}: {e2}")
                raise TextExtractionError(
                    f"Could not read {upload.file_name}. pypdfium2: {e}, PyPDF2: {e2}"
                ) from e2

        result.page_count = len(pages)
        result.text = "\n\n".join(pages)
        self.logger.debug(f"{result.method} extracted {len(result.text)} chars from {len(pages)} pages")

        if not result.text.strip() and self.ocr_scanned_pdfs and result.method == "pypdfium2":
            self.logger.info(f"No text layer in {upload.file_name}, running OCR on rendered pages")
            ocr_pages = [self._ocr_image(image) for _, image in self._pdf_to_images(upload.data)]
            result.text = "\n\n".join(ocr_pages)
            result.method = "ocr_tesseract"

        return result

    def _extract_with_pypdfium2(self, data: bytes) -> List[str]:
        pdf = pypdfium2.PdfDocument(data)
        pages = []
        try:
            for page_num in range(len(pdf)):
                page = pdf[page_num]
                textpage = page.get_textpage()
                text = textpage.get_text_range() or ""
                pages.append(text.strip())
        finally:
            pdf.close()
        return pages

    def _extract_with_pypdf2(self, data: bytes) -> List[str]:
        reader = PyPDF2.PdfReader(io.BytesIO(data))

        if reader.is_encrypted:
            # Only PDFs with an empty user password can be read
            if not reader.decrypt(""):
                raise TextExtractionError("PDF is encrypted and requires a password")

        return [(page.extract_text() or "").strip() for page in reader.pages]

    def _pdf_to_images(self, data: bytes) -> List[Tuple[int, Image.Image]]:
        """Render every page to a PIL image."""
        scale = self.DEFAULT_DPI / 72.0  # PDF points to pixels
        images = []
        pdf = pypdfium2.PdfDocument(data)
        try:
            for page_num in range(len(pdf)):
                bitmap = pdf[page_num].render(scale=scale)
                images.append((page_num, bitmap.to_pil()))
        finally:
            pdf.close()
        return images

    def _extract_from_image(self, data: bytes) -> TextExtractionResult:
        try:
            image = Image.open(io.BytesIO(data))
        except Exception as e:
            raise TextExtractionError(f"Unreadable image: {e}") from e

        text = self._ocr_image(image)
        self.logger.info(f"OCR extracted {len(text)} chars from image")
        return TextExtractionResult(text=text, method="ocr_tesseract", page_count=1)

    def _ocr_image(self, image: Image.Image) -> str:
        if image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
        try:
            return pytesseract.image_to_string(image, lang=self.language).strip()
        except pytesseract.TesseractNotFoundError as e:
            raise TextExtractionError(
                "Tesseract is not installed. Install it with: brew install tesseract"
            ) from e

    @staticmethod
    def _looks_like_image(data: Optional[bytes]) -> bool:
        """Check magic bytes, for images uploaded with a PDF mime type."""
        header = (data or b"")[:16]
        return (
            header.startswith(b'\x89PNG')
            or header.startswith(b'\xff\xd8\xff')
            or header.startswith(b'GIF87a')
            or header.startswith(b'GIF89a')
            or header.startswith(b'II*\x00')
            or header.startswith(b'MM\x00*')
            or header.startswith(b'BM')
            or (header.startswith(b'RIFF') and header[8:12] == b'WEBP')
        )
