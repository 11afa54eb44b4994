# ============================================================================
# tests/unit/test_text_extractor.py
# ============================================================================
"""
Tests for the upload → text cascade. OCR is stubbed out, so these run
without a Tesseract install.
"""

import io

import pytest
import pytesseract
from PIL import Image

from health_vault.core.records import UploadedFile
from health_vault.extractors.text_extractor import TextExtractor
from health_vault.utils.exceptions import TextExtractionError


def png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (20, 10), "white").save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def fake_ocr(monkeypatch):
    calls = []

    def _image_to_string(image, lang="eng"):
        calls.append((image.size, lang))
        return "  Hemoglobin 11.2 g/dL  \n"

    monkeypatch.setattr(pytesseract, "image_to_string", _image_to_string)
    return calls


class TestImages:

    def test_image_goes_through_ocr(self, fake_ocr):
        upload = UploadedFile("scan.png", "image/png", png_bytes())

        result = TextExtractor().extract_text_detailed(upload)

        assert result.text == "Hemoglobin 11.2 g/dL"
        assert result.method == "ocr_tesseract"
        assert fake_ocr == [((20, 10), "eng")]

    def test_image_with_pdf_mime_type(self, fake_ocr):
        upload = UploadedFile("scan.pdf", "application/pdf", png_bytes())

        assert TextExtractor().extract_text(upload) == "Hemoglobin 11.2 g/dL"

    def test_unreadable_image(self, fake_ocr):
        upload = UploadedFile("broken.jpg", "image/jpeg", b"not an image")

        with pytest.raises(TextExtractionError):
            TextExtractor().extract_text(upload)
        assert fake_ocr == []

    def test_missing_tesseract(self, monkeypatch):
        def _missing(image, lang="eng"):
            raise pytesseract.TesseractNotFoundError()

        monkeypatch.setattr(pytesseract, "image_to_string", _missing)

        with pytest.raises(TextExtractionError, match="Tesseract"):
            TextExtractor().extract_text(UploadedFile("a.png", "image/png", png_bytes()))

    @pytest.mark.parametrize("header,expected", [
        (b"\x89PNG\r\n\x1a\n", True),
        (b"\xff\xd8\xff\xe0", True),
        (b"RIFF\x00\x00\x00\x00WEBP", True),
        (b"%PDF-1.4", False),
        (b"", False),
    ])
    def test_magic_bytes(self, header, expected):
        assert TextExtractor._looks_like_image(header) is expected


class TestPdfs:

    def test_text_layer_pages_joined(self, monkeypatch):
        extractor = TextExtractor()
        monkeypatch.setattr(extractor, "_extract_with_pypdfium2", lambda data: ["page one", "page two"])

        result = extractor.extract_text_detailed(UploadedFile("r.pdf", "application/pdf", b"%PDF-1.4"))

        assert result.text == "page one\n\npage two"
        assert result.method == "pypdfium2"
        assert result.page_count == 2

    def test_falls_back_to_pypdf2(self, monkeypatch):
        extractor = TextExtractor()

        def _broken(data):
            raise RuntimeError("cannot open")

        monkeypatch.setattr(extractor, "_extract_with_pypdfium2", _broken)
        monkeypatch.setattr(extractor, "_extract_with_pypdf2", lambda data: ["fallback text"])

        result = extractor.extract_text_detailed(UploadedFile("r.pdf", "application/pdf", b"%PDF-1.4"))

        assert result.text == "fallback text"
        assert result.method == "pypdf2"
        assert result.warnings

    def test_scanned_pdf_is_ocred(self, monkeypatch, fake_ocr):
        extractor = TextExtractor()
        page = Image.new("RGB", (40, 40), "white")
        monkeypatch.setattr(extractor, "_extract_with_pypdfium2", lambda data: ["", ""])
        monkeypatch.setattr(extractor, "_pdf_to_images", lambda data: [(0, page), (1, page)])

        result = extractor.extract_text_detailed(UploadedFile("scan.pdf", "application/pdf", b"%PDF-1.4"))

        assert result.method == "ocr_tesseract"
        assert result.text == "Hemoglobin 11.2 g/dL\n\nHemoglobin 11.2 g/dL"
        assert len(fake_ocr) == 2

    def test_scanned_pdf_without_ocr(self, monkeypatch, fake_ocr):
        extractor = TextExtractor(ocr_scanned_pdfs=False)
        monkeypatch.setattr(extractor, "_extract_with_pypdfium2", lambda data: [""])

        assert extractor.extract_text(UploadedFile("scan.pdf", "application/pdf", b"%PDF-1.4")) == ""
        assert fake_ocr == []

    def test_garbage_pdf(self):
        upload = UploadedFile("bad.pdf", "application/pdf", b"this is not a pdf at all")

        with pytest.raises(TextExtractionError, match="bad.pdf"):
            TextExtractor().extract_text(upload)
