"""
Unit tests for text extraction
"""
import pytest
import pytesseract
from docx import Document as DocxDocument
from langchain_core.documents import Document
from PIL import Image

from mockify.modules.study_rag import extraction
from mockify.modules.study_rag.extraction import (
    DOCX_MIME,
    ExtractionError,
    clean_extracted_text,
    compute_file_hash,
    extract_text,
    preprocess_image,
    resolve_ocr_language,
)

LONG_PARAGRAPH = (
    "Newton's laws of motion describe the relationship between a body and the forces acting on it. "
    "The first law states that an object remains at rest or in uniform motion unless acted upon by a force. "
    "The second law relates force, mass and acceleration."
)


class TestCleanExtractedText:
    """Test cases for text cleaning"""

    def test_removes_control_characters(self):
        """NUL, control chars, BOM and line separators are dropped"""
        raw = "\ufeffHello\x00 wor\x07ld\u2028 again\u2029"
        assert clean_extracted_text(raw) == "Hello world again"

    def test_collapses_whitespace(self):
        """Line endings, tabs and runs of spaces collapse to one space"""
        raw = "  first line\r\nsecond\tline\r\n\n\nthird   line  "
        assert clean_extracted_text(raw) == "first line second line third line"

    def test_empty_input(self):
        assert clean_extracted_text("") == ""
        assert clean_extracted_text(None) == ""


class TestExtractText:
    """Test cases for the extraction dispatcher"""

    def test_plain_text(self, tmp_path):
        """Plain text is decoded and cleaned with full confidence"""
        path = tmp_path / "notes.txt"
        path.write_text(LONG_PARAGRAPH + "\n\n" + LONG_PARAGRAPH, encoding="utf-8")

        result = extract_text(str(path), "text/plain")

        assert result.method == "text"
        assert result.confidence == 100.0
        assert result.text.startswith("Newton's laws of motion")
        assert "\n" not in result.text

    def test_docx_paragraphs_and_tables(self, tmp_path):
        """Paragraphs and table rows both end up in the text"""
        path = tmp_path / "notes.docx"
        document = DocxDocument()
        document.add_paragraph(LONG_PARAGRAPH)
        table = document.add_table(rows=1, cols=2)
        table.rows[0].cells[0].text = "Force"
        table.rows[0].cells[1].text = "Newton"
        document.save(str(path))

        result = extract_text(str(path), DOCX_MIME)

        assert result.method == "docx"
        assert result.confidence == 95
        assert "Force | Newton" in result.text

    def test_docx_too_short(self, tmp_path):
        path = tmp_path / "short.docx"
        document = DocxDocument()
        document.add_paragraph("Only a heading")
        document.save(str(path))

        with pytest.raises(ExtractionError):
            extract_text(str(path), DOCX_MIME)

    def test_text_below_minimum(self, tmp_path):
        """Fewer than 50 characters is not meaningful text"""
        path = tmp_path / "tiny.txt"
        path.write_text("Too short to study.", encoding="utf-8")

        with pytest.raises(ExtractionError, match="meaningful text"):
            extract_text(str(path), "text/plain")

    def test_unsupported_type(self, tmp_path):
        path = tmp_path / "archive.zip"
        path.write_bytes(b"PK" + b"\x00" * 100)

        with pytest.raises(ExtractionError, match="Unsupported file type"):
            extract_text(str(path), "application/zip")

    def test_missing_file(self, tmp_path):
        with pytest.raises(ExtractionError, match="File not found"):
            extract_text(str(tmp_path / "missing.txt"), "text/plain")


class TestHelpers:
    """Test cases for extraction helpers"""

    def test_hindi_uses_english_too(self):
        assert resolve_ocr_language("hin") == "hin+eng"
        assert resolve_ocr_language("eng") == "eng"

    def test_file_hash_is_stable(self, tmp_path):
        first = tmp_path / "a.txt"
        second = tmp_path / "b.txt"
        first.write_bytes(b"same content")
        second.write_bytes(b"same content")

        assert compute_file_hash(str(first)) == compute_file_hash(str(second))
        assert len(compute_file_hash(str(first))) == 32

    def test_preprocess_image_is_binary(self):
        """Preprocessed images contain only black and white pixels"""
        image = Image.new("RGB", (20, 20), color=(120, 130, 140))
        image.paste((250, 250, 250), (0, 0, 10, 20))

        processed = preprocess_image(image)

        assert set(processed.getdata()) <= {0, 255}


# ===== PDF and OCR paths with stubbed loaders =====

class StubPDFLoader:
    """Stands in for PyPDFLoader, returning fixed page texts"""

    page_texts = []

    def __init__(self, file_path):
        self.file_path = file_path

    def load(self):
        return [Document(page_content=text, metadata={"page": i}) for i, text in enumerate(self.page_texts)]


def stub_pdf(monkeypatch, page_texts):
    loader = type("Loader", (StubPDFLoader,), {"page_texts": list(page_texts)})
    monkeypatch.setattr(extraction, "PyPDFLoader", loader)


def stub_tesseract(monkeypatch, confidence_for, text_for):
    """Fake Tesseract; confidence and text depend on the image mode"""
    calls = []

    def image_to_data(image, lang=None, output_type=None):
        calls.append((image.mode, lang))
        return {"text": ["word", "", "other"], "conf": [confidence_for(image), "-1", confidence_for(image)]}

    def image_to_string(image, lang=None):
        return text_for(image)

    monkeypatch.setattr(pytesseract, "image_to_data", image_to_data)
    monkeypatch.setattr(pytesseract, "image_to_string", image_to_string)
    return calls


@pytest.fixture
def pdf_file(tmp_path):
    path = tmp_path / "lecture.pdf"
    path.write_bytes(b"%PDF-1.4 stub")
    return path


class TestPdfExtraction:
    """Test cases for the PDF text layer and scanned-PDF fallback"""

    def test_text_layer(self, monkeypatch, pdf_file):
        """A rich text layer is used directly"""
        stub_pdf(monkeypatch, [LONG_PARAGRAPH, LONG_PARAGRAPH])
        monkeypatch.setattr(
            extraction, "convert_from_path",
            lambda *a, **k: pytest.fail("OCR must not run for a text PDF"),
        )

        result = extract_text(str(pdf_file), "application/pdf")

        assert result.method == "pdf-parse"
        assert result.confidence == 95
        assert result.page_count == 2
        assert result.text.count("Newton's laws of motion") == 2

    def test_scanned_pdf_uses_ocr(self, monkeypatch, pdf_file):
        """Thin text layer: every page is rendered and OCR'd in order"""
        stub_pdf(monkeypatch, ["", ""])
        pages = [Image.new("RGB", (30, 30), "white"), Image.new("RGB", (30, 30), "white")]
        monkeypatch.setattr(extraction, "convert_from_path", lambda path, dpi=None: pages)

        confidences = iter([90.0, 70.0])
        page_texts = iter([LONG_PARAGRAPH, "Momentum is conserved in a closed system of bodies."])
        current = {}

        def confidence_for(image):
            if "conf" not in current:
                current["conf"] = next(confidences)
            return current["conf"]

        def text_for(image):
            current.clear()
            return next(page_texts)

        stub_tesseract(monkeypatch, confidence_for, text_for)

        result = extract_text(str(pdf_file), "application/pdf")

        assert result.method == "pdf-ocr-multi-page"
        assert result.page_count == 2
        assert result.confidence == 80.0
        assert result.text.startswith("--- Page 1 --- Newton's laws")
        assert "--- Page 2 --- Momentum is conserved" in result.text

    def test_thin_text_layer_kept_when_ocr_fails(self, monkeypatch, pdf_file):
        """OCR errors fall back to a short but usable text layer"""
        thin = "Kinematics summary: displacement, velocity and acceleration in one dimension."
        stub_pdf(monkeypatch, [thin])

        def no_poppler(*args, **kwargs):
            raise RuntimeError("Unable to get page count. Is poppler installed and in PATH?")

        monkeypatch.setattr(extraction, "convert_from_path", no_poppler)

        result = extract_text(str(pdf_file), "application/pdf")

        assert result.method == "pdf-parse"
        assert result.text == thin

    def test_ocr_failure_without_text_layer(self, monkeypatch, pdf_file):
        stub_pdf(monkeypatch, [""])

        def no_poppler(*args, **kwargs):
            raise RuntimeError("poppler missing")

        monkeypatch.setattr(extraction, "convert_from_path", no_poppler)

        with pytest.raises(ExtractionError, match="poppler missing"):
            extract_text(str(pdf_file), "application/pdf")


class TestImageExtraction:
    """Test cases for enhanced and plain OCR passes"""

    @pytest.fixture
    def image_file(self, tmp_path):
        path = tmp_path / "page.png"
        Image.new("RGB", (40, 40), (200, 200, 200)).save(path)
        return path

    def test_enhanced_pass_is_enough(self, monkeypatch, image_file):
        calls = stub_tesseract(monkeypatch, lambda image: 92.0, lambda image: LONG_PARAGRAPH)

        result = extract_text(str(image_file), "image/png")

        assert result.method == "tesseract-enhanced"
        assert result.confidence == 92.0
        assert result.page_count == 1
        assert [mode for mode, _ in calls] == ["L"]

    def test_low_confidence_retries_plain_and_best_wins(self, monkeypatch, image_file):
        """Below 80 the unprocessed image is tried and the better pass is kept"""
        calls = stub_tesseract(
            monkeypatch,
            lambda image: 55.0 if image.mode == "L" else 85.0,
            lambda image: LONG_PARAGRAPH,
        )

        result = extract_text(str(image_file), "image/png")

        assert result.method == "tesseract"
        assert result.confidence == 85.0
        assert [mode for mode, _ in calls] == ["L", "RGB"]

    def test_enhanced_kept_when_plain_is_worse(self, monkeypatch, image_file):
        stub_tesseract(
            monkeypatch,
            lambda image: 70.0 if image.mode == "L" else 40.0,
            lambda image: LONG_PARAGRAPH,
        )

        result = extract_text(str(image_file), "image/png")

        assert result.method == "tesseract-enhanced"
        assert result.confidence == 70.0

    def test_hindi_language_passed_to_tesseract(self, monkeypatch, image_file):
        calls = stub_tesseract(monkeypatch, lambda image: 90.0, lambda image: LONG_PARAGRAPH)

        extract_text(str(image_file), "image/png", language="hin")

        assert calls[0][1] == "hin+eng"


class TestSizeLimit:
    """Files over the 10MB limit are refused"""

    def test_oversized_file(self, tmp_path):
        path = tmp_path / "huge.txt"
        path.write_bytes(b"a" * (10 * 1024 * 1024 + 1))

        with pytest.raises(ExtractionError, match="File too large"):
            extract_text(str(path), "text/plain")
