"""
Text Extraction Module
======================
Turn an uploaded study file into clean plain text.

Dispatch by MIME type:
- PDF: text layer via PyPDFLoader, OCR fallback for scanned documents
- DOCX: python-docx paragraphs and tables
- Images: Tesseract OCR with optional Pillow preprocessing
- Plain text: UTF-8 decode
"""

import re
import hashlib
import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytesseract
from docx import Document as DocxDocument
from langchain_community.document_loaders import PyPDFLoader
from pdf2image import convert_from_path
from PIL import Image, ImageFilter, ImageOps

from .config import rag_config

logger = logging.getLogger(__name__)


PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
IMAGE_MIMES = ("image/jpeg", "image/jpg", "image/png", "image/webp")

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F-\x9F]")
_LINE_SEPARATORS = re.compile("[\\ufeff\\u2028\\u2029]")


class ExtractionError(Exception):
    """Raised when no usable text can be pulled out of a file"""


@dataclass
class ExtractionResult:
    """Extracted text plus how it was obtained"""
    text: str
    confidence: float
    method: str
    page_count: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ===== Cleaning =====

def clean_extracted_text(text: str) -> str:
    """
    Normalize raw extractor output for storage and chunking.

    Drops NUL and control characters, BOM and Unicode line separators,
    normalizes line endings, turns tabs into two spaces and collapses
    all whitespace runs to a single space.
    """
    if not text:
        return ""

    text = _CONTROL_CHARS.sub("", text)
    text = _LINE_SEPARATORS.sub("", text)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = text.replace("\t", "  ")
    text = re.sub(r"\s+", " ", text)
    return text.strip()


def compute_file_hash(file_path: str) -> str:
    """
    Compute MD5 hash of a file for deduplication.

    Args:
        file_path: Path to the file

    Returns:
        MD5 hash string
    """
    hash_md5 = hashlib.md5()
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(4096), b""):
            hash_md5.update(chunk)
    return hash_md5.hexdigest()


def resolve_ocr_language(language: Optional[str]) -> str:
    """Tesseract language string; Hindi is paired with English"""
    language = (language or rag_config.OCR_LANGUAGE).lower()
    if language in ("hin", "hindi", "hi"):
        return "hin+eng"
    return language


# ===== OCR =====

def preprocess_image(image: Image.Image) -> Image.Image:
    """Grayscale, stretch contrast, sharpen and binarize for Tesseract"""
    threshold = rag_config.OCR_BINARIZE_THRESHOLD
    processed = ImageOps.grayscale(image)
    processed = ImageOps.autocontrast(processed)
    processed = processed.filter(ImageFilter.SHARPEN)
    return processed.point(lambda px: 255 if px > threshold else 0)


def ocr_image(image: Image.Image, language: str) -> Tuple[str, float]:
    """
    Run Tesseract on a PIL image.

    Returns:
        (text, mean word confidence 0-100)
    """
    data = pytesseract.image_to_data(
        image, lang=language, output_type=pytesseract.Output.DICT
    )

    confidences = []
    for word, conf in zip(data.get("text", []), data.get("conf", [])):
        if not str(word).strip():
            continue
        try:
            value = float(conf)
        except (TypeError, ValueError):
            continue
        if value >= 0:
            confidences.append(value)

    text = pytesseract.image_to_string(image, lang=language)
    confidence = sum(confidences) / len(confidences) if confidences else 0.0
    return text, confidence


def extract_text_from_image(
    file_path: str,
    language: Optional[str] = None,
    use_high_accuracy: bool = True
) -> ExtractionResult:
    """
    OCR an image file.

    High-accuracy mode preprocesses the image first; when that pass is
    below OCR_MIN_CONFIDENCE a plain pass runs and the better one wins.
    """
    lang = resolve_ocr_language(language)
    logger.info(f"Running OCR on image: {file_path} (lang={lang})")

    with Image.open(file_path) as image:
        image.load()
        attempts: List[ExtractionResult] = []

        if use_high_accuracy:
            text, confidence = ocr_image(preprocess_image(image), lang)
            attempts.append(ExtractionResult(
                text=clean_extracted_text(text),
                confidence=round(confidence, 2),
                method="tesseract-enhanced",
            ))

        if not attempts or attempts[0].confidence < rag_config.OCR_MIN_CONFIDENCE:
            if attempts:
                logger.info(
                    f"Enhanced OCR confidence {attempts[0].confidence} below "
                    f"{rag_config.OCR_MIN_CONFIDENCE}, retrying without preprocessing"
                )
            text, confidence = ocr_image(image.convert("RGB"), lang)
            attempts.append(ExtractionResult(
                text=clean_extracted_text(text),
                confidence=round(confidence, 2),
                method="tesseract",
            ))

    best = max(attempts, key=lambda r: r.confidence)
    best.page_count = 1
    return best


def ocr_pdf(file_path: str, language: Optional[str] = None) -> ExtractionResult:
    """Render every PDF page to an image and OCR them in order"""
    lang = resolve_ocr_language(language)
    logger.info(f"Falling back to OCR for PDF: {file_path}")

    pages = convert_from_path(file_path, dpi=rag_config.OCR_DPI)
    if not pages:
        raise ExtractionError("PDF has no renderable pages")

    parts = []
    total_confidence = 0.0
    for page_number, page in enumerate(pages, start=1):
        text, confidence = ocr_image(preprocess_image(page), lang)
        total_confidence += confidence
        logger.info(f"OCR page {page_number}/{len(pages)}: confidence {confidence:.1f}")
        if text.strip():
            parts.append(f"--- Page {page_number} ---\n\n{text.strip()}")

    return ExtractionResult(
        text=clean_extracted_text("\n\n".join(parts)),
        confidence=round(total_confidence / len(pages), 2),
        method="pdf-ocr-multi-page",
        page_count=len(pages),
    )


# ===== Document formats =====

def extract_text_from_pdf(file_path: str, language: Optional[str] = None) -> ExtractionResult:
    """
    Extract text from a PDF, using OCR when the text layer is too thin.

    Args:
        file_path: Path to PDF file
        language: OCR language for the scanned-document fallback

    Returns:
        ExtractionResult
    """
    loader = PyPDFLoader(str(file_path))
    pages = loader.load()
    logger.info(f"Loaded {len(pages)} pages from PDF")

    text = clean_extracted_text("\n\n".join(page.page_content for page in pages))

    if len(text) >= rag_config.OCR_FALLBACK_LENGTH:
        return ExtractionResult(
            text=text,
            confidence=rag_config.TEXT_LAYER_CONFIDENCE,
            method="pdf-parse",
            page_count=len(pages),
        )

    logger.info(f"PDF text layer has only {len(text)} characters, treating as scanned")
    text_layer = ExtractionResult(
        text=text,
        confidence=rag_config.TEXT_LAYER_CONFIDENCE,
        method="pdf-parse",
        page_count=len(pages),
    )
    try:
        result = ocr_pdf(file_path, language)
    except Exception as e:
        if not text:
            raise
        logger.warning(f"PDF OCR failed ({e}), keeping the {len(text)} character text layer")
        return text_layer

    if len(result.text) < len(text):
        # OCR did worse than the thin text layer
        return text_layer
    return result


def extract_text_from_docx(file_path: str) -> ExtractionResult:
    """Extract paragraphs and table cells from a Word document"""
    document = DocxDocument(file_path)

    parts = [p.text for p in document.paragraphs if p.text.strip()]
    for table in document.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if cells:
                parts.append(" | ".join(cells))

    text = clean_extracted_text("\n".join(parts))
    if len(text) < rag_config.OCR_FALLBACK_LENGTH:
        raise ExtractionError(
            f"Extracted text too short from DOCX ({len(text)} characters). "
            "The document may be empty or contain only images."
        )

    return ExtractionResult(
        text=text,
        confidence=rag_config.TEXT_LAYER_CONFIDENCE,
        method="docx",
    )


def extract_text_from_plain(file_path: str) -> ExtractionResult:
    raw = Path(file_path).read_bytes()
    return ExtractionResult(
        text=clean_extracted_text(raw.decode("utf-8", errors="replace")),
        confidence=100.0,
        method="text",
    )


def extract_text(
    file_path: str,
    mime_type: str,
    language: Optional[str] = None,
    use_high_accuracy: bool = True
) -> ExtractionResult:
    """
    Extract text from any supported study file.

    Args:
        file_path: Path to the stored upload
        mime_type: Content type of the upload
        language: OCR language code ("eng", "hin", ...)
        use_high_accuracy: Preprocess images before OCR

    Returns:
        ExtractionResult with cleaned text

    Raises:
        ExtractionError: unsupported type, oversized file, or too little text
    """
    path = Path(file_path)
    if not path.exists():
        raise ExtractionError(f"File not found: {file_path}")

    size = path.stat().st_size
    if size > rag_config.MAX_FILE_SIZE:
        raise ExtractionError(
            f"File too large ({size} bytes). Maximum is {rag_config.MAX_FILE_SIZE} bytes."
        )

    mime_type = (mime_type or "").lower()
    logger.info(f"Extracting text from {path.name} ({mime_type}, {size} bytes)")

    try:
        if mime_type == PDF_MIME:
            result = extract_text_from_pdf(str(path), language)
        elif mime_type == DOCX_MIME:
            result = extract_text_from_docx(str(path))
        elif mime_type in IMAGE_MIMES:
            result = extract_text_from_image(str(path), language, use_high_accuracy)
        elif mime_type.startswith("text/"):
            result = extract_text_from_plain(str(path))
        else:
            raise ExtractionError(f"Unsupported file type: {mime_type}")
    except ExtractionError:
        raise
    except pytesseract.TesseractNotFoundError as e:
        raise ExtractionError("OCR engine (tesseract) is not installed on the server") from e
    except Exception as e:
        logger.error(f"Extraction failed for {path.name}: {e}")
        raise ExtractionError(f"Failed to read {path.name}: {e}") from e

    if len(result.text) < rag_config.MIN_TEXT_LENGTH:
        raise ExtractionError(
            "Could not extract meaningful text. The file may contain only "
            "scanned images that OCR could not read, or be password protected."
        )

    logger.info(
        f"Extracted {len(result.text)} characters via {result.method} "
        f"(confidence {result.confidence})"
    )
    return result
