"""
Text Chunking Module
====================
Split extracted study material into overlapping chunks using
RecursiveCharacterTextSplitter.

Chunk size is picked adaptively from the document length unless a named
strategy is requested:
- SMALL: 500 / 100 (long documents, precise retrieval)
- MEDIUM: 1000 / 200
- LARGE: 2000 / 400 (short documents, more context per chunk)
- EMBEDDING: 1500 / 300
"""

import re
import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

from langchain_text_splitters import RecursiveCharacterTextSplitter
from langchain_core.documents import Document

from .config import rag_config

logger = logging.getLogger(__name__)

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F-\x9F]")
_LINE_SEPARATORS = re.compile("[\\ufeff\\u2028\\u2029]")


@dataclass
class TextChunk:
    """A chunk of source text with its position in the source"""
    text: str
    index: int
    start_char: int
    end_char: int
    char_count: int
    word_count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def sanitize_chunk_text(text: str) -> str:
    """Strip characters databases and embedders choke on, keep layout"""
    if not text:
        return ""
    text = _CONTROL_CHARS.sub("", text)
    text = _LINE_SEPARATORS.sub("", text)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return text.strip()


def get_adaptive_strategy(text_length: int) -> str:
    """Bigger chunks for short documents, smaller for long ones"""
    if text_length < rag_config.SMALL_DOCUMENT_CHARS:
        return "LARGE"
    if text_length < rag_config.LARGE_DOCUMENT_CHARS:
        return "MEDIUM"
    return "SMALL"


def create_text_splitter(
    chunk_size: int,
    chunk_overlap: int,
    separators: Optional[List[str]] = None
) -> RecursiveCharacterTextSplitter:
    """
    Create a text splitter that records where each chunk starts.

    Args:
        chunk_size: Maximum size of chunks in characters
        chunk_overlap: Overlap between consecutive chunks
        separators: List of separators for splitting (default from config)

    Returns:
        Configured RecursiveCharacterTextSplitter
    """
    return RecursiveCharacterTextSplitter(
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
        separators=separators or rag_config.CHUNK_SEPARATORS,
        length_function=len,
        is_separator_regex=False,
        add_start_index=True,
    )


def split_into_chunks(
    text: str,
    chunk_size: int,
    chunk_overlap: int
) -> List[TextChunk]:
    """
    Split text into TextChunk objects.

    Chunks that are empty after sanitizing are dropped and the remaining
    chunks are renumbered so indices stay contiguous.
    """
    if chunk_overlap >= chunk_size:
        raise ValueError("chunk_overlap must be smaller than chunk_size")

    splitter = create_text_splitter(chunk_size, chunk_overlap)
    pieces = splitter.create_documents([text])

    chunks: List[TextChunk] = []
    fallback_start = 0
    for piece in pieces:
        start = piece.metadata.get("start_index", -1)
        if start is None or start < 0:
            start = fallback_start
        end = min(start + len(piece.page_content), len(text))
        fallback_start = max(end - chunk_overlap, 0)

        cleaned = sanitize_chunk_text(piece.page_content)
        if not cleaned:
            continue

        chunks.append(TextChunk(
            text=cleaned,
            index=len(chunks),
            start_char=start,
            end_char=end,
            char_count=len(cleaned),
            word_count=len(cleaned.split()),
        ))

    return chunks


def chunk_text(text: str, strategy: Optional[str] = None) -> List[TextChunk]:
    """
    Chunk extracted text with an explicit or adaptive strategy.

    Args:
        text: Cleaned document text
        strategy: SMALL, MEDIUM, LARGE or EMBEDDING; adaptive when None

    Returns:
        List of TextChunk objects

    Raises:
        ValueError: text too short or nothing left to chunk
    """
    if not text or len(text.strip()) < rag_config.MIN_TEXT_LENGTH:
        raise ValueError("Text too short for chunking")

    strategy = strategy or get_adaptive_strategy(len(text))
    chunk_size, chunk_overlap = rag_config.get_chunk_strategy(strategy)

    logger.info(
        f"Chunking {len(text)} characters with strategy={strategy} "
        f"(size={chunk_size}, overlap={chunk_overlap})"
    )

    chunks = split_into_chunks(text, chunk_size, chunk_overlap)
    if not chunks:
        raise ValueError("No chunks generated from text")

    logger.info(f"Created {len(chunks)} chunks")
    return chunks


def chunks_to_documents(
    chunks: List[TextChunk],
    material_id: str,
    user_id: str,
    material_topic: Optional[str] = None,
    material_name: Optional[str] = None
) -> List[Document]:
    """
    Wrap chunks as LangChain Documents ready for the vector store.

    Each document gets a stable doc_id of <material_id>_<index> so
    re-indexing a material overwrites rather than duplicates.
    """
    documents = []
    for chunk in chunks:
        documents.append(Document(
            page_content=chunk.text,
            metadata={
                "doc_id": f"{material_id}_{chunk.index}",
                "material_id": material_id,
                "user_id": user_id,
                "chunk_index": chunk.index,
                "start_char": chunk.start_char,
                "end_char": chunk.end_char,
                "word_count": chunk.word_count,
                "material_topic": material_topic or "",
                "material_name": material_name or "",
            }
        ))
    return documents
