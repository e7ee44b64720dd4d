"""
Study RAG Module
================
The study material pipeline behind Mockify:
- Text extraction from PDF, DOCX, images (OCR) and plain text
- Adaptive chunking
- Embeddings with retry/backoff
- Per-user vector search with ChromaDB
- Topic-per-chunk indexing of exam syllabi
- Question generation, adaptive practice and doubt resolution using
  configurable LLM backends (Ollama/Groq)

Usage:
    from mockify.modules.study_rag import StudyRAGService

    rag = StudyRAGService.get_instance()
    rag.ingest_material("notes.pdf", "application/pdf", material_id, user_id)
    result = rag.generate_questions(user_id, "NEET", "medium", 10, ["Genetics"], [material_id])
"""

from .rag_service import StudyRAGService
from .extraction import ExtractionError, ExtractionResult, clean_extracted_text, compute_file_hash, extract_text
from .chunking import TextChunk, chunk_text, chunks_to_documents
from .embeddings import EmbeddingClient, EmbeddingError
from .vectorstore import ChromaVectorStore, ChunkMatch
from .retriever import MaterialRetriever
from .question_generator import GenerationError, QuestionGenerator
from .adaptive import AdaptivePracticeGenerator, WeakTopic, analyze_weak_topics
from .tutor import DoubtResolver, MaterialReference
from .syllabus import SyllabusExtractor, SyllabusTopics, extract_topics_with_patterns
from .llm_providers import (
    BaseLLM,
    OllamaLLM,
    GroqLLM,
    LLMFactory,
    LLMProvider,
    LLMError,
)

__all__ = [
    "StudyRAGService",
    "ExtractionError",
    "ExtractionResult",
    "clean_extracted_text",
    "compute_file_hash",
    "extract_text",
    "TextChunk",
    "chunk_text",
    "chunks_to_documents",
    "EmbeddingClient",
    "EmbeddingError",
    "ChromaVectorStore",
    "ChunkMatch",
    "MaterialRetriever",
    "GenerationError",
    "QuestionGenerator",
    "AdaptivePracticeGenerator",
    "WeakTopic",
    "analyze_weak_topics",
    "DoubtResolver",
    "MaterialReference",
    "SyllabusExtractor",
    "SyllabusTopics",
    "extract_topics_with_patterns",
    "BaseLLM",
    "OllamaLLM",
    "GroqLLM",
    "LLMFactory",
    "LLMProvider",
    "LLMError",
]
