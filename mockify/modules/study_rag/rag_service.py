"""
Study RAG Service Module
========================
Main service class that coordinates the study material pipeline.
This is the primary interface the API services use.

Supports multiple LLM providers:
- Ollama (local inference)
- Groq Cloud (OpenAI-compatible API)
"""

import logging
import threading
from typing import Any, Dict, List, Optional, Sequence

from langchain_core.embeddings import Embeddings

from .config import rag_config
from .extraction import ExtractionError, extract_text
from .chunking import chunk_text, chunks_to_documents
from .embeddings import EmbeddingClient, EmbeddingError
from .vectorstore import ChromaVectorStore, ChunkMatch
from .retriever import MaterialRetriever
from .question_generator import QuestionGenerator
from .adaptive import AdaptivePracticeGenerator, WeakTopic
from .tutor import DoubtResolution, DoubtResolver, MaterialReference
from .syllabus import SyllabusExtractor, build_topic_chunks
from .llm_providers import BaseLLM, LLMFactory

logger = logging.getLogger(__name__)


class StudyRAGService:
    """
    Main service for study material operations.

    Provides a simple API for:
    - Material ingestion (extract, chunk, embed, index)
    - Semantic search over a user's materials
    - Mock test and adaptive practice question generation
    - Doubt resolution
    - Runtime LLM provider switching

    Usage:
        rag = StudyRAGService.get_instance()
        result = rag.ingest_material(path, "application/pdf", material_id, user_id)
        groups = rag.search_materials("photosynthesis", user_id)
    """

    _instance: Optional["StudyRAGService"] = None
    _instance_lock = threading.Lock()

    def __init__(
        self,
        embeddings: Optional[Embeddings] = None,
        vector_store: Optional[ChromaVectorStore] = None,
        llm_provider: Optional[BaseLLM] = None
    ):
        """
        Initialize the service. Components not passed in are created
        lazily from configuration on first use.
        """
        self._embeddings = embeddings
        self._vector_store = vector_store
        self._llm_provider = llm_provider

        self._retriever: Optional[MaterialRetriever] = None
        self._question_generator: Optional[QuestionGenerator] = None
        self._practice_generator: Optional[AdaptivePracticeGenerator] = None
        self._doubt_resolver: Optional[DoubtResolver] = None
        self._syllabus_extractor: Optional[SyllabusExtractor] = None

        self._initialized = False
        self._init_lock = threading.Lock()

    def _ensure_initialized(self):
        """Ensure all components are initialized."""
        if self._initialized:
            return

        with self._init_lock:
            if not self._initialized:
                self._initialize_components()

    def _initialize_components(self):
        logger.info("Initializing study RAG components...")

        if self._embeddings is None:
            self._embeddings = EmbeddingClient()
        if self._vector_store is None:
            self._vector_store = ChromaVectorStore(
                embeddings=self._embeddings,
                persist_directory=rag_config.PERSIST_DIRECTORY,
                collection_name=rag_config.COLLECTION_NAME,
            )
        if self._llm_provider is None:
            self._llm_provider = LLMFactory.create()

        self._retriever = MaterialRetriever(self._vector_store)
        self._question_generator = QuestionGenerator(
            retriever=self._retriever,
            llm_provider=self._llm_provider,
            embeddings=self._embeddings,
        )
        self._practice_generator = AdaptivePracticeGenerator(self._llm_provider)
        self._doubt_resolver = DoubtResolver(self._retriever, self._llm_provider)
        self._syllabus_extractor = SyllabusExtractor(self._llm_provider)

        self._initialized = True
        logger.info(f"Study RAG service initialized with provider: {self._llm_provider.provider_name}")

    @classmethod
    def get_instance(cls) -> "StudyRAGService":
        """Get singleton instance of the service."""
        if cls._instance is None:
            with cls._instance_lock:
                if cls._instance is None:
                    cls._instance = StudyRAGService()
        return cls._instance

    # ===== Ingestion =====

    def ingest_material(
        self,
        file_path: str,
        mime_type: str,
        material_id: str,
        user_id: str,
        topic: Optional[str] = None,
        file_name: Optional[str] = None,
        language: Optional[str] = None,
        extract_topics: Optional[bool] = None,
        material_type: Optional[str] = None,
        exam_type: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Extract, chunk and index one uploaded material.

        Syllabus uploads are indexed one chunk per syllabus topic; when no
        topics can be found they are chunked like any other material.

        Returns:
            Dictionary with extraction results, chunk count, topics and,
            for syllabi, the syllabus structure; success False with an
            error message on failure
        """
        self._ensure_initialized()
        logger.info(f"Ingesting material {material_id}: {file_name or file_path}")

        syllabus = None
        try:
            extraction = extract_text(file_path, mime_type, language=language)
            if material_type == "syllabus":
                syllabus = self._syllabus_extractor.extract(extraction.text, exam_type)
                logger.info(
                    f"Syllabus {material_id}: {len(syllabus.topics)} topics via {syllabus.method}"
                )
            if syllabus is not None and syllabus.topics:
                chunks = build_topic_chunks(syllabus.topics, syllabus.subtopics)
            else:
                chunks = chunk_text(extraction.text)
            documents = chunks_to_documents(
                chunks,
                material_id=material_id,
                user_id=user_id,
                material_topic=topic,
                material_name=file_name,
            )
            added = self._vector_store.add_documents(documents)
        except (ExtractionError, EmbeddingError, ValueError) as e:
            logger.error(f"Error ingesting material {material_id}: {e}")
            return {"success": False, "error": str(e), "chunks_added": 0}

        topics: List[Dict[str, str]] = []
        if syllabus is not None and syllabus.topics:
            topics = [
                {"name": name, "description": ", ".join(syllabus.subtopics.get(name, []))}
                for name in syllabus.topics
            ]
        elif rag_config.EXTRACT_TOPICS if extract_topics is None else extract_topics:
            sample = "\n\n---\n\n".join(c.text for c in chunks[:rag_config.TOPIC_SAMPLE_CHUNKS])
            result = self._question_generator.extract_topics_from_context(sample)
            if result.get("success"):
                topics = result["topics"]
                logger.info(f"Extracted {len(topics)} topics for material {material_id}")
            else:
                logger.warning(f"Could not extract topics: {result.get('message')}")

        return {
            "success": True,
            "extraction": extraction.to_dict(),
            "chunks_added": added,
            "topics": topics,
            "syllabus": syllabus.to_dict() if syllabus is not None else None,
        }

    def delete_material(self, material_id: str, user_id: str) -> int:
        self._ensure_initialized()
        return self._vector_store.delete_material(material_id, user_id)

    # ===== Retrieval =====

    def search_materials(
        self,
        query: str,
        user_id: str,
        threshold: Optional[float] = None,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        self._ensure_initialized()
        return self._retriever.search_materials(query, user_id, threshold=threshold, limit=limit)

    def search_chunks(
        self,
        query: str,
        user_id: str,
        threshold: Optional[float] = None,
        limit: Optional[int] = None,
        material_ids: Optional[List[str]] = None
    ) -> List[ChunkMatch]:
        self._ensure_initialized()
        return self._retriever.search_chunks(
            query, user_id, threshold=threshold, limit=limit, material_ids=material_ids
        )

    def get_material_chunks(self, material_id: str, user_id: str, limit: Optional[int] = None) -> List[str]:
        self._ensure_initialized()
        return self._vector_store.get_material_chunks(material_id, user_id, limit=limit)

    def count_user_chunks(self, user_id: str) -> int:
        self._ensure_initialized()
        return self._vector_store.count_user_chunks(user_id)

    # ===== Generation =====

    def generate_questions(
        self,
        user_id: str,
        exam_type: str,
        difficulty: str,
        question_count: int,
        topics: Optional[Sequence[str]] = None,
        material_ids: Optional[Sequence[str]] = None
    ) -> Dict[str, Any]:
        self._ensure_initialized()
        return self._question_generator.generate_questions(
            user_id=user_id,
            exam_type=exam_type,
            difficulty=difficulty,
            question_count=question_count,
            topics=topics,
            material_ids=material_ids,
        )

    def generate_practice_questions(
        self,
        weak_topics: Sequence[WeakTopic],
        question_count: int,
        exam_type: str,
        material_context: str = ""
    ) -> List[Dict[str, Any]]:
        self._ensure_initialized()
        return self._practice_generator.generate_adaptive_questions(
            weak_topics,
            question_count=question_count,
            exam_type=exam_type,
            material_context=material_context,
        )

    def resolve_doubt(
        self,
        user_id: str,
        question_text: str,
        options: Sequence[str],
        correct_answer: str,
        doubt_text: str,
        user_answer: Optional[str] = None,
        topic: Optional[str] = None,
        history: Optional[Sequence[Dict[str, str]]] = None,
        fallback_references: Optional[List[MaterialReference]] = None
    ) -> DoubtResolution:
        self._ensure_initialized()
        return self._doubt_resolver.resolve(
            user_id=user_id,
            question_text=question_text,
            options=options,
            correct_answer=correct_answer,
            doubt_text=doubt_text,
            user_answer=user_answer,
            topic=topic,
            history=history,
            fallback_references=fallback_references,
        )

    # ===== Index / provider management =====

    def get_index_stats(self, user_id: Optional[str] = None) -> Dict[str, Any]:
        """Collection statistics, plus the chunk count of one user when given"""
        self._ensure_initialized()
        stats = self._vector_store.get_collection_stats()
        if user_id is not None:
            stats["user_chunks"] = self._vector_store.count_user_chunks(user_id)
        return stats

    def check_llm_status(self) -> Dict[str, Any]:
        """
        Check current LLM provider connection status.

        Returns:
            Dictionary with provider status
        """
        self._ensure_initialized()
        return self._llm_provider.check_connection()

    def set_llm_provider(
        self,
        provider: str,
        model: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Switch LLM provider at runtime.

        Args:
            provider: Provider name ("ollama" or "groq")
            model: Optional model name override

        Returns:
            Dictionary with switch status
        """
        logger.info(f"Switching LLM provider to: {provider}, model: {model}")

        result = LLMFactory.set_provider(provider, model)
        if not result.get("success"):
            return result

        if not self._initialized:
            return result

        try:
            new_provider = LLMFactory.create(provider=provider, model=model)
        except ValueError as e:
            logger.error(f"Error switching LLM provider: {e}")
            return {
                "success": False,
                "error": str(e),
                "provider_error": True,
                "message": f"Failed to switch to {provider}: {str(e)}"
            }

        self._llm_provider = new_provider
        self._question_generator.set_llm_provider(new_provider)
        self._practice_generator.set_llm_provider(new_provider)
        self._doubt_resolver.set_llm_provider(new_provider)
        self._syllabus_extractor.set_llm_provider(new_provider)

        return {
            "success": True,
            "provider": provider,
            "model": model or new_provider.model,
            "message": f"Successfully switched to {provider}",
        }

    def get_llm_provider_info(self) -> Dict[str, Any]:
        current = LLMFactory.get_current_provider()

        return {
            "success": True,
            "current_provider": current["provider"],
            "current_model": current["model"],
            "available_providers": current["available_providers"],
            "groq_configured": bool(rag_config.GROQ_API_KEY),
            "ollama_base_url": rag_config.OLLAMA_BASE_URL
        }

    def get_config(self) -> Dict[str, Any]:
        """
        Get current pipeline configuration.

        Returns:
            Dictionary with configuration values
        """
        llm_info = LLMFactory.get_current_provider()

        return {
            "collection_name": rag_config.COLLECTION_NAME,
            "llm_provider": llm_info["provider"],
            "llm_model": llm_info["model"],
            "available_providers": llm_info["available_providers"],
            "groq_configured": bool(rag_config.GROQ_API_KEY),
            "embedding_provider": rag_config.EMBEDDING_PROVIDER,
            "embedding_model": rag_config.EMBEDDING_MODEL,
            "chunk_strategies": {
                name: {"chunk_size": size, "chunk_overlap": overlap}
                for name, (size, overlap) in rag_config.CHUNK_STRATEGIES.items()
            },
            "search_threshold": rag_config.SEARCH_THRESHOLD,
            "generation_threshold": rag_config.GENERATION_THRESHOLD,
            "weak_topic_threshold": rag_config.WEAK_TOPIC_THRESHOLD,
            "ocr_language": rag_config.OCR_LANGUAGE,
        }
