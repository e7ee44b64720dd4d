"""
Embedding Client Module
=======================
Vector embeddings for chunks and queries with retry, backoff and batching.

Backends (RAG_EMBEDDING_PROVIDER):
- local: sentence-transformers model via HuggingFaceEmbeddings
- endpoint: HuggingFace Inference API via HuggingFaceEndpointEmbeddings

EmbeddingClient implements the LangChain Embeddings interface, so the
vector store embeds through the same retry logic as everything else.
"""

import time
import threading
import logging
from typing import Callable, List, Optional, Sequence, TypeVar

from langchain_core.embeddings import Embeddings
from langchain_huggingface import HuggingFaceEmbeddings, HuggingFaceEndpointEmbeddings

from .config import rag_config

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EmbeddingError(Exception):
    """Raised when embeddings cannot be produced"""


def is_auth_error(error: Exception) -> bool:
    message = str(error).lower()
    return "401" in message or "unauthorized" in message or "invalid api key" in message


def create_embedding_backend(
    provider: Optional[str] = None,
    model_name: Optional[str] = None
) -> Embeddings:
    """
    Build the LangChain embeddings backend for the configured provider.

    Args:
        provider: "local" or "endpoint" (default from config)
        model_name: HuggingFace model id (default from config)

    Returns:
        LangChain Embeddings instance
    """
    provider = (provider or rag_config.EMBEDDING_PROVIDER).lower()
    model_name = model_name or rag_config.EMBEDDING_MODEL

    if provider == "local":
        logger.info(f"Loading embedding model: {model_name}")
        logger.info(f"Using device: {rag_config.EMBEDDING_DEVICE}")
        return HuggingFaceEmbeddings(
            model_name=model_name,
            model_kwargs={"device": rag_config.EMBEDDING_DEVICE},
            encode_kwargs={"normalize_embeddings": rag_config.NORMALIZE_EMBEDDINGS}
        )

    if provider == "endpoint":
        if not rag_config.HUGGINGFACE_API_KEY:
            raise ValueError(
                "HUGGINGFACE_API_KEY environment variable is required for the "
                "endpoint embedding provider. Set it in your .env file."
            )
        logger.info(f"Using HuggingFace Inference API for embeddings: {model_name}")
        return HuggingFaceEndpointEmbeddings(
            model=model_name,
            task="feature-extraction",
            huggingfacehub_api_token=rag_config.HUGGINGFACE_API_KEY,
        )

    raise ValueError(f"Unknown embedding provider: {provider}. Supported: local, endpoint")


class EmbeddingClient(Embeddings):
    """
    Embeddings with truncation, retry/backoff and rate-friendly batching.
    """

    _shared_backend: Optional[Embeddings] = None
    _backend_lock = threading.Lock()

    def __init__(
        self,
        backend: Optional[Embeddings] = None,
        max_retries: Optional[int] = None,
        backoff_base: Optional[float] = None,
        backoff_max: Optional[float] = None,
        batch_size: Optional[int] = None,
        batch_delay: Optional[float] = None,
        max_chars: Optional[int] = None
    ):
        self._backend = backend
        self.max_retries = max_retries if max_retries is not None else rag_config.EMBEDDING_MAX_RETRIES
        self.backoff_base = backoff_base if backoff_base is not None else rag_config.EMBEDDING_BACKOFF_BASE
        self.backoff_max = backoff_max if backoff_max is not None else rag_config.EMBEDDING_BACKOFF_MAX
        self.batch_size = batch_size or rag_config.EMBEDDING_BATCH_SIZE
        self.batch_delay = batch_delay if batch_delay is not None else rag_config.EMBEDDING_BATCH_DELAY
        self.max_chars = max_chars or rag_config.EMBEDDING_MAX_CHARS

    @property
    def backend(self) -> Embeddings:
        """Underlying backend; the configured model is loaded once per process"""
        if self._backend is None:
            with EmbeddingClient._backend_lock:
                if EmbeddingClient._shared_backend is None:
                    EmbeddingClient._shared_backend = create_embedding_backend()
            self._backend = EmbeddingClient._shared_backend
        return self._backend

    def backoff_delay(self, attempt: int) -> float:
        """Seconds to wait after a failed attempt (1-based)"""
        return min(self.backoff_base * (2 ** (attempt - 1)), self.backoff_max)

    def _with_retry(self, operation: Callable[[], T], label: str) -> T:
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                return operation()
            except Exception as e:
                last_error = e
                if is_auth_error(e):
                    logger.error(f"Embedding authentication failed: {e}")
                    raise EmbeddingError("Invalid HuggingFace API key") from e

                logger.warning(f"{label} attempt {attempt}/{self.max_retries} failed: {e}")
                if attempt < self.max_retries:
                    time.sleep(self.backoff_delay(attempt))

        raise EmbeddingError(
            f"Failed to generate embedding after {self.max_retries} attempts: {last_error}"
        ) from last_error

    def _prepare(self, text: str) -> str:
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")
        return text.strip()[:self.max_chars]

    def embed_text(self, text: str) -> List[float]:
        """
        Embed one piece of text.

        Raises:
            ValueError: empty text
            EmbeddingError: backend failed on every attempt
        """
        prepared = self._prepare(text)
        return self._with_retry(lambda: self.backend.embed_query(prepared), "Embedding")

    def embed_texts(self, texts: Sequence[str]) -> List[List[float]]:
        """
        Embed many texts in small batches with a pause between batches.

        Raises:
            ValueError: empty list or an empty text
            EmbeddingError: a batch failed on every attempt
        """
        if not texts:
            raise ValueError("Texts array cannot be empty")

        prepared = [self._prepare(text) for text in texts]
        total_batches = (len(prepared) + self.batch_size - 1) // self.batch_size
        vectors: List[List[float]] = []

        logger.info(f"Embedding {len(prepared)} texts in {total_batches} batches")

        for batch_number, start in enumerate(range(0, len(prepared), self.batch_size), start=1):
            batch = prepared[start:start + self.batch_size]
            try:
                vectors.extend(self._with_retry(
                    lambda: self.backend.embed_documents(batch),
                    f"Batch {batch_number}"
                ))
            except EmbeddingError as e:
                raise EmbeddingError(
                    f"Batch embedding failed at batch {batch_number}: {e}"
                ) from e

            if batch_number < total_batches and self.batch_delay > 0:
                time.sleep(self.batch_delay)

        return vectors

    # LangChain Embeddings interface
    def embed_documents(self, texts: List[str]) -> List[List[float]]:
        return self.embed_texts(texts)

    def embed_query(self, text: str) -> List[float]:
        return self.embed_text(text)


# ===== Formatting helpers =====

def format_question_for_embedding(question: str, options: Optional[Sequence[str]] = None) -> str:
    """Question text followed by its meaningful options, numbered"""
    text = question.strip()
    valid_options = [opt.strip() for opt in (options or []) if opt and len(opt.strip()) > 2]
    if valid_options:
        numbered = " ".join(f"{i}. {opt}" for i, opt in enumerate(valid_options, start=1))
        text += f" Options: {numbered}"
    return text


def format_material_for_embedding(topic: str, questions: Optional[Sequence[str]] = None) -> str:
    """Topic plus up to three sample questions, capped at 2000 characters"""
    text = f"Topic: {topic}."
    if questions:
        text += " " + " ".join(q.strip() for q in questions[:3])
    return text[:2000]
