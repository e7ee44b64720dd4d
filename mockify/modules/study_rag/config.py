"""
Study RAG Configuration
=======================
Configuration settings for the study material pipeline.
All settings can be overridden via environment variables.

Covers:
- Text extraction and OCR
- Chunking strategies
- Embeddings (local sentence-transformers or HuggingFace Inference API)
- Vector store and search thresholds
- LLM providers (Ollama local, Groq Cloud)
- Adaptive practice and tutor limits
"""

import os
from pathlib import Path
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).lower() == "true"


@dataclass
class RAGConfig:
    """Configuration for the study material pipeline"""

    # ===== Extraction Settings =====
    MAX_FILE_SIZE: int = 10 * 1024 * 1024
    MIN_TEXT_LENGTH: int = 50
    OCR_FALLBACK_LENGTH: int = 200
    OCR_LANGUAGE: str = "eng"
    OCR_MIN_CONFIDENCE: float = 80.0
    OCR_DPI: int = 200
    OCR_BINARIZE_THRESHOLD: int = 128
    TEXT_LAYER_CONFIDENCE: float = 95.0

    # ===== Chunking Settings =====
    CHUNK_SEPARATORS: List[str] = field(default_factory=lambda: [
        "\n\n", "\n", ". ", " ", ""
    ])
    # name -> (chunk_size, chunk_overlap)
    CHUNK_STRATEGIES: Dict[str, Tuple[int, int]] = field(default_factory=lambda: {
        "SMALL": (500, 100),
        "MEDIUM": (1000, 200),
        "LARGE": (2000, 400),
        "EMBEDDING": (1500, 300),
    })
    SMALL_DOCUMENT_CHARS: int = 5000
    LARGE_DOCUMENT_CHARS: int = 50000

    # ===== Embedding Settings =====
    EMBEDDING_PROVIDER: str = "local"  # "local" or "endpoint"
    EMBEDDING_MODEL: str = "sentence-transformers/all-mpnet-base-v2"
    EMBEDDING_DIMENSIONS: int = 768
    EMBEDDING_DEVICE: str = "cpu"  # Will be auto-detected
    NORMALIZE_EMBEDDINGS: bool = True
    HUGGINGFACE_API_KEY: Optional[str] = None
    EMBEDDING_MAX_CHARS: int = 8000
    EMBEDDING_MAX_RETRIES: int = 3
    EMBEDDING_BACKOFF_BASE: float = 1.0
    EMBEDDING_BACKOFF_MAX: float = 5.0
    EMBEDDING_BATCH_SIZE: int = 5
    EMBEDDING_BATCH_DELAY: float = 1.0

    # ===== Vector Store Settings =====
    PERSIST_DIRECTORY: str = "./data/chroma/study_rag"
    COLLECTION_NAME: str = "study_material_chunks"

    # ===== Search Settings =====
    SEARCH_THRESHOLD: float = 0.4
    SEARCH_LIMIT: int = 10
    SEARCH_FETCH_MULTIPLIER: int = 3
    MATCHED_CHUNKS_PER_MATERIAL: int = 3
    GENERATION_THRESHOLD: float = 0.3
    GENERATION_MATCH_COUNT: int = 30
    MIN_CONTEXT_LENGTH: int = 100
    DUPLICATE_THRESHOLD: float = 0.85

    # ===== Topic Extraction =====
    EXTRACT_TOPICS: bool = True
    TOPIC_SAMPLE_CHUNKS: int = 15
    TOPIC_CONTEXT_CHARS: int = 8000
    MAX_TOPICS: int = 10

    # ===== Syllabus Ingestion =====
    SYLLABUS_CONTEXT_CHARS: int = 24000
    MAX_SYLLABUS_TOPICS: int = 200

    # ===== LLM Provider Settings =====
    LLM_PROVIDER: str = "ollama"  # "ollama" or "groq"
    LLM_MAX_RETRIES: int = 2
    LLM_BACKOFF_BASE: float = 2.0

    # ===== Ollama LLM Settings =====
    OLLAMA_MODEL: str = "llama3.1:latest"
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    OLLAMA_TEMPERATURE: float = 0.3
    OLLAMA_NUM_CTX: int = 8192

    # ===== Groq Cloud Settings =====
    GROQ_API_KEY: Optional[str] = None
    GROQ_MODEL: str = "llama-3.3-70b-versatile"
    GROQ_BASE_URL: str = "https://api.groq.com/openai/v1"
    GROQ_FALLBACK_TO_OLLAMA: bool = True

    # ===== Adaptive Practice =====
    WEAK_TOPIC_THRESHOLD: float = 70.0
    HIGH_PRIORITY_BELOW: float = 40.0
    MEDIUM_PRIORITY_BELOW: float = 60.0
    WEAK_TOPIC_HISTORY: int = 10
    ADAPTIVE_TARGET_TOPICS: int = 3
    ADAPTIVE_CONTEXT_CHARS: int = 3000
    ADAPTIVE_CONTEXT_PER_MATERIAL: int = 1000

    # ===== Tutor =====
    TUTOR_RATE_LIMIT: int = 5
    TUTOR_RATE_WINDOW_SECONDS: int = 60
    TUTOR_MAX_REFERENCES: int = 3
    TUTOR_REFERENCE_CHARS: int = 500
    TUTOR_HISTORY_TURNS: int = 6

    # ===== Logging Settings =====
    ENABLE_DEBUG_LOGGING: bool = True
    SNIPPET_LENGTH: int = 200  # Characters to show in debug logs and previews

    def __post_init__(self):
        """Load settings from environment variables"""
        # Extraction
        self.OCR_LANGUAGE = os.getenv("OCR_LANGUAGE", self.OCR_LANGUAGE)
        self.OCR_DPI = int(os.getenv("OCR_DPI", self.OCR_DPI))

        # Embedding
        self.EMBEDDING_PROVIDER = os.getenv("RAG_EMBEDDING_PROVIDER", self.EMBEDDING_PROVIDER).lower()
        self.EMBEDDING_MODEL = os.getenv("RAG_EMBEDDING_MODEL", self.EMBEDDING_MODEL)
        self.EMBEDDING_DEVICE = os.getenv("RAG_EMBEDDING_DEVICE", self.EMBEDDING_DEVICE)
        self.HUGGINGFACE_API_KEY = os.getenv("HUGGINGFACE_API_KEY")
        self.EMBEDDING_MAX_RETRIES = int(os.getenv("RAG_EMBEDDING_RETRIES", self.EMBEDDING_MAX_RETRIES))
        self.EMBEDDING_BATCH_SIZE = int(os.getenv("RAG_EMBEDDING_BATCH_SIZE", self.EMBEDDING_BATCH_SIZE))
        self.EMBEDDING_BATCH_DELAY = float(os.getenv("RAG_EMBEDDING_BATCH_DELAY", self.EMBEDDING_BATCH_DELAY))

        # Vector Store
        self.PERSIST_DIRECTORY = os.getenv("RAG_PERSIST_DIRECTORY", self.PERSIST_DIRECTORY)
        self.COLLECTION_NAME = os.getenv("RAG_COLLECTION_NAME", self.COLLECTION_NAME)

        # Search
        self.SEARCH_THRESHOLD = float(os.getenv("RAG_SEARCH_THRESHOLD", self.SEARCH_THRESHOLD))
        self.GENERATION_THRESHOLD = float(os.getenv("RAG_GENERATION_THRESHOLD", self.GENERATION_THRESHOLD))

        # Topic extraction
        self.EXTRACT_TOPICS = _env_bool("RAG_EXTRACT_TOPICS", self.EXTRACT_TOPICS)

        # LLM Provider
        self.LLM_PROVIDER = os.getenv("LLM_PROVIDER", self.LLM_PROVIDER).lower()

        # Ollama
        self.OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", self.OLLAMA_MODEL)
        self.OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", self.OLLAMA_BASE_URL)
        self.OLLAMA_TEMPERATURE = float(os.getenv("OLLAMA_TEMPERATURE", self.OLLAMA_TEMPERATURE))

        # Groq Cloud
        self.GROQ_API_KEY = os.getenv("GROQ_API_KEY")
        self.GROQ_MODEL = os.getenv("GROQ_MODEL", self.GROQ_MODEL)
        self.GROQ_BASE_URL = os.getenv("GROQ_BASE_URL", self.GROQ_BASE_URL)
        self.GROQ_FALLBACK_TO_OLLAMA = _env_bool("GROQ_FALLBACK_TO_OLLAMA", self.GROQ_FALLBACK_TO_OLLAMA)

        # Logging
        self.ENABLE_DEBUG_LOGGING = _env_bool("RAG_DEBUG", self.ENABLE_DEBUG_LOGGING)

        # Auto-detect GPU
        self._detect_device()

        # Ensure persist directory exists
        Path(self.PERSIST_DIRECTORY).mkdir(parents=True, exist_ok=True)

    def _detect_device(self):
        """Use CUDA for local embeddings when torch sees a GPU"""
        if self.EMBEDDING_PROVIDER != "local" or self.EMBEDDING_DEVICE not in ("auto", "cpu"):
            return
        try:
            import torch
        except ImportError:
            self.EMBEDDING_DEVICE = "cpu"
            return
        self.EMBEDDING_DEVICE = "cuda" if torch.cuda.is_available() else "cpu"

    def get_chunk_strategy(self, name: str) -> Tuple[int, int]:
        """Look up (chunk_size, chunk_overlap) for a strategy name"""
        key = name.upper()
        if key not in self.CHUNK_STRATEGIES:
            raise ValueError(
                f"Unknown chunk strategy: {name}. "
                f"Supported: {', '.join(self.CHUNK_STRATEGIES)}"
            )
        return self.CHUNK_STRATEGIES[key]


# Global config instance
rag_config = RAGConfig()
