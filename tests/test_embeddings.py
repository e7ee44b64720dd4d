"""
Unit tests for the embedding client
"""
import time
import threading

import pytest
from langchain_core.embeddings import Embeddings

from mockify.modules.study_rag import embeddings as embeddings_module
from mockify.modules.study_rag.embeddings import (
    EmbeddingClient,
    EmbeddingError,
    format_material_for_embedding,
    format_question_for_embedding,
)


class FlakyEmbeddings(Embeddings):
    """Fails a fixed number of times before answering"""

    def __init__(self, failures=0, message="connection reset"):
        self.failures = failures
        self.message = message
        self.calls = 0
        self.batches = []

    def _maybe_fail(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError(self.message)

    def embed_documents(self, texts):
        self._maybe_fail()
        self.batches.append(list(texts))
        return [[float(len(text)), 1.0] for text in texts]

    def embed_query(self, text):
        self._maybe_fail()
        return [float(len(text)), 1.0]


def make_client(backend, **kwargs):
    kwargs.setdefault("max_retries", 3)
    return EmbeddingClient(backend=backend, backoff_base=0, batch_delay=0, **kwargs)


class TestEmbedText:
    """Test cases for single-text embedding"""

    def test_retries_until_success(self):
        backend = FlakyEmbeddings(failures=2)
        client = make_client(backend)

        assert client.embed_text("osmosis") == [7.0, 1.0]
        assert backend.calls == 3

    def test_gives_up_after_max_retries(self):
        backend = FlakyEmbeddings(failures=10)
        client = make_client(backend)

        with pytest.raises(EmbeddingError, match="after 3 attempts"):
            client.embed_text("osmosis")
        assert backend.calls == 3

    def test_auth_error_is_not_retried(self):
        """A rejected API key fails on the first attempt"""
        backend = FlakyEmbeddings(failures=10, message="401 Unauthorized")
        client = make_client(backend)

        with pytest.raises(EmbeddingError, match="API key"):
            client.embed_text("osmosis")
        assert backend.calls == 1

    def test_empty_text(self):
        client = make_client(FlakyEmbeddings())
        with pytest.raises(ValueError):
            client.embed_text("   ")

    def test_truncates_long_text(self):
        client = make_client(FlakyEmbeddings(), max_chars=10)
        assert client.embed_text("x" * 50) == [10.0, 1.0]


class TestEmbedTexts:
    """Test cases for batched embedding"""

    def test_batches_in_order(self):
        backend = FlakyEmbeddings()
        client = make_client(backend, batch_size=2)

        vectors = client.embed_texts(["a", "bb", "ccc", "dddd", "eeeee"])

        assert [v[0] for v in vectors] == [1.0, 2.0, 3.0, 4.0, 5.0]
        assert [len(batch) for batch in backend.batches] == [2, 2, 1]

    def test_empty_list(self):
        client = make_client(FlakyEmbeddings())
        with pytest.raises(ValueError):
            client.embed_texts([])

    def test_failed_batch_reports_position(self):
        backend = FlakyEmbeddings(failures=10)
        client = make_client(backend, batch_size=2, max_retries=1)

        with pytest.raises(EmbeddingError, match="batch 1"):
            client.embed_texts(["a", "b", "c"])

    def test_backoff_is_capped(self):
        client = EmbeddingClient(backend=FlakyEmbeddings(), backoff_base=1.0, backoff_max=5.0)
        assert client.backoff_delay(1) == 1.0
        assert client.backoff_delay(3) == 4.0
        assert client.backoff_delay(6) == 5.0


class TestFormatting:
    """Test cases for embedding text helpers"""

    def test_question_with_options(self):
        text = format_question_for_embedding("What is H2O?", ["Water", "Salt", "", "no"])
        assert text == "What is H2O? Options: 1. Water 2. Salt"

    def test_question_without_options(self):
        assert format_question_for_embedding("  What is H2O?  ") == "What is H2O?"

    def test_material_uses_three_questions(self):
        text = format_material_for_embedding("Chemistry", ["Q1?", "Q2?", "Q3?", "Q4?"])
        assert text == "Topic: Chemistry. Q1? Q2? Q3?"

    def test_material_is_capped(self):
        assert len(format_material_for_embedding("x" * 5000)) == 2000


class TestSharedBackend:
    """The configured model is built once even under concurrent first use"""

    def test_backend_created_once_across_threads(self, monkeypatch):
        created = []

        def slow_backend():
            time.sleep(0.05)
            created.append(1)
            return FlakyEmbeddings()

        monkeypatch.setattr(EmbeddingClient, "_shared_backend", None)
        monkeypatch.setattr(embeddings_module, "create_embedding_backend", slow_backend)

        backends = []
        start = threading.Barrier(4)

        def worker():
            start.wait()
            backends.append(EmbeddingClient().backend)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(created) == 1
        assert len({id(backend) for backend in backends}) == 1
