"""
Shared fixtures: temporary data directories, fake LLM and embeddings
"""
import os
import re
import json
import uuid
import hashlib
import tempfile
from typing import List

# Settings are read at import time, so point them at a scratch area first
_TMP_DIR = tempfile.mkdtemp(prefix="mockify-tests-")
os.environ["DATA_DIR"] = _TMP_DIR
os.environ["LOGS_DIR"] = os.path.join(_TMP_DIR, "logs")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'mockify-test.db')}"
os.environ["RAG_PERSIST_DIRECTORY"] = os.path.join(_TMP_DIR, "chroma")
os.environ["RAG_EXTRACT_TOPICS"] = "false"
os.environ["RAG_DEBUG"] = "false"
os.environ["RAG_EMBEDDING_BATCH_DELAY"] = "0"
os.environ["GROQ_API_KEY"] = ""

import pytest
from fastapi.testclient import TestClient
from langchain_core.embeddings import Embeddings
from langchain_core.language_models import FakeListChatModel

from mockify.database import Base, engine
from mockify.dependencies import get_rag_service
from mockify.main import app
from mockify.modules.study_rag import (
    BaseLLM,
    ChromaVectorStore,
    EmbeddingClient,
    MaterialRetriever,
    StudyRAGService,
)

DIMENSIONS = 1024


class KeywordEmbeddings(Embeddings):
    """Bag-of-words vectors: texts sharing words are similar"""

    def _embed(self, text: str) -> List[float]:
        vector = [0.0] * DIMENSIONS
        for word in re.findall(r"\w+", text.lower()):
            bucket = int(hashlib.md5(word.encode("utf-8")).hexdigest(), 16) % (DIMENSIONS - 1)
            vector[bucket + 1] += 1.0
        norm = sum(v * v for v in vector) ** 0.5 or 1.0
        vector = [v / norm for v in vector]
        vector[0] = 0.05
        return vector

    def embed_documents(self, texts: List[str]) -> List[List[float]]:
        return [self._embed(text) for text in texts]

    def embed_query(self, text: str) -> List[float]:
        return self._embed(text)


class FakeLLM(BaseLLM):
    """LLM provider answering from a fixed list of responses"""

    def __init__(self, responses=None, error: Exception = None):
        super().__init__(model="fake-model", max_retries=0, backoff_base=0)
        self.prompts = []
        self.error = error
        self.set_responses(responses or ['{"questions": []}'])

    @property
    def provider_name(self) -> str:
        return "fake"

    def set_responses(self, responses):
        self.chat_model = FakeListChatModel(responses=list(responses))
        self._llm = None
        self._llm_json = None

    def _create_llm(self, json_mode: bool = False):
        return self.chat_model

    def invoke(self, prompt, json_mode: bool = False):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return super().invoke(prompt, json_mode=json_mode)

    def check_connection(self):
        return {"connected": True, "provider": self.provider_name, "model": self.model}

    def last_prompt(self) -> str:
        prompt = self.prompts[-1]
        if isinstance(prompt, str):
            return prompt
        return "\n".join(message.content for message in prompt)


def question_payload(*questions) -> str:
    """JSON the way the LLM returns generated questions"""
    return json.dumps({"questions": list(questions)})


def make_question(question, options, answer="A", topic="Biology", difficulty="medium", explanation=""):
    return {
        "question": question,
        "options": options,
        "correct_answer": answer,
        "topic": topic,
        "difficulty": difficulty,
        "explanation": explanation,
    }


# ===== Pipeline fixtures =====

@pytest.fixture
def embeddings():
    return EmbeddingClient(backend=KeywordEmbeddings(), backoff_base=0, batch_delay=0)


@pytest.fixture
def vector_store(tmp_path, embeddings):
    return ChromaVectorStore(
        embeddings=embeddings,
        persist_directory=str(tmp_path / "chroma"),
        collection_name=f"test_{uuid.uuid4().hex[:12]}",
    )


@pytest.fixture
def retriever(vector_store):
    return MaterialRetriever(vector_store)


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def rag_service(embeddings, vector_store, fake_llm):
    return StudyRAGService(embeddings=embeddings, vector_store=vector_store, llm_provider=fake_llm)


# ===== API fixtures =====

@pytest.fixture
def client(rag_service):
    app.dependency_overrides[get_rag_service] = lambda: rag_service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)


def signup(client, email=None, password="secret123", name="Test Student"):
    email = email or f"student-{uuid.uuid4().hex[:8]}@example.com"
    response = client.post("/api/auth/signup", json={"email": email, "password": password, "name": name})
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def auth_headers(client):
    token = signup(client)["access_token"]
    return {"Authorization": f"Bearer {token}"}


BIOLOGY_NOTES = (
    "Photosynthesis is the process by which green plants use sunlight, water and carbon dioxide "
    "to produce glucose and oxygen. It takes place in the chloroplasts, which contain chlorophyll. "
    "The light reactions happen in the thylakoid membranes and the Calvin cycle happens in the stroma."
)

HISTORY_NOTES = (
    "The French Revolution began in 1789 with the storming of the Bastille. It ended the absolute "
    "monarchy of Louis XVI and spread ideas of liberty, equality and fraternity across Europe. "
    "Napoleon Bonaparte rose to power in the years after the revolution."
)


def upload_text(client, headers, content=BIOLOGY_NOTES, filename="biology-notes.txt", **form):
    data = {"material_type": "notes", **form}
    return client.post(
        "/api/materials/upload",
        headers=headers,
        files={"file": (filename, content.encode("utf-8"), "text/plain")},
        data=data,
    )
