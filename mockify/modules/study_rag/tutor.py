"""
Doubt Resolver Module
=====================
Chat-style AI tutor that explains a test question the student is stuck on,
grounded in the student's own study material when it is relevant.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from langchain_core.prompts import ChatPromptTemplate

from .config import rag_config
from .embeddings import EmbeddingError
from .llm_providers import BaseLLM, LLMError, LLMRateLimitError
from .question_generator import ANSWER_LETTERS, GenerationError
from .retriever import MaterialRetriever

logger = logging.getLogger(__name__)


DOUBT_RESOLVER_PROMPT = """You are a patient, expert tutor helping a student understand an exam question.
Stay focused on this question and the student's doubt.

QUESTION:
{question_text}

OPTIONS:
{options}

CORRECT ANSWER: {correct_answer}
STUDENT'S ANSWER: {user_answer}
TOPIC: {topic}

{history}STUDENT'S DOUBT:
{doubt_text}

RELEVANT STUDY MATERIAL:
{references}

Answer the doubt clearly and concisely:
1. Explain why the correct answer is right
2. If the student's answer is wrong, explain the misconception
3. Use the study material when it is relevant
4. End with one practical tip for similar questions"""


@dataclass
class MaterialReference:
    material_id: str
    content: str
    source: str
    relevance_score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "material_id": self.material_id,
            "content": self.content,
            "source": self.source,
            "relevance_score": round(self.relevance_score, 4),
        }


@dataclass
class DoubtResolution:
    explanation: str
    confidence: str
    references: List[MaterialReference] = field(default_factory=list)


def confidence_for(reference_count: int) -> str:
    if reference_count >= 2:
        return "high"
    if reference_count == 1:
        return "medium"
    return "low"


def format_options(options: Sequence[str]) -> str:
    return "\n".join(f"{ANSWER_LETTERS[i]}) {option}" for i, option in enumerate(options[:4]))


def format_history(history: Optional[Sequence[Dict[str, str]]]) -> str:
    if not history:
        return ""
    turns = list(history)[-rag_config.TUTOR_HISTORY_TURNS:]
    lines = [f"{turn.get('role', 'user').upper()}: {turn.get('content', '')}" for turn in turns]
    return "PREVIOUS CONVERSATION:\n" + "\n".join(lines) + "\n\n"


class DoubtResolver:
    """
    Answer a student's doubt about a question.

    Features:
    - Semantic retrieval of the student's own material
    - Conversation history for follow-up questions
    - Confidence from how much supporting material was found
    """

    def __init__(self, retriever: MaterialRetriever, llm_provider: BaseLLM):
        self.retriever = retriever
        self._llm_provider = llm_provider
        self.prompt = ChatPromptTemplate.from_template(DOUBT_RESOLVER_PROMPT)

    def set_llm_provider(self, provider: BaseLLM):
        self._llm_provider = provider
        logger.info(f"DoubtResolver LLM provider updated: {provider.provider_name}")

    def find_references(self, user_id: str, question_text: str, topic: Optional[str]) -> List[MaterialReference]:
        """Chunks of the user's material relevant to the question"""
        query = f"{question_text} {topic or ''}".strip()
        try:
            matches = self.retriever.search_chunks(
                query,
                user_id=user_id,
                threshold=rag_config.GENERATION_THRESHOLD,
                limit=rag_config.TUTOR_MAX_REFERENCES,
            )
        except EmbeddingError as e:
            logger.warning(f"Reference search failed: {e}")
            return []

        return [
            MaterialReference(
                material_id=match.material_id,
                content=match.text[:rag_config.TUTOR_REFERENCE_CHARS],
                source=match.material_topic,
                relevance_score=match.similarity,
            )
            for match in matches
        ]

    def resolve(
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
        """
        Explain the question in light of the student's doubt.

        Args:
            fallback_references: Used when semantic search finds nothing

        Raises:
            GenerationError: the LLM call failed
        """
        references = self.find_references(user_id, question_text, topic)
        if not references and fallback_references:
            references = fallback_references[:rag_config.TUTOR_MAX_REFERENCES]

        reference_text = "\n\n".join(
            f"[{ref.source}]\n{ref.content}" for ref in references
        ) or "No study material available for this question."

        messages = self.prompt.format_messages(
            question_text=question_text,
            options=format_options(options),
            correct_answer=correct_answer,
            user_answer=user_answer or "Not answered",
            topic=topic or "General",
            history=format_history(history),
            doubt_text=doubt_text,
            references=reference_text,
        )

        try:
            explanation = self._llm_provider.generate(messages)
        except LLMRateLimitError as e:
            raise GenerationError(str(e), rate_limited=True) from e
        except LLMError as e:
            raise GenerationError(str(e)) from e

        logger.info(f"Resolved doubt with {len(references)} references")

        return DoubtResolution(
            explanation=explanation.strip(),
            confidence=confidence_for(len(references)),
            references=references,
        )
