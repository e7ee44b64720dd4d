"""
Question Generator Module
=========================
Generate mock exam questions from a user's study material using
retrieval + configurable LLM backends with JSON output.

Flow:
1. Search the selected materials for chunks relevant to the exam/topics
2. Build a numbered context block (generic fallback when too thin)
3. Ask the LLM for a JSON list of multiple-choice questions
4. Normalize, validate and de-duplicate the questions
"""

import re
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from langchain_core.embeddings import Embeddings
from langchain_core.prompts import ChatPromptTemplate
from pydantic import BaseModel, Field

from .config import rag_config
from .embeddings import EmbeddingError, format_question_for_embedding
from .llm_providers import BaseLLM, LLMError, LLMRateLimitError
from .retriever import MaterialRetriever
from .similarity import find_duplicates
from .vectorstore import ChunkMatch

logger = logging.getLogger(__name__)

ANSWER_LETTERS = ("A", "B", "C", "D")
DIFFICULTIES = ("easy", "medium", "hard")

_OPTION_LABEL = re.compile(r"^\s*(?:[A-Da-d]|[1-4])\s*[\).:\-]\s+")


class GenerationError(Exception):
    """The LLM could not produce usable questions"""

    def __init__(self, message: str, rate_limited: bool = False):
        super().__init__(message)
        self.rate_limited = rate_limited


# ===== Question Data Model =====

class GeneratedQuestion(BaseModel):
    """A validated multiple-choice question"""
    question: str = Field(description="Question text")
    options: List[str] = Field(description="Exactly four answer options, A to D")
    correct_answer: str = Field(description="Letter of the correct option")
    topic: str = Field(description="Topic the question tests")
    difficulty: str = Field(default="medium", description="easy, medium or hard")
    explanation: str = Field(default="", description="Why the correct answer is right")


# ===== Prompt Templates =====

QUESTION_GENERATION_PROMPT = """You are an expert exam question writer preparing students for the {exam_type} exam.

Create {question_count} multiple-choice questions at {difficulty} difficulty.

TOPICS TO COVER: {topics}

STUDY MATERIAL:
{context}

STRICT RULES:
1. Base questions on the study material above; when it is generic, use standard {exam_type} syllabus knowledge
2. Each question has exactly 4 options
3. Exactly one option is correct; wrong options must be plausible
4. Follow the difficulty level:
   - easy: recall of basic facts and definitions
   - medium: understanding and application of concepts
   - hard: analysis, multi-step reasoning and comparison
5. Do not repeat the same idea in two questions
6. Tag every question with the topic it tests

OUTPUT FORMAT (JSON only, no markdown):
{{
  "questions": [
    {{
      "question": "Question text?",
      "options": ["Option A", "Option B", "Option C", "Option D"],
      "correct_answer": "A",
      "topic": "Topic name",
      "difficulty": "{difficulty}",
      "explanation": "Brief explanation of the correct answer"
    }}
  ]
}}

Return ONLY valid JSON, no additional text."""


TOPIC_EXTRACTION_PROMPT = """Analyze the following study material and extract the main topics/concepts that could be used for exam questions.

STUDY MATERIAL:
{context}

Extract {max_topics} main topics from this content. Topics should be:
- Specific enough to generate focused questions
- Clear and concise (1-5 words each)
- Represent key concepts, chapters, or sections in the material

OUTPUT FORMAT (JSON only):
{{
  "topics": [
    {{"name": "Topic Name", "description": "Brief description of what this topic covers"}}
  ]
}}

Return ONLY valid JSON, no additional text."""


FALLBACK_CONTENT = (
    "General {exam_type} exam preparation content. Cover the most important "
    "concepts, definitions, facts and standard question patterns of the "
    "{exam_type} syllabus{topic_clause}."
)


# ===== Parsing helpers =====

def parse_json_response(content: str) -> Optional[Union[Dict, List]]:
    """Parse a JSON object or array out of an LLM response."""
    if not content:
        return None

    try:
        return json.loads(content)
    except json.JSONDecodeError:
        pass

    # Try to extract JSON from markdown code block
    json_match = re.search(r'```(?:json)?\s*([\s\S]*?)\s*```', content)
    if json_match:
        try:
            return json.loads(json_match.group(1))
        except json.JSONDecodeError:
            pass

    # Try to find a JSON object or array in content
    for pattern in (r'\{[\s\S]*\}', r'\[[\s\S]*\]'):
        json_match = re.search(pattern, content)
        if json_match:
            try:
                return json.loads(json_match.group(0))
            except json.JSONDecodeError:
                pass

    logger.error(f"Could not parse JSON from response: {content[:200]}")
    return None


def extract_question_list(data: Any) -> List[Dict]:
    """Accept {"questions": [...]}, {"quiz": [...]} or a bare list"""
    if isinstance(data, list):
        return [q for q in data if isinstance(q, dict)]
    if isinstance(data, dict):
        for key in ("questions", "quiz", "items"):
            if isinstance(data.get(key), list):
                return [q for q in data[key] if isinstance(q, dict)]
    return []


def normalize_correct_answer(answer: Any, options: Sequence[str]) -> Optional[str]:
    """
    Map an answer given as a letter, "B) text", option number or the
    option text itself to a letter A-D. None when it cannot be mapped.
    """
    if answer is None:
        return None
    value = str(answer).strip()
    if not value:
        return None

    for i, option in enumerate(options[:4]):
        if value.lower() == str(option).strip().lower():
            return ANSWER_LETTERS[i]

    if value.isdigit() and 1 <= int(value) <= 4:
        return ANSWER_LETTERS[int(value) - 1]

    letter = value[0].upper()
    if letter in ANSWER_LETTERS and (len(value) == 1 or not value[1].isalnum()):
        return letter
    return None


def normalize_question(
    raw: Dict[str, Any],
    default_topic: str,
    default_difficulty: str = "medium",
    strict_options: bool = False
) -> Optional[Dict[str, Any]]:
    """
    Validate one raw LLM question.

    Options may be a list or an {"A": ...} dict and are padded or trimmed
    to four unless strict_options, in which case anything but four is
    rejected. Returns None for unusable questions.
    """
    text = str(raw.get("question") or raw.get("question_text") or "").strip()
    if not text:
        return None

    options = raw.get("options")
    if isinstance(options, dict):
        options = [options[key] for key in sorted(options)]
    if not isinstance(options, list) or not options:
        return None

    options = [_OPTION_LABEL.sub("", str(opt)).strip() for opt in options]
    if strict_options and len(options) != 4:
        return None
    while len(options) < 4:
        options.append(f"Option {ANSWER_LETTERS[len(options)]}")
    options = options[:4]

    answer = raw.get("correct_answer", raw.get("correctAnswer", raw.get("answer")))
    correct = normalize_correct_answer(answer, options)
    if correct is None:
        return None

    difficulty = str(raw.get("difficulty") or default_difficulty).lower()
    if difficulty not in DIFFICULTIES:
        difficulty = default_difficulty

    question = GeneratedQuestion(
        question=text,
        options=options,
        correct_answer=correct,
        topic=str(raw.get("topic") or default_topic).strip() or default_topic,
        difficulty=difficulty,
        explanation=str(raw.get("explanation") or ""),
    )
    return question.model_dump()


def is_context_length_error(error: Exception) -> bool:
    message = str(error).lower()
    return any(marker in message for marker in ("context length", "context_length", "too long", "maximum context"))


class QuestionGenerator:
    """
    Generate exam questions from retrieved study material.
    Supports multiple LLM providers with strict JSON output.
    """

    def __init__(
        self,
        retriever: MaterialRetriever,
        llm_provider: BaseLLM,
        embeddings: Optional[Embeddings] = None
    ):
        """
        Initialize Question Generator.

        Args:
            retriever: MaterialRetriever over the user's chunks
            llm_provider: LLM provider used for generation
            embeddings: Used to drop near-duplicate questions (optional)
        """
        self.retriever = retriever
        self._llm_provider = llm_provider
        self.embeddings = embeddings

        self.prompt = ChatPromptTemplate.from_template(QUESTION_GENERATION_PROMPT)
        self.topic_prompt = ChatPromptTemplate.from_template(TOPIC_EXTRACTION_PROMPT)

        logger.info(f"QuestionGenerator initialized with provider: {llm_provider.provider_name}")

    def set_llm_provider(self, provider: BaseLLM):
        """Set a new LLM provider at runtime."""
        self._llm_provider = provider
        logger.info(f"QuestionGenerator LLM provider updated: {provider.provider_name}")

    # ===== Context =====

    @staticmethod
    def build_search_query(exam_type: str, topics: Sequence[str]) -> str:
        return f"{exam_type} {' '.join(topics)} questions and concepts".strip()

    @staticmethod
    def fallback_content(exam_type: str, topics: Sequence[str]) -> str:
        topic_clause = f", especially {', '.join(topics)}" if topics else ""
        return FALLBACK_CONTENT.format(exam_type=exam_type, topic_clause=topic_clause)

    def gather_context(
        self,
        user_id: str,
        exam_type: str,
        topics: Sequence[str],
        material_ids: Sequence[str]
    ) -> Tuple[str, List[ChunkMatch]]:
        """
        Retrieve and format context from the selected materials.

        Embedding failures are logged and generation continues without
        material context.
        """
        if not material_ids:
            return "", []

        query = self.build_search_query(exam_type, topics)
        try:
            matches = self.retriever.search_chunks(
                query,
                user_id=user_id,
                threshold=rag_config.GENERATION_THRESHOLD,
                limit=rag_config.GENERATION_MATCH_COUNT,
                material_ids=list(material_ids),
            )
        except EmbeddingError as e:
            logger.error(f"Semantic search failed, generating without material context: {e}")
            return "", []

        matches.sort(key=lambda m: m.similarity, reverse=True)
        return self.retriever.format_context(matches), matches

    # ===== Generation =====

    def _invoke(self, content: str, exam_type: str, difficulty: str, question_count: int, topics: Sequence[str]) -> str:
        messages = self.prompt.format_messages(
            exam_type=exam_type,
            difficulty=difficulty,
            question_count=question_count,
            topics=", ".join(topics) if topics else "All syllabus topics",
            context=content,
        )
        return self._llm_provider.generate(messages, json_mode=True)

    def generate_questions(
        self,
        user_id: str,
        exam_type: str,
        difficulty: str,
        question_count: int,
        topics: Optional[Sequence[str]] = None,
        material_ids: Optional[Sequence[str]] = None
    ) -> Dict[str, Any]:
        """
        Generate questions for a mock test.

        Args:
            user_id: Owner of the materials
            exam_type: Exam the test prepares for
            difficulty: easy, medium or hard
            question_count: Number of questions wanted
            topics: Topics to cover
            material_ids: Materials to draw context from

        Returns:
            Dictionary with questions and generation metadata

        Raises:
            GenerationError: LLM failed or returned no usable questions
        """
        topics = [t for t in (topics or []) if t and t.strip()]
        material_ids = list(material_ids or [])

        logger.info(
            f"Generating questions: exam={exam_type}, difficulty={difficulty}, "
            f"count={question_count}, topics={topics}, materials={len(material_ids)}"
        )

        context, matches = self.gather_context(user_id, exam_type, topics, material_ids)
        content = context
        if len(content) < rag_config.MIN_CONTEXT_LENGTH:
            logger.info("Insufficient material context, using generic exam content")
            content = self.fallback_content(exam_type, topics)

        try:
            raw = self._invoke(content, exam_type, difficulty, question_count, topics)
        except LLMRateLimitError as e:
            raise GenerationError(str(e), rate_limited=True) from e
        except LLMError as e:
            if not is_context_length_error(e):
                raise GenerationError(str(e)) from e
            logger.warning("Context too long for the model, retrying with minimal content")
            try:
                raw = self._invoke(
                    self.fallback_content(exam_type, topics), exam_type, difficulty, question_count, topics
                )
            except LLMError as retry_error:
                raise GenerationError(str(retry_error)) from retry_error

        logger.info(f"Raw LLM response: {raw[:500]}...")

        data = parse_json_response(raw)
        if data is None:
            raise GenerationError("Could not parse questions from the AI response")

        default_topic = topics[0] if topics else exam_type
        questions = []
        for i, item in enumerate(extract_question_list(data)):
            question = normalize_question(item, default_topic, difficulty)
            if question is None:
                logger.warning(f"Dropping invalid question {i}: {str(item)[:100]}")
                continue
            questions.append(question)

        questions = self._remove_duplicates(questions)[:question_count]
        if not questions:
            raise GenerationError("The AI response contained no valid questions")

        logger.info(f"Generated {len(questions)} questions")

        return {
            "success": True,
            "questions": questions,
            "metadata": {
                "chunks_used": len(matches),
                "content_length": len(content),
                "average_similarity": self._average_similarity(matches),
                "materials_used": len({m.material_id for m in matches}),
                "generated_at": datetime.now(timezone.utc).isoformat(),
                "num_questions_requested": question_count,
                "num_questions_generated": len(questions),
            },
        }

    @staticmethod
    def _average_similarity(matches: List[ChunkMatch]) -> str:
        if not matches:
            return "N/A"
        average = sum(m.similarity for m in matches) / len(matches)
        return f"{average * 100:.1f}%"

    def _remove_duplicates(self, questions: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Drop exact repeats, then near-duplicates by embedding similarity"""
        unique = []
        seen = set()
        for question in questions:
            key = question["question"].strip().lower()
            if key in seen:
                continue
            seen.add(key)
            unique.append(question)

        if self.embeddings is None or len(unique) < 2:
            return unique

        texts = [format_question_for_embedding(q["question"], q["options"]) for q in unique]
        try:
            vectors = self.embeddings.embed_documents(texts)
        except (EmbeddingError, ValueError) as e:
            logger.warning(f"Skipping near-duplicate check: {e}")
            return unique

        kept: List[Dict[str, Any]] = []
        kept_items: List[Dict[str, Any]] = []
        for question, vector in zip(unique, vectors):
            if kept_items and find_duplicates(vector, kept_items, rag_config.DUPLICATE_THRESHOLD):
                logger.info(f"Dropping near-duplicate question: {question['question'][:80]}")
                continue
            kept.append(question)
            kept_items.append({"embedding": vector})

        return kept

    # ===== Topics =====

    def extract_topics_from_context(
        self,
        context: str,
        max_topics: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Extract topics from provided context using LLM.
        Used after indexing a material to suggest topics.

        Args:
            context: Material content to analyze
            max_topics: Maximum number of topics to extract

        Returns:
            Dictionary with topics
        """
        logger.info("Extracting topics from provided context...")

        try:
            messages = self.topic_prompt.format_messages(
                context=context[:rag_config.TOPIC_CONTEXT_CHARS],
                max_topics=max_topics or rag_config.MAX_TOPICS,
            )
            content = self._llm_provider.generate(messages, json_mode=True)
        except LLMError as e:
            logger.error(f"Error extracting topics from context: {e}")
            return {"success": False, "topics": [], "message": str(e)}

        data = parse_json_response(content)
        topics = []
        if isinstance(data, dict) and isinstance(data.get("topics"), list):
            for topic in data["topics"]:
                if isinstance(topic, dict) and topic.get("name"):
                    topics.append({
                        "name": str(topic["name"]).strip(),
                        "description": str(topic.get("description") or "").strip(),
                    })
                elif isinstance(topic, str) and topic.strip():
                    topics.append({"name": topic.strip(), "description": ""})

        if topics:
            return {"success": True, "topics": topics[:max_topics or rag_config.MAX_TOPICS]}

        return {"success": False, "topics": [], "message": "Could not extract topics"}
