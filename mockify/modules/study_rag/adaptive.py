"""
Adaptive Practice Module
========================
Weak-topic detection and targeted practice generation.

A topic is weak when the user's historical correct-answer rate on it is
below WEAK_TOPIC_THRESHOLD. Weak topics get a priority and a suggested
difficulty, and drive what the practice generator asks the LLM for.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from langchain_core.prompts import ChatPromptTemplate

from ...core.constants import Priority
from .config import rag_config
from .llm_providers import BaseLLM, LLMError, LLMRateLimitError
from .question_generator import GenerationError, extract_question_list, normalize_question, parse_json_response
from .scoring import is_correct

logger = logging.getLogger(__name__)

_PRIORITY_ORDER = {Priority.HIGH.value: 0, Priority.MEDIUM.value: 1, Priority.LOW.value: 2}


@dataclass
class WeakTopic:
    topic: str
    score: int
    questions_attempted: int
    priority: str
    suggested_difficulty: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def aggregate_topic_results(history: Iterable[Mapping[str, Mapping[str, int]]]) -> Dict[str, Dict[str, int]]:
    """Sum {topic: {correct, total}} maps across graded records"""
    totals: Dict[str, Dict[str, int]] = {}
    for record in history:
        for topic, result in (record or {}).items():
            bucket = totals.setdefault(topic, {"correct": 0, "total": 0})
            bucket["correct"] += int(result.get("correct", 0))
            bucket["total"] += int(result.get("total", 0))
    return totals


def classify_topic(topic: str, correct: int, total: int) -> Optional[WeakTopic]:
    """WeakTopic for a topic below the threshold, None otherwise"""
    if total <= 0:
        return None

    score = correct / total * 100
    if score >= rag_config.WEAK_TOPIC_THRESHOLD:
        return None

    if score < rag_config.HIGH_PRIORITY_BELOW:
        priority, difficulty = Priority.HIGH.value, "easy"
    elif score < rag_config.MEDIUM_PRIORITY_BELOW:
        priority, difficulty = Priority.MEDIUM.value, "medium"
    else:
        priority, difficulty = Priority.LOW.value, "medium"

    return WeakTopic(
        topic=topic,
        score=round(score),
        questions_attempted=total,
        priority=priority,
        suggested_difficulty=difficulty,
    )


def analyze_weak_topics(history: Iterable[Mapping[str, Mapping[str, int]]]) -> List[WeakTopic]:
    """
    Weak topics from recent graded records.

    Args:
        history: Per-record {topic: {"correct": n, "total": m}} maps

    Returns:
        Weak topics, high priority first, lowest score first within a priority
    """
    weak = []
    for topic, totals in aggregate_topic_results(history).items():
        classified = classify_topic(topic, totals["correct"], totals["total"])
        if classified:
            weak.append(classified)

    weak.sort(key=lambda w: (_PRIORITY_ORDER[w.priority], w.score))
    return weak


def summarize_weak_topics(weak_topics: Sequence[WeakTopic]) -> Dict[str, Any]:
    return {
        "total_weak_topics": len(weak_topics),
        "high_priority": sum(1 for w in weak_topics if w.priority == Priority.HIGH.value),
        "medium_priority": sum(1 for w in weak_topics if w.priority == Priority.MEDIUM.value),
        "low_priority": sum(1 for w in weak_topics if w.priority == Priority.LOW.value),
        "average_score": round(sum(w.score for w in weak_topics) / len(weak_topics)) if weak_topics else 0,
    }


def generate_practice_tips(weak_topics: Sequence[WeakTopic]) -> List[str]:
    tips = []
    for weak in weak_topics:
        if weak.priority == Priority.HIGH.value:
            tips.append(f"Start with the basics of {weak.topic}: re-read your notes before practicing.")
        elif weak.priority == Priority.MEDIUM.value:
            tips.append(f"Practice applying {weak.topic} concepts with timed questions.")
        else:
            tips.append(f"You are close on {weak.topic}. Review mistakes to push past {rag_config.WEAK_TOPIC_THRESHOLD:.0f}%.")
    tips.append("Read the explanation for every question you miss.")
    tips.append("Take a short break between practice sets to stay focused.")
    return tips[:5]


def grade_practice_session(
    questions: Sequence[Mapping[str, Any]],
    answers: Mapping[str, Any],
    weak_topics: Sequence[Mapping[str, Any]]
) -> Dict[str, Any]:
    """
    Grade a practice session.

    Args:
        questions: Stored practice questions, answered by position
        answers: str(position) -> submitted answer
        weak_topics: Weak topics the session targeted (with their scores)

    Returns:
        Score, per-topic results and score change per targeted topic
    """
    correct = 0
    topic_results: Dict[str, Dict[str, int]] = {}

    for position, question in enumerate(questions):
        right = is_correct(answers.get(str(position)), question["correct_answer"])
        correct += int(right)
        bucket = topic_results.setdefault(question["topic"], {"correct": 0, "total": 0})
        bucket["total"] += 1
        bucket["correct"] += int(right)

    improvement = {}
    for weak in weak_topics:
        result = topic_results.get(weak["topic"])
        if result and result["total"]:
            new_score = round(result["correct"] / result["total"] * 100)
            improvement[weak["topic"]] = new_score - int(weak["score"])

    score = round(correct / len(questions) * 100) if questions else 0
    return {
        "score": score,
        "correct_answers": correct,
        "total_questions": len(questions),
        "topic_results": topic_results,
        "improvement": improvement,
    }


ADAPTIVE_PRACTICE_PROMPT = """You are an expert tutor preparing a student for the {exam_type} exam.

The student is weak in these topics (score and suggested difficulty):
{weak_topics}

RELEVANT STUDY MATERIAL:
{material_context}

Create {question_count} multiple-choice practice questions that target these weak topics.
Spread the questions across the topics, giving more to lower scores.
Use the suggested difficulty for each topic.

OUTPUT FORMAT (JSON only):
{{
  "questions": [
    {{
      "question": "Question text?",
      "options": ["Option A", "Option B", "Option C", "Option D"],
      "correct_answer": "A",
      "topic": "One of the weak topics",
      "difficulty": "easy",
      "explanation": "Why the answer is correct",
      "focus_area": "Specific concept inside the topic"
    }}
  ]
}}

Return ONLY valid JSON, no additional text."""


class AdaptivePracticeGenerator:
    """Generate practice questions aimed at a user's weak topics"""

    def __init__(self, llm_provider: BaseLLM):
        self._llm_provider = llm_provider
        self.prompt = ChatPromptTemplate.from_template(ADAPTIVE_PRACTICE_PROMPT)

    def set_llm_provider(self, provider: BaseLLM):
        self._llm_provider = provider

    def generate_adaptive_questions(
        self,
        weak_topics: Sequence[WeakTopic],
        question_count: int = 5,
        exam_type: str = "General",
        material_context: str = ""
    ) -> List[Dict[str, Any]]:
        """
        Ask the LLM for practice questions on the weakest topics.

        Only questions with four options, a correct answer and a topic
        are kept.

        Raises:
            GenerationError: LLM failure or nothing usable returned
        """
        targets = list(weak_topics)[:rag_config.ADAPTIVE_TARGET_TOPICS]
        topic_lines = "\n".join(
            f"- {w.topic}: {w.score}% ({w.priority} priority, {w.suggested_difficulty} difficulty)"
            for w in targets
        )

        messages = self.prompt.format_messages(
            exam_type=exam_type,
            weak_topics=topic_lines,
            material_context=material_context[:rag_config.ADAPTIVE_CONTEXT_CHARS] or "No study material available.",
            question_count=question_count,
        )

        try:
            raw = self._llm_provider.generate(messages, json_mode=True)
        except LLMRateLimitError as e:
            raise GenerationError(str(e), rate_limited=True) from e
        except LLMError as e:
            raise GenerationError(str(e)) from e

        data = parse_json_response(raw)
        difficulty_by_topic = {w.topic: w.suggested_difficulty for w in targets}
        default_topic = targets[0].topic if targets else exam_type

        questions = []
        for item in extract_question_list(data):
            if not item.get("topic"):
                continue
            question = normalize_question(
                item,
                default_topic,
                difficulty_by_topic.get(item.get("topic"), "medium"),
                strict_options=True,
            )
            if question is None:
                continue
            question["explanation"] = question["explanation"] or "Practice this concept thoroughly."
            question["focus_area"] = str(item.get("focus_area") or item.get("focusArea") or question["topic"])
            questions.append(question)

        if not questions:
            raise GenerationError("The AI response contained no valid practice questions")

        logger.info(f"Generated {len(questions)} adaptive practice questions")
        return questions[:question_count]
