"""
Test scoring and performance analytics.
"""

import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ...core.constants import PerformanceLevel, ScoreThresholds
from ...utils import calculate_percentage

logger = logging.getLogger(__name__)

DIFFICULTY_LEVELS = ("easy", "medium", "hard")


def normalize_answer(answer: Any) -> str:
    """First character, upper-cased: "a) Paris" and "A" compare equal"""
    if answer is None:
        return ""
    value = str(answer).strip()
    return value[0].upper() if value else ""


def is_correct(user_answer: Any, correct_answer: Any) -> bool:
    user = normalize_answer(user_answer)
    return bool(user) and user == normalize_answer(correct_answer)


@dataclass
class TestScore:
    """Outcome of grading one test"""
    __test__ = False

    score: int
    total_questions: int
    correct_answers: int
    topic_performance: Dict[str, Dict[str, int]] = field(default_factory=dict)
    difficulty_performance: Dict[str, Dict[str, int]] = field(default_factory=dict)
    strengths: List[str] = field(default_factory=list)
    weaknesses: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def calculate_score(
    questions: Sequence[Mapping[str, Any]],
    user_answers: Mapping[str, Any]
) -> TestScore:
    """
    Grade answers against questions.

    Args:
        questions: Each with id, correct_answer, topic and difficulty
        user_answers: question id -> submitted answer

    Returns:
        TestScore with per-topic and per-difficulty breakdowns
    """
    total = len(questions)
    correct = 0
    topics: Dict[str, Dict[str, int]] = {}
    difficulties: Dict[str, Dict[str, int]] = {}

    for question in questions:
        right = is_correct(user_answers.get(question["id"]), question["correct_answer"])
        if right:
            correct += 1

        topic = question.get("topic") or "General"
        bucket = topics.setdefault(topic, {"correct": 0, "total": 0})
        bucket["total"] += 1
        bucket["correct"] += int(right)

        difficulty = (question.get("difficulty") or "medium").lower()
        if difficulty in DIFFICULTY_LEVELS:
            bucket = difficulties.setdefault(difficulty, {"correct": 0, "total": 0})
            bucket["total"] += 1
            bucket["correct"] += int(right)

    for bucket in list(topics.values()) + list(difficulties.values()):
        bucket["percentage"] = calculate_percentage(bucket["correct"], bucket["total"])

    score = calculate_percentage(correct, total)
    strengths = [t for t, b in topics.items() if b["percentage"] >= ScoreThresholds.STRENGTH]
    weaknesses = [t for t, b in topics.items() if b["percentage"] < ScoreThresholds.WEAKNESS]

    return TestScore(
        score=score,
        total_questions=total,
        correct_answers=correct,
        topic_performance=topics,
        difficulty_performance=difficulties,
        strengths=strengths,
        weaknesses=weaknesses,
        recommendations=generate_recommendations(score, topics, difficulties),
    )


def generate_recommendations(
    score: int,
    topic_performance: Mapping[str, Mapping[str, int]],
    difficulty_performance: Mapping[str, Mapping[str, int]]
) -> List[str]:
    recommendations = []

    if score >= ScoreThresholds.EXCELLENT:
        recommendations.append("Excellent performance! Continue with advanced practice tests.")
    elif score >= ScoreThresholds.GOOD:
        recommendations.append("Good job! Focus on weak areas for improvement.")
    elif score >= ScoreThresholds.AVERAGE:
        recommendations.append("Average performance. Increase study time and focus on fundamentals.")
    else:
        recommendations.append("Needs improvement. Review basic concepts thoroughly.")

    weak_topics = [t for t, b in topic_performance.items() if b["percentage"] < ScoreThresholds.WEAKNESS]
    if weak_topics:
        recommendations.append(f"Focus more on: {', '.join(weak_topics)}")

    easy = difficulty_performance.get("easy")
    if easy and easy["percentage"] < 80:
        recommendations.append("Review fundamental concepts for easy questions.")
    medium = difficulty_performance.get("medium")
    if medium and medium["percentage"] < 60:
        recommendations.append("Practice more medium-difficulty problems.")
    hard = difficulty_performance.get("hard")
    if hard and hard["percentage"] < 40:
        recommendations.append("Work on advanced problem-solving techniques.")

    return recommendations


def get_performance_level(score: float) -> Dict[str, str]:
    if score >= ScoreThresholds.EXCELLENT:
        return {"level": PerformanceLevel.EXCELLENT.value, "color": "green",
                "description": "Outstanding performance!"}
    if score >= ScoreThresholds.GOOD:
        return {"level": PerformanceLevel.GOOD.value, "color": "blue",
                "description": "Above average performance"}
    if score >= ScoreThresholds.AVERAGE:
        return {"level": PerformanceLevel.AVERAGE.value, "color": "yellow",
                "description": "Meets basic requirements"}
    if score >= ScoreThresholds.BELOW_AVERAGE:
        return {"level": PerformanceLevel.BELOW_AVERAGE.value, "color": "orange",
                "description": "Needs improvement"}
    return {"level": PerformanceLevel.POOR.value, "color": "red",
            "description": "Requires significant improvement"}


def calculate_time_efficiency(
    time_taken: int,
    time_limit: int,
    total_questions: int
) -> Optional[Dict[str, float]]:
    """
    Time usage for a timed test, all values in seconds.

    Returns None when the test had no time limit.
    """
    if not time_limit or time_limit <= 0:
        return None

    return {
        "efficiency": round(max(0.0, (time_limit - time_taken) / time_limit * 100), 2),
        "average_time_per_question": round(time_taken / total_questions, 2) if total_questions else 0.0,
        "time_remaining": max(0, time_limit - time_taken),
    }
