"""
Tests for weak-topic analysis and adaptive practice
"""
import pytest

from conftest import FakeLLM, make_question, question_payload
from mockify.modules.study_rag.adaptive import (
    AdaptivePracticeGenerator,
    WeakTopic,
    analyze_weak_topics,
    generate_practice_tips,
    grade_practice_session,
    summarize_weak_topics,
)
from mockify.modules.study_rag.question_generator import GenerationError

OPTIONS = ["Mitosis", "Meiosis", "Osmosis", "Diffusion"]


class TestAnalyzeWeakTopics:
    """Test cases for weak topic detection"""

    def test_aggregates_across_records(self):
        history = [
            {"Cells": {"correct": 1, "total": 4}, "Genetics": {"correct": 3, "total": 3}},
            {"Cells": {"correct": 0, "total": 2}, "Ecology": {"correct": 2, "total": 4}},
        ]

        weak = analyze_weak_topics(history)

        assert [w.topic for w in weak] == ["Cells", "Ecology"]
        assert weak[0] == WeakTopic("Cells", 17, 6, "high", "easy")
        assert weak[1].priority == "medium"
        assert weak[1].suggested_difficulty == "medium"

    def test_low_priority_band(self):
        weak = analyze_weak_topics([{"Optics": {"correct": 13, "total": 20}}])
        assert weak[0].priority == "low"
        assert weak[0].score == 65

    def test_threshold_is_exclusive(self):
        assert analyze_weak_topics([{"Optics": {"correct": 7, "total": 10}}]) == []

    def test_empty_history(self):
        assert analyze_weak_topics([]) == []
        assert analyze_weak_topics([None, {}]) == []

    def test_summary(self):
        weak = analyze_weak_topics([
            {"A": {"correct": 0, "total": 2}, "B": {"correct": 1, "total": 2}, "C": {"correct": 13, "total": 20}},
        ])
        summary = summarize_weak_topics(weak)

        assert summary == {
            "total_weak_topics": 3,
            "high_priority": 1,
            "medium_priority": 1,
            "low_priority": 1,
            "average_score": 38,
        }

    def test_tips_are_capped(self):
        weak = [WeakTopic(f"Topic {i}", 10, 3, "high", "easy") for i in range(6)]
        tips = generate_practice_tips(weak)

        assert len(tips) == 5
        assert tips[0].startswith("Start with the basics of Topic 0")


class TestGradePracticeSession:
    """Test cases for practice grading"""

    def test_grades_by_position(self):
        questions = [
            {"correct_answer": "A", "topic": "Cells"},
            {"correct_answer": "B", "topic": "Cells"},
            {"correct_answer": "C", "topic": "Ecology"},
        ]

        result = grade_practice_session(
            questions,
            {"0": "A", "1": "b", "2": "D"},
            [{"topic": "Cells", "score": 25}, {"topic": "Optics", "score": 50}],
        )

        assert result["score"] == 67
        assert result["correct_answers"] == 2
        assert result["topic_results"]["Ecology"] == {"correct": 0, "total": 1}
        assert result["improvement"] == {"Cells": 75}

    def test_no_questions(self):
        assert grade_practice_session([], {}, [])["score"] == 0


class TestAdaptivePracticeGenerator:
    """Test cases for AdaptivePracticeGenerator"""

    WEAK = [WeakTopic("Cells", 20, 5, "high", "easy"), WeakTopic("Ecology", 50, 4, "medium", "medium")]

    def test_keeps_only_valid_questions(self):
        llm = FakeLLM([question_payload(
            make_question("Which division makes gametes?", OPTIONS, answer="B", topic="Cells", difficulty=None),
            make_question("Three options only?", OPTIONS[:3], topic="Cells"),
            make_question("No topic here?", OPTIONS, topic=""),
        )])
        generator = AdaptivePracticeGenerator(llm)

        questions = generator.generate_adaptive_questions(self.WEAK, question_count=5, exam_type="NEET")

        assert len(questions) == 1
        question = questions[0]
        assert question["correct_answer"] == "B"
        assert question["difficulty"] == "easy"
        assert question["explanation"] == "Practice this concept thoroughly."
        assert question["focus_area"] == "Cells"

    def test_prompt_lists_weak_topics(self):
        llm = FakeLLM([question_payload(make_question("Q?", OPTIONS, topic="Ecology"))])
        AdaptivePracticeGenerator(llm).generate_adaptive_questions(self.WEAK, 3, "NEET", "Food chains")

        prompt = llm.last_prompt()
        assert "- Cells: 20% (high priority, easy difficulty)" in prompt
        assert "Food chains" in prompt

    def test_nothing_usable(self):
        generator = AdaptivePracticeGenerator(FakeLLM(['{"questions": []}']))
        with pytest.raises(GenerationError):
            generator.generate_adaptive_questions(self.WEAK)

    def test_rate_limited(self):
        generator = AdaptivePracticeGenerator(FakeLLM(error=RuntimeError("rate limit reached")))
        with pytest.raises(GenerationError) as excinfo:
            generator.generate_adaptive_questions(self.WEAK)
        assert excinfo.value.rate_limited is True
