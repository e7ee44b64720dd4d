"""
Progress Service
Dashboard analytics built from test results and topic progress
"""
import logging
from collections import OrderedDict
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from mockify.models import MockTest, TestResult, User, UserProgress
from mockify.utils import week_start

logger = logging.getLogger(__name__)

RESULT_WINDOW = 100
RECENT_RESULTS = 10
TOPIC_HIGHLIGHTS = 3


class ProgressService:
    """Service for progress analytics"""

    def get_progress(
        self,
        db: Session,
        user: User,
        exam_type: Optional[str] = None,
        topic: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Overall stats, topic breakdown, recent scores and a weekly trend.

        Args:
            exam_type: Only tests / progress rows for this exam
            topic: Only progress rows for this topic
        """
        query = db.query(TestResult, MockTest).join(MockTest, TestResult.test_id == MockTest.id).filter(
            TestResult.user_id == user.id
        )
        if exam_type:
            query = query.filter(MockTest.exam_type == exam_type)
        rows = query.order_by(TestResult.completed_at.desc()).limit(RESULT_WINDOW).all()
        results = [result for result, _ in rows]

        topic_rows = self._topic_progress(db, user, exam_type, topic)
        topic_performance = [
            {
                "topic": p.topic,
                "exam_type": p.exam_type,
                "tests_attempted": p.tests_attempted,
                "total_questions": p.total_questions,
                "correct_answers": p.correct_answers,
                "average_score": round(p.average_score or 0.0, 2),
                "accuracy_rate": round(p.accuracy_rate or 0.0, 2),
                "highest_score": p.highest_score,
                "last_attempted": p.last_attempted,
            }
            for p in topic_rows
        ]
        by_score = sorted(topic_performance, key=lambda t: t["average_score"], reverse=True)

        return {
            "success": True,
            "overall_stats": self.overall_stats(results),
            "topic_performance": topic_performance,
            "strong_topics": by_score[:TOPIC_HIGHLIGHTS],
            "weak_topics": list(reversed(by_score))[:TOPIC_HIGHLIGHTS],
            "recent_performance": [
                {
                    "date": result.completed_at,
                    "score": result.score,
                    "test_id": test.id,
                    "exam_type": test.exam_type,
                }
                for result, test in rows[:RECENT_RESULTS]
            ],
            "improvement_trend": self.weekly_trend(results),
        }

    def _topic_progress(
        self,
        db: Session,
        user: User,
        exam_type: Optional[str],
        topic: Optional[str]
    ) -> List[UserProgress]:
        query = db.query(UserProgress).filter(UserProgress.user_id == user.id)
        if exam_type:
            query = query.filter(UserProgress.exam_type == exam_type)
        if topic:
            query = query.filter(UserProgress.topic == topic)
        return query.all()

    @staticmethod
    def overall_stats(results: List[TestResult]) -> Dict[str, Any]:
        if not results:
            return {"total_tests": 0, "average_score": 0.0, "total_time_spent": 0, "accuracy": 0.0}

        accuracies = [
            r.correct_answers / r.total_questions * 100 if r.total_questions else 0.0
            for r in results
        ]
        return {
            "total_tests": len(results),
            "average_score": round(sum(r.score for r in results) / len(results), 2),
            "total_time_spent": sum(r.time_taken or 0 for r in results),
            "accuracy": round(sum(accuracies) / len(accuracies), 2),
        }

    @staticmethod
    def weekly_trend(results: List[TestResult]) -> List[Dict[str, Any]]:
        """Average score per week (weeks start on Sunday), oldest first"""
        weeks: Dict[str, List[int]] = OrderedDict()
        for result in sorted(results, key=lambda r: r.completed_at):
            weeks.setdefault(week_start(result.completed_at), []).append(result.score)

        return [
            {
                "week": week,
                "average_score": round(sum(scores) / len(scores), 2),
                "tests": len(scores),
            }
            for week, scores in weeks.items()
        ]


# Singleton instance
progress_service = ProgressService()
