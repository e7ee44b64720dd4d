"""
Mock Test Service
Handles test generation, submission and result history
"""
import logging
from typing import Any, Dict, List, Mapping

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mockify.core import (
    Messages,
    ScheduleStatus,
    TestStatus,
    ConflictException,
    DatabaseException,
    NotFoundException,
    ServiceUnavailableException,
    generation_logger,
)
from mockify.models import MockTest, StudyMaterial, TestQuestion, TestResult, User, UserProgress, utcnow
from mockify.modules.study_rag import GenerationError, StudyRAGService
from mockify.modules.study_rag.scoring import (
    calculate_score,
    calculate_time_efficiency,
    get_performance_level,
    is_correct,
)
from mockify.schemas import GenerateTestRequest, SubmitTestRequest

logger = logging.getLogger(__name__)


def generation_failed(error: GenerationError) -> ServiceUnavailableException:
    """Map an LLM failure to the 503 the client sees"""
    message = Messages.AI_RATE_LIMITED if error.rate_limited else Messages.AI_UNAVAILABLE
    return ServiceUnavailableException("ai", message)


class MockTestService:
    """Service for mock tests"""

    # ===== Generation =====

    def generate_test(
        self,
        db: Session,
        user: User,
        rag: StudyRAGService,
        request: GenerateTestRequest
    ) -> MockTest:
        """
        Generate and persist a mock test from the user's materials.

        Raises:
            NotFoundException: a material id is not the user's
            ServiceUnavailableException: the LLM could not produce questions
        """
        config = request.test_config
        material_ids = list(dict.fromkeys(request.material_ids))

        if material_ids:
            owned = {
                row.id for row in db.query(StudyMaterial.id).filter(
                    StudyMaterial.user_id == user.id,
                    StudyMaterial.id.in_(material_ids),
                )
            }
            for material_id in material_ids:
                if material_id not in owned:
                    raise NotFoundException("Study material", material_id)

        generation_logger.info(
            f"User {user.id} generating {config.question_count} {config.difficulty.value} "
            f"{config.exam_type} questions from {len(material_ids)} materials"
        )

        try:
            generated = rag.generate_questions(
                user_id=user.id,
                exam_type=config.exam_type,
                difficulty=config.difficulty.value,
                question_count=config.question_count,
                topics=config.topics,
                material_ids=material_ids,
            )
        except GenerationError as e:
            generation_logger.error(f"Question generation failed for {user.id}: {e}")
            raise generation_failed(e)

        questions = generated["questions"]
        test = MockTest(
            user_id=user.id,
            title=f"{config.exam_type} Mock Test - {config.difficulty.value.title()}",
            exam_type=config.exam_type,
            difficulty=config.difficulty.value,
            question_count=len(questions),
            time_limit_minutes=config.time_limit_minutes,
            status=TestStatus.GENERATED.value,
            material_ids=material_ids,
            generation_metadata=generated["metadata"],
        )
        test.questions = [
            TestQuestion(
                position=position,
                question_text=question["question"],
                options=question["options"],
                correct_answer=question["correct_answer"],
                topic=question["topic"],
                difficulty=question["difficulty"],
                explanation=question["explanation"],
            )
            for position, question in enumerate(questions)
        ]

        try:
            db.add(test)
            db.commit()
            db.refresh(test)
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseException("saving mock test", str(e))

        generation_logger.info(f"Mock test {test.id} saved with {len(questions)} questions")
        return test

    def list_tests(self, db: Session, user: User) -> List[MockTest]:
        return db.query(MockTest).filter(
            MockTest.user_id == user.id
        ).order_by(MockTest.created_at.desc()).all()

    def get_test(self, db: Session, user: User, test_id: str) -> MockTest:
        test = db.query(MockTest).filter(MockTest.id == test_id, MockTest.user_id == user.id).first()
        if not test:
            raise NotFoundException("Test", test_id)
        return test

    # ===== Submission =====

    def submit_test(self, db: Session, user: User, test_id: str, request: SubmitTestRequest) -> Dict[str, Any]:
        """
        Grade a test, store the result and update topic progress.

        Raises:
            NotFoundException: unknown test
            ConflictException: the test was already submitted
        """
        test = self.get_test(db, user, test_id)
        if test.status == TestStatus.COMPLETED.value:
            raise ConflictException(Messages.TEST_ALREADY_SUBMITTED)

        questions = [
            {
                "id": q.id,
                "correct_answer": q.correct_answer,
                "topic": q.topic,
                "difficulty": q.difficulty,
            }
            for q in test.questions
        ]
        score = calculate_score(questions, request.answers)

        time_limit = (test.time_limit_minutes or 0) * 60
        analytics = {
            "topic_performance": score.topic_performance,
            "difficulty_performance": score.difficulty_performance,
            "strengths": score.strengths,
            "weaknesses": score.weaknesses,
            "recommendations": score.recommendations,
            "performance_level": get_performance_level(score.score),
            "time_efficiency": calculate_time_efficiency(request.time_taken, time_limit, score.total_questions),
        }

        result = TestResult(
            test_id=test.id,
            user_id=user.id,
            score=score.score,
            total_questions=score.total_questions,
            correct_answers=score.correct_answers,
            time_taken=request.time_taken,
            answers=dict(request.answers),
            analytics=analytics,
        )

        try:
            db.add(result)
            test.status = TestStatus.COMPLETED.value
            self._complete_schedules(test)
            self._update_progress(db, user, test.exam_type, score.topic_performance)
            db.commit()
            db.refresh(result)
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseException("saving test result", str(e))

        logger.info(f"Test {test.id} submitted by {user.id}: {score.score}%")

        return {
            "success": True,
            "message": Messages.TEST_SUBMITTED,
            "result_id": result.id,
            "test_id": test.id,
            "score": score.score,
            "total_questions": score.total_questions,
            "correct_answers": score.correct_answers,
            "time_taken": request.time_taken,
            "performance_level": analytics["performance_level"],
            "analytics": analytics,
            "review": self._review(test, request.answers),
        }

    @staticmethod
    def _review(test: MockTest, answers: Mapping[str, Any]) -> List[Dict[str, Any]]:
        return [
            {
                "question_id": q.id,
                "question_text": q.question_text,
                "options": q.options,
                "user_answer": answers.get(q.id),
                "correct_answer": q.correct_answer,
                "is_correct": is_correct(answers.get(q.id), q.correct_answer),
                "explanation": q.explanation,
                "topic": q.topic,
            }
            for q in test.questions
        ]

    @staticmethod
    def _complete_schedules(test: MockTest):
        now = utcnow()
        for schedule in test.schedules:
            if schedule.status == ScheduleStatus.SCHEDULED.value:
                schedule.status = ScheduleStatus.COMPLETED.value
                schedule.completed_at = now

    def _update_progress(
        self,
        db: Session,
        user: User,
        exam_type: str,
        topic_performance: Mapping[str, Mapping[str, int]]
    ):
        """Upsert one UserProgress row per topic of a graded test"""
        for topic, perf in topic_performance.items():
            progress = db.query(UserProgress).filter(
                UserProgress.user_id == user.id,
                UserProgress.exam_type == exam_type,
                UserProgress.topic == topic,
            ).first()
            if progress is None:
                progress = UserProgress(
                    user_id=user.id,
                    exam_type=exam_type,
                    topic=topic,
                    tests_attempted=0,
                    total_questions=0,
                    correct_answers=0,
                    average_score=0.0,
                    highest_score=0,
                )
                db.add(progress)

            attempts = progress.tests_attempted + 1
            progress.average_score = round(
                (progress.average_score * progress.tests_attempted + perf["percentage"]) / attempts, 2
            )
            progress.tests_attempted = attempts
            progress.total_questions += perf["total"]
            progress.correct_answers += perf["correct"]
            progress.accuracy_rate = round(progress.correct_answers / progress.total_questions * 100, 2) \
                if progress.total_questions else 0.0
            progress.highest_score = max(progress.highest_score, perf["percentage"])
            progress.last_attempted = utcnow()

    # ===== Results =====

    def list_results(self, db: Session, user: User) -> List[Dict[str, Any]]:
        rows = db.query(TestResult, MockTest).join(MockTest, TestResult.test_id == MockTest.id).filter(
            TestResult.user_id == user.id
        ).order_by(TestResult.completed_at.desc()).all()

        return [
            {
                "result_id": result.id,
                "test_id": test.id,
                "title": test.title,
                "exam_type": test.exam_type,
                "difficulty": test.difficulty,
                "score": result.score,
                "total_questions": result.total_questions,
                "correct_answers": result.correct_answers,
                "time_taken": result.time_taken,
                "completed_at": result.completed_at,
            }
            for result, test in rows
        ]

    def get_result(self, db: Session, user: User, test_id: str) -> Dict[str, Any]:
        test = self.get_test(db, user, test_id)
        result = db.query(TestResult).filter(
            TestResult.test_id == test.id,
            TestResult.user_id == user.id,
        ).order_by(TestResult.completed_at.desc()).first()
        if not result:
            raise NotFoundException("Result for test", test_id)

        return {
            "success": True,
            "result_id": result.id,
            "test_id": test.id,
            "title": test.title,
            "score": result.score,
            "total_questions": result.total_questions,
            "correct_answers": result.correct_answers,
            "time_taken": result.time_taken,
            "completed_at": result.completed_at,
            "performance_level": (result.analytics or {}).get("performance_level"),
            "analytics": result.analytics,
            "review": self._review(test, result.answers or {}),
        }


# Singleton instance
mock_test_service = MockTestService()
