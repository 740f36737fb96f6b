# onboarding/scoring.py
from typing import Dict, List, Optional, Tuple

from onboarding.models import AnswerValue, QuizQuestion

# Open-text answers need a human reviewer and are left out of the denominator.
MANUAL_REVIEW_TYPES = {"open_text"}


def is_scorable(question: QuizQuestion) -> bool:
    return question.type not in MANUAL_REVIEW_TYPES and question.correct_answer is not None


def _as_set(value: AnswerValue) -> set:
    if isinstance(value, str):
        return {value}
    return set(value)


def is_correct(question: QuizQuestion, submitted: Optional[AnswerValue]) -> bool:
    if submitted is None:
        return False

    if question.type == "multi_select" or isinstance(question.correct_answer, list):
        # Same set, any order, no partial credit
        return _as_set(submitted) == _as_set(question.correct_answer)

    if not isinstance(submitted, str):
        return False
    return submitted == question.correct_answer


def percentage(correct: int, total: int) -> int:
    """Whole-number percentage, halves rounded up."""
    if total == 0:
        return 100
    return (200 * correct + total) // (2 * total)


def score_answers(questions: List[QuizQuestion], answers: Dict[str, AnswerValue]) -> int:
    """
    The Quiz Scorer.
    Only the aggregate percentage leaves this function; which questions were
    right or wrong is never returned.
    """
    scorable = [q for q in questions if is_scorable(q)]
    correct = sum(1 for q in scorable if is_correct(q, answers.get(q.id)))
    return percentage(correct, len(scorable))


def grade(questions: List[QuizQuestion], answers: Dict[str, AnswerValue], pass_threshold: int) -> Tuple[int, bool]:
    score = score_answers(questions, answers)
    return score, score >= pass_threshold
