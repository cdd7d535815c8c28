"""
Quiz parsing and scoring.

The quiz prompt makes the model answer with "QUIZ_JSON:" followed by a JSON
array of MCQs. parse_quiz_response pulls that array out of the buffered
generation; score_quiz marks a submission against the MCQs it was built from.
"""

import json
import logging
import re

from pydantic import ValidationError

from course_ai.services.llm.models import QuizAnswer, QuizQuestion, QuizResult, QuizScore
from course_ai.services.llm.prompts import QUIZ_MARKER

logger = logging.getLogger(__name__)

QUIZ_JSON_PATTERN = re.compile(re.escape(QUIZ_MARKER) + r"\s*(?:```(?:json)?\s*)?(\[.*\])", re.DOTALL)


def parse_quiz_response(raw: str) -> list[dict] | None:
    """Return the MCQs of a generation, or None if no valid QUIZ_JSON array is found."""
    match = QUIZ_JSON_PATTERN.search(raw or "")
    if not match:
        logger.warning("[Quiz] No %s marker with a JSON array in response", QUIZ_MARKER)
        return None

    try:
        data = json.loads(match.group(1))
        if not isinstance(data, list):
            return None
        return [QuizQuestion(**item).model_dump() for item in data]
    except (json.JSONDecodeError, ValidationError, TypeError) as e:
        logger.warning("[Quiz] Quiz parse error: %s", e)
        return None


def score_quiz(quiz: list[QuizAnswer], mcqs: list[QuizQuestion]) -> QuizScore:
    """
    Mark each answer against the MCQ with the same question text.

    Answers whose question is not among the MCQs count as wrong with
    correctAnswer None. score is the percentage correct, rounded to 2 decimals.
    """
    by_question = {}
    for mcq in mcqs:
        # First MCQ wins when the same question text appears twice
        by_question.setdefault(mcq.question, mcq)

    correct_count = 0
    results = []
    for answer in quiz:
        mcq = by_question.get(answer.question)
        if mcq is None:
            results.append(
                QuizResult(
                    question=answer.question,
                    selected=answer.selected,
                    correctAnswer=None,
                    correct=False,
                    reason="Question not found in MCQs",
                )
            )
            continue

        correct = mcq.correctAnswer == answer.selected
        if correct:
            correct_count += 1
        results.append(
            QuizResult(
                question=mcq.question,
                selected=answer.selected,
                correctAnswer=mcq.correctAnswer,
                correct=correct,
                reason=mcq.reason or "No explanation provided",
            )
        )

    score = (correct_count / len(quiz)) * 100 if quiz else 0.0
    return QuizScore(
        score=round(score, 2),
        correctCount=correct_count,
        total=len(quiz),
        results=results,
    )
