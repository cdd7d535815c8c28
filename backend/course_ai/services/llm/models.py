"""
Pydantic models for quizzes.

Generated MCQs are parsed into QuizQuestion; submitted answers are scored
against them into QuizScore.
"""

from pydantic import BaseModel, Field


class QuizQuestion(BaseModel):
    question: str
    options: list[str] = Field(min_length=4, max_length=4)
    correctAnswer: str
    reason: str = ""


class QuizAnswer(BaseModel):
    question: str
    selected: str


class QuizResult(BaseModel):
    question: str
    selected: str
    correctAnswer: str | None
    correct: bool
    reason: str


class QuizScore(BaseModel):
    score: float
    correctCount: int
    total: int
    results: list[QuizResult]
