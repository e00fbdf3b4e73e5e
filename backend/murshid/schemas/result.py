# murshid/schemas/result.py
"""
Pydantic schemas for quiz results.

Syllabus quizzes are identified by branch and chapter, fundamentals quizzes by
level. The client may send a percentage but it is always recomputed.
"""
import datetime as dt
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator


class QuestionIn(BaseModel):
    question: str
    user_answer: Any
    correct_answer: Any
    explanation: str
    status: Literal["correct", "incorrect", "partially_correct"]


class ResultIn(BaseModel):
    quizType: Literal["syllabus", "fundamentals"]
    subject: str = Field(min_length=1)
    branch: Optional[str] = None
    chapter: Optional[str] = None
    level: Optional[str] = None
    questions: List[QuestionIn] = []
    scored: float = Field(ge=0)
    total_score: float = Field(ge=1)
    percentage: Optional[float] = None  # ignored
    date_time: Optional[dt.datetime] = None

    @model_validator(mode="after")
    def _check_quiz_shape(self):
        if self.quizType == "syllabus":
            if not self.branch:
                raise ValueError("Branch is required for syllabus quizzes")
            if not self.chapter:
                raise ValueError("Chapter is required for syllabus quizzes")
        elif not self.level:
            raise ValueError("Level is required for fundamental quizzes")
        if self.scored > self.total_score:
            raise ValueError("Scored marks cannot exceed the total score")
        return self
