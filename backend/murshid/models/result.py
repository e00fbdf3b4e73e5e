# murshid/models/result.py
"""
Database model for quiz results.
One row per completed quiz; the per-question breakdown is kept as JSON.
"""
import uuid
from tortoise import fields, models

QUIZ_TYPES = ("syllabus", "fundamentals")
QUESTION_STATUSES = ("correct", "incorrect", "partially_correct")


class QuizResult(models.Model):
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    user = fields.ForeignKeyField("models.User", related_name="results", on_delete=fields.CASCADE)
    quiz_type = fields.CharField(max_length=16)  # "syllabus" or "fundamentals"
    subject = fields.CharField(max_length=128, index=True)
    branch = fields.CharField(max_length=128, null=True)  # syllabus quizzes only
    chapter = fields.CharField(max_length=128, null=True)  # syllabus quizzes only
    level = fields.CharField(max_length=64, null=True)  # fundamentals quizzes only
    questions = fields.JSONField(default=list)
    scored = fields.FloatField()
    total_score = fields.FloatField()
    percentage = fields.FloatField()
    date_time = fields.DatetimeField()
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "quiz_results"

    @staticmethod
    def compute_percentage(scored: float, total_score: float) -> float:
        return scored / total_score * 100
