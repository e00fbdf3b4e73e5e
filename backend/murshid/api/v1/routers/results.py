# murshid/api/v1/routers/results.py
import uuid

from fastapi import APIRouter, Depends, status

from murshid.api.v1.deps import get_current_user
from murshid.core.errors import NotFound
from murshid.core.security import utc_now
from murshid.models.result import QuizResult
from murshid.models.user import User
from murshid.schemas.result import ResultIn
from murshid.services.progress import summarize_progress, time_ago

router = APIRouter(prefix="/results", tags=["results"])


def _result_out(r: QuizResult, now=None) -> dict:
    return {
        "id": str(r.id),
        "quizType": r.quiz_type,
        "subject": r.subject,
        "branch": r.branch,
        "chapter": r.chapter,
        "level": r.level,
        "questions": r.questions,
        "scored": r.scored,
        "total_score": r.total_score,
        "percentage": r.percentage,
        "date_time": r.date_time.isoformat(),
        "timeAgo": time_ago(r.date_time, now),
    }


def _list_out(rows: list[QuizResult]) -> dict:
    now = utc_now()
    return {"status": "success", "results": len(rows), "data": {"results": [_result_out(r, now) for r in rows]}}


@router.post("", status_code=status.HTTP_201_CREATED)
async def save_result(body: ResultIn, user: User = Depends(get_current_user)):
    """
    Store a finished quiz.

    The percentage is derived from ``scored`` and ``total_score``; a value sent
    by the client is ignored.
    """
    r = await QuizResult.create(
        user_id=user.id,
        quiz_type=body.quizType,
        subject=body.subject,
        branch=body.branch,
        chapter=body.chapter,
        level=body.level,
        questions=[q.model_dump() for q in body.questions],
        scored=body.scored,
        total_score=body.total_score,
        percentage=QuizResult.compute_percentage(body.scored, body.total_score),
        date_time=body.date_time or utc_now(),
    )
    return {"status": "success", "data": {"result": _result_out(r)}}


@router.get("")
async def list_results(user: User = Depends(get_current_user)):
    rows = await QuizResult.filter(user_id=user.id).order_by("-date_time")
    return _list_out(rows)


@router.get("/progress")
async def get_progress(user: User = Depends(get_current_user)):
    """Per-subject totals across all of the user's quizzes."""
    rows = await QuizResult.filter(user_id=user.id)
    progress = summarize_progress(rows)
    return {"status": "success", "results": len(progress), "data": {"progress": progress}}


@router.get("/subject/{subject}")
async def list_results_by_subject(subject: str, user: User = Depends(get_current_user)):
    rows = await QuizResult.filter(user_id=user.id, subject=subject).order_by("-date_time")
    return _list_out(rows)


@router.get("/{result_id}")
async def get_result(result_id: uuid.UUID, user: User = Depends(get_current_user)):
    r = await QuizResult.get_or_none(id=result_id, user_id=user.id)
    if not r:
        raise NotFound("No result found with that ID")
    return {"status": "success", "data": {"result": _result_out(r)}}
