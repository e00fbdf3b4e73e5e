# murshid/services/progress.py
"""
Aggregations over quiz results: per-subject progress and relative times.
"""
import datetime as dt
from collections import OrderedDict

from murshid.core.security import as_utc, utc_now
from murshid.models.result import QuizResult


def summarize_progress(results: list[QuizResult]) -> list[dict]:
    """
    Group results by subject.

    averageScore is total scored over total possible, as a percentage rounded
    to two decimals; subjects are ordered by their most recent attempt.
    """
    groups: "OrderedDict[str, dict]" = OrderedDict()
    for r in results:
        g = groups.setdefault(r.subject, {
            "subject": r.subject,
            "totalQuizzes": 0,
            "totalScore": 0.0,
            "totalPossible": 0.0,
            "lastAttempt": None,
        })
        g["totalQuizzes"] += 1
        g["totalScore"] += r.scored
        g["totalPossible"] += r.total_score
        attempted = as_utc(r.date_time)
        if g["lastAttempt"] is None or attempted > g["lastAttempt"]:
            g["lastAttempt"] = attempted

    progress = []
    for g in groups.values():
        average = g["totalScore"] / g["totalPossible"] * 100 if g["totalPossible"] else 0.0
        progress.append({
            "subject": g["subject"],
            "totalQuizzes": g["totalQuizzes"],
            "averageScore": round(average, 2),
            "lastAttempt": g["lastAttempt"],
        })
    progress.sort(key=lambda p: p["lastAttempt"], reverse=True)
    for p in progress:
        p["lastAttempt"] = p["lastAttempt"].isoformat()
    return progress


def time_ago(when: dt.datetime, now: dt.datetime | None = None) -> str:
    seconds = int(((now or utc_now()) - as_utc(when)).total_seconds())
    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
        count = seconds // size
        if count > 0:
            return f"{count} {unit}{'s' if count > 1 else ''} ago"
    return "just now"
