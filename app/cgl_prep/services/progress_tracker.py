"""Daily task completion, streaks and study statistics."""
from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from ..utils import now_iso, utcnow
from .storage import USER_PROGRESS, USER_STATS, ContentStore, get_storage

TASKS = ("vocabulary", "idioms", "news", "practice", "quiz")
# A day counts toward the streak with at least this many tasks done
DAY_COMPLETE_THRESHOLD = 4
WEEKLY_GOAL = 28
STREAK_LOOKBACK_DAYS = 365


def _completed_count(progress: Optional[Dict[str, Any]]) -> int:
    if not progress:
        return 0
    return sum(1 for task in TASKS if progress.get(task) is True)


def _default_progress(day: str) -> Dict[str, Any]:
    progress: Dict[str, Any] = {task: False for task in TASKS}
    progress["date"] = day
    return progress


def _default_stats() -> Dict[str, Any]:
    return {
        "totalWords": 0,
        "streakDays": 0,
        "lastActive": now_iso(),
        "weeklyGoal": WEEKLY_GOAL,
        "monthlyProgress": 0,
    }


class ProgressTracker:
    """Per-day progress records keyed by UTC date, plus one user stats record."""

    def __init__(self, store: ContentStore, today: Optional[date] = None):
        self.store = store
        self._today = today

    @property
    def today(self) -> date:
        return self._today or utcnow().date()

    def _by_date(self) -> Dict[str, Dict[str, Any]]:
        return {record.get("date"): record for record in self.store.all(USER_PROGRESS) if record.get("date")}

    def _day_counts(self, by_date: Dict[str, Dict[str, Any]], day: date) -> bool:
        return _completed_count(by_date.get(day.isoformat())) >= DAY_COMPLETE_THRESHOLD

    def get_today_progress(self) -> Dict[str, Any]:
        today = self.today.isoformat()
        saved = self._by_date().get(today)
        return dict(saved) if saved else _default_progress(today)

    def get_user_stats(self) -> Dict[str, Any]:
        records = self.store.all(USER_STATS)
        return dict(records[0]) if records else _default_stats()

    def update_task_completion(
        self,
        task: str,
        completed: bool = True,
        words_learned: Optional[int] = None,
        score: Optional[float] = None,
    ) -> Dict[str, Any]:
        """Mark a task done (or undone) for today and refresh the stats.

        Raises:
            ValueError: for a task name outside TASKS.
        """
        if task not in TASKS:
            raise ValueError(f"Unknown task: {task}")

        progress = self.get_today_progress()
        progress[task] = bool(completed)
        progress["completedAt"] = now_iso()
        if score is not None:
            progress.setdefault("scores", {})[task] = score

        records = [r for r in self.store.all(USER_PROGRESS) if r.get("date") != progress["date"]]
        records.append(progress)
        self.store.save_all(USER_PROGRESS, records)

        stats = self._update_user_stats(task, words_learned)
        return {
            "progress": progress,
            "userStats": stats,
            "allCompleted": _completed_count(progress) == len(TASKS),
        }

    def _update_user_stats(self, task: str, words_learned: Optional[int]) -> Dict[str, Any]:
        stats = self.get_user_stats()
        stats["lastActive"] = now_iso()
        if task == "vocabulary" and words_learned:
            stats["totalWords"] = int(stats.get("totalWords", 0)) + int(words_learned)
        stats["streakDays"] = self.calculate_streak()
        stats["monthlyProgress"] = self.calculate_monthly_progress()
        self.store.save_all(USER_STATS, [stats])
        return stats

    def calculate_streak(self) -> int:
        """Consecutive counted days ending today; an unfinished today does not break it."""
        by_date = self._by_date()
        streak = 0
        for offset in range(STREAK_LOOKBACK_DAYS):
            day = self.today - timedelta(days=offset)
            if self._day_counts(by_date, day):
                streak += 1
            elif offset > 0:
                break
        return streak

    def calculate_monthly_progress(self) -> int:
        """Percentage of days this month (through today) that counted."""
        by_date = self._by_date()
        first = self.today.replace(day=1)
        total_days = (self.today - first).days + 1
        completed_days = sum(
            1 for offset in range(total_days) if self._day_counts(by_date, first + timedelta(days=offset))
        )
        return round(completed_days / total_days * 100) if total_days else 0

    def get_progress_history(self, days: int = 30) -> List[Dict[str, Any]]:
        by_date = self._by_date()
        history = []
        for offset in range(days - 1, -1, -1):
            day = (self.today - timedelta(days=offset)).isoformat()
            history.append({"date": day, "completed": _completed_count(by_date.get(day)), "total": len(TASKS)})
        return history

    def export_progress(self) -> Dict[str, Any]:
        return {
            "userStats": self.get_user_stats(),
            "todayProgress": self.get_today_progress(),
            "progressHistory": self.get_progress_history(90),
        }

    def reset_progress(self) -> None:
        self.store.clear(USER_PROGRESS)
        self.store.clear(USER_STATS)


def get_progress_tracker() -> ProgressTracker:
    return ProgressTracker(get_storage())
