# quest/achievements.py
"""
Badge awarding.

Badges are decided from the user's own history: the larger of the live
streak and the best streak ever recorded, any perfect day, deed counts and
the number of accepted friends. (user_id, badge_type) is unique in the
database and that constraint is the only guard against double awards;
running an evaluation twice writes nothing the second time.
"""
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional, Set

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from . import db
from .badges import Candidate, badge_candidates
from .daily_logs import load_history
from .deeds import CHARITY_DEED, QURAN_DEED
from .models.achievement import Achievement
from .models.social import Friendship
from .notifications import NotificationOutcome, notify_achievements
from .streaks import count_deed, dedupe_by_day, scan_lifetime

logger = logging.getLogger(__name__)


class AchievementStoreError(RuntimeError):
    """History or achievement store could not be read or written."""


@dataclass
class EvaluationResult:
    earned_badges: List[str] = field(default_factory=list)
    eligible_badges: List[str] = field(default_factory=list)
    notification: NotificationOutcome = field(default_factory=NotificationOutcome)

    def to_dict(self):
        return {
            "earned_badges": list(self.earned_badges),
            "eligible_badges": list(self.eligible_badges),
            "notification": self.notification.to_dict(),
        }


def safe_non_negative(value) -> int:
    """Clamp anything number-ish to a non-negative int; junk becomes 0."""
    if isinstance(value, bool):
        return int(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    return max(0, int(math.floor(number)))


def _existing_badges(user_id: int, badge_types: Iterable[str]) -> Set[str]:
    badge_types = list(badge_types)
    if not badge_types:
        return set()
    rows = (
        db.session.query(Achievement.badge_type)
        .filter(
            Achievement.user_id == user_id,
            Achievement.badge_type.in_(badge_types),
        )
        .all()
    )
    return {row.badge_type for row in rows}


def _insert_missing(user_id: int, missing: List[Candidate]) -> List[str]:
    """
    Insert all missing badges in one batch. If another request got there
    first the batch is rolled back, re-filtered and tried once more.
    """
    for attempt in range(2):
        now = datetime.utcnow()
        db.session.add_all(
            [
                Achievement(
                    user_id=user_id,
                    badge_type=badge_type,
                    milestone_value=value,
                    earned_at=now,
                )
                for badge_type, value in missing
            ]
        )
        try:
            db.session.commit()
            return [badge_type for badge_type, _ in missing]
        except IntegrityError:
            db.session.rollback()
            if attempt:
                raise
            taken = _existing_badges(user_id, [b for b, _ in missing])
            logger.info("user=%s badges %s already recorded concurrently", user_id, sorted(taken))
            missing = [c for c in missing if c[0] not in taken]
            if not missing:
                return []
    return []


def _mark_notified(user_id: int, badge_types: List[str]) -> None:
    try:
        Achievement.query.filter(
            Achievement.user_id == user_id,
            Achievement.badge_type.in_(badge_types),
            Achievement.notified_at.is_(None),
        ).update({Achievement.notified_at: datetime.utcnow()}, synchronize_session=False)
        db.session.commit()
    except SQLAlchemyError:
        # badges are stored and the push went out; only the stamp is lost
        db.session.rollback()
        logger.exception("could not stamp notified_at for user=%s %s", user_id, badge_types)


def evaluate_achievements(
    user_id: int,
    daily_streak=0,
    perfect_streak=0,
    history: Optional[list] = None,
) -> EvaluationResult:
    """
    Award every badge the user now qualifies for and has not got yet, then
    push one notification for the new ones.

    ``daily_streak`` / ``perfect_streak`` are the live counters; ``history``
    is the user's recent logs (read fresh when not given).

    Raises AchievementStoreError when the store fails; nothing is half
    written in that case.
    """
    daily_streak = safe_non_negative(daily_streak)
    perfect_streak = safe_non_negative(perfect_streak)

    try:
        logs = history if history is not None else load_history(user_id)
        lifetime = scan_lifetime(logs)
        charity_count = count_deed(logs, CHARITY_DEED)
        quran_count = count_deed(logs, QURAN_DEED)
        friend_count = Friendship.accepted_count(user_id)

        effective_daily = max(daily_streak, lifetime.max_daily_streak)
        effective_perfect = max(1, perfect_streak) if lifetime.has_perfect_day else perfect_streak

        candidates = badge_candidates(
            daily_streak=effective_daily,
            perfect_streak=effective_perfect,
            charity_count=charity_count,
            quran_count=quran_count,
            friend_count=friend_count,
        )
        result = EvaluationResult(eligible_badges=[b for b, _ in candidates])
        if not candidates:
            return result

        existing = _existing_badges(user_id, result.eligible_badges)
        missing = [c for c in candidates if c[0] not in existing]
        if not missing:
            return result

        result.earned_badges = _insert_missing(user_id, missing)
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("achievement evaluation failed for user=%s", user_id)
        raise AchievementStoreError("achievement store unavailable") from e

    if not result.earned_badges:
        return result

    logger.info("user=%s earned %s", user_id, result.earned_badges)

    result.notification = notify_achievements(user_id, result.earned_badges)
    if result.notification.sent:
        _mark_notified(user_id, result.earned_badges)

    return result


def achievement_stats(logs: Iterable) -> dict:
    by_day = dedupe_by_day(logs)
    active = [r for r in by_day.values() if (r.points_earned or 0) > 0]
    total = sum(r.points_earned or 0 for r in by_day.values())
    return {
        "total_days_completed": len(active),
        "avg_points_per_day": int(math.floor(total / len(active) + 0.5)) if active else 0,
        "charity_count": count_deed(by_day.values(), CHARITY_DEED),
        "quran_count": count_deed(by_day.values(), QURAN_DEED),
    }
