# quest/badges.py
from typing import List, Tuple

STREAK_3 = "streak_3"
STREAK_7 = "streak_7"
STREAK_14 = "streak_14"
STREAK_30 = "streak_30"
PERFECT_DAY = "perfect_day"
FIRST_FRIEND = "first_friend"
CHARITY_WARRIOR = "charity_warrior"
QURAN_MASTER = "quran_master"

# -----------------------------
# Display metadata
# -----------------------------
BADGES = {
    STREAK_3: {"label": "3-Day Streak 🔥", "description": "Log deeds 3 days in a row"},
    STREAK_7: {"label": "7-Day Streak 🎯", "description": "Log deeds 7 days in a row"},
    STREAK_14: {"label": "2-Week Champion 👑", "description": "Log deeds 14 days in a row"},
    STREAK_30: {"label": "30-Day Legend ⭐", "description": "Log deeds 30 days in a row"},
    PERFECT_DAY: {"label": "Perfect Day ✨", "description": "Complete all 12 deeds in one day"},
    FIRST_FRIEND: {"label": "Social Butterfly 🦋", "description": "Make your first friend"},
    CHARITY_WARRIOR: {"label": "Charity Warrior 💝", "description": "Give charity on 5 days"},
    QURAN_MASTER: {"label": "Quran Master 📖", "description": "Read Quran on 10 days"},
}

BADGE_TYPES = tuple(BADGES)

# -----------------------------
# Thresholds
# -----------------------------
STREAK_MILESTONES = (
    (3, STREAK_3),
    (7, STREAK_7),
    (14, STREAK_14),
    (30, STREAK_30),
)
CHARITY_THRESHOLD = 5
QURAN_THRESHOLD = 10
FRIEND_THRESHOLD = 1

Candidate = Tuple[str, int]


def badge_label(badge_type: str) -> str:
    meta = BADGES.get(badge_type)
    return meta["label"] if meta else badge_type


def badge_candidates(
    daily_streak: int,
    perfect_streak: int,
    charity_count: int,
    quran_count: int,
    friend_count: int,
) -> List[Candidate]:
    """
    Every badge the given numbers qualify for, as (badge_type, milestone_value).

    Streak milestones are cumulative: a 10-day streak yields both streak_3
    and streak_7. Streak badges carry their threshold, count badges carry
    the actual count.
    """
    candidates: List[Candidate] = []

    for threshold, badge_type in STREAK_MILESTONES:
        if daily_streak >= threshold:
            candidates.append((badge_type, threshold))

    if perfect_streak >= 1:
        candidates.append((PERFECT_DAY, perfect_streak))
    if charity_count >= CHARITY_THRESHOLD:
        candidates.append((CHARITY_WARRIOR, charity_count))
    if quran_count >= QURAN_THRESHOLD:
        candidates.append((QURAN_MASTER, quran_count))
    if friend_count >= FRIEND_THRESHOLD:
        candidates.append((FIRST_FRIEND, FRIEND_THRESHOLD))

    return candidates
