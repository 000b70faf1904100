# quest/deeds.py
"""
Deed catalog.

Twelve trackable deeds, grouped into four categories of three. A day's
``points_earned`` is simply the number of deeds ticked.
"""
from typing import Dict, List, Mapping, Optional

PRAYER = "prayer"
IMAN = "iman"
TUMMY = "tummy"
SOCIAL = "social"

CATEGORIES = (PRAYER, IMAN, TUMMY, SOCIAL)

CATEGORY_INFO = {
    PRAYER: {"name": "Prayer", "icon": "🕌"},
    IMAN: {"name": "Iman", "icon": "📖"},
    TUMMY: {"name": "Tummy", "icon": "🍽️"},
    SOCIAL: {"name": "Social & Wellness", "icon": "🤝"},
}

DEEDS: List[Dict[str, str]] = [
    {"key": "prayer_five", "label": "5 Daily Prayers", "category": PRAYER},
    {"key": "prayer_fajr_masjid", "label": "Fajr in Masjid", "category": PRAYER},
    {"key": "prayer_taraweeh", "label": "Taraweeh", "category": PRAYER},
    {"key": "iman_quran", "label": "Read Quran", "category": IMAN},
    {"key": "iman_dhikr", "label": "Morning/Evening Dhikr", "category": IMAN},
    {"key": "iman_dua", "label": "Personal Dua", "category": IMAN},
    {"key": "tummy_suhoor", "label": "Eat Suhoor", "category": TUMMY},
    {"key": "tummy_iftar", "label": "Iftar on Time", "category": TUMMY},
    {"key": "tummy_fast", "label": "Completed Fast", "category": TUMMY},
    {"key": "social_charity", "label": "Give Charity", "category": SOCIAL},
    {"key": "social_family", "label": "Quality Family Time", "category": SOCIAL},
    {"key": "social_workout", "label": "Physical Workout", "category": SOCIAL},
]

DEED_KEYS = tuple(d["key"] for d in DEEDS)
TOTAL_DEEDS = len(DEEDS)

CATEGORY_DEEDS: Dict[str, tuple] = {
    cat: tuple(d["key"] for d in DEEDS if d["category"] == cat)
    for cat in CATEGORIES
}

# deeds with their own count-based badges
CHARITY_DEED = "social_charity"
QURAN_DEED = "iman_quran"


def is_deed_key(key: str) -> bool:
    return key in DEED_KEYS


def normalize_deeds(deeds: Optional[Mapping]) -> Dict[str, bool]:
    """Full 12-key map; unknown keys are dropped, missing ones are False."""
    deeds = deeds or {}
    return {key: bool(deeds.get(key)) for key in DEED_KEYS}


def count_completed(deeds: Optional[Mapping]) -> int:
    return sum(1 for key in DEED_KEYS if (deeds or {}).get(key))


def is_category_complete(deeds: Optional[Mapping], category: str) -> bool:
    deeds = deeds or {}
    return all(deeds.get(key) for key in CATEGORY_DEEDS[category])
