# services/filters.py
"""Resource library 篩選：分類 / 影片 / 病症關鍵字 / 標題搜尋"""
from __future__ import annotations

from typing import Iterable, List, Optional, TypedDict

from services.storage import CatalogEntry, is_video

FILTER_KEYS = ("all", "handouts", "clinical", "billing", "program", "videos", "conditions")


class ConditionOption(TypedDict):
    key: str
    label: str
    keywords: List[str]


CONDITION_OPTIONS: List[ConditionOption] = [
    {"key": "diabetes", "label": "Diabetes",
     "keywords": ["diabetes", "glycemic", "blood sugar", "a1c", "hba1c"]},
    {"key": "hypertension", "label": "Hypertension",
     "keywords": ["hypertension", "blood pressure"]},
    {"key": "heart-failure", "label": "Heart Failure",
     "keywords": ["heart failure", "chf"]},
    {"key": "asthma-copd", "label": "Asthma/COPD",
     "keywords": ["asthma", "copd"]},
    {"key": "lipids", "label": "Lipids/Cholesterol",
     "keywords": ["cholesterol", "lipid", "statin"]},
    {"key": "infections", "label": "Infections (Flu/Strep/COVID/UTI)",
     "keywords": ["flu", "influenza", "strep", "covid", "covid-19", "uti", "urinary tract"]},
    {"key": "contraceptives", "label": "Contraceptives",
     "keywords": ["contraceptive", "us mec", "us spr"]},
    {"key": "pain-opioids", "label": "Pain & Opioids",
     "keywords": ["opioid", "opioids", "low back pain", "opioid taper", "tapering"]},
]

_CONDITIONS = {c["key"]: c for c in CONDITION_OPTIONS}


def normalize_filter(value: Optional[str]) -> str:
    v = (value or "").strip().lower()
    return v if v in FILTER_KEYS else "all"


def get_condition(key: Optional[str]) -> Optional[ConditionOption]:
    return _CONDITIONS.get((key or "").strip().lower())


def matches_condition(entry: CatalogEntry, condition: ConditionOption) -> bool:
    haystack = f"{entry.title} {entry.path}".lower()
    return any(k in haystack for k in condition["keywords"])


def only_videos(entries: Iterable[CatalogEntry]) -> List[CatalogEntry]:
    return [e for e in entries if is_video(e)]


def by_condition(entries: Iterable[CatalogEntry], condition_key: Optional[str]) -> List[CatalogEntry]:
    condition = get_condition(condition_key)
    if condition is None:
        return list(entries)
    return [e for e in entries if matches_condition(e, condition)]


def search_titles(entries: Iterable[CatalogEntry], q: Optional[str]) -> List[CatalogEntry]:
    term = (q or "").strip().lower()
    if not term:
        return list(entries)
    return [e for e in entries if term in (e.title or e.filename).lower()]
