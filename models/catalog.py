# models/catalog.py
from __future__ import annotations
from typing import List, Optional, TypedDict


class ProgramItem(TypedDict):
    slug: str          # 與 Storage 資料夾名稱完全相同
    name: str
    description: str


__all__ = ["PROGRAM_CATALOG", "PROGRAM_SLUGS", "get_program", "list_programs"]

PROGRAM_CATALOG: List[ProgramItem] = [
    {
        "slug": "mtmthefuturetoday",
        "name": "MTM The Future Today",
        "description": "Team-based Medication Therapy Management program with proven protocols and scalable results.",
    },
    {
        "slug": "timemymeds",
        "name": "TimeMyMeds",
        "description": "Appointment-based synchronization to enable consistent clinical service delivery.",
    },
    {
        "slug": "testandtreat",
        "name": "Test & Treat Services",
        "description": "Patient assessments, CLIA-waived testing, and treatment guidance for flu, strep, and COVID-19.",
    },
    {
        "slug": "hba1c",
        "name": "HbA1c Testing",
        "description": "Training and resources for A1c point-of-care testing and quality metrics.",
    },
    {
        "slug": "oralcontraceptives",
        "name": "Pharmacist-Initiated Oral Contraceptives",
        "description": "From patient intake to billing and documentation, simplified step-by-step service workflows.",
    },
]

PROGRAM_SLUGS = tuple(p["slug"] for p in PROGRAM_CATALOG)


def list_programs() -> List[ProgramItem]:
    return list(PROGRAM_CATALOG)


def get_program(slug: str) -> Optional[ProgramItem]:
    """查無此 slug 回 None"""
    items = {p["slug"]: p for p in PROGRAM_CATALOG}
    return items.get(slug)
