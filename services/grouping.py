# services/grouping.py
"""
Forms 分區引擎：把某個 program 的 forms 清單依資料夾名稱切成有標題的區段。

規則（皆為小寫路徑子字串比對）：
- 每筆項目只歸入「第一個」符合的區段（依表格順序）
- 沒有任何區段符合的項目不出現在分區畫面
- 沒有項目的區段不輸出；輸出順序依表格，不依資料出現順序
- Prescriber Communication 再細分子資料夾；沒對到子資料夾的歸入 General（放最前面）
全部都是純函式，不修改輸入。
"""
from __future__ import annotations

import locale
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from services.storage import CatalogEntry

MTM_SLUG = "mtmthefuturetoday"
TNT_SLUG = "testandtreat"
PRESCRIBER_KEY = "prescriber"


@dataclass(frozen=True)
class SectionRule:
    key: str
    label: str
    match: Tuple[str, ...]

    def matches(self, lowered_path: str) -> bool:
        return any(m in lowered_path for m in self.match)


@dataclass(frozen=True)
class FormSection:
    key: str
    label: Optional[str]
    entries: Tuple[CatalogEntry, ...]
    subsections: Tuple["FormSection", ...] = ()

    def __len__(self) -> int:
        return len(self.entries)

    def to_dict(self) -> Dict:
        return {
            "key": self.key,
            "label": self.label,
            "entries": [e.to_dict() for e in self.entries],
            "subsections": [s.to_dict() for s in self.subsections],
        }


MTM_SECTIONS: Tuple[SectionRule, ...] = (
    SectionRule("general", "General Forms", ("/forms/utilityforms/",)),
    SectionRule("flowsheets", "Medical Conditions Flowsheets", ("/forms/medflowsheets/",)),
    SectionRule("outcomes", "Outcomes TIP Forms", ("/forms/outcomestip/",)),
    SectionRule(PRESCRIBER_KEY, "Prescriber Communication Forms", ("/forms/prescribercomm/",)),
)

PRESCRIBER_SUBFOLDERS: Tuple[SectionRule, ...] = (
    SectionRule("drugInteractions", "Drug Interactions", ("/forms/prescribercomm/druginteractions/",)),
    SectionRule("needsDrugTherapy", "Needs Drug Therapy", ("/forms/prescribercomm/needsdrugtherapy/",)),
    SectionRule(
        "optimizeMedication",
        "Optimize Medication Therapy",
        ("/forms/prescribercomm/optimizemedicationtherapy/",),
    ),
    SectionRule(
        "suboptimalHighRisk",
        "Suboptimal Drug Selection/ High Risk Medication",
        (
            "/forms/prescribercomm/suboptimaldrugselection_hrm/",
            "/forms/prescribercomm/suboptimaldrugselection/",
        ),
    ),
)
PRESCRIBER_GENERAL = ("general", "General")

TNT_SECTIONS: Tuple[SectionRule, ...] = (
    SectionRule("covid", "COVID", ("/forms/covid/",)),
    SectionRule("flu", "Flu", ("/forms/flu/",)),
    SectionRule("strep", "Strep", ("/forms/strep/",)),
)

SECTION_TABLES: Dict[str, Tuple[SectionRule, ...]] = {
    MTM_SLUG: MTM_SECTIONS,
    TNT_SLUG: TNT_SECTIONS,
}


# -----------------------------
# 排序
# -----------------------------
def _sort_key(entry: CatalogEntry):
    filename = entry.filename or ""
    title = (entry.title or filename).lower()
    # path 唯一，確保不同排列輸入得到同樣順序
    return (title, locale.strxfrm(filename), filename, entry.path)


def sort_by_title(entries: Iterable[CatalogEntry]) -> List[CatalogEntry]:
    return sorted(entries, key=_sort_key)


def merge_unique(*groups: Iterable[CatalogEntry]) -> List[CatalogEntry]:
    """依 path 去重合併；同一 path 以先出現者為準"""
    seen: Dict[str, CatalogEntry] = {}
    for group in groups:
        for entry in group:
            seen.setdefault(entry.path, entry)
    return list(seen.values())


# -----------------------------
# 分區
# -----------------------------
def classify(entry: CatalogEntry, table: Sequence[SectionRule]) -> Optional[str]:
    """回傳第一個符合的區段 key；都不符合回 None"""
    p = (entry.path or "").lower()
    for rule in table:
        if rule.matches(p):
            return rule.key
    return None


def build_sections(entries: Iterable[CatalogEntry], table: Sequence[SectionRule]) -> List[FormSection]:
    buckets: Dict[str, List[CatalogEntry]] = {rule.key: [] for rule in table}
    for entry in entries:
        key = classify(entry, table)
        if key is not None:
            buckets[key].append(entry)

    return [
        FormSection(rule.key, rule.label, tuple(sort_by_title(buckets[rule.key])))
        for rule in table
        if buckets[rule.key]
    ]


def build_prescriber_subsections(entries: Iterable[CatalogEntry]) -> List[FormSection]:
    """General（沒對到子資料夾的）在前，其餘依固定順序"""
    general: List[CatalogEntry] = []
    buckets: Dict[str, List[CatalogEntry]] = {rule.key: [] for rule in PRESCRIBER_SUBFOLDERS}
    for entry in entries:
        key = classify(entry, PRESCRIBER_SUBFOLDERS)
        if key is None:
            general.append(entry)
        else:
            buckets[key].append(entry)

    out: List[FormSection] = []
    if general:
        out.append(FormSection(PRESCRIBER_GENERAL[0], PRESCRIBER_GENERAL[1], tuple(sort_by_title(general))))
    for rule in PRESCRIBER_SUBFOLDERS:
        if buckets[rule.key]:
            out.append(FormSection(rule.key, rule.label, tuple(sort_by_title(buckets[rule.key]))))
    return out


def grouped_forms_for_program(slug: str, entries: Sequence[CatalogEntry]) -> List[FormSection]:
    """
    依 program 套用對應的分區表。
    沒有分區表的 program：整包當成一個沒有標題的群組（空清單則不輸出群組）。
    """
    table = SECTION_TABLES.get(slug)
    if table is None:
        if not entries:
            return []
        return [FormSection("all", None, tuple(sort_by_title(entries)))]

    sections = build_sections(entries, table)
    if slug != MTM_SLUG:
        return sections

    out: List[FormSection] = []
    for section in sections:
        if section.key == PRESCRIBER_KEY:
            subs = build_prescriber_subsections(section.entries)
            section = FormSection(section.key, section.label, section.entries, tuple(subs))
        out.append(section)
    return out


def count_grouped(sections: Iterable[FormSection]) -> int:
    """分區畫面實際顯示的筆數（不含被排除的項目）"""
    return sum(len(s) for s in sections)
