# services/profiles.py
"""
Pharmacy profiles（member_profiles 資料表）
- 一個會員帳號可有多個 profile（PIC / Staff 藥師、技術員）
- 刪除為軟刪除（is_active = false）
- 所有操作回傳 FetchResult；查無資料時 data 為 None（不是例外）
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Mapping, Optional

from services.errors import FetchResult

logger = logging.getLogger(__name__)

PROFILE_TABLE = "member_profiles"
PROFILE_ROLES = ("Pharmacist-PIC", "Pharmacist-Staff", "Pharmacy Technician")

# 表單欄位 → 資料表欄位
_FIELD_MAP = {
    "role": "role_type",
    "first_name": "first_name",
    "last_name": "last_name",
    "phone": "phone_number",
    "email": "user_email",
    "dob_month": "dob_month",
    "dob_day": "dob_day",
    "dob_year": "dob_year",
    "license_number": "license_number",
    "nabp_eprofile_id": "nabp_eprofile_id",
}
REQUIRED_FIELDS = ("role", "first_name", "last_name")


@dataclass(frozen=True)
class PharmacyProfile:
    id: str
    member_account_id: str
    role: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    dob_month: Optional[str] = None
    dob_day: Optional[str] = None
    dob_year: Optional[str] = None
    license_number: Optional[str] = None
    nabp_eprofile_id: Optional[str] = None
    is_active: bool = True
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "PharmacyProfile":
        return cls(
            id=str(row["id"]),
            member_account_id=str(row.get("member_account_id") or ""),
            role=row.get("role_type") or "",
            first_name=row.get("first_name") or "",
            last_name=row.get("last_name") or "",
            phone=row.get("phone_number") or None,
            email=row.get("user_email") or None,
            dob_month=row.get("dob_month") or None,
            dob_day=row.get("dob_day") or None,
            dob_year=row.get("dob_year") or None,
            license_number=row.get("license_number") or None,
            nabp_eprofile_id=row.get("nabp_eprofile_id") or None,
            is_active=bool(row.get("is_active", True)),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


def _in_range(value: str, low: int, high: int) -> bool:
    try:
        return low <= int(value) <= high
    except (TypeError, ValueError):
        return False


def validate_profile_data(data: Mapping[str, Any], partial: bool = False) -> List[str]:
    """回傳錯誤訊息清單；空串列代表通過"""
    errors: List[str] = []
    clean = {k: (str(v).strip() if v is not None else "") for k, v in data.items()}

    for field in REQUIRED_FIELDS:
        if partial and field not in clean:
            continue
        if not clean.get(field):
            errors.append(f"{field.replace('_', ' ').capitalize()} is required.")

    role = clean.get("role")
    if role and role not in PROFILE_ROLES:
        errors.append("Role must be one of: " + ", ".join(PROFILE_ROLES) + ".")

    if clean.get("dob_month") and not _in_range(clean["dob_month"], 1, 12):
        errors.append("Birth month must be between 01 and 12.")
    if clean.get("dob_day") and not _in_range(clean["dob_day"], 1, 31):
        errors.append("Birth day must be between 01 and 31.")
    if clean.get("dob_year") and not _in_range(clean["dob_year"], 1900, date.today().year):
        errors.append("Birth year is out of range.")
    return errors


def to_db_fields(data: Mapping[str, Any]) -> Dict[str, Any]:
    """只轉換有給的欄位；空字串轉成 None（清空）"""
    out: Dict[str, Any] = {}
    for key, column in _FIELD_MAP.items():
        if key in data:
            value = data[key]
            value = value.strip() if isinstance(value, str) else value
            out[column] = value or None
    return out


class ProfileService:
    def __init__(self, client) -> None:
        self.client = client

    def _table(self):
        return self.client.table(PROFILE_TABLE)

    def list_for_account(self, member_account_id: str) -> FetchResult:
        try:
            response = (
                self._table()
                .select("*")
                .eq("member_account_id", member_account_id)
                .eq("is_active", True)
                .order("created_at")
                .execute()
            )
        except Exception as e:
            logger.warning(f"[profiles] list failed: {e}")
            return FetchResult([], f"Failed to load profiles: {e}")
        return FetchResult([PharmacyProfile.from_row(r) for r in (response.data or [])])

    def get(self, profile_id: str) -> FetchResult:
        try:
            response = (
                self._table()
                .select("*")
                .eq("id", profile_id)
                .eq("is_active", True)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.warning(f"[profiles] get failed: {e}")
            return FetchResult(None, f"Failed to load profile: {e}")
        rows = response.data or []
        return FetchResult(PharmacyProfile.from_row(rows[0]) if rows else None)

    def create(self, member_account_id: str, data: Mapping[str, Any]) -> FetchResult:
        errors = validate_profile_data(data)
        if errors:
            return FetchResult(None, " ".join(errors))

        payload = to_db_fields(data)
        payload["member_account_id"] = member_account_id
        try:
            response = self._table().insert(payload).execute()
        except Exception as e:
            logger.warning(f"[profiles] create failed: {e}")
            return FetchResult(None, f"Failed to create profile: {e}")

        rows = response.data or []
        if not rows:
            return FetchResult(None, "Profile creation failed - no data returned")
        profile = PharmacyProfile.from_row(rows[0])
        logger.info(f"[profiles] created: id={profile.id}")
        return FetchResult(profile)

    def update(self, profile_id: str, changes: Mapping[str, Any]) -> FetchResult:
        errors = validate_profile_data(changes, partial=True)
        if errors:
            return FetchResult(None, " ".join(errors))

        payload = to_db_fields(changes)
        if not payload:
            return self.get(profile_id)
        try:
            response = self._table().update(payload).eq("id", profile_id).execute()
        except Exception as e:
            logger.warning(f"[profiles] update failed: {e}")
            return FetchResult(None, f"Failed to update profile: {e}")

        rows = response.data or []
        if not rows:
            return FetchResult(None, "Profile update failed - no data returned")
        logger.info(f"[profiles] updated: id={profile_id}")
        return FetchResult(PharmacyProfile.from_row(rows[0]))

    def delete(self, profile_id: str) -> FetchResult:
        try:
            self._table().update({"is_active": False}).eq("id", profile_id).execute()
        except Exception as e:
            logger.warning(f"[profiles] delete failed: {e}")
            return FetchResult(None, f"Failed to remove profile: {e}")
        logger.info(f"[profiles] removed: id={profile_id}")
        return FetchResult(None)


def next_current_after_removal(profiles: List[PharmacyProfile], removed_id: str,
                               current_id: Optional[str]) -> Optional[str]:
    """刪掉目前選取的 profile 時改選剩下的第一個"""
    if current_id != removed_id:
        return current_id
    remaining = [p for p in profiles if p.id != removed_id]
    return remaining[0].id if remaining else None
