# services/models.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import DateTime, JSON, String
from sqlalchemy.orm import Mapped, mapped_column
from flask_login import UserMixin

from services.db import Base


# -------------------------
# 會員（Supabase auth user 的本機鏡像，給 Flask-Login 用）
# -------------------------
class Member(Base, UserMixin):
    __tablename__ = "members"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)  # Supabase user id
    email: Mapped[str] = mapped_column(String(255), index=True)
    first_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    pharmacy_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    subscription_status: Mapped[str] = mapped_column(String(32), default="active")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    @property
    def display_name(self) -> str:
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}".strip()
        return self.pharmacy_name or self.email

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Member id={self.id!r} email={self.email!r}>"


# -------------------------
# Keyed store：每個 key 一份可序列化的快照
# -------------------------
class ClientState(Base):
    """
    書籤、目前選取的 profile 等使用者狀態。
    - key 例：bookmarks:<member_id>、current_profile:<member_id>
    - value 為 JSON 快照，整份讀寫
    """
    __tablename__ = "client_state"

    key: Mapped[str] = mapped_column(String(200), primary_key=True)
    value: Mapped[Any] = mapped_column(JSON)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self) -> str:  # pragma: no cover
        return f"<ClientState key={self.key!r}>"
