# services/db.py
"""
本機狀態資料庫（會員鏡像、keyed store）。
檔案目錄、profiles 都在 Supabase，這裡只放 Flask-Login 與書籤需要的資料。
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

MEMORY_URIS = ("sqlite://", "sqlite:///:memory:")


class Base(DeclarativeBase):
    pass


_engine: Optional[Engine] = None
_Session: Optional[sessionmaker] = None


def default_database_url() -> str:
    """
    沒有明確給 URI 時：
    1) DATABASE_URL
    2) PORTAL_DB_FILE（檔名或路徑，轉成絕對路徑的 sqlite URL）
    3) 專案根目錄 portal.db
    """
    if os.getenv("DATABASE_URL"):
        return os.environ["DATABASE_URL"]

    db_file = Path(os.getenv("PORTAL_DB_FILE") or Path(__file__).resolve().parents[1] / "portal.db")
    # Windows 路徑也要正斜線
    return "sqlite:///" + db_file.expanduser().resolve().as_posix()


def _engine_options(uri: str) -> Dict[str, Any]:
    # 記憶體 sqlite：所有 session 共用同一條連線，否則各自看到空資料庫
    if uri in MEMORY_URIS:
        return {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
    return {}


def init_db(uri: Optional[str] = None, echo: bool = False) -> Engine:
    """create_app() 每次呼叫都會重建 engine（測試各自一個記憶體 DB）"""
    global _engine, _Session

    uri = uri or default_database_url()
    _engine = create_engine(uri, echo=echo, future=True, **_engine_options(uri))
    # commit 後物件仍可讀（Flask-Login 拿到的 Member 已離開 session）
    _Session = sessionmaker(bind=_engine, future=True, autoflush=False, expire_on_commit=False)
    return _engine


def get_session() -> Session:
    """
    用法：
        with get_session() as s:
            ...
    """
    if _Session is None:
        raise RuntimeError("Database is not initialized; call init_db() first.")
    return _Session()


def create_all() -> None:
    from services import models  # noqa: F401  註冊模型
    if _engine is None:
        raise RuntimeError("Database is not initialized; call init_db() first.")
    Base.metadata.create_all(bind=_engine)
