# config.py
import os
from dotenv import load_dotenv

# 載入專案根目錄的 .env（沒有也不會報錯）
load_dotenv()


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


class Config:
    # Flask
    SECRET_KEY = os.getenv("SECRET_KEY", "please_change_me_in_dev")

    # Database（本機狀態：會員鏡像 / 書籤 / 目前選取的 profile）
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///portal.db")
    SQLALCHEMY_ECHO = os.getenv("SQLALCHEMY_ECHO", "0") == "1"

    # Supabase（URL 去掉結尾斜線）
    SUPABASE_URL = os.getenv("SUPABASE_URL", "").strip().rstrip("/")
    SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY", "").strip()
    SUPABASE_BUCKET = os.getenv("SUPABASE_BUCKET", "clinicalrxqfiles")

    # 檔案目錄
    CATALOG_TABLE = os.getenv("CATALOG_TABLE", "storage_files_catalog")
    CATALOG_FETCH_WORKERS = _int_env("CATALOG_FETCH_WORKERS", 4)
    STORAGE_LIST_PAGE_SIZE = _int_env("STORAGE_LIST_PAGE_SIZE", 100)
