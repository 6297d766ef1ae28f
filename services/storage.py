# services/storage.py
"""
Supabase Storage 相關工具：
- CatalogEntry：UI 直接使用的檔案項目（不可變）
- 路徑 / 標題正規化、公開 URL 組合（純字串，不打網路）
- StorageCatalogReader：以 storage list API 遞迴走訪資料夾（目錄表失敗時的備援來源）
- 檔案類型判斷（影片 / PDF / 試算表 / 文件）
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from services.errors import FetchFailed

logger = logging.getLogger(__name__)

# encodeURI 不會編碼的字元（保留路徑結構）
_URI_SAFE = "/!$&'()*+,;=:@-._~"

VIDEO_EXTENSIONS = (".mp4", ".mov", ".m4v", ".webm")
SPREADSHEET_EXTENSIONS = (".xls", ".xlsx", ".csv")
DOC_EXTENSIONS = (".doc", ".docx")

_DURATION_RE = re.compile(r"[\[(]([0-5]?\d:[0-5]\d)[\])]")


@dataclass(frozen=True)
class CatalogEntry:
    path: str
    filename: str
    title: str
    url: str
    mime_type: Optional[str] = None
    size: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "filename": self.filename,
            "title": self.title,
            "url": self.url,
            "mimeType": self.mime_type,
            "size": self.size,
            "kind": file_kind(self),
            "action": entry_action(self),
        }


# -----------------------------
# 路徑 / 標題
# -----------------------------
def strip_one_extension(filename: str) -> str:
    """只拿掉最後一個副檔名；沒有點、或點在第一個字元時原樣回傳"""
    last_dot = filename.rfind(".")
    if last_dot <= 0:
        return filename
    return filename[:last_dot]


def normalize_path(path: str) -> str:
    return (path or "").lstrip("/")


def filename_of(path: str) -> str:
    return normalize_path(path).rstrip("/").rsplit("/", 1)[-1]


def build_public_url(base_url: str, bucket: str, path: str) -> str:
    """
    公開物件 URL：{base}/storage/v1/object/public/{bucket}/{encoded path}
    base 未設定時回空字串（顯示層會當作不可下載）。
    """
    base = (base_url or "").rstrip("/")
    if not base:
        return ""
    return f"{base}/storage/v1/object/public/{bucket}/{quote(normalize_path(path), safe=_URI_SAFE)}"


def entry_from_path(path: str, base_url: str, bucket: str) -> CatalogEntry:
    """只有路徑時（例如書籤）也能組出一筆可顯示的項目"""
    clean = normalize_path(path)
    name = filename_of(clean)
    return CatalogEntry(
        path=clean,
        filename=name,
        title=strip_one_extension(name),
        url=build_public_url(base_url, bucket, clean),
    )


# -----------------------------
# 檔案類型（圖示 / 動作）
# -----------------------------
def is_video(entry: CatalogEntry) -> bool:
    if entry.mime_type and entry.mime_type.lower().startswith("video/"):
        return True
    return entry.filename.lower().endswith(VIDEO_EXTENSIONS)


def is_pdf(entry: CatalogEntry) -> bool:
    return entry.filename.lower().endswith(".pdf")


def is_spreadsheet(entry: CatalogEntry) -> bool:
    return entry.filename.lower().endswith(SPREADSHEET_EXTENSIONS)


def is_doc(entry: CatalogEntry) -> bool:
    return entry.filename.lower().endswith(DOC_EXTENSIONS)


def file_kind(entry: CatalogEntry) -> str:
    if is_video(entry):
        return "video"
    if is_spreadsheet(entry):
        return "spreadsheet"
    # pdf 與 Word 檔共用同一種圖示
    if is_pdf(entry) or is_doc(entry):
        return "document"
    return "file"


def entry_action(entry: CatalogEntry) -> str:
    return "Play" if is_video(entry) else "Download"


def duration_label(name: str) -> Optional[str]:
    """從 [mm:ss] 或 (mm:ss) 取出影片長度標籤"""
    m = _DURATION_RE.search(name or "")
    return m.group(1) if m else None


# -----------------------------
# Storage list API 遞迴走訪
# -----------------------------
def _is_folder(row: Dict[str, Any]) -> bool:
    meta = row.get("metadata")
    return not meta or not isinstance(meta.get("size"), int)


class StorageCatalogReader:
    """
    以 storage list API 讀取某個 prefix 底下的所有檔案（遞迴）。
    - metadata 為空或沒有數字 size 的列視為子資料夾
    - 以 visited 集合避免重複走訪
    - 以 page_size 分頁，直到拿到不足一頁為止
    """
    name = "storage"

    def __init__(self, client, bucket: str, base_url: str, page_size: int = 100) -> None:
        self.client = client
        self.bucket = bucket
        self.base_url = base_url
        self.page_size = max(int(page_size), 1)

    def list_prefix(self, prefix: str, offset: int = 0) -> List[Dict[str, Any]]:
        key = normalize_path(prefix).rstrip("/")
        try:
            rows = self.client.storage.from_(self.bucket).list(
                key,
                {
                    "limit": self.page_size,
                    "offset": offset,
                    "sortBy": {"column": "name", "order": "asc"},
                },
            )
        except Exception as e:
            logger.warning(f"[storage] list failed: prefix={key} error={e}")
            raise FetchFailed(f"Storage list failed for '{key}': {e}", source=self.name) from e

        if not isinstance(rows, list):
            raise FetchFailed("Unexpected storage list response.", source=self.name)
        return rows

    def _list_all(self, prefix: str) -> List[Dict[str, Any]]:
        out: List[Dict[str, Any]] = []
        offset = 0
        while True:
            page = self.list_prefix(prefix, offset=offset)
            out.extend(page)
            if len(page) < self.page_size:
                return out
            offset += self.page_size

    def list_entries(self, prefix: str) -> List[CatalogEntry]:
        visited = set()
        results: List[CatalogEntry] = []

        def walk(pfx: str) -> None:
            key = pfx.rstrip("/")
            if key in visited:
                return
            visited.add(key)

            for row in self._list_all(key):
                name = row.get("name") or ""
                if not name:
                    continue
                # bucket 根目錄（key 為空）不加前導斜線
                path = f"{key}/{name}" if key else name
                if _is_folder(row):
                    walk(path)
                    continue
                meta = row.get("metadata") or {}
                results.append(CatalogEntry(
                    path=path,
                    filename=name,
                    title=strip_one_extension(name),
                    url=build_public_url(self.base_url, self.bucket, path),
                    mime_type=meta.get("mimetype") or None,
                    size=meta.get("size"),
                ))

        walk(normalize_path(prefix).rstrip("/"))
        return results
