# services/catalog.py
"""
檔案目錄查詢（給頁面與 API 用的高階介面）
- 主要來源：PostgREST 資料表 storage_files_catalog（bucket_name + file_path ilike 前綴）
- 備援來源：Storage list API 遞迴走訪（主要來源失敗時整批改用）
- 多個分類同時查（執行緒池），全部完成後才合併；輸出一律依標題排序
- 呼叫端只拿到 FetchResult(data, error)，不知道是哪個來源回的
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from services.errors import FetchFailed, FetchResult
from services.grouping import merge_unique, sort_by_title
from services.storage import (
    CatalogEntry,
    StorageCatalogReader,
    build_public_url,
    normalize_path,
    strip_one_extension,
)
from services.supabase_client import make_client

logger = logging.getLogger(__name__)

PROGRAM_CATEGORIES: Tuple[str, ...] = ("training", "protocols", "forms", "resources")

# 分類 → 候選資料夾名稱（依序嘗試、結果合併）
CATEGORY_FOLDERS: Dict[str, Tuple[str, ...]] = {
    "forms": ("forms", "Forms"),
    "protocols": ("protocols",),
    "resources": ("resources",),
    "training": ("training",),
}

GLOBAL_CATEGORIES: Dict[str, str] = {
    "handouts": "patienthandouts/",
    "clinical": "clinicalguidelines/",
    "billing": "medicalbilling/",
}


def category_prefixes(slug: str, category: str) -> List[str]:
    """回傳 {slug}/{candidate}/ 形式的前綴；未知分類回空串列"""
    return [f"{slug}/{folder}/" for folder in CATEGORY_FOLDERS.get(category, ())]


# -----------------------------
# 主要來源：目錄資料表
# -----------------------------
def row_to_entry(row: Mapping[str, Any], base_url: str, bucket: str) -> CatalogEntry:
    path = normalize_path(row.get("file_path") or "")
    filename = row.get("file_name") or path.rsplit("/", 1)[-1]
    file_url = (row.get("file_url") or "").strip()
    size = row.get("file_size")
    return CatalogEntry(
        path=path,
        filename=filename,
        title=strip_one_extension(filename),
        url=file_url or build_public_url(base_url, bucket, path),
        mime_type=row.get("mime_type") or None,
        size=size if isinstance(size, int) else None,
    )


class TableCatalogReader:
    name = "catalog"

    def __init__(self, client, table: str, bucket: str, base_url: str) -> None:
        self.client = client
        self.table = table
        self.bucket = bucket
        self.base_url = base_url

    def list_entries(self, prefix: str) -> List[CatalogEntry]:
        try:
            response = (
                self.client.table(self.table)
                .select("*")
                .eq("bucket_name", self.bucket)
                .ilike("file_path", f"{prefix}%")
                .order("file_path")
                .execute()
            )
        except Exception as e:
            logger.warning(f"[catalog] query failed: prefix={prefix} error={e}")
            raise FetchFailed(f"Catalog query failed for '{prefix}': {e}", source=self.name) from e

        rows = getattr(response, "data", None) or []
        return [row_to_entry(r, self.base_url, self.bucket) for r in rows]


# -----------------------------
# 彙整 API
# -----------------------------
class CatalogService:
    def __init__(self, primary, fallback=None, max_workers: int = 4) -> None:
        self.primary = primary
        self.fallback = fallback
        self.max_workers = max(int(max_workers), 1)

    @staticmethod
    def _collect(reader, prefixes: Sequence[str]) -> List[CatalogEntry]:
        return merge_unique(*(reader.list_entries(p) for p in prefixes))

    def _run(self, reader, jobs: Mapping[str, Sequence[str]]) -> Dict[str, List[CatalogEntry]]:
        # 每個 job 各自產生獨立串列，全部完成後才合併
        with ThreadPoolExecutor(max_workers=min(self.max_workers, max(len(jobs), 1))) as pool:
            futures = {name: pool.submit(self._collect, reader, prefixes) for name, prefixes in jobs.items()}
            return {name: sort_by_title(f.result()) for name, f in futures.items()}

    def _fetch(self, jobs: Mapping[str, Sequence[str]]) -> FetchResult:
        try:
            return FetchResult(self._run(self.primary, jobs))
        except FetchFailed as e:
            if self.fallback is None:
                return FetchResult({}, str(e))
            logger.warning(f"[catalog] primary source failed, falling back to storage listing: {e}")

        try:
            return FetchResult(self._run(self.fallback, jobs))
        except FetchFailed as e:
            logger.error(f"[catalog] fallback source failed: {e}")
            return FetchResult({}, str(e))

    def resources_for_program_category(self, slug: str, category: str) -> FetchResult:
        prefixes = category_prefixes(slug, category)
        if not prefixes:
            return FetchResult([], f"Unknown category: {category}")
        result = self._fetch({category: prefixes})
        return FetchResult(result.data.get(category, []), result.error)

    def program_resources_grouped(self, slug: str) -> FetchResult:
        """data = {training, protocols, forms, resources} → 已排序串列"""
        jobs = {c: category_prefixes(slug, c) for c in PROGRAM_CATEGORIES}
        result = self._fetch(jobs)
        if not result.ok:
            return FetchResult({c: [] for c in PROGRAM_CATEGORIES}, result.error)
        return result

    def global_category(self, cat: str) -> FetchResult:
        prefix = GLOBAL_CATEGORIES.get(cat)
        if prefix is None:
            return FetchResult([], f"Unknown resource category: {cat}")
        result = self._fetch({cat: [prefix]})
        return FetchResult(result.data.get(cat, []), result.error)

    def all_resources(self, include_program: Optional[str] = None) -> FetchResult:
        jobs: Dict[str, List[str]] = {cat: [p] for cat, p in GLOBAL_CATEGORIES.items()}
        if include_program:
            for c in PROGRAM_CATEGORIES:
                jobs[f"program:{c}"] = category_prefixes(include_program, c)

        result = self._fetch(jobs)
        if not result.ok:
            return FetchResult([], result.error)
        return FetchResult(sort_by_title(merge_unique(*(result.data[name] for name in jobs))))


def get_catalog_service(config: Mapping[str, Any]) -> CatalogService:
    """依 Flask config 組出 CatalogService；未設定 Supabase 會丟 ConfigurationMissing"""
    client = make_client(config)
    base_url = (config.get("SUPABASE_URL") or "").rstrip("/")
    bucket = config.get("SUPABASE_BUCKET", "clinicalrxqfiles")
    primary = TableCatalogReader(client, config.get("CATALOG_TABLE", "storage_files_catalog"), bucket, base_url)
    fallback = StorageCatalogReader(client, bucket, base_url, config.get("STORAGE_LIST_PAGE_SIZE", 100))
    return CatalogService(primary, fallback, max_workers=config.get("CATALOG_FETCH_WORKERS", 4))
