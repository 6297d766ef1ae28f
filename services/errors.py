# services/errors.py
from __future__ import annotations

from typing import Any, NamedTuple, Optional


class PortalError(Exception):
    """所有後端協作錯誤的基底類別"""


class ConfigurationMissing(PortalError):
    """SUPABASE_URL / SUPABASE_ANON_KEY 未設定；在任何網路呼叫之前就丟出"""


class FetchFailed(PortalError):
    """主要資料來源連線失敗或回應非 2xx"""

    def __init__(self, message: str, source: str = "") -> None:
        super().__init__(message)
        self.source = source


class FetchResult(NamedTuple):
    """
    協作邊界回傳的 (data, error) 配對。
    - error 為 None 代表成功（data 可能是空串列，那是「沒有結果」，不是錯誤）
    - error 不為 None 時 data 一律是空值，不會拿舊資料或假資料代替
    """
    data: Any
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
