# services/backend.py
"""
在 request 內取得後端協作物件。
app.extensions 可放入替代品（測試時注入假的 catalog / client factory）：
- "portal.catalog"：CatalogService 實例
- "portal.client_factory"：callable(config, access_token=None) → Supabase client
"""
from __future__ import annotations

from typing import Optional

from flask import current_app, session

from services.catalog import CatalogService, get_catalog_service
from services.profiles import ProfileService
from services.state_store import StateStore
from services.supabase_client import AuthService, make_client

ACCESS_TOKEN_KEY = "sb_access_token"


def get_client(access_token: Optional[str] = None):
    factory = current_app.extensions.get("portal.client_factory", make_client)
    return factory(current_app.config, access_token=access_token)


def get_catalog() -> CatalogService:
    """未設定 Supabase 時丟 ConfigurationMissing"""
    svc = current_app.extensions.get("portal.catalog")
    if svc is not None:
        return svc
    return get_catalog_service(current_app.config)


def get_auth() -> AuthService:
    return AuthService(get_client())


def get_profiles() -> Optional[ProfileService]:
    """沒有登入 token 回 None（RLS 需要使用者 JWT）"""
    token = session.get(ACCESS_TOKEN_KEY)
    if not token:
        return None
    return ProfileService(get_client(access_token=token))


def get_state_store() -> StateStore:
    return current_app.extensions.get("portal.state_store") or StateStore()
