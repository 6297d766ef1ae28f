# services/supabase_client.py
"""
Supabase client 包裝：
- 從 Flask config 建立 client（缺 URL / anon key 直接丟 ConfigurationMissing，不打網路）
- Auth：登入 / 註冊 / 登出 / 重設密碼，回傳 dict（success / error）
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from supabase import Client, create_client

from services.errors import ConfigurationMissing

logger = logging.getLogger(__name__)


def require_settings(config: Mapping[str, Any]) -> tuple:
    url = (config.get("SUPABASE_URL") or "").strip().rstrip("/")
    key = (config.get("SUPABASE_ANON_KEY") or "").strip()
    if not url or not key:
        logger.error("Supabase credentials not found in config")
        raise ConfigurationMissing(
            "Supabase is not configured. Set SUPABASE_URL and SUPABASE_ANON_KEY."
        )
    return url, key


def make_client(config: Mapping[str, Any], access_token: Optional[str] = None) -> Client:
    """
    建立 Supabase client。
    有 access_token 時讓 PostgREST 帶使用者 JWT（RLS 需要）。
    """
    url, key = require_settings(config)
    client = create_client(url, key)
    if access_token:
        client.postgrest.auth(access_token)
    return client


class AuthService:
    """Supabase Auth 包裝（同步呼叫；錯誤轉成 {"success": False, "error": ...}）"""

    def __init__(self, client: Client) -> None:
        self.client = client

    def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        try:
            response = self.client.auth.sign_in_with_password({
                "email": email,
                "password": password,
            })
        except Exception as e:
            logger.warning(f"[auth] sign in failed: {e}")
            return {"success": False, "error": "Invalid email or password."}

        if not (response.user and response.session):
            return {"success": False, "error": "Invalid email or password."}

        user = response.user
        meta = getattr(user, "user_metadata", None) or {}
        logger.info(f"[auth] signed in: user_id={user.id}")
        return {
            "success": True,
            "user_id": str(user.id),
            "email": user.email or email,
            "metadata": dict(meta),
            "access_token": response.session.access_token,
            "refresh_token": response.session.refresh_token,
        }

    def sign_up(self, email: str, password: str, metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            response = self.client.auth.sign_up({
                "email": email,
                "password": password,
                "options": {"data": metadata or {}},
            })
        except Exception as e:
            logger.warning(f"[auth] sign up failed: {e}")
            return {"success": False, "error": str(e)}

        if not response.user:
            return {"success": False, "error": "Failed to create account."}

        logger.info(f"[auth] signed up: user_id={response.user.id}")
        return {
            "success": True,
            "user_id": str(response.user.id),
            "email_confirmed": getattr(response.user, "email_confirmed_at", None) is not None,
        }

    def sign_out(self) -> None:
        try:
            self.client.auth.sign_out()
        except Exception as e:
            # 本機 session 仍會被清掉
            logger.warning(f"[auth] remote sign out failed: {e}")

    def reset_password(self, email: str) -> Dict[str, Any]:
        try:
            self.client.auth.reset_password_for_email(email)
        except Exception as e:
            logger.warning(f"[auth] reset password failed: {e}")
            return {"success": False, "error": str(e)}
        return {"success": True}
