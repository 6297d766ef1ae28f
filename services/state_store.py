# services/state_store.py
"""
明確傳入的 keyed store（取代瀏覽器 localStorage 的全域狀態）。
- StateStore：load / save / delete 一份 JSON 快照
- BookmarkStore：以 storage path 為 id 的書籤集合
- CurrentProfileStore：目前選取的 profile id
"""
from __future__ import annotations

import threading
from typing import Any, Callable, Iterable, List, Optional, Set

from sqlalchemy import select

from services.db import get_session
from services.models import ClientState

_update_lock = threading.Lock()


class StateStore:
    def __init__(self, session_factory: Callable = get_session) -> None:
        self._session_factory = session_factory

    def load(self, key: str, default: Any = None) -> Any:
        with self._session_factory() as s:
            row = s.get(ClientState, key)
            return row.value if row is not None else default

    def save(self, key: str, snapshot: Any) -> None:
        with self._session_factory() as s:
            row = s.get(ClientState, key)
            if row is None:
                s.add(ClientState(key=key, value=snapshot))
            else:
                row.value = snapshot
            s.commit()

    def update(self, key: str, change: Callable[[Any], Any], default: Any = None) -> Any:
        """
        在同一個 session 內讀出快照、套用 change、寫回（列鎖住直到 commit）。
        回傳寫回的新快照。
        """
        # SQLite 不支援 FOR UPDATE：同一個 process 內另以 lock 序列化
        with _update_lock, self._session_factory() as s:
            row = s.execute(
                select(ClientState).where(ClientState.key == key).with_for_update()
            ).scalar_one_or_none()
            snapshot = change(row.value if row is not None else default)
            if row is None:
                s.add(ClientState(key=key, value=snapshot))
            else:
                row.value = snapshot
            s.commit()
            return snapshot

    def delete(self, key: str) -> None:
        with self._session_factory() as s:
            row = s.get(ClientState, key)
            if row is not None:
                s.delete(row)
                s.commit()


class BookmarkStore:
    def __init__(self, store: StateStore, member_id: str) -> None:
        self.store = store
        self.key = f"bookmarks:{member_id}"

    @staticmethod
    def _as_set(raw: Any) -> Set[str]:
        if not isinstance(raw, list):
            return set()
        return {str(p) for p in raw}

    def _load(self) -> Set[str]:
        return self._as_set(self.store.load(self.key, []))

    def paths(self) -> List[str]:
        return sorted(self._load())

    def is_bookmarked(self, path: str) -> bool:
        return path in self._load()

    def toggle(self, path: str) -> bool:
        """回傳切換後是否為已加入書籤（讀取與寫回在同一個交易內）"""
        added = False

        def flip(raw: Any) -> List[str]:
            nonlocal added
            ids = self._as_set(raw)
            added = path not in ids
            if added:
                ids.add(path)
            else:
                ids.discard(path)
            return sorted(ids)

        self.store.update(self.key, flip, [])
        return added

    def clear(self) -> None:
        self.store.save(self.key, [])


class CurrentProfileStore:
    def __init__(self, store: StateStore, member_id: str) -> None:
        self.store = store
        self.key = f"current_profile:{member_id}"

    def get(self) -> Optional[str]:
        value = self.store.load(self.key)
        return str(value) if value else None

    def set(self, profile_id: Optional[str]) -> None:
        if profile_id:
            self.store.save(self.key, profile_id)
        else:
            self.store.delete(self.key)

    def resolve(self, profiles: Iterable[Any]) -> Optional[str]:
        """存下來的 id 不在目前 profiles 中就視為沒有選取"""
        saved = self.get()
        if saved is None:
            return None
        return saved if any(p.id == saved for p in profiles) else None
