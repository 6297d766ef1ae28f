# blueprints/resources/routes.py
from __future__ import annotations

from typing import Mapping

from flask import current_app, flash, jsonify, redirect, render_template, request, url_for
from flask_login import current_user, login_required

from . import bp
from models import catalog
from services.backend import get_catalog, get_state_store
from services.errors import ConfigurationMissing, FetchResult
from services.filters import CONDITION_OPTIONS, by_condition, normalize_filter, only_videos, search_titles
from services.grouping import sort_by_title
from services.state_store import BookmarkStore
from services.storage import entry_from_path


def _bookmarks() -> BookmarkStore:
    return BookmarkStore(get_state_store(), current_user.get_id())


def load_library(filter_key: str, program_slug: str | None):
    """
    依篩選條件取得清單：
    - handouts / clinical / billing：單一全域分類
    - program：指定 program 的四個分類
    - all / videos / conditions：全域分類（+ 指定 program）合併後再篩
    """
    svc = get_catalog()
    if filter_key in ("handouts", "clinical", "billing"):
        return svc.global_category(filter_key)
    if filter_key == "program":
        if catalog.get_program(program_slug or "") is None:
            return FetchResult([], "Choose a program to browse its files.")
        result = svc.program_resources_grouped(program_slug)
        entries = [e for group in result.data.values() for e in group]
        return result._replace(data=sort_by_title(entries))
    return svc.all_resources(include_program=program_slug if catalog.get_program(program_slug or "") else None)


@bp.get("/resources")
@login_required
def library():
    filter_key = normalize_filter(request.args.get("filter") or request.args.get("cat"))
    program_slug = (request.args.get("program") or "").strip() or None
    condition = (request.args.get("condition") or "").strip() or None
    q = (request.args.get("q") or "").strip()

    entries, error = [], None
    try:
        result = load_library(filter_key, program_slug)
        entries, error = result.data, result.error
    except ConfigurationMissing as e:
        current_app.logger.error(f"[catalog] {e}")
        error = str(e)

    if filter_key == "videos":
        entries = only_videos(entries)
    elif filter_key == "conditions":
        entries = by_condition(entries, condition)
    entries = search_titles(entries, q)

    return render_template(
        "resources/library.html",
        entries=entries,
        error=error,
        filter_key=filter_key,
        program_slug=program_slug,
        condition=condition,
        q=q,
        programs=catalog.list_programs(),
        conditions=CONDITION_OPTIONS,
        bookmarked=set(_bookmarks().paths()),
    )


@bp.get("/bookmarks")
@login_required
def bookmarks():
    cfg = current_app.config
    entries = sort_by_title(
        entry_from_path(p, cfg.get("SUPABASE_URL", ""), cfg.get("SUPABASE_BUCKET", "clinicalrxqfiles"))
        for p in _bookmarks().paths()
    )
    return render_template("resources/bookmarks.html", entries=entries)


@bp.post("/bookmarks/toggle")
@login_required
def toggle_bookmark():
    # 表單送出或 JSON body（{"path": ..., "next": ...}）
    data = request.get_json(silent=True) if request.is_json else request.form
    if not isinstance(data, Mapping):
        data = {}
    path = str(data.get("path") or "").strip().lstrip("/")
    if not path:
        if request.is_json or request.accept_mimetypes.best == "application/json":
            return jsonify({"ok": False, "error": "missing path"}), 400
        flash("Nothing to bookmark.", "error")
        return redirect(url_for("resources.bookmarks"))

    added = _bookmarks().toggle(path)
    if request.is_json or request.accept_mimetypes.best == "application/json":
        return jsonify({"ok": True, "path": path, "bookmarked": added})

    next_url = str(data.get("next") or "")
    if not next_url.startswith("/") or next_url.startswith("//"):
        next_url = url_for("resources.bookmarks")
    return redirect(next_url)


@bp.post("/bookmarks/clear")
@login_required
def clear_bookmarks():
    _bookmarks().clear()
    flash("Bookmarks cleared.", "success")
    return redirect(url_for("resources.bookmarks"))
