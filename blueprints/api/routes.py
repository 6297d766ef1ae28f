# blueprints/api/routes.py
"""JSON 介面：錯誤一律 {"ok": false, "error": ...}；設定缺漏 503、後端失敗 502"""
from __future__ import annotations

from flask import current_app, jsonify, request
from flask_login import login_required

from . import bp
from models import catalog
from services.backend import get_catalog
from services.catalog import CATEGORY_FOLDERS, GLOBAL_CATEGORIES
from services.errors import ConfigurationMissing
from services.grouping import grouped_forms_for_program


def _entries_payload(result, **extra):
    if not result.ok:
        return jsonify({"ok": False, "error": result.error}), 502
    payload = {"ok": True, "count": len(result.data), "entries": [e.to_dict() for e in result.data]}
    payload.update(extra)
    return jsonify(payload)


def _config_error(e: ConfigurationMissing):
    current_app.logger.error(f"[api] {e}")
    return jsonify({"ok": False, "error": str(e)}), 503


def _not_found(what: str):
    return jsonify({"ok": False, "error": f"{what} not found"}), 404


@bp.get("/ping")
def ping():
    return jsonify({"module": "api", "ok": True})


@bp.get("/programs")
@login_required
def programs():
    return jsonify({"ok": True, "programs": catalog.list_programs()})


@bp.get("/programs/<slug>")
@login_required
def program(slug: str):
    item = catalog.get_program(slug)
    if item is None:
        return _not_found("program")
    return jsonify({"ok": True, "program": item})


@bp.get("/programs/<slug>/categories/<category>")
@login_required
def program_category(slug: str, category: str):
    if catalog.get_program(slug) is None:
        return _not_found("program")
    if category not in CATEGORY_FOLDERS:
        return _not_found("category")
    try:
        result = get_catalog().resources_for_program_category(slug, category)
    except ConfigurationMissing as e:
        return _config_error(e)
    return _entries_payload(result, program=slug, category=category)


@bp.get("/programs/<slug>/forms")
@login_required
def program_forms(slug: str):
    if catalog.get_program(slug) is None:
        return _not_found("program")
    try:
        result = get_catalog().resources_for_program_category(slug, "forms")
    except ConfigurationMissing as e:
        return _config_error(e)
    if not result.ok:
        return jsonify({"ok": False, "error": result.error}), 502

    sections = grouped_forms_for_program(slug, result.data)
    return jsonify({
        "ok": True,
        "program": slug,
        "total": len(result.data),
        "sections": [s.to_dict() for s in sections],
    })


@bp.get("/resources")
@login_required
def resources():
    cat = (request.args.get("cat") or "").strip().lower()
    include_program = (request.args.get("include_program") or "").strip() or None
    if include_program and catalog.get_program(include_program) is None:
        return _not_found("program")
    if cat and cat not in GLOBAL_CATEGORIES:
        return _not_found("category")

    try:
        svc = get_catalog()
        result = svc.global_category(cat) if cat else svc.all_resources(include_program=include_program)
    except ConfigurationMissing as e:
        return _config_error(e)
    return _entries_payload(result)
