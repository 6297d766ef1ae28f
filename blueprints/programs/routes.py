# blueprints/programs/routes.py
from __future__ import annotations

from flask import abort, current_app, render_template, request
from flask_login import login_required
from jinja2 import TemplateNotFound

from . import bp
from models import catalog
from services.backend import get_catalog
from services.catalog import PROGRAM_CATEGORIES
from services.errors import ConfigurationMissing
from services.grouping import count_grouped, grouped_forms_for_program

TABS = ("overview",) + PROGRAM_CATEGORIES

EMPTY_HINTS = {
    "training": "No training modules available yet.",
    "protocols": "No protocol manuals available yet.",
    "forms": "No documentation forms available yet.",
    "resources": "No additional resources available yet.",
}


def normalize_tab(value) -> str:
    v = (value or "").strip().lower()
    return v if v in TABS else "overview"


@bp.get("/")
@login_required
def program_list():
    return render_template("programs/list.html", programs=catalog.list_programs())


@bp.get("/<slug>")
@login_required
def program_detail(slug: str):
    program = catalog.get_program(slug)
    if program is None:
        abort(404)

    tab = normalize_tab(request.args.get("tab"))
    grouped = {c: [] for c in PROGRAM_CATEGORIES}
    error = None

    try:
        result = get_catalog().program_resources_grouped(slug)
        grouped, error = result.data, result.error
    except ConfigurationMissing as e:
        current_app.logger.error(f"[catalog] {e}")
        error = str(e)

    form_sections = grouped_forms_for_program(slug, grouped["forms"])
    counts = {c: len(grouped[c]) for c in PROGRAM_CATEGORIES}
    # 分區畫面只顯示有對到區段的項目，數量以實際顯示為準
    counts["forms"] = count_grouped(form_sections)
    hidden = len(grouped["forms"]) - counts["forms"]
    if hidden:
        current_app.logger.debug(f"[catalog] {slug}: {hidden} form(s) outside curated sections")

    ctx = dict(
        program=program,
        tab=tab,
        tabs=TABS,
        grouped=grouped,
        form_sections=form_sections,
        counts=counts,
        error=error,
        empty_hints=EMPTY_HINTS,
    )
    try:
        return render_template("programs/detail.html", **ctx)
    except TemplateNotFound:
        current_app.logger.exception("Render program detail failed")
        return f"<h1>{program['name']}</h1><p>{error or ''}</p>", 500
