# blueprints/account/routes.py
from __future__ import annotations

from flask import current_app, flash, redirect, render_template, request, url_for
from flask_login import current_user, login_required

from . import bp
from services.backend import get_profiles, get_state_store
from services.errors import ConfigurationMissing
from services.profiles import PROFILE_ROLES, next_current_after_removal
from services.state_store import CurrentProfileStore

PROFILE_FIELDS = (
    "role", "first_name", "last_name", "phone", "email",
    "dob_month", "dob_day", "dob_year", "license_number", "nabp_eprofile_id",
)


def _current_store() -> CurrentProfileStore:
    return CurrentProfileStore(get_state_store(), current_user.get_id())


def _profile_service():
    """沒有 token（例如 session 過期）就要求重新登入"""
    try:
        svc = get_profiles()
    except ConfigurationMissing as e:
        flash(str(e), "error")
        return None
    if svc is None:
        flash("User not authenticated. Please log in again.", "error")
    return svc


def _form_data() -> dict:
    return {k: request.form.get(k, "") for k in PROFILE_FIELDS if k in request.form}


@bp.get("/")
@login_required
def account():
    svc = _profile_service()
    if svc is None:
        return redirect(url_for("auth.login", next=request.path))

    result = svc.list_for_account(current_user.get_id())
    profiles = result.data or []
    current_id = _current_store().resolve(profiles)
    return render_template(
        "account/profiles.html",
        member=current_user,
        profiles=profiles,
        current_id=current_id,
        roles=PROFILE_ROLES,
        error=result.error,
    )


@bp.post("/profiles")
@login_required
def create_profile():
    svc = _profile_service()
    if svc is None:
        return redirect(url_for("auth.login", next=url_for("account.account")))

    result = svc.create(current_user.get_id(), _form_data())
    if not result.ok:
        flash(result.error, "error")
        return redirect(url_for("account.account"))

    store = _current_store()
    existing = svc.list_for_account(current_user.get_id()).data or []
    # 第一個 profile（或原本沒選）就直接選它
    if store.resolve(existing) is None:
        store.set(result.data.id)
    flash(f"Profile added: {result.data.full_name}", "success")
    return redirect(url_for("account.account"))


@bp.post("/profiles/<profile_id>")
@login_required
def update_profile(profile_id: str):
    svc = _profile_service()
    if svc is None:
        return redirect(url_for("auth.login", next=url_for("account.account")))

    result = svc.update(profile_id, _form_data())
    if not result.ok:
        flash(result.error, "error")
    else:
        flash("Profile updated.", "success")
    return redirect(url_for("account.account"))


@bp.post("/profiles/<profile_id>/delete")
@login_required
def delete_profile(profile_id: str):
    svc = _profile_service()
    if svc is None:
        return redirect(url_for("auth.login", next=url_for("account.account")))

    before = svc.list_for_account(current_user.get_id()).data or []
    result = svc.delete(profile_id)
    if not result.ok:
        flash(result.error, "error")
        return redirect(url_for("account.account"))

    store = _current_store()
    store.set(next_current_after_removal(before, profile_id, store.resolve(before)))
    flash("Profile removed.", "success")
    return redirect(url_for("account.account"))


@bp.post("/profiles/<profile_id>/select")
@login_required
def select_profile(profile_id: str):
    svc = _profile_service()
    if svc is None:
        return redirect(url_for("auth.login", next=url_for("account.account")))

    result = svc.get(profile_id)
    if result.data is None or result.data.member_account_id != current_user.get_id():
        flash(result.error or "Profile not found.", "error")
        return redirect(url_for("account.account"))

    _current_store().set(profile_id)
    current_app.logger.info(f"[profiles] selected: id={profile_id}")
    next_url = request.form.get("next") or ""
    if not next_url.startswith("/") or next_url.startswith("//"):
        next_url = url_for("account.account")
    return redirect(next_url)
