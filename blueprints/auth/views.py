# blueprints/auth/views.py
from datetime import datetime

from flask import current_app, flash, jsonify, redirect, render_template, request, session, url_for
from flask_login import current_user, login_required, login_user, logout_user

from . import bp
from services.backend import ACCESS_TOKEN_KEY, get_auth
from services.db import get_session
from services.errors import ConfigurationMissing
from services.models import Member


@bp.get("/health")
def health():
    return jsonify({"ok": True, "module": "auth"})


def _form_credentials():
    email = (request.form.get("email") or "").strip().lower()
    password = request.form.get("password") or ""
    return email, password


def _sync_member(result: dict) -> Member:
    """登入成功後把 Supabase user 寫入本機 members（給 Flask-Login 用）"""
    meta = result.get("metadata") or {}
    with get_session() as s:
        member = s.get(Member, result["user_id"])
        if member is None:
            member = Member(id=result["user_id"], email=result["email"])
            s.add(member)
        member.email = result["email"]
        member.first_name = meta.get("first_name") or member.first_name
        member.last_name = meta.get("last_name") or member.last_name
        member.pharmacy_name = meta.get("pharmacy_name") or member.pharmacy_name
        member.subscription_status = (meta.get("subscription_status") or member.subscription_status or "active").lower()
        member.last_login_at = datetime.utcnow()
        s.commit()
        return member


@bp.route("/register", methods=["GET", "POST"])
def register():
    if request.method == "POST":
        email, password = _form_credentials()
        metadata = {
            "first_name": (request.form.get("first_name") or "").strip(),
            "last_name": (request.form.get("last_name") or "").strip(),
            "pharmacy_name": (request.form.get("pharmacy_name") or "").strip(),
        }

        if not email or not password:
            flash("Please enter your email and password.", "error")
            return render_template("auth/register.html", email=email, **metadata)

        try:
            result = get_auth().sign_up(email, password, metadata)
        except ConfigurationMissing as e:
            flash(str(e), "error")
            return render_template("auth/register.html", email=email, **metadata), 503

        if not result["success"]:
            flash(f"Registration failed: {result.get('error')}", "error")
            return render_template("auth/register.html", email=email, **metadata)

        flash("Account created. Check your email to confirm, then sign in.", "success")
        return redirect(url_for("auth.login"))

    return render_template("auth/register.html")


@bp.route("/login", methods=["GET", "POST"])
def login():
    if request.method == "POST":
        email, password = _form_credentials()

        if not email or not password:
            flash("Please enter your email and password.", "error")
            return render_template("auth/login.html", email=email)

        try:
            result = get_auth().sign_in(email, password)
        except ConfigurationMissing as e:
            flash(str(e), "error")
            return render_template("auth/login.html", email=email), 503

        if not result["success"]:
            flash(result.get("error") or "Invalid email or password.", "error")
            return render_template("auth/login.html", email=email)

        member = _sync_member(result)
        session[ACCESS_TOKEN_KEY] = result["access_token"]
        login_user(member)
        flash("Signed in.", "success")

        next_url = request.args.get("next") or ""
        if not next_url.startswith("/") or next_url.startswith("//"):
            next_url = url_for("programs.program_list")
        return redirect(next_url)

    return render_template("auth/login.html")


@bp.get("/logout")
@login_required
def logout():
    member_id = current_user.get_id()
    try:
        get_auth().sign_out()
    except ConfigurationMissing:
        pass
    session.pop(ACCESS_TOKEN_KEY, None)
    logout_user()
    current_app.logger.info(f"[auth] signed out: member_id={member_id}")
    flash("You have been signed out.", "success")
    return redirect(url_for("index"))


@bp.route("/reset-password", methods=["GET", "POST"])
def reset_password():
    if request.method == "POST":
        email = (request.form.get("email") or "").strip().lower()
        if not email:
            flash("Please enter your email.", "error")
            return render_template("auth/reset_password.html")
        try:
            result = get_auth().reset_password(email)
        except ConfigurationMissing as e:
            flash(str(e), "error")
            return render_template("auth/reset_password.html", email=email), 503

        if not result["success"]:
            current_app.logger.warning("[auth] reset password request failed")
        # 不透露帳號是否存在
        flash("If that email is registered, a reset link is on its way.", "success")
        return redirect(url_for("auth.login"))

    return render_template("auth/reset_password.html")
