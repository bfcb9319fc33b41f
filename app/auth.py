"""
Staff authentication on top of Supabase Auth.

Sessions live on the per-browser Supabase client; this module only keeps the
signed-in user's email and the time of the last interaction in
st.session_state so idle sessions can be signed out.
"""

from __future__ import annotations

import time
from typing import Dict, Any, Optional

import streamlit as st

from app.logger import get_logger

logger = get_logger(__name__)

MIN_PASSWORD_LENGTH = 6


def _auth_error(e: Exception) -> str:
    return getattr(e, "message", None) or str(e)


# ---------------------- SESSION ----------------------

def current_user_email() -> Optional[str]:
    return st.session_state.get("auth_user_email")


def is_signed_in() -> bool:
    return bool(current_user_email())


def sign_in(client, email: str, password: str) -> Dict[str, Any]:
    try:
        response = client.auth.sign_in_with_password({"email": email, "password": password})
    except Exception as e:
        logger.warning(f"Error logging in {email}: {_auth_error(e)}")
        return {"success": False, "error": "Invalid email or password."}

    if not response.session:
        return {"success": False, "error": "Invalid email or password."}

    st.session_state.auth_user_email = response.user.email if response.user else email
    st.session_state.last_activity = time.time()
    logger.info(f"Staff member signed in: {st.session_state.auth_user_email}")
    return {"success": True, "error": None}


def sign_out(client) -> None:
    try:
        client.auth.sign_out()
    except Exception as e:
        logger.warning(f"Sign out failed on the auth server: {_auth_error(e)}")
    st.session_state.pop("auth_user_email", None)
    st.session_state.pop("last_activity", None)


# ---------------------- IDLE TIMEOUT ----------------------

def is_idle(last_activity: Optional[float], now: float, timeout_seconds: float) -> bool:
    if last_activity is None:
        return False
    return now - last_activity > timeout_seconds


def enforce_idle_timeout(client, timeout_minutes: int) -> bool:
    """
    Sign out when the previous interaction is older than the timeout.
    Every Streamlit rerun is an interaction, so otherwise refresh the clock.
    Returns True when the session was ended.
    """
    now = time.time()
    if is_signed_in() and is_idle(st.session_state.get("last_activity"), now, timeout_minutes * 60):
        logger.info(f"Signing out {current_user_email()} after {timeout_minutes} idle minutes")
        sign_out(client)
        return True
    st.session_state.last_activity = now
    return False


# ---------------------- PASSWORD RECOVERY ----------------------

def validate_new_password(password: str, confirmation: str) -> Optional[str]:
    if password != confirmation:
        return "Passwords do not match"
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
    return None


def request_password_reset(client, email: str, redirect_to: str) -> Dict[str, Any]:
    try:
        client.auth.reset_password_for_email(email, {"redirect_to": redirect_to})
        return {"success": True, "error": None}
    except Exception as e:
        logger.error(f"Error sending reset email: {_auth_error(e)}")
        return {"success": False, "error": _auth_error(e)}


def verify_recovery_token(client, token_hash: str) -> Dict[str, Any]:
    if not token_hash:
        return {"success": False, "error": "Invalid or missing reset token"}
    try:
        client.auth.verify_otp({"token_hash": token_hash, "type": "recovery"})
        return {"success": True, "error": None}
    except Exception as e:
        logger.warning(f"Recovery token rejected: {_auth_error(e)}")
        return {"success": False, "error": "Invalid or missing reset token"}


def update_password(client, password: str) -> Dict[str, Any]:
    try:
        client.auth.update_user({"password": password})
        return {"success": True, "error": None}
    except Exception as e:
        logger.error(f"Error updating password: {_auth_error(e)}")
        return {"success": False, "error": _auth_error(e)}
