from __future__ import annotations

import sys
import os

# --- Add project root to sys.path ---
current_dir = os.path.dirname(os.path.abspath(__file__))
parent_dir = os.path.dirname(current_dir)
if parent_dir not in sys.path:
    sys.path.insert(0, parent_dir)

import streamlit as st

# IMPORTS
from app.config import load_config
from app.auth import (
    current_user_email,
    enforce_idle_timeout,
    is_signed_in,
    request_password_reset,
    sign_in,
    sign_out,
    update_password,
    validate_new_password,
    verify_recovery_token,
)
from app.admin_dashboard import render_admin_dashboard
from app.bookings_page import render_bookings_page
from app.menu_page import render_menu_page
from app.preorders_page import render_preorders_page
from app.settings_page import render_settings_page
from app.preorder_page import render_preorder_page
from db.database import get_supabase_client

PAGES = {
    "🏠 Dashboard": render_admin_dashboard,
    "📅 Bookings": render_bookings_page,
    "🍽️ Menu": render_menu_page,
    "📋 Pre-Orders": render_preorders_page,
    "⚙️ Settings": render_settings_page,
}

# pages that need the app config
CONFIGURED_PAGES = {"🏠 Dashboard", "📅 Bookings"}


# --- CSS STYLING ---
def inject_custom_css():
    st.markdown("""
    <style>
        /* --- Hide Footer for clean look --- */
        footer {visibility: hidden;}
    </style>
    """, unsafe_allow_html=True)


def render_login(cfg):
    st.title("🍷 La Taberna Admin")
    st.caption("Enter your email below to login to your account")

    supabase = get_supabase_client()

    with st.form("login"):
        email = st.text_input("Email", placeholder="m@example.com")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Login")

    if submitted:
        result = sign_in(supabase, email.strip(), password)
        if result["success"]:
            st.rerun()
        else:
            st.error(result["error"])

    with st.expander("Forgot your password?"):
        with st.form("forgot-password"):
            reset_email = st.text_input("Email address")
            send = st.form_submit_button("Send reset link")
        if send and reset_email.strip():
            result = request_password_reset(
                supabase, reset_email.strip(), f"{cfg.email.site_url}/?page=reset-password"
            )
            if result["success"]:
                st.success("Check your email for a password reset link.")
            else:
                st.error(result["error"])


def render_reset_password():
    st.title("🔑 Reset password")

    supabase = get_supabase_client()
    params = st.query_params

    if not st.session_state.get("recovery_verified"):
        result = verify_recovery_token(supabase, params.get("token_hash", ""))
        if not result["success"]:
            st.error(result["error"])
            return
        st.session_state.recovery_verified = True

    with st.form("reset-password"):
        password = st.text_input("New password", type="password")
        confirmation = st.text_input("Confirm new password", type="password")
        submitted = st.form_submit_button("Update password")

    if not submitted:
        return

    error = validate_new_password(password, confirmation)
    if error:
        st.error(error)
        return

    result = update_password(supabase, password)
    if result["success"]:
        st.session_state.pop("recovery_verified", None)
        sign_out(supabase)
        st.success("Password updated. You can now log in.")
        st.query_params.clear()
    else:
        st.error(result["error"])


def main():
    st.set_page_config(
        page_title="La Taberna Pre-Orders",
        page_icon="🍷",
        layout="wide",
        initial_sidebar_state="expanded",
    )

    inject_custom_css()
    cfg = load_config()

    # --- PUBLIC PAGES (query string routing) ---
    params = st.query_params
    if "token" in params:
        render_preorder_page(cfg, params.get("token", ""))
        return
    if params.get("page") == "reset-password":
        render_reset_password()
        return

    # --- STAFF AREA ---
    supabase = get_supabase_client()
    if enforce_idle_timeout(supabase, cfg.preorder.idle_timeout_minutes):
        st.warning("You were signed out after a period of inactivity.")

    if not is_signed_in():
        render_login(cfg)
        return

    with st.sidebar:
        st.title("Navigation")
        page = st.radio("Go to", list(PAGES))
        st.divider()
        st.caption(f"Signed in as {current_user_email()}")
        if st.button("🚪 Sign Out"):
            sign_out(supabase)
            st.rerun()

    if page in CONFIGURED_PAGES:
        PAGES[page](cfg)
    else:
        PAGES[page]()


if __name__ == "__main__":
    main()
