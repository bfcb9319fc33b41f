from __future__ import annotations

import os
from dataclasses import dataclass

import streamlit as st
from dotenv import load_dotenv


DEFAULT_SITE_URL = "https://latabernaleeds.com"
DEFAULT_EMAIL_FROM = "La Taberna <noreply@latabernaleeds.com>"
DEFAULT_RESTAURANT_NAME = "La Taberna"
DEFAULT_RATE_LIMIT_WINDOW_SECONDS = 300
DEFAULT_MIN_LARGE_TABLE_SIZE = 6
DEFAULT_IDLE_TIMEOUT_MINUTES = 30
DEFAULT_TIMEZONE = "Europe/London"


class ConfigError(Exception):
    """Raised when a required setting is missing or malformed."""


# ---------------------- DATA CLASSES ----------------------

@dataclass
class SupabaseConfig:
    url: str
    anon_key: str
    service_key: str


@dataclass
class EmailConfig:
    site_url: str


@dataclass
class PreorderConfig:
    idle_timeout_minutes: int = DEFAULT_IDLE_TIMEOUT_MINUTES
    timezone: str = DEFAULT_TIMEZONE


@dataclass
class AppConfig:
    supabase: SupabaseConfig
    email: EmailConfig
    preorder: PreorderConfig


@dataclass
class FunctionConfig:
    """Settings of the send-preorder-email function, read from the environment."""

    supabase_url: str
    supabase_service_key: str
    resend_api_key: str
    site_url: str = DEFAULT_SITE_URL
    email_from: str = DEFAULT_EMAIL_FROM
    restaurant_name: str = DEFAULT_RESTAURANT_NAME
    rate_limit_window_seconds: int = DEFAULT_RATE_LIMIT_WINDOW_SECONDS
    default_min_large_table_size: int = DEFAULT_MIN_LARGE_TABLE_SIZE


# ---------------------- LOADING ----------------------

def load_config() -> AppConfig:
    secrets = st.secrets

    # --- Supabase ---
    # The anon key drives staff sign-in; fall back to the service key for
    # single-user deployments that only configure one key.
    service_key = secrets["supabase"]["service_key"]
    supabase_cfg = SupabaseConfig(
        url=secrets["supabase"]["url"],
        anon_key=secrets["supabase"].get("anon_key", service_key),
        service_key=service_key,
    )

    # --- Email / links ---
    email_section = secrets.get("email", {})
    email_cfg = EmailConfig(
        site_url=str(email_section.get("site_url", DEFAULT_SITE_URL)).rstrip("/"),
    )

    # --- Pre-order dashboard ---
    preorder_section = secrets.get("preorder", {})
    preorder_cfg = PreorderConfig(
        idle_timeout_minutes=int(
            preorder_section.get("idle_timeout_minutes", DEFAULT_IDLE_TIMEOUT_MINUTES)
        ),
        timezone=preorder_section.get("timezone", DEFAULT_TIMEZONE),
    )

    return AppConfig(
        supabase=supabase_cfg,
        email=email_cfg,
        preorder=preorder_cfg,
    )


def load_function_config() -> FunctionConfig:
    """Read the email function settings from the environment (and `.env`)."""
    load_dotenv()

    return FunctionConfig(
        supabase_url=os.getenv("SUPABASE_URL", ""),
        supabase_service_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY", ""),
        resend_api_key=os.getenv("RESEND_API_KEY", ""),
        site_url=(os.getenv("SITE_URL") or DEFAULT_SITE_URL).rstrip("/"),
        email_from=os.getenv("EMAIL_FROM", DEFAULT_EMAIL_FROM),
        restaurant_name=os.getenv("RESTAURANT_NAME", DEFAULT_RESTAURANT_NAME),
        rate_limit_window_seconds=int(
            os.getenv("RATE_LIMIT_WINDOW_SECONDS", str(DEFAULT_RATE_LIMIT_WINDOW_SECONDS))
        ),
        default_min_large_table_size=int(
            os.getenv("DEFAULT_MIN_LARGE_TABLE_SIZE", str(DEFAULT_MIN_LARGE_TABLE_SIZE))
        ),
    )


def validate_email_settings(cfg: FunctionConfig) -> None:
    if not cfg.resend_api_key:
        raise ConfigError("RESEND_API_KEY not set")
    if not cfg.resend_api_key.startswith("re_"):
        raise ConfigError("Invalid RESEND_API_KEY format")
    if not cfg.site_url:
        raise ConfigError("SITE_URL not set")
    if not cfg.site_url.startswith("https://"):
        raise ConfigError("SITE_URL must use HTTPS")
