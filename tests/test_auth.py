"""
Unit tests for password rules, idle timeout and the Supabase auth wrappers.
"""

from unittest.mock import MagicMock

import pytest

from app.auth import (
    is_idle,
    request_password_reset,
    update_password,
    validate_new_password,
    verify_recovery_token,
)


class TestValidateNewPassword:
    def test_matching_long_password_is_accepted(self):
        assert validate_new_password("secret1", "secret1") is None

    def test_mismatch(self):
        assert validate_new_password("secret1", "secret2") == "Passwords do not match"

    def test_too_short(self):
        assert validate_new_password("abc", "abc") == "Password must be at least 6 characters long"


class TestIdleTimeout:
    def test_no_recorded_activity_is_not_idle(self):
        assert not is_idle(None, now=10_000, timeout_seconds=1800)

    def test_within_timeout(self):
        assert not is_idle(1_000, now=2_800, timeout_seconds=1800)

    def test_past_timeout(self):
        assert is_idle(1_000, now=2_801, timeout_seconds=1800)


class TestRecoveryCalls:
    @pytest.fixture
    def client(self):
        return MagicMock()

    def test_reset_request_passes_redirect(self, client):
        result = request_password_reset(client, "staff@latabernaleeds.com", "https://x.test/?page=reset-password")

        assert result == {"success": True, "error": None}
        client.auth.reset_password_for_email.assert_called_once_with(
            "staff@latabernaleeds.com", {"redirect_to": "https://x.test/?page=reset-password"}
        )

    def test_reset_request_failure_is_reported(self, client):
        client.auth.reset_password_for_email.side_effect = Exception("rate limited")

        result = request_password_reset(client, "staff@latabernaleeds.com", "https://x.test")

        assert result == {"success": False, "error": "rate limited"}

    def test_missing_recovery_token(self, client):
        result = verify_recovery_token(client, "")

        assert not result["success"]
        client.auth.verify_otp.assert_not_called()

    def test_recovery_token_verified_as_recovery_otp(self, client):
        assert verify_recovery_token(client, "hash-1")["success"]
        client.auth.verify_otp.assert_called_once_with({"token_hash": "hash-1", "type": "recovery"})

    def test_rejected_recovery_token(self, client):
        client.auth.verify_otp.side_effect = Exception("expired")

        assert verify_recovery_token(client, "hash-1") == {
            "success": False,
            "error": "Invalid or missing reset token",
        }

    def test_update_password(self, client):
        assert update_password(client, "secret1")["success"]
        client.auth.update_user.assert_called_once_with({"password": "secret1"})
