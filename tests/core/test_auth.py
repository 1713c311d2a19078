"""
Tests for the authorization gate checks.
"""

from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest

from lms.core.auth import (
    require_active,
    require_active_or_pending,
    require_identity_match,
    resolve_principal,
)
from lms.core.exceptions import Forbidden, Unauthenticated
from lms.modules.accounts.models import AccountStatus, Admin


def _account(status: AccountStatus):
    account = MagicMock(spec=Admin)
    account.id = uuid4()
    account.status = status
    return account


# ============================================
# Test resolve_principal
# ============================================


class TestResolvePrincipal:
    def test_missing_header(self):
        with pytest.raises(Unauthenticated) as exc_info:
            resolve_principal(None)
        assert exc_info.value.error_code == "MALFORMED_CREDENTIAL"
        assert exc_info.value.status_code == 401

    def test_wrong_scheme(self):
        with pytest.raises(Unauthenticated) as exc_info:
            resolve_principal("Basic dXNlcjpwYXNz")
        assert exc_info.value.error_code == "MALFORMED_CREDENTIAL"

    def test_empty_token(self):
        with pytest.raises(Unauthenticated) as exc_info:
            resolve_principal("Bearer   ")
        assert exc_info.value.error_code == "MALFORMED_CREDENTIAL"

    def test_unverifiable_token(self):
        with patch("lms.core.auth.decode_token", return_value=None):
            with pytest.raises(Unauthenticated) as exc_info:
                resolve_principal("Bearer forged.token.value")
        assert exc_info.value.error_code == "INVALID_TOKEN"

    def test_missing_email_claim(self):
        with patch("lms.core.auth.decode_token", return_value={"sub": "abc"}):
            with pytest.raises(Unauthenticated) as exc_info:
                resolve_principal("Bearer valid.token")
        assert exc_info.value.error_code == "MISSING_EMAIL_CLAIM"

    def test_success_lowercases_email(self):
        claims = {"sub": "abc-123", "email": "Jane.Doe@Example.COM", "aud": "authenticated"}
        with patch("lms.core.auth.decode_token", return_value=claims) as mock_decode:
            principal = resolve_principal("Bearer valid.token")

        mock_decode.assert_called_once_with("valid.token")
        assert principal.email == "jane.doe@example.com"
        assert principal.subject == "abc-123"
        assert principal.claims == claims


# ============================================
# Test require_active / require_active_or_pending
# ============================================


class TestRequireActive:
    def test_no_account(self):
        with pytest.raises(Forbidden) as exc_info:
            require_active(None, "Admin")
        assert exc_info.value.error_code == "ROLE_REQUIRED"

    @pytest.mark.parametrize("status", [AccountStatus.PENDING, AccountStatus.INACTIVE])
    def test_not_active(self, status):
        with pytest.raises(Forbidden) as exc_info:
            require_active(_account(status), "Admin")
        assert exc_info.value.error_code == "ACCOUNT_NOT_ACTIVE"

    def test_active(self):
        account = _account(AccountStatus.ACTIVE)
        assert require_active(account, "Admin") is account


class TestRequireActiveOrPending:
    @pytest.mark.parametrize("status", [AccountStatus.PENDING, AccountStatus.ACTIVE])
    def test_allowed(self, status):
        account = _account(status)
        assert require_active_or_pending(account, "Instructor") is account

    def test_inactive_refused(self):
        with pytest.raises(Forbidden):
            require_active_or_pending(_account(AccountStatus.INACTIVE), "Instructor")

    def test_no_account(self):
        with pytest.raises(Forbidden) as exc_info:
            require_active_or_pending(None, "Instructor")
        assert exc_info.value.error_code == "ROLE_REQUIRED"


# ============================================
# Test require_identity_match
# ============================================


def test_identity_match_is_case_insensitive():
    require_identity_match("Jane@Example.com", "jane@example.COM")


def test_identity_mismatch():
    with pytest.raises(Forbidden) as exc_info:
        require_identity_match("jane@example.com", "john@example.com")
    assert exc_info.value.error_code == "IDENTITY_MISMATCH"
    assert exc_info.value.status_code == 403
