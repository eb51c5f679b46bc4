"""
Tests for request validation models.
"""
import pytest
from pydantic import ValidationError

from schemas.auth_schema import (
    ChangePasswordRequest,
    ForgotPasswordVerifyRequest,
    SignupRequest,
    UpdateProfileRequest,
    VerifyCodeRequest,
)

pytestmark = pytest.mark.unit


def test_signup_normalizes_fields():
    request = SignupRequest(username=" alice ", email=" ALICE@X.com", password="Abcdefg1")
    assert request.handle == "alice"
    assert request.email == "alice@x.com"


def test_signup_email_too_long():
    with pytest.raises(ValidationError):
        SignupRequest(username="alice", email="a" * 55 + "@x.com", password="Abcdefg1")


def test_code_accepts_numeric_string():
    assert VerifyCodeRequest(email="alice@x.com", providedCode="012345").provided_code == 12345


@pytest.mark.parametrize("code", [-1, 1_000_000, "12a"])
def test_code_out_of_range(code):
    with pytest.raises(ValidationError):
        VerifyCodeRequest(email="alice@x.com", providedCode=code)


def test_forgot_password_requires_strong_password():
    with pytest.raises(ValidationError):
        ForgotPasswordVerifyRequest(email="alice@x.com", providedCode=1, newPassword="password")


def test_change_password_aliases():
    request = ChangePasswordRequest(oldPassword="Abcdefg1", newPassword="Newpass12")
    assert request.old_password == "Abcdefg1"
    assert ChangePasswordRequest(old_password="Abcdefg1", new_password="Newpass12").new_password == "Newpass12"


@pytest.mark.parametrize("handle", ["", "ab", "a" * 31, "alice_b", "al ice"])
def test_update_profile_rejects_bad_handles(handle):
    with pytest.raises(ValidationError):
        UpdateProfileRequest(username=handle)
