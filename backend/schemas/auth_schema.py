import re
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

HANDLE_PATTERN = re.compile(r"^[A-Za-z]+$")
PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d).{8,}$")

EMAIL_MIN_LENGTH = 6
EMAIL_MAX_LENGTH = 60
HANDLE_MIN_LENGTH = 3
HANDLE_MAX_LENGTH = 30


def check_handle(value: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValueError("Username is required")
    if len(value) < HANDLE_MIN_LENGTH:
        raise ValueError(f"Username must be at least {HANDLE_MIN_LENGTH} characters long")
    if len(value) > HANDLE_MAX_LENGTH:
        raise ValueError(f"Username must be at most {HANDLE_MAX_LENGTH} characters long")
    if not HANDLE_PATTERN.match(value):
        raise ValueError("Username can only contain letters")
    return value


def check_password(value: str) -> str:
    if not PASSWORD_PATTERN.match(value or ""):
        raise ValueError(
            "Password must be at least 8 characters and contain a lowercase letter, "
            "an uppercase letter and a digit"
        )
    return value


class EmailRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        if not isinstance(value, str):
            return value
        value = value.strip().lower()
        if not EMAIL_MIN_LENGTH <= len(value) <= EMAIL_MAX_LENGTH:
            raise ValueError(f"Email must be between {EMAIL_MIN_LENGTH} and {EMAIL_MAX_LENGTH} characters")
        return value


class SignupRequest(EmailRequest):
    handle: str = Field(alias="username")
    password: str

    @field_validator("handle")
    @classmethod
    def validate_handle(cls, value: str) -> str:
        return check_handle(value)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return check_password(value)


class SigninRequest(EmailRequest):
    password: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return check_password(value)


class VerifyCodeRequest(EmailRequest):
    # Codes are integers on the wire; "012345" and 12345 are the same code
    provided_code: int = Field(alias="providedCode", ge=0, le=999999)


class ForgotPasswordVerifyRequest(VerifyCodeRequest):
    new_password: str = Field(alias="newPassword")

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, value: str) -> str:
        return check_password(value)


class ChangePasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    old_password: str = Field(alias="oldPassword")
    new_password: str = Field(alias="newPassword")

    @field_validator("old_password", "new_password")
    @classmethod
    def validate_passwords(cls, value: str) -> str:
        return check_password(value)


class UpdateProfileRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    handle: str = Field(alias="username")

    @field_validator("handle")
    @classmethod
    def validate_handle(cls, value: str) -> str:
        return check_handle(value)
