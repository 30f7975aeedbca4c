"""Auth, verification and onboarding schemas."""
import re
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

PHONE_MIN_DIGITS = 10
PHONE_MAX_DIGITS = 15
OTP_PATTERN = r"^[0-9]{4,8}$"


def _normalize_phone(value: str | None) -> str:
    """Digits only, keeping a leading + (E.164 style)."""
    if value is None:
        return ""
    s = value.strip()
    digits = re.sub(r"\D", "", s)
    return f"+{digits}" if s.startswith("+") else digits


def _normalize_email(value: str | None) -> str | None:
    """Emails are stored and looked up lowercased."""
    return value.strip().lower() if value is not None else None


def _validate_phone(value: str) -> str:
    phone = _normalize_phone(value)
    digits = phone.lstrip("+")
    if not digits:
        raise ValueError("Phone number is required.")
    if len(digits) < PHONE_MIN_DIGITS:
        raise ValueError(f"Phone number must have at least {PHONE_MIN_DIGITS} digits.")
    if len(digits) > PHONE_MAX_DIGITS:
        raise ValueError(f"Phone number cannot exceed {PHONE_MAX_DIGITS} digits.")
    return phone


class EmailCodeRequest(BaseModel):
    email: EmailStr
    name: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=6)

    @field_validator("email")
    @classmethod
    def email_lower(cls, v: str | None) -> str | None:
        return _normalize_email(v)


class EmailCodeConfirm(BaseModel):
    email: EmailStr
    code: str = Field(pattern=OTP_PATTERN)

    @field_validator("email")
    @classmethod
    def email_lower(cls, v: str | None) -> str | None:
        return _normalize_email(v)


class SmsCodeRequest(BaseModel):
    phone_number: str
    name: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=6)

    @field_validator("phone_number")
    @classmethod
    def phone_valid(cls, v: str) -> str:
        return _validate_phone(v)


class SmsCodeConfirm(BaseModel):
    phone_number: str
    code: str = Field(pattern=OTP_PATTERN)

    @field_validator("phone_number")
    @classmethod
    def phone_valid(cls, v: str) -> str:
        return _validate_phone(v)


class CodeSentResponse(BaseModel):
    success: bool = True
    message: str = "Otp sent successfully, please check your inbox"


class Tokens(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class VerifiedResponse(BaseModel):
    verified: bool = True
    message: str = "Verified successfully"
    tokens: Tokens


class OnboardRequest(BaseModel):
    roles: list[int] = Field(min_length=1)
    store_name: str = Field(min_length=1, max_length=255)
    store_address: str | None = None
    store_type: str = Field(min_length=1, max_length=100)
    store_url: str | None = None

    @field_validator("roles")
    @classmethod
    def roles_positive(cls, v: list[int]) -> list[int]:
        if any(r < 1 for r in v):
            raise ValueError("Role ID must be a positive integer.")
        return v


class OnboardResponse(BaseModel):
    success: bool = True
    tokens: Tokens
    onboarded: bool


class AccessResponse(BaseModel):
    name: str
    email: str | None = None
    phone_number: str | None = None
    onboarded: bool = False
    role: int | None = None


class LoginRequest(BaseModel):
    email: EmailStr | None = None
    phone_number: str | None = None
    password: str

    @field_validator("email")
    @classmethod
    def email_lower(cls, v: str | None) -> str | None:
        return _normalize_email(v)

    @field_validator("phone_number")
    @classmethod
    def phone_valid(cls, v: str | None) -> str | None:
        return _validate_phone(v) if v is not None else None

    @model_validator(mode="after")
    def exactly_one_identity(self):
        if (self.email is None) == (self.phone_number is None):
            raise ValueError("Provide either email or phone_number")
        return self


class LoginResponse(BaseModel):
    tokens: Tokens
    onboarded: bool


class RefreshRequest(BaseModel):
    refresh_token: str


class RefreshResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
