"""Request schemas for the public booking flow and the admin/auth endpoints."""
import re
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_core import PydanticCustomError

from services.errors import ValidationFailed

EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
PHONE_RE = re.compile(r"^[0-9+\-() ]{7,20}$")
TIME_24H_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
SLUG_RE = re.compile(r"^[a-z0-9-]+$")


def _require_length(value: str, lo: int, hi: int, label: str) -> str:
    if len(value) < lo:
        raise PydanticCustomError("too_short", f"{label} must be at least {lo} characters")
    if len(value) > hi:
        raise PydanticCustomError("too_long", f"{label} must be at most {hi} characters")
    return value


def _check_email(value: str) -> str:
    value = value.strip()
    if not EMAIL_RE.match(value):
        raise PydanticCustomError("email", "Please enter a valid email address")
    return value


def _check_phone(value: str) -> str:
    value = value.strip()
    if not PHONE_RE.match(value):
        raise PydanticCustomError("phone", "Please enter a valid phone number")
    return value


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class BookingRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    customer_name: str = Field(alias="customerName")
    customer_email: str = Field(alias="customerEmail")
    customer_phone: str = Field(alias="customerPhone")
    service_id: str = Field(alias="service", min_length=1)
    appointment_date: datetime = Field(alias="date")
    appointment_time: str = Field(alias="time")
    address: str
    notes: Optional[str] = None

    @field_validator("customer_name")
    @classmethod
    def _name(cls, v):
        return _require_length(v, 2, 50, "Name")

    @field_validator("customer_email")
    @classmethod
    def _email(cls, v):
        return _check_email(v)

    @field_validator("customer_phone")
    @classmethod
    def _phone(cls, v):
        return _check_phone(v)

    @field_validator("appointment_date", mode="before")
    @classmethod
    def _date_only(cls, v):
        # accept a bare YYYY-MM-DD as midnight of that day
        if isinstance(v, str) and len(v.strip()) == 10:
            return v.strip() + "T00:00:00"
        return v

    @field_validator("appointment_date")
    @classmethod
    def _future(cls, v):
        v = to_naive_utc(v)
        if v <= datetime.utcnow():
            raise PydanticCustomError("past_date", "Date must be in the future")
        return v

    @field_validator("appointment_time")
    @classmethod
    def _time(cls, v):
        if not TIME_24H_RE.match(v):
            raise PydanticCustomError("time_format", "Time must be in 24-hour HH:MM format")
        return v

    @field_validator("address")
    @classmethod
    def _address(cls, v):
        return _require_length(v, 5, 200, "Address")

    @field_validator("notes", mode="before")
    @classmethod
    def _blank_notes(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("notes")
    @classmethod
    def _notes(cls, v):
        if v is not None and len(v) > 500:
            raise PydanticCustomError("too_long", "Notes must be at most 500 characters")
        return v


class LoginRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str
    password: str = Field(min_length=6)
    callback_url: Optional[str] = Field(default=None, alias="callbackUrl")

    @field_validator("email")
    @classmethod
    def _email(cls, v):
        return _check_email(v).lower()


class RegisterBusinessRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    owner_name: str = Field(alias="ownerName", min_length=2)
    email: str
    password: str = Field(min_length=6)
    phone: Optional[str] = None
    business_name: str = Field(alias="businessName", min_length=2)
    slug: str = Field(min_length=2, max_length=80)
    business_email: str = Field(alias="businessEmail")
    business_phone: str = Field(alias="businessPhone")
    address: Optional[str] = None
    description: Optional[str] = None

    @field_validator("email", "business_email")
    @classmethod
    def _emails(cls, v):
        return _check_email(v).lower()

    @field_validator("phone", "business_phone")
    @classmethod
    def _phones(cls, v):
        return _check_phone(v) if v is not None else v

    @field_validator("slug")
    @classmethod
    def _slug(cls, v):
        if not SLUG_RE.match(v):
            raise PydanticCustomError(
                "slug", "Slug can only contain lowercase letters, numbers, and hyphens"
            )
        return v


class StaffRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=2)
    email: str
    password: str = Field(min_length=6)
    phone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _email(cls, v):
        return _check_email(v).lower()

    @field_validator("phone")
    @classmethod
    def _phone(cls, v):
        return _check_phone(v) if v is not None else v


def field_errors(exc: ValidationError) -> list:
    """One {field, message} entry per violated field, in input order."""
    details = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"]) or "body"
        details.append({"field": field, "message": err["msg"]})
    return details


def parse(model, payload, message="Invalid request data"):
    if not isinstance(payload, dict):
        raise ValidationFailed(message, details=[{"field": "body", "message": "Expected a JSON object"}])
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ValidationFailed(message, details=field_errors(exc)) from exc


def validate_booking(payload) -> BookingRequest:
    return parse(BookingRequest, payload, "Invalid booking data")
