"""Shared validation utilities"""

import re
from datetime import date
from typing import Optional

EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"

# Shared consumer domains say nothing about two clients being related
FREE_EMAIL_PROVIDERS = {
    "gmail.com",
    "googlemail.com",
    "hotmail.com",
    "hotmail.co.uk",
    "yahoo.com",
    "yahoo.co.uk",
    "outlook.com",
    "live.com",
    "icloud.com",
    "me.com",
    "aol.com",
    "btinternet.com",
}


def normalize_email(email: Optional[str]) -> str:
    """Lower-case and strip an email; None becomes an empty string"""
    return (email or "").strip().lower()


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = normalize_email(email)

    if not re.match(EMAIL_PATTERN, email):
        raise ValueError("Invalid email format")

    return email


def validate_iso_date(value: str) -> str:
    """Validate a calendar date in YYYY-MM-DD form"""
    if not value or not re.match(r"^\d{4}-\d{2}-\d{2}$", value):
        raise ValueError("Date must be in YYYY-MM-DD format")
    try:
        date.fromisoformat(value)
    except ValueError:
        raise ValueError(f"Not a real calendar date: {value}")
    return value


def normalize_booking_time(value: Optional[str]) -> Optional[str]:
    """Trim a stored HH:mm:ss clock time to HH:mm"""
    if value and re.match(r"^\d{2}:\d{2}:\d{2}$", value):
        return value[:5]
    return value


def validate_booking_time(value: str) -> str:
    """
    Validate a 24 hour HH:mm clock time.

    Legacy HH:mm:ss values are accepted and trimmed.
    """
    value = normalize_booking_time(value)
    if not value or not re.match(TIME_PATTERN, value):
        raise ValueError("Time must be in HH:mm format")
    return value


def normalize_uk_phone(phone: Optional[str]) -> str:
    """Strip formatting and the 44 / 0 trunk prefix so numbers compare equal"""
    digits = re.sub(r"\D", "", phone or "")
    if digits.startswith("44"):
        return digits[2:]
    if digits.startswith("0"):
        return digits[1:]
    return digits


def email_domain(email: Optional[str]) -> str:
    email = normalize_email(email)
    return email.split("@", 1)[1] if "@" in email else ""
