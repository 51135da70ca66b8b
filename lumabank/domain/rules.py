"""Validation rules for money movements and account credentials"""

import re
from decimal import Decimal

from lumabank.domain.exceptions import SelfTransferDenied, ValidationError
from lumabank.utils.money import to_cents

ACCOUNT_NUMBER_LENGTH = 10
NARRATION_MAX_LENGTH = 500
DEPOSIT_DESCRIPTION_MAX_LENGTH = 200

_NON_ALPHANUMERIC = re.compile(r"[^0-9A-Za-z]")
_PHONE_PATTERN = re.compile(r"^\+?[\d\s\-()]+$")


def validate_amount(amount: Decimal, maximum: Decimal) -> int:
    """
    Check an amount is positive, has at most two decimal places and does not
    exceed the configured maximum.

    Returns:
        The amount in cents
    """
    if amount is None or not amount.is_finite():
        raise ValidationError("Amount must be a valid number")
    if amount <= 0:
        raise ValidationError("Amount must be greater than zero")
    if amount > maximum:
        raise ValidationError(f"Maximum amount is {maximum:,.2f}")
    if amount != amount.quantize(Decimal("0.01")):
        raise ValidationError("Amount cannot have more than two decimal places")
    return to_cents(amount)


def clean_account_number(raw: str) -> str:
    """
    Strip separators from an account number and check its shape.

    "12345-67890" and " 1234567890 " both become "1234567890".
    """
    cleaned = _NON_ALPHANUMERIC.sub("", raw or "")
    if len(cleaned) != ACCOUNT_NUMBER_LENGTH or not cleaned.isdigit():
        raise ValidationError(f"Account number must be {ACCOUNT_NUMBER_LENGTH} digits")
    return cleaned


def ensure_not_self_transfer(sender_account: str | None, receiver_account: str) -> None:
    if sender_account is not None and sender_account == receiver_account:
        raise SelfTransferDenied()


def validate_narration(narration: str | None, max_length: int = NARRATION_MAX_LENGTH) -> str:
    text = (narration or "").strip()
    if len(text) > max_length:
        raise ValidationError(f"Narration cannot exceed {max_length} characters")
    return text


def validate_password_strength(password: str) -> None:
    """At least 8 characters with a lowercase letter, an uppercase letter and a digit"""
    if len(password) < 8:
        raise ValidationError("Password must be at least 8 characters long")
    if not re.search(r"[a-z]", password):
        raise ValidationError("Password must contain at least one lowercase letter")
    if not re.search(r"[A-Z]", password):
        raise ValidationError("Password must contain at least one uppercase letter")
    if not re.search(r"\d", password):
        raise ValidationError("Password must contain at least one number")


def validate_phone(phone: str) -> str:
    phone = phone.strip()
    digits = re.sub(r"\D", "", phone)
    if not _PHONE_PATTERN.match(phone) or len(digits) < 10:
        raise ValidationError("Invalid phone number format")
    return phone
