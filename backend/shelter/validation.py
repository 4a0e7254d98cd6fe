from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any


# NUMERIC(12, 2) ceiling
MAX_AMOUNT = Decimal("9999999999.99")
CENT = Decimal("0.01")


class ShelterError(Exception):
    """
    Base for every domain error surfaced to the boundary layer.

    code: stable machine-readable identifier (e.g. "DuplicateActiveRequest")
    http_status: status code the routes answer with
    """
    code = "ShelterError"
    http_status = 400

    def __init__(self, message: str | None = None):
        super().__init__(message or self.code)
        self.message = message or self.code

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class ValidationError(ShelterError):
    """400-level input problem."""
    code = "ValidationError"
    http_status = 400


class NotFoundError(ShelterError):
    """Referenced entity is missing."""
    code = "NotFound"
    http_status = 404


class ConflictError(ShelterError):
    """Business rule violated by the current state of the data."""
    code = "Conflict"
    http_status = 409


class AuthorizationError(ShelterError):
    """Caller lacks the required role or does not own the record."""
    code = "Forbidden"
    http_status = 403


class TransactionFailure(ShelterError):
    """
    Storage failed part-way through a multi-step mutation.

    The unit of work has been rolled back in full; the original exception is
    chained as __cause__ and is never shown to the client.
    """
    code = "TransactionFailure"
    http_status = 500


class InvalidAmount(ValidationError):
    code = "InvalidAmount"


def parse_amount(value: Any, field: str = "amount") -> Decimal:
    """
    Parse a money value from JSON (int, float or string) into a Decimal.

    Rejects booleans, non-finite values, more than two decimal places,
    non-positive amounts and amounts that overflow NUMERIC(12, 2).
    """
    if value is None or isinstance(value, bool):
        raise InvalidAmount(f"{field} is required and must be a number")

    try:
        # str() first so floats like 0.1 keep their literal form
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidAmount(f"{field} must be a number")

    if not amount.is_finite():
        raise InvalidAmount(f"{field} must be a finite number")

    if amount <= 0:
        raise InvalidAmount(f"{field} must be greater than zero")

    if amount > MAX_AMOUNT:
        raise InvalidAmount(f"{field} cannot exceed {MAX_AMOUNT}")

    if amount.as_tuple().exponent < -2 and amount != amount.quantize(CENT):
        raise InvalidAmount(f"{field} cannot have more than two decimal places")

    return amount.quantize(CENT)


def parse_id(value: Any, field: str) -> int:
    """Strict positive integer id; rejects bools, floats and blank strings."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str) and value.strip().isascii() and value.strip().isdigit():
        parsed = int(value.strip())
    else:
        raise ValidationError(f"{field} must be an integer")
    if parsed <= 0:
        raise ValidationError(f"{field} must be a positive integer")
    return parsed


def parse_optional_id(value: Any, field: str) -> int | None:
    if value is None or value == "":
        return None
    return parse_id(value, field)


def clean_text(value: Any, field: str, max_length: int | None = None) -> str | None:
    """Strip free text; blank becomes None."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    text = value.strip()
    if not text:
        return None
    if max_length and len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


def require_json_object(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def money_str(value: Decimal | None) -> str | None:
    """Serialize money as a two-decimal string (e.g. "400.00", "-50.00")."""
    if value is None:
        return None
    return str(Decimal(value).quantize(CENT))
