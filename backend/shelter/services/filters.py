# Overview: Typed list filters translated into parameterised SQLAlchemy criteria.

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Mapping

from ..models import AdoptionRequest, AdoptionStatus, Invoice, InvoiceStatus, TransactionType
from ..validation import ValidationError, parse_optional_id


DEFAULT_LIMIT = 50
MAX_LIMIT = 200


def _parse_limit(raw) -> int:
    if raw in (None, ""):
        return DEFAULT_LIMIT
    try:
        limit = int(raw)
    except (TypeError, ValueError):
        raise ValidationError("limit must be an integer")
    if limit <= 0:
        raise ValidationError("limit must be positive")
    return min(limit, MAX_LIMIT)


def _parse_choice(raw, choices: tuple[str, ...], field: str) -> str | None:
    if raw in (None, ""):
        return None
    if raw not in choices:
        raise ValidationError(f"Invalid {field} '{raw}'. Must be one of: {', '.join(choices)}")
    return raw


@dataclass(frozen=True)
class AdoptionRequestFilter:
    status: str | None = None
    animal_id: int | None = None
    adopter_id: int | None = None
    limit: int = DEFAULT_LIMIT

    @classmethod
    def from_args(cls, args: Mapping) -> "AdoptionRequestFilter":
        return cls(
            status=_parse_choice(args.get("status"), AdoptionStatus.ALL, "status"),
            animal_id=parse_optional_id(args.get("animal_id"), "animal_id"),
            adopter_id=parse_optional_id(args.get("adopter_id"), "adopter_id"),
            limit=_parse_limit(args.get("limit")),
        )

    def restricted_to(self, adopter_id: int) -> "AdoptionRequestFilter":
        return replace(self, adopter_id=adopter_id)

    def apply(self, query):
        if self.status is not None:
            query = query.filter(AdoptionRequest.status == self.status)
        if self.animal_id is not None:
            query = query.filter(AdoptionRequest.animal_id == self.animal_id)
        if self.adopter_id is not None:
            query = query.filter(AdoptionRequest.adopter_id == self.adopter_id)
        return query.order_by(
            AdoptionRequest.requested_at.desc(),
            AdoptionRequest.id.desc(),
        ).limit(self.limit)


@dataclass(frozen=True)
class InvoiceFilter:
    status: str | None = None
    transaction_type: str | None = None
    payer_id: int | None = None
    limit: int = DEFAULT_LIMIT

    @classmethod
    def from_args(cls, args: Mapping) -> "InvoiceFilter":
        return cls(
            status=_parse_choice(args.get("status"), InvoiceStatus.ALL, "status"),
            transaction_type=_parse_choice(args.get("type"), TransactionType.ALL, "type"),
            payer_id=parse_optional_id(args.get("payer_id"), "payer_id"),
            limit=_parse_limit(args.get("limit")),
        )

    def restricted_to(self, payer_id: int) -> "InvoiceFilter":
        return replace(self, payer_id=payer_id)

    def apply(self, query):
        query = query.filter(Invoice.is_deleted.is_(False))
        if self.status is not None:
            query = query.filter(Invoice.status == self.status)
        if self.transaction_type is not None:
            query = query.filter(Invoice.transaction_type == self.transaction_type)
        if self.payer_id is not None:
            query = query.filter(Invoice.payer_id == self.payer_id)
        return query.order_by(Invoice.created_at.desc(), Invoice.id.desc()).limit(self.limit)
