"""Pydantic schemas for monetary engine results."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from property_escrow.domain.enums import CurrencySymbol, ErrorKind


class AmountValidation(BaseModel):
    """Outcome of validating an amount a party wants to put in escrow."""

    model_config = ConfigDict(frozen=True)

    valid: bool
    error_kind: ErrorKind | None = None
    message: str | None = None

    @classmethod
    def accepted(cls) -> AmountValidation:
        return cls(valid=True)

    @classmethod
    def rejected(cls, kind: ErrorKind, message: str) -> AmountValidation:
        return cls(valid=False, error_kind=kind, message=message)


class FeeEstimate(BaseModel):
    """Static upper-bound fee hint. Not a live estimate."""

    model_config = ConfigDict(frozen=True)

    fee_currency: CurrencySymbol
    fee_amount: Decimal = Field(ge=0)
    fee_base_units: int = Field(ge=0)
    description: str
