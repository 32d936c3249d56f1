"""Fee and penalty calculations for loan instalments.

Processing and early-settlement fees are either a fixed amount or a
percentage of a base amount. Late penalties additionally depend on how many
days an instalment is overdue, after an optional grace period, and can be
charged as a fixed amount, a percentage of the amount due or a daily rate.
Like the engine, these helpers are pure functions over ``Decimal`` values.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

FIXED = "FIXED"
PERCENTAGE = "PERCENTAGE"
DAILY_RATE = "DAILY_RATE"

ZERO = Decimal("0")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class Fee:
    """A configured fee.

    ``calculation_type`` is ``"FIXED"`` (use ``amount``) or ``"PERCENTAGE"``
    (use ``percentage`` of the base amount). ``type`` says what the fee is
    charged for and picks the rule in ``apply_fee_to_loan``.
    """

    name: str
    calculation_type: str
    amount: Optional[Decimal] = None
    percentage: Optional[Decimal] = None
    type: str = "PROCESSING"


@dataclass(frozen=True)
class PenaltyConfig:
    type: str  # FIXED, PERCENTAGE or DAILY_RATE
    amount: Optional[Decimal] = None
    percentage: Optional[Decimal] = None
    daily_rate: Optional[Decimal] = None
    grace_period_days: int = 0


@dataclass(frozen=True)
class PenaltyTier:
    tier: int
    label: str
    multiplier: Decimal


def _fee_on(base: Decimal, fee: Fee) -> Decimal:
    if fee.calculation_type == FIXED:
        return fee.amount or ZERO
    if fee.calculation_type == PERCENTAGE:
        return base * (fee.percentage or ZERO) / HUNDRED
    return ZERO


def calculate_processing_fee(principal: Decimal, fee: Fee) -> Decimal:
    """Return the processing fee charged on a loan of ``principal``."""
    return _fee_on(principal, fee)


def calculate_early_settlement_fee(remaining_balance: Decimal, fee: Fee) -> Decimal:
    """Return the fee for settling ``remaining_balance`` ahead of schedule."""
    return _fee_on(remaining_balance, fee)


PROCESSING_FEE_TYPES = ("PROCESSING", "ORIGINATION", "APPLICATION")
EARLY_SETTLEMENT = "EARLY_SETTLEMENT"
FEE_KINDS = PROCESSING_FEE_TYPES + (EARLY_SETTLEMENT, "LATE_PAYMENT", "OTHER")


def apply_fee_to_loan(loan_amount: Decimal, fee: Fee) -> Decimal:
    """Return the amount ``fee`` adds to a loan of ``loan_amount``.

    Processing, origination and application fees go through
    ``calculate_processing_fee`` and early-settlement fees through
    ``calculate_early_settlement_fee``. Any other fee, late payment included,
    is its fixed amount or else its percentage of the loan.
    """
    fee_type = fee.type.upper()
    if fee_type in PROCESSING_FEE_TYPES:
        return calculate_processing_fee(loan_amount, fee)
    if fee_type == EARLY_SETTLEMENT:
        return calculate_early_settlement_fee(loan_amount, fee)
    if fee.calculation_type == FIXED:
        return fee.amount or ZERO
    return loan_amount * (fee.percentage or ZERO) / HUNDRED


def calculate_days_overdue(due_date: date, current_date: Optional[date] = None) -> int:
    """Number of whole days ``current_date`` is past ``due_date`` (never negative)."""
    current_date = current_date or date.today()
    return max(0, (current_date - due_date).days)


def is_overdue(due_date: date, current_date: Optional[date] = None, grace_period_days: int = 0) -> bool:
    return calculate_days_overdue(due_date, current_date) > grace_period_days


def calculate_late_penalty(
    due_amount: Decimal,
    due_date: date,
    current_date: Optional[date],
    config: PenaltyConfig,
) -> Decimal:
    """Return the penalty owed on a late instalment.

    Days inside the grace period are not chargeable; when no chargeable day
    remains the penalty is zero whatever the configured type.
    """
    days_late = calculate_days_overdue(due_date, current_date)
    chargeable_days = max(0, days_late - (config.grace_period_days or 0))
    if chargeable_days == 0:
        return ZERO

    if config.type == FIXED:
        return config.amount or ZERO
    if config.type == PERCENTAGE:
        return due_amount * (config.percentage or ZERO) / HUNDRED
    if config.type == DAILY_RATE:
        return due_amount * ((config.daily_rate or ZERO) / HUNDRED) * chargeable_days
    return ZERO


def get_penalty_tier(days_overdue: int) -> PenaltyTier:
    """Map days overdue to the escalating penalty tier."""
    if days_overdue <= 7:
        return PenaltyTier(1, "1-7 days", Decimal("1.0"))
    if days_overdue <= 30:
        return PenaltyTier(2, "8-30 days", Decimal("1.5"))
    if days_overdue <= 60:
        return PenaltyTier(3, "31-60 days", Decimal("2.0"))
    return PenaltyTier(4, "60+ days", Decimal("3.0"))


def calculate_tiered_penalty(due_amount: Decimal, days_overdue: int, base_percentage: Decimal = Decimal("5")) -> Decimal:
    """Percentage penalty scaled by the tier multiplier for ``days_overdue``."""
    tier = get_penalty_tier(days_overdue)
    return due_amount * (base_percentage / HUNDRED) * tier.multiplier


def calculate_total_due(
    principal_due: Decimal,
    interest_due: Decimal,
    fees: Iterable[Decimal] = (),
    penalties: Iterable[Decimal] = (),
) -> Decimal:
    return principal_due + interest_due + sum(fees, ZERO) + sum(penalties, ZERO)
