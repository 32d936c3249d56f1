"""Data models for the repayment calculator.

This module defines the dataclasses passed into and returned from the
calculation engine: the loan terms entered by a user, one row per period of
the amortization schedule, the summary figures and the bundle returned by a
single calculation. None of these objects is persisted; they are rebuilt every
time a form value changes.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List, Optional

REDUCING_BALANCE = "reducing_balance"
FLAT = "flat"
INTEREST_METHODS = (REDUCING_BALANCE, FLAT)


@dataclass(frozen=True)
class LoanTerms:
    """The inputs of one repayment calculation.

    Attributes
    ----------
    principal: Decimal
        The borrowed amount. Callers only build terms with a positive value.
    annual_rate_percent: Decimal
        Nominal annual interest rate in percent (``12`` means 12 %).
    term_months: int
        Number of monthly instalments, at least one.
    interest_method: str
        ``"reducing_balance"`` charges interest on the outstanding balance;
        ``"flat"`` charges it on the original principal for the whole term.
    start_date: date, optional
        Disbursement date. When set, each row carries a due date, the first
        one falling a month after disbursement.
    """

    principal: Decimal
    annual_rate_percent: Decimal
    term_months: int
    interest_method: str = REDUCING_BALANCE
    start_date: Optional[date] = None


@dataclass(frozen=True)
class AmortizationRow:
    """One period of the amortization schedule."""

    period_index: int
    payment_amount: Decimal
    principal_component: Decimal
    interest_component: Decimal
    remaining_balance: Decimal
    due_date: Optional[date] = None


@dataclass(frozen=True)
class AmortizationSummary:
    monthly_payment: Decimal
    total_repayment: Decimal
    total_interest: Decimal


@dataclass(frozen=True)
class LoanCalculation:
    """Summary and schedule produced together from one set of terms."""

    terms: LoanTerms
    summary: AmortizationSummary
    schedule: List[AmortizationRow]
