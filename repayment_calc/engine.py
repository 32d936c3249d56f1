"""Core calculation engine for the repayment calculator.

This module implements the amortization arithmetic shared by every screen that
previews a loan: the staff new-loan form, the borrower portal application and
the public calculator. Two interest methods are supported:

* reducing balance, where interest is charged each month on the outstanding
  balance and the instalment is levelled with the annuity formula, and
* flat rate, where interest is charged on the original principal for the
  whole term and spread evenly across the instalments.

The functions are pure: they perform no I/O, keep no state between calls and
return new objects on every call. All arithmetic is done with ``Decimal`` at
full precision; rounding to cents is left to the presentation layer.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, getcontext
from typing import List, Optional, Union

from .data_models import (
    FLAT,
    INTEREST_METHODS,
    REDUCING_BALANCE,
    AmortizationRow,
    AmortizationSummary,
    LoanCalculation,
    LoanTerms,
)
from .logging_config import log_calculation
from .utils import CENT, add_months

getcontext().prec = 28  # increase precision for financial calculations

ZERO = Decimal("0")

# Longest term a preview is built for (100 years).
MAX_TERM_MONTHS = 1200

Number = Union[Decimal, int, float, str]


def monthly_rate(annual_rate_percent: Decimal) -> Decimal:
    """Convert a nominal annual rate in percent to a monthly decimal rate."""
    return Decimal(annual_rate_percent) / Decimal(100) / Decimal(12)


def calculate_monthly_payment(principal: Decimal, annual_rate_percent: Decimal, term_months: int) -> Decimal:
    """Return the level monthly instalment of a reducing-balance loan.

    The formula is:

        payment = P * (r * (1 + r)^n) / ((1 + r)^n - 1)

    where ``P`` is the principal, ``r`` is the monthly interest rate and
    ``n`` is the number of payments. When the interest rate is zero, the
    payment simplifies to ``P / n``.
    """
    rate = monthly_rate(annual_rate_percent)
    factor = (1 + rate) ** term_months
    # a rate below the working precision leaves factor == 1
    if rate == 0 or factor == 1:
        return principal / Decimal(term_months)
    return principal * (rate * factor) / (factor - 1)


def _flat_total_interest(terms: LoanTerms) -> Decimal:
    # interest on the full principal for the whole term, in years
    return terms.principal * (terms.annual_rate_percent / Decimal(100)) * (Decimal(terms.term_months) / Decimal(12))


def _check_method(method: str) -> str:
    if method not in INTEREST_METHODS:
        raise ValueError(f"Unknown interest method: {method}")
    return method


def calculate_summary(terms: LoanTerms) -> AmortizationSummary:
    """Compute the summary figures directly from the closed-form payment."""
    method = _check_method(terms.interest_method)
    if method == FLAT:
        total_interest = _flat_total_interest(terms)
        total_repayment = terms.principal + total_interest
        payment = total_repayment / Decimal(terms.term_months)
        return AmortizationSummary(
            monthly_payment=payment,
            total_repayment=total_repayment,
            total_interest=total_interest,
        )

    payment = calculate_monthly_payment(terms.principal, terms.annual_rate_percent, terms.term_months)
    total_repayment = payment * terms.term_months
    return AmortizationSummary(
        monthly_payment=payment,
        total_repayment=total_repayment,
        total_interest=total_repayment - terms.principal,
    )


def _due_date(start: Optional[date], period: int) -> Optional[date]:
    if start is None:
        return None
    return add_months(start, period)


def build_schedule(terms: LoanTerms) -> List[AmortizationRow]:
    """Return one ``AmortizationRow`` per period, in period order.

    The running balance starts at the principal and is reduced by the
    principal component of each instalment. Floating drift can leave a tiny
    negative balance, so the balance is clamped at zero and the last row is
    set to exactly zero.
    """
    method = _check_method(terms.interest_method)
    n = terms.term_months
    rate = monthly_rate(terms.annual_rate_percent)

    if method == FLAT:
        flat_interest = _flat_total_interest(terms) / Decimal(n)
        flat_principal = terms.principal / Decimal(n)
        payment = flat_principal + flat_interest
    else:
        payment = calculate_monthly_payment(terms.principal, terms.annual_rate_percent, n)

    schedule: List[AmortizationRow] = []
    balance = terms.principal
    for period in range(1, n + 1):
        if method == FLAT:
            interest_component = flat_interest
            principal_component = flat_principal
        else:
            interest_component = balance * rate
            principal_component = payment - interest_component
        balance = max(ZERO, balance - principal_component)
        if period == n:
            balance = ZERO
        schedule.append(
            AmortizationRow(
                period_index=period,
                payment_amount=payment,
                principal_component=principal_component,
                interest_component=interest_component,
                remaining_balance=balance,
                due_date=_due_date(terms.start_date, period),
            )
        )
    return schedule


def schedule_is_consistent(terms: LoanTerms, summary: AmortizationSummary, schedule: List[AmortizationRow]) -> bool:
    """Check the summary against the sums of the schedule rows.

    The tolerance is one cent per period, matching what a user can observe
    once each row is rounded for display.
    """
    tolerance = CENT * len(schedule)
    principal_paid = sum((row.principal_component for row in schedule), ZERO)
    repaid = sum((row.payment_amount for row in schedule), ZERO)
    interest = sum((row.interest_component for row in schedule), ZERO)
    return (
        abs(principal_paid - terms.principal) <= tolerance
        and abs(repaid - summary.total_repayment) <= tolerance
        and abs(interest - summary.total_interest) <= tolerance
    )


def calculate_loan(terms: LoanTerms) -> LoanCalculation:
    """Compute the summary and the full schedule for ``terms``.

    The summary comes from the closed-form payment and is cross-checked
    against the schedule; a mismatch is logged but the closed-form figures are
    still returned.
    """
    summary = calculate_summary(terms)
    schedule = build_schedule(terms)
    if not schedule_is_consistent(terms, summary, schedule):
        log_calculation(
            "engine",
            level=logging.WARNING,
            event="schedule_drift",
            principal=str(terms.principal),
            rate=str(terms.annual_rate_percent),
            term=terms.term_months,
        )
    return LoanCalculation(terms=terms, summary=summary, schedule=schedule)


def preview_loan(
    principal: Number,
    annual_rate_percent: Number,
    term_months: Number,
    interest_method: str = REDUCING_BALANCE,
    start_date: Optional[date] = None,
) -> Optional[LoanCalculation]:
    """Guarded entry point used by the forms that show a live preview.

    Returns ``None`` instead of calling the calculator when the principal is
    not positive, the rate is negative or the term is not a whole number of
    months between one and ``MAX_TERM_MONTHS``. Values may be given as numbers
    or numeric strings. A start date whose due dates pass year 9999 raises
    ``ValueError``.
    """
    _check_method(interest_method)
    try:
        principal_dec = Decimal(str(principal))
        rate_dec = Decimal(str(annual_rate_percent))
        term_dec = Decimal(str(term_months))
    except ArithmeticError:
        return None
    if not (principal_dec.is_finite() and rate_dec.is_finite() and term_dec.is_finite()):
        return None
    if principal_dec <= 0 or rate_dec < 0:
        return None
    if term_dec < 1 or term_dec > MAX_TERM_MONTHS or term_dec != term_dec.to_integral_value():
        return None
    terms = LoanTerms(
        principal=principal_dec,
        annual_rate_percent=rate_dec,
        term_months=int(term_dec),
        interest_method=interest_method,
        start_date=start_date,
    )
    return calculate_loan(terms)
