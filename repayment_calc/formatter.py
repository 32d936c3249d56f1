"""Output helpers for the repayment calculator.

This module renders summaries and amortization schedules in a plain tabular
text format for the terminal. Values are rounded to cents here, and only here;
the engine keeps full precision.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List

from .data_models import FLAT, REDUCING_BALANCE, AmortizationRow, LoanCalculation
from .utils import round_currency

METHOD_LABELS = {
    REDUCING_BALANCE: "Reducing balance",
    FLAT: "Flat rate",
}


def summary_to_dict(calculation: LoanCalculation) -> Dict[str, Any]:
    """Return a JSON-serialisable view of the terms and summary."""
    terms = calculation.terms
    summary = calculation.summary
    data: Dict[str, Any] = {
        "principal": float(terms.principal),
        "annual_rate_percent": float(terms.annual_rate_percent),
        "term_months": terms.term_months,
        "interest_method": terms.interest_method,
        "monthly_payment": float(round_currency(summary.monthly_payment)),
        "total_repayment": float(round_currency(summary.total_repayment)),
        "total_interest": float(round_currency(summary.total_interest)),
    }
    if calculation.schedule and calculation.schedule[-1].due_date is not None:
        data["first_due_date"] = calculation.schedule[0].due_date.isoformat()
        data["last_due_date"] = calculation.schedule[-1].due_date.isoformat()
    return data


def row_to_dict(row: AmortizationRow) -> Dict[str, Any]:
    return {
        "period": row.period_index,
        "due_date": row.due_date.isoformat() if row.due_date else None,
        "payment": float(round_currency(row.payment_amount)),
        "principal": float(round_currency(row.principal_component)),
        "interest": float(round_currency(row.interest_component)),
        "balance": float(round_currency(row.remaining_balance)),
    }


def schedule_to_dicts(schedule: Iterable[AmortizationRow]) -> List[Dict[str, Any]]:
    return [row_to_dict(row) for row in schedule]


def print_summary(calculation: LoanCalculation) -> None:
    """Print a summary of loan metrics in a human‑readable format."""
    data = summary_to_dict(calculation)
    print("Summary")
    print("-" * 72)
    print(f"Principal          : {data['principal']:.2f}")
    print(f"Annual rate        : {data['annual_rate_percent']:.2f}%")
    print(f"Term               : {data['term_months']} months")
    print(f"Interest method    : {METHOD_LABELS.get(data['interest_method'], data['interest_method'])}")
    print(f"Monthly payment    : {data['monthly_payment']:.2f}")
    print(f"Total interest     : {data['total_interest']:.2f}")
    print(f"Total repayment    : {data['total_repayment']:.2f}")
    if "first_due_date" in data:
        print(f"First due date     : {data['first_due_date']}")
        print(f"Last due date      : {data['last_due_date']}")
    print("-" * 72)


def print_schedule(schedule: Iterable[AmortizationRow]) -> None:
    """Print the amortization schedule as a tab-separated table.

    The due date column is only shown when the rows carry due dates.
    """
    rows = list(schedule)
    with_dates = bool(rows) and rows[0].due_date is not None
    headers = ["Period"]
    if with_dates:
        headers.append("Due")
    headers += ["Payment", "Principal", "Interest", "Balance"]
    print("\t".join(headers))
    for row in rows:
        cells = [str(row.period_index)]
        if with_dates:
            cells.append(row.due_date.isoformat())
        cells += [
            f"{round_currency(row.payment_amount):.2f}",
            f"{round_currency(row.principal_component):.2f}",
            f"{round_currency(row.interest_component):.2f}",
            f"{round_currency(row.remaining_balance):.2f}",
        ]
        print("\t".join(cells))


def print_comparison(c1: LoanCalculation, c2: LoanCalculation) -> None:
    """Print two loan summaries side by side.

    The difference column is scenario2 - scenario1, so a negative value means
    the second scenario is cheaper.
    """
    s1 = summary_to_dict(c1)
    s2 = summary_to_dict(c2)
    print("Comparison")
    print("=" * 72)
    print(f"{'Metric':20s} {'Scenario1':>15s} {'Scenario2':>15s} {'Difference':>15s}")
    for key in ("monthly_payment", "total_interest", "total_repayment"):
        v1 = s1[key]
        v2 = s2[key]
        print(f"{key:20s} {v1:15.2f} {v2:15.2f} {v2 - v1:15.2f}")
    print(f"{'term_months':20s} {s1['term_months']:15d} {s2['term_months']:15d} {s2['term_months'] - s1['term_months']:15d}")
    print("=" * 72)
