import logging
import os
from uuid import uuid4

import click
from flask import Blueprint, Flask, current_app, jsonify, redirect, render_template, request, session, url_for

from repayment_calc.data_models import FLAT, REDUCING_BALANCE
from repayment_calc.engine import preview_loan
from repayment_calc.formatter import METHOD_LABELS, schedule_to_dicts, summary_to_dict
from repayment_calc.logging_config import log_calculation, setup_logging
from repayment_calc.main import build_calculation_from_options
from repayment_calc.utils import generate_loan_number, parse_date
from repayment_calc_web.scenario_store import create_store

PREVIEW_ROWS = 120

CURRENCY_OPTIONS = {
    "KES": {"label": "Kenyan shilling", "prefix": "KSh ", "suffix": ""},
    "USD": {"label": "US dollar", "prefix": "$", "suffix": ""},
    "EUR": {"label": "Euro", "prefix": "€", "suffix": ""},
    "GBP": {"label": "British pound", "prefix": "£", "suffix": ""},
}
DEFAULT_CURRENCY = "KES"

# Portal products name their interest type in upper case.
PORTAL_INTEREST_TYPES = {
    "REDUCING_BALANCE": REDUCING_BALANCE,
    "FLAT": FLAT,
}

DEFAULT_FORM = {
    "principal": "1000000",
    "rate": "12",
    "term": "12",
    "interest_method": REDUCING_BALANCE,
    "start_date": "",
}

bp = Blueprint("calculator", __name__)


def _store():
    return current_app.extensions["scenario_store"]


def _ensure_user_token() -> str:
    token = session.get("user_token")
    if not token:
        token = uuid4().hex
        session["user_token"] = token
        session.modified = True
    return token


def _normalized_currency(form) -> str:
    code = form.get("currency", DEFAULT_CURRENCY).upper()
    return code if code in CURRENCY_OPTIONS else DEFAULT_CURRENCY


def _form_to_calculation(form):
    principal = form.get("principal", "").strip()
    rate = form.get("rate", "").strip() or "0"
    try:
        term = int(form.get("term", "0"))
    except ValueError:
        raise click.BadParameter(f"Invalid term: {form.get('term')}")
    method = form.get("interest_method", REDUCING_BALANCE)
    start_date = form.get("start_date", "").strip() or None
    return build_calculation_from_options(principal, rate, term, method, start_date)


def _json_payload():
    """Return the request body as a dict, or ``None`` when it is not a JSON object."""
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    return payload if isinstance(payload, dict) else None


def _bad_request(message: str):
    log_calculation("api", level=logging.WARNING, error=message)
    return jsonify({"error": message}), 400


def _schedule_for_view(summary: dict, schedule: list, show_full_schedule: bool):
    if show_full_schedule:
        return schedule
    preview = schedule[:PREVIEW_ROWS]
    if len(schedule) > PREVIEW_ROWS:
        summary["truncated"] = len(schedule) - len(preview)
    return preview


def _handle_save_action(user_token: str, form, calculation) -> None:
    scenario_name = form.get("scenario_name", "").strip() or "Scenario"
    _store().add_scenario(user_token, scenario_name, calculation.terms)


@bp.route("/", methods=["GET", "POST"])
@bp.route("/calculator", methods=["GET", "POST"])
def calculator():
    """Public calculator page. GET shows a preview of the default loan."""
    summary = None
    schedule = None
    error = None
    show_full_schedule = False
    currency_code = DEFAULT_CURRENCY
    action = "run"
    form = request.form if request.method == "POST" else DEFAULT_FORM
    serialized_schedule = None

    user_token = _ensure_user_token()

    if request.method == "POST":
        action = request.form.get("action", "run")
        currency_code = _normalized_currency(request.form)
        show_full_schedule = request.form.get("show_full_schedule") == "1"
    try:
        calculation = _form_to_calculation(form)
        summary = summary_to_dict(calculation)
        serialized_schedule = schedule_to_dicts(calculation.schedule)
        schedule = _schedule_for_view(summary, serialized_schedule, show_full_schedule)
        log_calculation(
            "calculator",
            principal=summary["principal"],
            rate=summary["annual_rate_percent"],
            term=summary["term_months"],
            method=summary["interest_method"],
        )
        if action == "add_to_comparison":
            _handle_save_action(user_token, form, calculation)
    except (ValueError, ArithmeticError, click.ClickException) as exc:
        error = str(exc)
        log_calculation("calculator", level=logging.WARNING, error=error)

    currency_meta = CURRENCY_OPTIONS[currency_code]
    saved_scenarios = _store().list_scenarios(user_token)

    return render_template(
        "calculator.html",
        form=form,
        summary=summary,
        schedule=schedule,
        show_full_schedule=show_full_schedule,
        error=error,
        currency_code=currency_code,
        currency_options=CURRENCY_OPTIONS,
        currency_prefix=currency_meta["prefix"],
        currency_suffix=currency_meta["suffix"],
        method_labels=METHOD_LABELS,
        asset_version=current_app.config["ASSET_VERSION"],
        saved_scenarios=saved_scenarios,
        current_schedule=serialized_schedule,
        last_action=action,
    )


@bp.post("/comparison/remove")
def remove_comparison():
    _store().remove_scenario(session.get("user_token"), request.form.get("scenario_id"))
    return redirect(url_for("calculator.calculator"))


@bp.post("/comparison/clear")
def clear_comparisons():
    _store().clear_scenarios(session.get("user_token"))
    return redirect(url_for("calculator.calculator"))


@bp.post("/api/loans/preview")
def new_loan_preview():
    """Live summary for the staff new-loan form.

    Answers ``{"preview": null}`` while the form does not yet hold a positive
    principal and term.
    """
    payload = _json_payload()
    if payload is None:
        return _bad_request("Request body must be a JSON object")
    start_date = None
    if payload.get("startDate"):
        try:
            start_date = parse_date(str(payload["startDate"]))
        except ValueError as exc:
            return _bad_request(str(exc))

    try:
        calculation = preview_loan(
            payload.get("principalAmount"),
            payload.get("interestRate"),
            payload.get("termMonths"),
            REDUCING_BALANCE,
            start_date,
        )
    except (ValueError, ArithmeticError) as exc:
        return _bad_request(str(exc))
    if calculation is None:
        return jsonify({"preview": None})
    log_calculation(
        "new_loan",
        principal=str(calculation.terms.principal),
        rate=str(calculation.terms.annual_rate_percent),
        term=calculation.terms.term_months,
    )
    return jsonify(
        {
            "preview": {
                "draftLoanNumber": generate_loan_number(),
                "summary": summary_to_dict(calculation),
                "schedule": schedule_to_dicts(calculation.schedule),
            }
        }
    )


@bp.post("/api/portal/loans/preview")
def portal_application_preview():
    """Monthly payment and total repayment for a portal loan application."""
    payload = _json_payload()
    if payload is None:
        return _bad_request("Request body must be a JSON object")
    interest_type = str(payload.get("interestType", "REDUCING_BALANCE")).upper()
    method = PORTAL_INTEREST_TYPES.get(interest_type)
    if method is None:
        return _bad_request(f"Unknown interest type: {interest_type}")

    try:
        calculation = preview_loan(
            payload.get("amount"),
            payload.get("interestRate"),
            payload.get("termMonths"),
            method,
        )
    except (ValueError, ArithmeticError) as exc:
        return _bad_request(str(exc))
    if calculation is None:
        return jsonify({"preview": None})
    log_calculation(
        "portal",
        principal=str(calculation.terms.principal),
        rate=str(calculation.terms.annual_rate_percent),
        term=calculation.terms.term_months,
        method=method,
    )
    summary = summary_to_dict(calculation)
    return jsonify(
        {
            "preview": {
                "interestType": interest_type,
                "monthlyPayment": summary["monthly_payment"],
                "totalRepayment": summary["total_repayment"],
                "totalInterest": summary["total_interest"],
            }
        }
    )


def create_app(test_config=None) -> Flask:
    """Build the web application.

    Settings come from the environment (``FLASK_SECRET_KEY``,
    ``ASSET_VERSION``, ``SCENARIO_DATABASE_URL``, ``SCENARIOS_PER_USER``,
    ``LOG_LEVEL``); ``test_config`` overrides any of them.
    """
    app = Flask(__name__)
    app.config.from_mapping(
        SECRET_KEY=os.environ.get("FLASK_SECRET_KEY", "dev-secret-key"),
        ASSET_VERSION=os.environ.get("ASSET_VERSION", "1"),
        SCENARIO_DATABASE_URL=os.environ.get("SCENARIO_DATABASE_URL"),
        SCENARIOS_PER_USER=int(os.environ.get("SCENARIOS_PER_USER", "10")),
        LOG_LEVEL=os.environ.get("LOG_LEVEL", "INFO"),
    )
    if test_config:
        app.config.update(test_config)

    setup_logging(app.config["LOG_LEVEL"])
    app.extensions["scenario_store"] = create_store(
        app.config["SCENARIO_DATABASE_URL"], max_per_user=app.config["SCENARIOS_PER_USER"]
    )
    app.register_blueprint(bp)
    return app


if __name__ == "__main__":
    print("Starting repayment calculator web app...")
    create_app().run(host="0.0.0.0", port=8710, debug=True)
