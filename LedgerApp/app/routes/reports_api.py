# LedgerApp/app/routes/reports_api.py
from __future__ import annotations

from flask import Blueprint, jsonify, request

import LedgerApp.app.common as common
from LedgerApp.app.errors import ValidationError
from LedgerApp.app.services.balance_sheet_report import get_balance_sheet
from LedgerApp.app.services.cash_flow_report import get_cash_flow_statement
from LedgerApp.app.services.general_ledger import get_account_detail_report, get_general_ledger
from LedgerApp.app.services.income_statement import get_income_statement
from LedgerApp.app.services.trial_balance import get_trial_balance
from LedgerApp.app.utils.dates import parse_iso_date

bp = Blueprint("reports_api", __name__)


def date_arg(name, required=False):
    """Query-string date; a present but malformed value is a 400, not a silent None."""
    raw = request.args.get(name)
    if raw in (None, ""):
        if required:
            raise ValidationError(f"Missing '{name}' (expected YYYY-MM-DD)")
        return None
    value = parse_iso_date(raw)
    if value is None:
        raise ValidationError(f"Invalid '{name}' (expected YYYY-MM-DD)", value=raw)
    return value


def _date_range(required=False):
    start_date = date_arg("start_date", required)
    end_date = date_arg("end_date", required)
    if start_date and end_date and start_date > end_date:
        raise ValidationError("start_date must be on or before end_date")
    return start_date, end_date


@bp.route("/trial_balance", methods=["GET"])
def trial_balance_json():
    common.require_api_token()
    start_date, end_date = _date_range()
    return jsonify(get_trial_balance(start_date, end_date))


@bp.route("/balance_sheet", methods=["GET"])
def balance_sheet_json():
    common.require_api_token()
    # Example: ?as_of=2024-06-30 (defaults to today)
    return jsonify(get_balance_sheet(date_arg("as_of")))


@bp.route("/income_statement", methods=["GET"])
def income_statement_json():
    common.require_api_token()
    start_date, end_date = _date_range(required=True)
    return jsonify(get_income_statement(start_date, end_date))


@bp.route("/cash_flow", methods=["GET"])
def cash_flow_json():
    common.require_api_token()
    start_date, end_date = _date_range(required=True)
    return jsonify(get_cash_flow_statement(start_date, end_date))


@bp.route("/general_ledger/<int:account_id>", methods=["GET"])
def general_ledger_json(account_id):
    common.require_api_token()
    start_date, end_date = _date_range()
    return jsonify(get_general_ledger(account_id, start_date, end_date))


@bp.route("/accounts/<int:account_id>/detail", methods=["GET"])
def account_detail_json(account_id):
    common.require_api_token()
    start_date, end_date = _date_range()
    return jsonify(get_account_detail_report(account_id, start_date, end_date))
