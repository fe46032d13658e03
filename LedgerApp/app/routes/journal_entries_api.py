# LedgerApp/app/routes/journal_entries_api.py

from __future__ import annotations

from flask import Blueprint, jsonify, request

import LedgerApp.app.common as common
from LedgerApp.app.errors import ValidationError
from LedgerApp.app.routes.reports_api import date_arg
from LedgerApp.app.services import journal_entries

bp = Blueprint("journal_entries_api", __name__)


def _entry_payload():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Expected a JSON object body")
    return data


@bp.route("/journal_entries", methods=["GET"])
def list_journal_entries():
    common.require_api_token()

    rows = journal_entries.list_entries(
        start_date=date_arg("start_date"),
        end_date=date_arg("end_date"),
        search=request.args.get("search"),
        account_type=request.args.get("account_type"),
    )
    return jsonify(rows)


@bp.route("/journal_entries/<int:entry_id>", methods=["GET"])
def get_journal_entry(entry_id: int):
    common.require_api_token()
    return jsonify(journal_entries.get_entry(entry_id))


@bp.route("/journal_entries", methods=["POST"])
def create_journal_entry():
    """
    Body:
      {
        "entry_date": "2024-01-05",
        "description": "Cash sale",
        "reference": "INV-12",            (optional)
        "lines": [
          {"account_id": 1, "debit_amount": 100, "credit_amount": 0, "description": "..."},
          {"account_id": 7, "debit_amount": 0, "credit_amount": 100}
        ]
      }
    """
    common.require_api_token()
    data = _entry_payload()

    entry_id = journal_entries.create_entry(
        data.get("entry_date") or data.get("date"),
        data.get("description"),
        data.get("lines"),
        reference=data.get("reference"),
    )
    entry = journal_entries.get_entry(entry_id)
    return jsonify({"status": "ok", "id": entry_id, "entry_number": entry["entry_number"]}), 201


@bp.route("/journal_entries/<int:entry_id>", methods=["PUT"])
def update_journal_entry(entry_id: int):
    common.require_api_token()
    data = _entry_payload()

    journal_entries.update_entry(
        entry_id,
        data.get("entry_date") or data.get("date"),
        data.get("description"),
        data.get("lines"),
    )
    return jsonify({"status": "ok", "id": entry_id})


@bp.route("/journal_entries/<int:entry_id>/reverse", methods=["POST"])
def reverse_journal_entry(entry_id: int):
    common.require_api_token()
    journal_entries.reverse_entry(entry_id)
    return jsonify({"status": "ok", "id": entry_id})
