from flask import Blueprint, jsonify, request

import LedgerApp.app.common as common
from LedgerApp.app.errors import ValidationError
from LedgerApp.app.services import accounts as account_service

bp = Blueprint("accounts_api", __name__)

ACCOUNT_FIELDS = (
    "code",
    "name",
    "description",
    "account_type_id",
    "parent_account_id",
    "cash_flow_category",
    "expense_category",
)


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Expected a JSON object body")
    return data


# ---- Chart of accounts ----

@bp.route("/accounts", methods=["GET"])
def list_accounts():
    common.require_api_token()
    # ?flat=1 returns the plain code-ordered list instead of the hierarchy
    if request.args.get("flat"):
        include_inactive = bool(request.args.get("include_inactive"))
        return jsonify([a.to_dict() for a in account_service.get_accounts(include_inactive)])
    return jsonify(account_service.get_hierarchical_chart())


@bp.route("/accounts/<int:account_id>", methods=["GET"])
def get_account(account_id):
    common.require_api_token()
    account = account_service.get_account(account_id)
    result = account.to_dict()
    result["path"] = account_service.account_path(account_id)
    result["is_deletable"] = account_service.is_deletable(account_id)
    return jsonify(result)


@bp.route("/accounts", methods=["POST"])
def create_account():
    common.require_api_token()
    data = _json_body()

    account = account_service.create_account(
        name=data.get("name"),
        account_type_id=data.get("account_type_id"),
        code=data.get("code"),
        parent_account_id=data.get("parent_account_id"),
        description=data.get("description"),
        cash_flow_category=data.get("cash_flow_category"),
        expense_category=data.get("expense_category"),
    )
    return jsonify(account.to_dict()), 201


@bp.route("/accounts/<int:account_id>", methods=["PUT"])
def update_account(account_id):
    common.require_api_token()
    data = _json_body()

    changes = {k: data[k] for k in ACCOUNT_FIELDS if k in data}
    account = account_service.update_account(account_id, **changes)
    return jsonify(account.to_dict())


@bp.route("/accounts/<int:account_id>", methods=["DELETE"])
def delete_account(account_id):
    common.require_api_token()
    account_service.delete_account(account_id)
    return jsonify({"status": "ok", "id": account_id})


# ---- Account types ----

@bp.route("/account_types", methods=["GET"])
def list_account_types():
    common.require_api_token()
    include_inactive = bool(request.args.get("include_inactive"))
    return jsonify([t.to_dict() for t in account_service.get_account_types(include_inactive)])


@bp.route("/account_types", methods=["POST"])
def create_account_type():
    common.require_api_token()
    data = _json_body()

    acct_type = account_service.create_account_type(
        name=data.get("name"),
        normal_balance=data.get("normal_balance"),
        description=data.get("description"),
        cash_flow_category=data.get("cash_flow_category"),
    )
    return jsonify(acct_type.to_dict()), 201


@bp.route("/account_types/<int:account_type_id>", methods=["PUT"])
def update_account_type(account_type_id):
    common.require_api_token()
    data = _json_body()

    kwargs = {k: data[k] for k in ("name", "normal_balance", "description", "cash_flow_category") if k in data}
    acct_type = account_service.update_account_type(account_type_id, **kwargs)
    return jsonify(acct_type.to_dict())


@bp.route("/account_types/<int:account_type_id>", methods=["DELETE"])
def delete_account_type(account_type_id):
    common.require_api_token()
    account_service.delete_account_type(account_type_id)
    return jsonify({"status": "ok", "id": account_type_id})
