import pandas as pd

import LedgerApp.app.common as common
from LedgerApp.app.accounting_db import db
from LedgerApp.app.models.account_type import AccountType
from LedgerApp.app.services import accounts as account_service

REQUIRED_COLUMNS = ("Code", "Name", "Type")

# Name fragments of account types that grow with debits
DEBIT_NORMAL_HINTS = ("asset", "expense", "cost of goods", "bank", "receivable")


def _guess_normal_balance(type_name):
    lowered = type_name.lower()
    return "debit" if any(h in lowered for h in DEBIT_NORMAL_HINTS) else "credit"


def _get_or_create_type(type_name, type_cache):
    key = type_name.strip().lower()
    if key in type_cache:
        return type_cache[key]

    acct_type = (
        db.session.query(AccountType)
        .filter(db.func.lower(AccountType.name) == key)
        .first()
    )
    if acct_type is None:
        acct_type = account_service.create_account_type(type_name.strip(), _guess_normal_balance(type_name))
        common.logger.info(f"Created account type {acct_type.name!r} during import ({acct_type.normal_balance}-normal)")

    type_cache[key] = acct_type
    return acct_type


def import_accounts(csv_path):
    """
    Load a chart of accounts from CSV.

    Columns: Code, Name, Type, Parent Code, Description, Cash Flow Category.
    Parents are created before their children regardless of row order;
    codes that already exist are skipped.
    """
    df = pd.read_csv(csv_path, dtype=str).fillna("")

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"CSV is missing required columns: {', '.join(missing)}")

    pending = []
    for _, row in df.iterrows():
        code = row["Code"].strip()
        name = row["Name"].strip()
        if not code or not name:
            continue
        pending.append({
            "code": code,
            "name": name,
            "type": row["Type"].strip(),
            "parent_code": row.get("Parent Code", "").strip(),
            "description": row.get("Description", "").strip() or None,
            "cash_flow_category": row.get("Cash Flow Category", "").strip() or None,
        })

    created, skipped, failed = [], [], []
    type_cache = {}

    # Keep passing over the rows while parents keep appearing
    while pending:
        progress = False
        deferred = []
        for item in pending:
            if account_service.get_account_by_code(item["code"]) is not None:
                skipped.append(item["code"])
                progress = True
                continue

            parent_id = None
            if item["parent_code"]:
                parent = account_service.get_account_by_code(item["parent_code"])
                if parent is None:
                    deferred.append(item)
                    continue
                if not parent.is_active:
                    common.logger.warning(f"Parent {item['parent_code']!r} is inactive for account {item['code']}, not imported")
                    failed.append(item["code"])
                    progress = True
                    continue
                parent_id = parent.id

            acct_type = _get_or_create_type(item["type"] or "Unknown", type_cache)
            account_service.create_account(
                name=item["name"],
                account_type_id=acct_type.id,
                code=item["code"],
                parent_account_id=parent_id,
                description=item["description"],
                cash_flow_category=item["cash_flow_category"],
            )
            created.append(item["code"])
            progress = True

        if not progress:
            for item in deferred:
                common.logger.warning(f"Parent {item['parent_code']!r} not found for account {item['code']}, not imported")
                failed.append(item["code"])
            break
        pending = deferred

    common.logger.debug(f"Imported accounts from {csv_path}: created={len(created)} skipped={len(skipped)} failed={len(failed)}")
    return {"created": created, "skipped": skipped, "failed": failed}
