# LedgerApp/app/services/trial_balance.py
from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from LedgerApp.app import common
from LedgerApp.app.errors import LedgerError
from LedgerApp.app.services.account_tree import AccountTree
from LedgerApp.app.services.balances import (
    AccountBalance,
    BalanceRun,
    compute_balances,
    line_totals,
    opening_balances,
    signed_balance,
)
from LedgerApp.app.utils.dates import day_before, parse_iso_date
from LedgerApp.app.utils.money import is_balanced, money


def empty_trial_balance(start_date=None, end_date=None) -> Dict[str, Any]:
    return {
        "start_date": start_date.isoformat() if start_date else None,
        "end_date": end_date.isoformat() if end_date else None,
        "rows": [],
        "totals": {"debit_total": 0.0, "credit_total": 0.0, "is_balanced": True},
    }


def build_trial_balance(start_date: Optional[date] = None, end_date: Optional[date] = None) -> Dict[str, Any]:
    """
    One row per active account, ordered by code.

    opening_balance is the own balance carried into the window (the stored
    opening balance when no start date is given), debit/credit totals cover
    the window only, closing_balance is the own balance at end_date and
    total_balance rolls closing balances up the tree.
    """
    start_date = parse_iso_date(start_date)
    end_date = parse_iso_date(end_date)

    tree = AccountTree.load()

    if start_date:
        carried = compute_balances(as_of=day_before(start_date), tree=tree)
        openings = {account_id: carried.own(account_id) for account_id in tree.nodes}
    else:
        openings = opening_balances(tree.nodes.keys())

    period = line_totals(start_date, end_date)

    closing: Dict[int, AccountBalance] = {}
    for node in tree.ordered():
        debit, credit = period.get(node.id, (0.0, 0.0))
        opening = openings.get(node.id, 0.0) if node.has_type else 0.0
        closing[node.id] = AccountBalance(
            account_id=node.id,
            opening=opening,
            debit_total=debit,
            credit_total=credit,
            own_balance=opening + signed_balance(node.normal_balance, debit, credit),
        )

    run = BalanceRun(tree, closing).rollup_all()

    result = empty_trial_balance(start_date, end_date)
    debit_sum = credit_sum = 0.0
    for node in tree.ordered():
        bal = run.get(node.id)
        debit_sum += bal.debit_total
        credit_sum += bal.credit_total
        result["rows"].append({
            "id": node.id,
            "code": node.code,
            "name": node.name,
            "type": node.type_name or "Unknown",
            "parent_account_id": node.parent_account_id,
            "level": tree.level(node.id),
            "has_children": tree.has_children(node.id),
            "opening_balance": money(bal.opening),
            "debit_total": money(bal.debit_total),
            "credit_total": money(bal.credit_total),
            "closing_balance": money(bal.own_balance),
            "total_balance": money(bal.total_balance),
        })

    result["totals"] = {
        "debit_total": money(debit_sum),
        "credit_total": money(credit_sum),
        "is_balanced": is_balanced(debit_sum, credit_sum),
    }
    common.logger.debug(f"Trial balance {start_date}..{end_date}: {len(result['rows'])} accounts")
    return result


def get_trial_balance(start_date=None, end_date=None) -> Dict[str, Any]:
    try:
        return build_trial_balance(start_date, end_date)
    except (LedgerError, SQLAlchemyError) as exc:
        common.logger.warning(f"Error building trial balance: {exc}")
        return empty_trial_balance(parse_iso_date(start_date), parse_iso_date(end_date))
