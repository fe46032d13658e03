# LedgerApp/app/services/balance_sheet_report.py
from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from LedgerApp.app import common
from LedgerApp.app.errors import LedgerError
from LedgerApp.app.services.account_tree import AccountTree
from LedgerApp.app.services.balances import BalanceRun, compute_balances
from LedgerApp.app.services.income_statement import build_income_statement
from LedgerApp.app.utils.dates import parse_iso_date, year_start
from LedgerApp.app.utils.money import is_balanced, money


# --- Balance Sheet account types ---
ASSET_TYPES = ("Asset", "Assets")
LIABILITY_TYPES = ("Liability", "Liabilities")
EQUITY_TYPES = ("Equity",)

# Option: include a "Net Income" line under Equity using year-to-date income statement
INCLUDE_NET_INCOME_LINE = True
NET_INCOME_CODE = "NET_INCOME"


def empty_balance_sheet(as_of=None) -> Dict[str, Any]:
    return {
        "as_of": as_of.isoformat() if as_of else None,
        "assets": [],
        "liabilities": [],
        "equity": [],
        "total_assets": 0.0,
        "total_liabilities": 0.0,
        "total_equity": 0.0,
        "net_income": 0.0,
        "liabilities_plus_equity": 0.0,
        "difference": 0.0,
        "is_balanced": True,
    }


def _bs_display_amount(account_type: str, total_balance: float) -> float:
    """
    total_balance already follows the type's normal balance.

    Display on Balance Sheet:
      - Assets shown as-is
      - Liabilities/Equity shown as magnitudes
    """
    if account_type in LIABILITY_TYPES or account_type in EQUITY_TYPES:
        return abs(float(total_balance or 0.0))
    return float(total_balance or 0.0)


def _account_row(tree: AccountTree, run: BalanceRun, node, display_type: str) -> Dict[str, Any]:
    return {
        "id": node.id,
        "code": node.code,
        "name": node.name,
        "type": node.type_name,
        "level": tree.level(node.id),
        "own_balance": money(run.own(node.id)),
        "amount": money(_bs_display_amount(display_type, run.total(node.id))),
        "children": [_account_row(tree, run, c, display_type) for c in tree.children(node.id)],
    }


def build_balance_sheet(as_of: Optional[date] = None, tree: Optional[AccountTree] = None) -> Dict[str, Any]:
    as_of = parse_iso_date(as_of) or date.today()
    tree = tree if tree is not None else AccountTree.load()
    run = compute_balances(as_of=as_of, tree=tree)

    result = empty_balance_sheet(as_of)
    sections = (
        ("assets", ASSET_TYPES),
        ("liabilities", LIABILITY_TYPES),
        ("equity", EQUITY_TYPES),
    )
    for root in tree.root_nodes():
        for key, types in sections:
            if root.type_name in types:
                result[key].append(_account_row(tree, run, root, root.type_name))
                break

    net_income = 0.0
    if INCLUDE_NET_INCOME_LINE:
        net_income = build_income_statement(year_start(as_of), as_of, tree=tree)["net_profit"]
        if abs(net_income) > 0.0:
            result["equity"].append({
                "id": None,
                "code": NET_INCOME_CODE,
                "name": "Net Income",
                "type": "Equity",
                "level": 1,
                "own_balance": money(net_income),
                "amount": money(net_income),
                "children": [],
                "is_net_income": True,
            })

    total_assets = sum(r["amount"] for r in result["assets"])
    total_liabilities = sum(r["amount"] for r in result["liabilities"])
    total_equity = sum(r["amount"] for r in result["equity"])
    liabilities_plus_equity = total_liabilities + total_equity

    result.update({
        "total_assets": money(total_assets),
        "total_liabilities": money(total_liabilities),
        "total_equity": money(total_equity),
        "net_income": money(net_income),
        "liabilities_plus_equity": money(liabilities_plus_equity),
        "difference": money(total_assets - liabilities_plus_equity),
        "is_balanced": is_balanced(total_assets, liabilities_plus_equity),
    })

    if not result["is_balanced"]:
        # reported, not rejected
        common.logger.warning(f"Balance sheet as of {as_of} is out of balance by {result['difference']}")

    return result


def get_balance_sheet(as_of=None) -> Dict[str, Any]:
    try:
        return build_balance_sheet(as_of)
    except (LedgerError, SQLAlchemyError) as exc:
        common.logger.warning(f"Error building balance sheet: {exc}")
        return empty_balance_sheet(parse_iso_date(as_of))
