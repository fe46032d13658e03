# LedgerApp/app/services/income_statement.py
from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from LedgerApp.app import common
from LedgerApp.app.errors import LedgerError
from LedgerApp.app.services.account_tree import AccountTree
from LedgerApp.app.services.balances import BalanceRun, compute_balances, signed_balance
from LedgerApp.app.services.expense_classification import classify_expense
from LedgerApp.app.utils.dates import parse_iso_date
from LedgerApp.app.utils.money import money


# ---- Account types that land on the income statement ----
REVENUE_TYPES = (
    "Revenue",
    "Revenues",
    "Income",
    "Other Income",
)

EXPENSE_TYPES = (
    "Expense",
    "Expenses",
    "Cost of Goods Sold",
    "Other Expense",
)

# bucket -> key of the row list in the result
BUCKET_KEYS = {
    "cogs": "cogs",
    "operating": "operating_expenses",
    "interest": "interest_expenses",
    "tax": "taxes",
}


def empty_income_statement(start_date=None, end_date=None) -> Dict[str, Any]:
    return {
        "start_date": start_date.isoformat() if start_date else None,
        "end_date": end_date.isoformat() if end_date else None,
        "revenue": [],
        "cogs": [],
        "operating_expenses": [],
        "interest_expenses": [],
        "taxes": [],
        "total_revenue": 0.0,
        "total_cogs": 0.0,
        "gross_profit": 0.0,
        "total_operating_expenses": 0.0,
        "total_interest_expenses": 0.0,
        "total_taxes": 0.0,
        "total_expenses": 0.0,
        "net_profit": 0.0,
        "net_income": 0.0,
    }


def _row(tree: AccountTree, node, amount: float, category: Optional[str] = None, own_only: bool = False) -> Dict[str, Any]:
    return {
        "id": node.id,
        "code": node.code,
        "name": node.name,
        "type": node.type_name,
        "level": tree.level(node.id),
        "has_children": tree.has_children(node.id),
        "category": category,
        "own_only": own_only,
        "amount": money(amount),
    }


def _has_activity(debit: float, credit: float) -> bool:
    return bool(debit) or bool(credit)


def _bucket_subtree(tree: AccountTree, run: BalanceRun, node) -> List[Tuple[str, Dict[str, Any]]]:
    """
    (bucket, row) pairs for one expense account and its descendants.

    A stored category, or a heuristic hit other than 'operating', classifies
    the whole subtree. A heuristic-operating parent whose children fall into
    different buckets is split into its children (plus its own direct postings).
    """
    category, source = classify_expense(node)
    if category == "operating" and source == "heuristic" and node.type_name == "Cost of Goods Sold":
        category = "cogs"

    debit, credit = run.subtree_activity(node.id)
    whole = [(category, _row(tree, node, signed_balance("debit", debit, credit), category))]

    if source == "stored" or category != "operating" or not tree.has_children(node.id):
        return whole if _has_activity(debit, credit) else []

    child_rows: List[Tuple[str, Dict[str, Any]]] = []
    for child in tree.children(node.id):
        child_rows.extend(_bucket_subtree(tree, run, child))

    if all(bucket == "operating" for bucket, _ in child_rows):
        return whole if _has_activity(debit, credit) else []

    own = run.balances.get(node.id)
    if own is not None and node.has_type and _has_activity(own.debit_total, own.credit_total):
        own_amount = signed_balance("debit", own.debit_total, own.credit_total)
        child_rows.insert(0, ("operating", _row(tree, node, own_amount, "operating", own_only=True)))

    return child_rows


def build_income_statement(start_date: Optional[date], end_date: Optional[date], tree: Optional[AccountTree] = None) -> Dict[str, Any]:
    """
    Period activity of Revenue and Expense root accounts, descendants included.

    Revenue is credit - debit, expenses debit - credit; amounts stay signed so
    contra postings reduce their section instead of being hidden.
    """
    start_date = parse_iso_date(start_date)
    end_date = parse_iso_date(end_date)

    tree = tree if tree is not None else AccountTree.load()
    run = compute_balances(as_of=end_date, start_date=start_date, tree=tree, include_opening=False)

    result = empty_income_statement(start_date, end_date)

    for root in tree.root_nodes():
        if root.type_name in REVENUE_TYPES:
            debit, credit = run.subtree_activity(root.id)
            if _has_activity(debit, credit):
                result["revenue"].append(_row(tree, root, signed_balance("credit", debit, credit)))
        elif root.type_name in EXPENSE_TYPES:
            for bucket, row in _bucket_subtree(tree, run, root):
                result[BUCKET_KEYS[bucket]].append(row)

    total_revenue = sum(r["amount"] for r in result["revenue"])
    total_cogs = sum(r["amount"] for r in result["cogs"])
    total_operating = sum(r["amount"] for r in result["operating_expenses"])
    total_interest = sum(r["amount"] for r in result["interest_expenses"])
    total_taxes = sum(r["amount"] for r in result["taxes"])

    gross_profit = total_revenue - total_cogs
    net_profit = gross_profit - total_operating - total_interest - total_taxes

    result.update({
        "total_revenue": money(total_revenue),
        "total_cogs": money(total_cogs),
        "gross_profit": money(gross_profit),
        "total_operating_expenses": money(total_operating),
        "total_interest_expenses": money(total_interest),
        "total_taxes": money(total_taxes),
        "total_expenses": money(total_cogs + total_operating + total_interest + total_taxes),
        "net_profit": money(net_profit),
        "net_income": money(net_profit),
    })

    common.logger.debug(
        f"Income statement {start_date}..{end_date}: revenue={result['total_revenue']} net={result['net_profit']}"
    )
    return result


def get_income_statement(start_date=None, end_date=None) -> Dict[str, Any]:
    try:
        return build_income_statement(start_date, end_date)
    except (LedgerError, SQLAlchemyError) as exc:
        common.logger.warning(f"Error building income statement: {exc}")
        return empty_income_statement(parse_iso_date(start_date), parse_iso_date(end_date))
