# LedgerApp/app/services/cash_flow_report.py
"""
Cash-flow statement from explicitly tagged accounts.

Only accounts carrying their own `cash_flow_category` take part; untagged
accounts are left out rather than guessed. Cash / bank accounts are the
result of the statement, so they never appear as a line item.
"""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from LedgerApp.app import common
from LedgerApp.app.errors import LedgerError
from LedgerApp.app.models.account_type import CASH_FLOW_CATEGORIES
from LedgerApp.app.services.account_tree import AccountNode, AccountTree
from LedgerApp.app.services.balance_sheet_report import ASSET_TYPES
from LedgerApp.app.services.balances import compute_balances, line_totals, opening_balances, signed_balance
from LedgerApp.app.utils.dates import day_before, parse_iso_date
from LedgerApp.app.utils.money import BALANCE_EPSILON, money

DEFAULT_CASH_ACCOUNT_KEYWORDS = ("cash", "bank")


def empty_cash_flow(start_date=None, end_date=None) -> Dict[str, Any]:
    return {
        "start_date": start_date.isoformat() if start_date else None,
        "end_date": end_date.isoformat() if end_date else None,
        "operating_activities": [],
        "investing_activities": [],
        "financing_activities": [],
        "totals": {"operating": 0.0, "investing": 0.0, "financing": 0.0},
        "net_cash_flow": {"operating": 0.0, "investing": 0.0, "financing": 0.0, "total": 0.0},
        "cash_at_beginning": 0.0,
        "cash_at_end": 0.0,
    }


def _cash_keywords() -> List[str]:
    keywords = common.config_value("CASH_ACCOUNT_KEYWORDS", DEFAULT_CASH_ACCOUNT_KEYWORDS)
    if isinstance(keywords, str):
        keywords = keywords.split(",")
    return [k.strip().lower() for k in keywords if k and k.strip()]


def is_cash_account(node: AccountNode, keywords=None) -> bool:
    if node.type_name not in ASSET_TYPES:
        return False
    keywords = _cash_keywords() if keywords is None else keywords
    name = (node.name or "").lower()
    return any(k in name for k in keywords)


def build_cash_flow(start_date: Optional[date] = None, end_date: Optional[date] = None) -> Dict[str, Any]:
    start_date = parse_iso_date(start_date)
    end_date = parse_iso_date(end_date)

    tree = AccountTree.load()
    keywords = _cash_keywords()
    cash_ids = [n.id for n in tree.ordered() if is_cash_account(n, keywords)]

    if start_date:
        carried = compute_balances(as_of=day_before(start_date), tree=tree)
        cash_at_beginning = sum(carried.own(i) for i in cash_ids)
    else:
        cash_at_beginning = sum(opening_balances(cash_ids).values()) if cash_ids else 0.0

    period = line_totals(start_date, end_date)

    result = empty_cash_flow(start_date, end_date)
    sums = {category: 0.0 for category in CASH_FLOW_CATEGORIES}

    for node in tree.ordered():
        category = node.cash_flow_category
        if category not in CASH_FLOW_CATEGORIES or node.id in cash_ids or not node.has_type:
            continue
        debit, credit = period.get(node.id, (0.0, 0.0))
        net_flow = signed_balance(node.normal_balance, debit, credit)
        if abs(net_flow) <= BALANCE_EPSILON:
            continue

        sums[category] += net_flow
        result[f"{category}_activities"].append({
            "category": category,
            "account_id": node.id,
            "code": node.code,
            "description": node.name,
            "type": node.type_name,
            "amount": money(abs(net_flow)),
            "net_flow": money(net_flow),
        })

    operating = sums["operating"]
    # investing / financing sums are outflow-positive
    investing = -sums["investing"]
    financing = -sums["financing"]
    total = operating + investing + financing

    result.update({
        "totals": {category: money(value) for category, value in sums.items()},
        "net_cash_flow": {
            "operating": money(operating),
            "investing": money(investing),
            "financing": money(financing),
            "total": money(total),
        },
        "cash_at_beginning": money(cash_at_beginning),
        "cash_at_end": money(cash_at_beginning + total),
    })

    common.logger.debug(
        f"Cash flow {start_date}..{end_date}: net={result['net_cash_flow']['total']} "
        f"({len(cash_ids)} cash accounts)"
    )
    return result


def get_cash_flow_statement(start_date=None, end_date=None) -> Dict[str, Any]:
    try:
        return build_cash_flow(start_date, end_date)
    except (LedgerError, SQLAlchemyError) as exc:
        common.logger.warning(f"Error building cash flow statement: {exc}")
        return empty_cash_flow(parse_iso_date(start_date), parse_iso_date(end_date))
