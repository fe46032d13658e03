# LedgerApp/app/services/expense_classification.py
"""
Expense buckets for the income statement.

Accounts carry an explicit `expense_category`. The name / code heuristic below
is what older charts of accounts relied on; it is only consulted when the
stored value is missing, and `backfill_expense_categories` can write its
result onto the accounts once.
"""
from __future__ import annotations

from typing import List, Optional, Tuple

from LedgerApp.app import common
from LedgerApp.app.accounting_db import db, commit_or_raise
from LedgerApp.app.models.account import Account, EXPENSE_CATEGORIES
from LedgerApp.app.models.account_type import AccountType

# checked in this order; the first hit wins
HEURISTIC_RULES = (
    ("cogs", ("cost of goods", "cogs", "cost of sales"), "5100"),
    ("interest", ("interest",), "5400"),
    ("tax", ("tax",), "5500"),
)


def heuristic_matches(name: Optional[str], code: Optional[str] = None) -> List[str]:
    """Every bucket whose keyword or code prefix matches, in rule order."""
    lowered = (name or "").lower()
    code = code or ""
    hits = []
    for category, keywords, code_prefix in HEURISTIC_RULES:
        if any(k in lowered for k in keywords) or (code_prefix and code.startswith(code_prefix)):
            hits.append(category)
    return hits


def classify_by_name(name: Optional[str], code: Optional[str] = None) -> str:
    hits = heuristic_matches(name, code)
    return hits[0] if hits else "operating"


def classify_expense(node) -> Tuple[str, str]:
    """(category, source) where source is 'stored' or 'heuristic'."""
    stored = getattr(node, "expense_category", None)
    if stored in EXPENSE_CATEGORIES:
        return stored, "stored"
    return classify_by_name(node.name, node.code), "heuristic"


def backfill_expense_categories(expense_type_names) -> dict:
    """
    Store the heuristic bucket on expense accounts that have none.

    Names matching more than one bucket (e.g. "Interest-free Rent" style
    names that also carry a tax or COGS keyword) are still stored with the
    first rule's result but reported so a person can review them.
    """
    accounts = (
        db.session.query(Account)
        .join(AccountType, Account.account_type_id == AccountType.id)
        .filter(AccountType.name.in_(list(expense_type_names)))
        .filter(Account.expense_category.is_(None))
        .order_by(Account.code)
        .all()
    )

    updated, ambiguous = [], []
    for account in accounts:
        hits = heuristic_matches(account.name, account.code)
        account.expense_category = hits[0] if hits else "operating"
        updated.append(account.code)
        if len(hits) > 1:
            ambiguous.append({"code": account.code, "name": account.name, "matches": hits})
            common.logger.warning(
                f"Ambiguous expense classification for {account.code} {account.name!r}: {hits}, stored {hits[0]!r}"
            )

    commit_or_raise("backfill expense categories")
    common.logger.info(f"Backfilled expense category on {len(updated)} accounts ({len(ambiguous)} ambiguous)")
    return {"updated": updated, "ambiguous": ambiguous}
