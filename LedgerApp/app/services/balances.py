# LedgerApp/app/services/balances.py
"""
Point-in-time balance aggregation.

One pass = one snapshot of the account tree + one grouped read of ledger
lines + one read of opening balances. Own balances are derived per account
with `signed_balance`; total balances are rolled up depth-first with a memo
table that lives only for the duration of the pass.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from LedgerApp.app import common
from LedgerApp.app.accounting_db import db
from LedgerApp.app.models.account import Account
from LedgerApp.app.models.account_type import AccountType
from LedgerApp.app.models.journal_entry import JournalEntry
from LedgerApp.app.models.journal_entry_line import JournalEntryLine
from LedgerApp.app.models.opening_balance import OpeningBalance
from LedgerApp.app.services.account_tree import AccountTree


def signed_balance(normal_balance: Optional[str], debit_total: float, credit_total: float) -> float:
    """
    Debit-normal accounts grow with debits, credit-normal accounts with credits.
    Unknown normal balance -> 0.0 (the account's type could not be resolved).
    """
    debit_total = float(debit_total or 0.0)
    credit_total = float(credit_total or 0.0)
    if normal_balance == "debit":
        return debit_total - credit_total
    if normal_balance == "credit":
        return credit_total - debit_total
    return 0.0


def line_totals(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    account_ids: Optional[Iterable[int]] = None,
) -> Dict[int, Tuple[float, float]]:
    """
    Returns {account_id: (debit_total, credit_total)} for lines whose entry
    date falls in [start_date, end_date] (either bound optional).
    """
    debit_sum = func.sum(JournalEntryLine.debit_amount).label("debit_total")
    credit_sum = func.sum(JournalEntryLine.credit_amount).label("credit_total")

    query = (
        db.session.query(
            JournalEntryLine.account_id,
            debit_sum,
            credit_sum,
        )
        .join(JournalEntry, JournalEntry.id == JournalEntryLine.journal_entry_id)
        .group_by(JournalEntryLine.account_id)
    )

    if start_date:
        query = query.filter(JournalEntry.entry_date >= start_date)
    if end_date:
        query = query.filter(JournalEntry.entry_date <= end_date)
    if account_ids is not None:
        account_ids = list(account_ids)
        if not account_ids:
            return {}
        query = query.filter(JournalEntryLine.account_id.in_(account_ids))

    return {
        r.account_id: (float(r.debit_total or 0.0), float(r.credit_total or 0.0))
        for r in query.all()
    }


def opening_balances(account_ids: Optional[Iterable[int]] = None) -> Dict[int, float]:
    query = db.session.query(OpeningBalance.account_id, OpeningBalance.balance)
    if account_ids is not None:
        query = query.filter(OpeningBalance.account_id.in_(list(account_ids)))
    return {r.account_id: float(r.balance or 0.0) for r in query.all()}


@dataclass
class AccountBalance:
    account_id: int
    opening: float = 0.0
    debit_total: float = 0.0
    credit_total: float = 0.0
    own_balance: float = 0.0
    total_balance: float = 0.0


class BalanceRun:
    """
    Result of one aggregation pass. `total(account_id)` is memoised in
    `self._totals`, which belongs to this run only.
    """

    def __init__(self, tree: AccountTree, own: Dict[int, AccountBalance]):
        self.tree = tree
        self.balances = own
        self._totals: Dict[int, float] = {}
        self._activity: Dict[int, Tuple[float, float]] = {}

    def own(self, account_id) -> float:
        bal = self.balances.get(account_id)
        return bal.own_balance if bal else 0.0

    def total(self, account_id) -> float:
        return _total_balance(account_id, self.tree, self.balances, self._totals)

    def subtree_activity(self, account_id) -> Tuple[float, float]:
        """
        Raw (debit_total, credit_total) of the account and all its descendants.
        Accounts with an unresolved type add nothing of their own.
        """
        if account_id in self._activity:
            return self._activity[account_id]

        node = self.tree.get(account_id)
        bal = self.balances.get(account_id)
        debit = credit = 0.0
        if bal is not None and node is not None and node.has_type:
            debit, credit = bal.debit_total, bal.credit_total
        for child_id in (node.children if node else []):
            child_debit, child_credit = self.subtree_activity(child_id)
            debit += child_debit
            credit += child_credit

        self._activity[account_id] = (debit, credit)
        return debit, credit

    def get(self, account_id) -> AccountBalance:
        bal = self.balances.get(account_id) or AccountBalance(account_id)
        bal.total_balance = self.total(account_id)
        return bal

    def rollup_all(self) -> "BalanceRun":
        for account_id in self.tree.nodes:
            self.total(account_id)
        for account_id, bal in self.balances.items():
            bal.total_balance = self._totals.get(account_id, bal.own_balance)
        return self

    def as_dict(self) -> Dict[int, Dict[str, float]]:
        self.rollup_all()
        return {
            account_id: {"own_balance": bal.own_balance, "total_balance": bal.total_balance}
            for account_id, bal in self.balances.items()
        }


def _total_balance(account_id, tree: AccountTree, own: Dict[int, AccountBalance], memo: Dict[int, float]) -> float:
    if account_id in memo:
        return memo[account_id]

    bal = own.get(account_id)
    total = bal.own_balance if bal else 0.0

    node = tree.get(account_id)
    for child_id in (node.children if node else []):
        total += _total_balance(child_id, tree, own, memo)

    memo[account_id] = total
    return total


def compute_balances(
    as_of: Optional[date] = None,
    start_date: Optional[date] = None,
    tree: Optional[AccountTree] = None,
    include_opening: Optional[bool] = None,
) -> BalanceRun:
    """
    Own balance = opening + signed(debits, credits) for lines dated <= as_of
    (and >= start_date when a window is given). Opening balances are only
    included for cumulative runs unless include_opening says otherwise.
    """
    tree = tree if tree is not None else AccountTree.load()
    if include_opening is None:
        include_opening = start_date is None

    totals = line_totals(start_date, as_of)
    openings = opening_balances() if include_opening else {}

    own: Dict[int, AccountBalance] = {}
    for node in tree.ordered():
        debit, credit = totals.get(node.id, (0.0, 0.0))
        if not node.has_type:
            # unresolved type: keep it in the tree, contribute nothing
            own[node.id] = AccountBalance(node.id, debit_total=debit, credit_total=credit)
            continue
        opening = openings.get(node.id, 0.0)
        own[node.id] = AccountBalance(
            account_id=node.id,
            opening=opening,
            debit_total=debit,
            credit_total=credit,
            own_balance=opening + signed_balance(node.normal_balance, debit, credit),
        )

    common.logger.debug(
        f"Balance pass: {len(own)} accounts, {len(totals)} with activity, as_of={as_of}, start={start_date}"
    )
    return BalanceRun(tree, own).rollup_all()


def get_account_balance(account_id, as_of: Optional[date] = None) -> float:
    """
    Own balance of a single account at as_of. Read path: any failure to
    resolve the account or its type yields 0.0.
    """
    try:
        row = (
            db.session.query(AccountType.normal_balance)
            .select_from(Account)
            .join(AccountType, Account.account_type_id == AccountType.id)
            .filter(Account.id == account_id)
            .one_or_none()
        )
        if row is None:
            common.logger.warning(f"Account {account_id} has no resolvable type; balance treated as 0")
            return 0.0

        debit, credit = line_totals(end_date=as_of, account_ids=[account_id]).get(account_id, (0.0, 0.0))
        opening = opening_balances([account_id]).get(account_id, 0.0)
        return opening + signed_balance(row.normal_balance, debit, credit)
    except SQLAlchemyError as exc:
        common.logger.warning(f"Error getting balance for account {account_id}: {exc}")
        return 0.0


def get_all_account_balances(as_of: Optional[date] = None) -> Dict[int, Dict[str, float]]:
    """{account_id: {"own_balance", "total_balance"}}; empty dict on store failure."""
    try:
        return compute_balances(as_of=as_of).as_dict()
    except SQLAlchemyError as exc:
        common.logger.warning(f"Error getting all account balances: {exc}")
        return {}
