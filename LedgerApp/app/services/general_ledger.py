# LedgerApp/app/services/general_ledger.py
from __future__ import annotations

from typing import Any, Dict, List

from LedgerApp.app import common
from LedgerApp.app.accounting_db import db
from LedgerApp.app.errors import NotFoundError
from LedgerApp.app.models.account import Account
from LedgerApp.app.models.journal_entry import JournalEntry
from LedgerApp.app.models.journal_entry_line import JournalEntryLine
from LedgerApp.app.services.account_tree import AccountTree
from LedgerApp.app.services.balances import get_account_balance, opening_balances, signed_balance
from LedgerApp.app.utils.dates import day_before, parse_iso_date
from LedgerApp.app.utils.money import money


def _ledger_rows(account_ids: List[int], start_date=None, end_date=None):
    query = (
        db.session.query(
            JournalEntryLine.id.label("line_id"),
            JournalEntryLine.account_id,
            JournalEntryLine.debit_amount,
            JournalEntryLine.credit_amount,
            JournalEntryLine.description.label("line_description"),
            JournalEntry.id.label("entry_id"),
            JournalEntry.entry_number,
            JournalEntry.entry_date,
            JournalEntry.description.label("entry_description"),
            JournalEntry.reference,
            Account.code.label("account_code"),
            Account.name.label("account_name"),
        )
        .join(JournalEntry, JournalEntryLine.journal_entry_id == JournalEntry.id)
        .join(Account, JournalEntryLine.account_id == Account.id)
        .filter(JournalEntryLine.account_id.in_(account_ids))
    )
    if start_date:
        query = query.filter(JournalEntry.entry_date >= start_date)
    if end_date:
        query = query.filter(JournalEntry.entry_date <= end_date)
    return query.order_by(JournalEntry.entry_date, JournalEntryLine.id).all()


def get_general_ledger(account_id, start_date=None, end_date=None) -> Dict[str, Any]:
    """Lines posted to the account and all of its descendants, oldest first."""
    start_date = parse_iso_date(start_date)
    end_date = parse_iso_date(end_date)

    tree = AccountTree.load(include_inactive=True)
    node = tree.get(account_id)
    if node is None:
        raise NotFoundError(f"Account not found: {account_id}")

    rows = _ledger_rows(tree.subtree_ids(account_id), start_date, end_date)
    common.logger.debug(f"General ledger rows for account {account_id}: {len(rows)}")

    lines = [
        {
            "line_id": r.line_id,
            "entry_id": r.entry_id,
            "entry_number": r.entry_number,
            "entry_date": r.entry_date.isoformat() if r.entry_date else None,
            "entry_description": r.entry_description,
            "reference": r.reference,
            "description": r.line_description or r.entry_description,
            "account_id": r.account_id,
            "account_code": r.account_code,
            "account_name": r.account_name,
            "is_child_account": r.account_id != account_id,
            "debit_amount": money(r.debit_amount),
            "credit_amount": money(r.credit_amount),
        }
        for r in rows
    ]

    return {
        "account": {"id": node.id, "code": node.code, "name": node.name, "type": node.type_name},
        "start_date": start_date.isoformat() if start_date else None,
        "end_date": end_date.isoformat() if end_date else None,
        "lines": lines,
        "total_debits": money(sum(l["debit_amount"] for l in lines)),
        "total_credits": money(sum(l["credit_amount"] for l in lines)),
    }


def _detail(tree: AccountTree, node, start_date, end_date) -> Dict[str, Any]:
    if start_date:
        opening = get_account_balance(node.id, day_before(start_date))
    else:
        opening = opening_balances([node.id]).get(node.id, 0.0) if node.has_type else 0.0

    running = opening
    transactions = []
    total_debits = total_credits = 0.0
    for r in _ledger_rows([node.id], start_date, end_date):
        debit = float(r.debit_amount or 0.0)
        credit = float(r.credit_amount or 0.0)
        total_debits += debit
        total_credits += credit
        running += signed_balance(node.normal_balance, debit, credit)
        transactions.append({
            "line_id": r.line_id,
            "entry_id": r.entry_id,
            "entry_number": r.entry_number,
            "entry_date": r.entry_date.isoformat() if r.entry_date else None,
            "description": r.line_description or r.entry_description,
            "reference": r.reference,
            "debit_amount": money(debit),
            "credit_amount": money(credit),
            "running_balance": money(running),
        })

    return {
        "account": {
            "id": node.id,
            "code": node.code,
            "name": node.name,
            "type": node.type_name,
            "normal_balance": node.normal_balance,
            "path": tree.path(node.id),
            "level": tree.level(node.id),
        },
        "transactions": transactions,
        "summary": {
            "opening_balance": money(opening),
            "total_debits": money(total_debits),
            "total_credits": money(total_credits),
            "net_change": money(signed_balance(node.normal_balance, total_debits, total_credits)),
            "closing_balance": money(running),
            "transaction_count": len(transactions),
        },
        "sub_accounts": [
            _detail(tree, child, start_date, end_date)
            for child in tree.children(node.id)
            if child.is_active
        ],
    }


def get_account_detail_report(account_id, start_date=None, end_date=None) -> Dict[str, Any]:
    """
    Per-line running balance of one account (own postings only), plus the same
    report for each active sub-account.
    """
    start_date = parse_iso_date(start_date)
    end_date = parse_iso_date(end_date)

    tree = AccountTree.load(include_inactive=True)
    node = tree.get(account_id)
    if node is None:
        raise NotFoundError(f"Account not found: {account_id}")

    report = _detail(tree, node, start_date, end_date)
    report["start_date"] = start_date.isoformat() if start_date else None
    report["end_date"] = end_date.isoformat() if end_date else None
    return report
