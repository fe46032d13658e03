# LedgerApp/app/services/accounts.py
from __future__ import annotations

import re
import time
from typing import Any, Dict, List, Optional

from LedgerApp.app import common
from LedgerApp.app.accounting_db import db, commit_or_raise
from LedgerApp.app.errors import ConstraintError, CycleError, NotFoundError, ValidationError
from LedgerApp.app.models.account import Account, EXPENSE_CATEGORIES
from LedgerApp.app.models.account_type import AccountType, CASH_FLOW_CATEGORIES, NORMAL_BALANCES
from LedgerApp.app.models.journal_entry_line import JournalEntryLine
from LedgerApp.app.models.opening_balance import OpeningBalance
from LedgerApp.app.services.account_tree import AccountNode, AccountTree

# Leading digit for generated codes, keyed by account type name
TYPE_CODE_PREFIX = {
    "asset": "1", "assets": "1",
    "liability": "2", "liabilities": "2",
    "equity": "3",
    "revenue": "4", "revenues": "4", "income": "4",
    "expense": "5", "expenses": "5",
}

CODE_PAD = 5
CODE_MAX_ATTEMPTS = 10

_UNSET = object()


def _clean_category(value, allowed):
    """Unknown / 'none' / empty values are stored as NULL."""
    if isinstance(value, str) and value.strip().lower() in allowed:
        return value.strip().lower()
    return None


# ---- Account types ----

def get_account_types(include_inactive=False) -> List[AccountType]:
    query = db.session.query(AccountType)
    if not include_inactive:
        query = query.filter(AccountType.is_active.is_(True))
    return query.order_by(AccountType.name).all()


def get_account_type(account_type_id) -> AccountType:
    acct_type = db.session.get(AccountType, account_type_id)
    if acct_type is None:
        raise NotFoundError(f"Account type not found: {account_type_id}")
    return acct_type


def create_account_type(name, normal_balance, description=None, cash_flow_category=None, is_system=False) -> AccountType:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Account type name is required")
    if normal_balance not in NORMAL_BALANCES:
        raise ValidationError(f"normal_balance must be one of {NORMAL_BALANCES}, got {normal_balance!r}")

    acct_type = AccountType(
        name=name,
        description=(description or "").strip() or None,
        normal_balance=normal_balance,
        cash_flow_category=_clean_category(cash_flow_category, CASH_FLOW_CATEGORIES),
        is_system=bool(is_system),
        is_active=True,
    )
    db.session.add(acct_type)
    commit_or_raise(f"create account type {name!r}")
    common.logger.info(f"Created account type {acct_type.name} ({acct_type.normal_balance}-normal)")
    return acct_type


def update_account_type(account_type_id, name=None, normal_balance=None, description=_UNSET, cash_flow_category=_UNSET) -> AccountType:
    acct_type = get_account_type(account_type_id)

    if normal_balance is not None and normal_balance != acct_type.normal_balance:
        if normal_balance not in NORMAL_BALANCES:
            raise ValidationError(f"normal_balance must be one of {NORMAL_BALANCES}, got {normal_balance!r}")
        in_use = (
            db.session.query(Account.id)
            .filter(Account.account_type_id == acct_type.id)
            .first()
        )
        if in_use:
            raise ConstraintError(
                f"Cannot change normal balance of account type {acct_type.name!r} while accounts use it"
            )
        acct_type.normal_balance = normal_balance

    if name is not None:
        if not name.strip():
            raise ValidationError("Account type name is required")
        acct_type.name = name.strip()
    if description is not _UNSET:
        acct_type.description = (description or "").strip() or None
    if cash_flow_category is not _UNSET:
        acct_type.cash_flow_category = _clean_category(cash_flow_category, CASH_FLOW_CATEGORIES)

    commit_or_raise(f"update account type {account_type_id}")
    return acct_type


def delete_account_type(account_type_id) -> None:
    acct_type = get_account_type(account_type_id)
    in_use = (
        db.session.query(Account.id)
        .filter(Account.account_type_id == acct_type.id)
        .filter(Account.is_active.is_(True))
        .first()
    )
    if in_use:
        raise ConstraintError("Cannot delete account type that is being used by accounts")

    acct_type.is_active = False
    commit_or_raise(f"delete account type {account_type_id}")
    common.logger.info(f"Account type {acct_type.name} marked inactive")


# ---- Accounts ----

def get_accounts(include_inactive=False) -> List[Account]:
    query = db.session.query(Account)
    if not include_inactive:
        query = query.filter(Account.is_active.is_(True))
    return query.order_by(Account.code).all()


def _active_parent(parent_account_id) -> Account:
    parent = get_account(parent_account_id)
    if not parent.is_active:
        raise ValidationError(f"Parent account {parent.code} is inactive")
    return parent


def get_account(account_id) -> Account:
    """
    Return a single Account by ID, or raise NotFoundError.
    """
    account = db.session.get(Account, account_id)
    if account is None:
        raise NotFoundError(f"Account not found: {account_id}")
    return account


def get_account_by_code(code) -> Optional[Account]:
    return db.session.query(Account).filter(Account.code == code).one_or_none()


def children(account_id) -> List[AccountNode]:
    get_account(account_id)
    return AccountTree.load().children(account_id)


def descendants(account_id) -> List[AccountNode]:
    get_account(account_id)
    return AccountTree.load().descendants(account_id)


def account_path(account_id) -> str:
    get_account(account_id)
    return AccountTree.load(include_inactive=True).path(account_id)


def get_hierarchical_chart() -> List[Dict[str, Any]]:
    return AccountTree.load().as_nested()


def generate_account_code(account_type_id, parent_account_id=None) -> str:
    acct_type = db.session.get(AccountType, account_type_id) if account_type_id else None
    base = TYPE_CODE_PREFIX.get((acct_type.name or "").strip().lower(), "9") if acct_type else "9"

    if parent_account_id:
        parent = db.session.get(Account, parent_account_id)
        if parent is not None and parent.code:
            base = parent.code

    # every code (active or not) counts, soft-deleted codes are never reused
    existing = db.session.query(Account.code).filter(Account.code.like(base + "%")).all()
    pattern = re.compile(rf"^{re.escape(base)}(\d+)$")
    numbers = [int(m.group(1)) for (code,) in existing if code and (m := pattern.match(code))]
    next_number = max(numbers) + 1 if numbers else 1

    for _ in range(CODE_MAX_ATTEMPTS):
        candidate = f"{base}{next_number:0{CODE_PAD}d}"
        if get_account_by_code(candidate) is None:
            return candidate
        next_number += 1

    fallback = base + str(int(time.time() * 1000))[-6:]
    common.logger.warning(f"Used timestamp fallback for account code: {fallback}")
    return fallback


def create_account(
    name,
    account_type_id,
    code=None,
    parent_account_id=None,
    description=None,
    cash_flow_category=None,
    expense_category=None,
) -> Account:
    """
    Insert an account under parent_account_id (or as a root).

    The account type must exist and be active; the parent must exist and be active. A new
    account has no descendants, so it cannot close a loop.
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("Account name is required")

    acct_type = db.session.get(AccountType, account_type_id) if account_type_id is not None else None
    if acct_type is None:
        raise NotFoundError(f"Account type not found: {account_type_id}")
    if not acct_type.is_active:
        raise ValidationError(f"Account type {acct_type.name!r} is inactive")

    if parent_account_id is not None:
        _active_parent(parent_account_id)

    code = (code or "").strip() or generate_account_code(account_type_id, parent_account_id)
    if get_account_by_code(code) is not None:
        raise ValidationError(f"Account code already exists: {code}")

    flow = _clean_category(cash_flow_category, CASH_FLOW_CATEGORIES)
    if flow is None and cash_flow_category is None:
        # only an unspecified category inherits from the type, an explicit "none" stays NULL
        flow = acct_type.cash_flow_category

    account = Account(
        code=code,
        name=name,
        description=(description or "").strip() or None,
        account_type_id=acct_type.id,
        parent_account_id=parent_account_id,
        cash_flow_category=flow,
        expense_category=_clean_category(expense_category, EXPENSE_CATEGORIES),
        is_active=True,
    )
    db.session.add(account)
    commit_or_raise(f"create account {code}")
    common.logger.info(f"Created account {account.code} {account.name} (parent={parent_account_id})")
    return account


def reparent(account_id, new_parent_id) -> None:
    """Move account_id under new_parent_id (None makes it a root)."""
    account = get_account(account_id)
    if new_parent_id is not None:
        _active_parent(new_parent_id)

    tree = AccountTree.load(include_inactive=True)
    if tree.would_create_cycle(account.id, new_parent_id):
        raise CycleError(
            f"Cannot move account {account.code} under {new_parent_id}: it is the account itself or one of its descendants"
        )

    account.parent_account_id = new_parent_id
    commit_or_raise(f"reparent account {account.code}")
    common.logger.info(f"Account {account.code} moved under parent {new_parent_id}")


def update_account(account_id, **changes) -> Account:
    account = get_account(account_id)

    if "parent_account_id" in changes:
        new_parent = changes.pop("parent_account_id")
        if new_parent != account.parent_account_id:
            reparent(account.id, new_parent)

    if "code" in changes:
        code = (changes.pop("code") or "").strip()
        if not code:
            raise ValidationError("Account code cannot be empty")
        other = get_account_by_code(code)
        if other is not None and other.id != account.id:
            raise ValidationError(f"Account code already exists: {code}")
        account.code = code

    if "name" in changes:
        name = (changes.pop("name") or "").strip()
        if not name:
            raise ValidationError("Account name is required")
        account.name = name

    if "description" in changes:
        account.description = (changes.pop("description") or "").strip() or None

    if "account_type_id" in changes:
        type_id = changes.pop("account_type_id")
        acct_type = db.session.get(AccountType, type_id) if type_id is not None else None
        if acct_type is None:
            raise NotFoundError(f"Account type not found: {type_id}")
        account.account_type_id = acct_type.id

    if "cash_flow_category" in changes:
        account.cash_flow_category = _clean_category(changes.pop("cash_flow_category"), CASH_FLOW_CATEGORIES)

    if "expense_category" in changes:
        account.expense_category = _clean_category(changes.pop("expense_category"), EXPENSE_CATEGORIES)

    if changes:
        raise ValidationError(f"Unknown account fields: {', '.join(sorted(changes))}")

    commit_or_raise(f"update account {account.code}")
    return account


def is_deletable(account_id) -> bool:
    """True iff the account has no active children, no ledger lines and no carried-in balance."""
    get_account(account_id)

    has_children = (
        db.session.query(Account.id)
        .filter(Account.parent_account_id == account_id)
        .filter(Account.is_active.is_(True))
        .first()
    )
    if has_children:
        return False

    has_lines = (
        db.session.query(JournalEntryLine.id)
        .filter(JournalEntryLine.account_id == account_id)
        .first()
    )
    if has_lines:
        return False

    has_opening = (
        db.session.query(OpeningBalance.id)
        .filter(OpeningBalance.account_id == account_id)
        .filter(OpeningBalance.balance != 0)
        .first()
    )
    return not has_opening


def delete_account(account_id) -> None:
    """Soft delete: history keeps resolving the account's code, name and type."""
    if not is_deletable(account_id):
        raise ConstraintError("Account cannot be deleted because it has transactions, an opening balance or sub-accounts")

    account = get_account(account_id)
    account.is_active = False
    commit_or_raise(f"delete account {account.code}")
    common.logger.info(f"Account {account.code} marked inactive")
