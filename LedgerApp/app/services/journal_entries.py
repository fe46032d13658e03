# LedgerApp/app/services/journal_entries.py
from __future__ import annotations

import re
import time
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from LedgerApp.app import common
from LedgerApp.app.accounting_db import db, commit_or_raise
from LedgerApp.app.errors import NotFoundError, StoreError, ValidationError
from LedgerApp.app.models.account import Account
from LedgerApp.app.models.account_type import AccountType
from LedgerApp.app.models.journal_entry import JournalEntry
from LedgerApp.app.models.journal_entry_line import JournalEntryLine
from LedgerApp.app.utils.dates import parse_iso_date
from LedgerApp.app.utils.money import BALANCE_EPSILON, is_balanced, money

ENTRY_NUMBER_RE = re.compile(r"^JE-(\d+)$")
ENTRY_NUMBER_RETRIES = 3
HEADER_FIELDS = ("entry_date", "description", "total_debit", "total_credit", "is_balanced", "updated_at")


def _as_amount(value: Any, field: str, line_no: int) -> float:
    if value in (None, ""):
        return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Line {line_no}: {field} must be a number, got {value!r}")
    if amount < 0:
        raise ValidationError(f"Line {line_no}: negative amounts are not allowed")
    return amount


def _pick(line: Dict[str, Any], *keys):
    for key in keys:
        if key in line:
            return line[key]
    return None


def _normalize_lines(lines) -> List[Dict[str, Any]]:
    """Accepts snake_case, camelCase or short debit/credit keys."""
    if not lines or not isinstance(lines, (list, tuple)):
        raise ValidationError("Journal entry must have at least one line")

    out = []
    for idx, line in enumerate(lines, start=1):
        if not isinstance(line, dict):
            raise ValidationError(f"Line {idx}: expected an object, got {type(line).__name__}")
        account_id = _pick(line, "account_id", "accountId")
        if account_id in (None, ""):
            raise ValidationError(f"Line {idx}: account_id is required")
        try:
            account_id = int(account_id)
        except (TypeError, ValueError):
            raise ValidationError(f"Line {idx}: invalid account_id {account_id!r}")
        out.append({
            "account_id": account_id,
            "debit_amount": _as_amount(_pick(line, "debit_amount", "debitAmount", "debit"), "debit_amount", idx),
            "credit_amount": _as_amount(_pick(line, "credit_amount", "creditAmount", "credit"), "credit_amount", idx),
            "description": (_pick(line, "description", "memo") or "").strip() or None,
        })
    return out


def _validate(entry_date, description, lines):
    """Returns (entry_date, description, normalized lines, total_debit, total_credit)."""
    description = (description or "").strip()
    if not description:
        raise ValidationError("Description is required")

    parsed_date = parse_iso_date(entry_date)
    if parsed_date is None:
        raise ValidationError(f"Missing or invalid entry date {entry_date!r} (expected YYYY-MM-DD)")

    norm = _normalize_lines(lines)

    account_ids = sorted({l["account_id"] for l in norm})
    found = {
        a.id: a
        for a in db.session.query(Account).filter(Account.id.in_(account_ids)).all()
    }
    missing = [str(i) for i in account_ids if i not in found]
    if missing:
        raise ValidationError(f"Accounts not found: {', '.join(missing)}")

    inactive = [found[i].code for i in account_ids if not found[i].is_active]
    if inactive:
        raise ValidationError(f"The following accounts are inactive and cannot be used: {', '.join(inactive)}")

    total_debit = sum(l["debit_amount"] for l in norm)
    total_credit = sum(l["credit_amount"] for l in norm)
    if not is_balanced(total_debit, total_credit):
        raise ValidationError(
            f"Journal entry is not balanced: debit {total_debit:.2f} vs credit {total_credit:.2f} "
            f"(tolerance {BALANCE_EPSILON})"
        )

    return parsed_date, description, norm, total_debit, total_credit


def _timestamp_entry_number() -> str:
    return f"JE-{str(int(time.time() * 1000))[-6:]}"


def next_entry_number() -> str:
    """
    Next "JE-%03d" after the most recently created entry.

    Advisory only: two writers can read the same last number. A number that
    is already taken falls back to a time-derived suffix; the unique
    constraint on entry_number is the final guard.
    """
    last = (
        db.session.query(JournalEntry.entry_number)
        .order_by(JournalEntry.created_at.desc(), JournalEntry.id.desc())
        .first()
    )
    if last is None:
        return "JE-001" if not _entry_number_taken("JE-001") else "JE-002"

    match = ENTRY_NUMBER_RE.match(last.entry_number or "")
    if not match:
        return _timestamp_entry_number()

    candidate = f"JE-{int(match.group(1)) + 1:03d}"
    if _entry_number_taken(candidate):
        fallback = _timestamp_entry_number()
        common.logger.warning(f"Entry number {candidate} already taken, using fallback {fallback}")
        return fallback
    return candidate


def _entry_number_taken(number: str) -> bool:
    return db.session.query(JournalEntry.id).filter(JournalEntry.entry_number == number).first() is not None


def _insert_lines(entry: JournalEntry, lines: List[Dict[str, Any]], default_description: str) -> None:
    for idx, line in enumerate(lines, start=1):
        db.session.add(
            JournalEntryLine(
                journal_entry_id=entry.id,
                account_id=line["account_id"],
                debit_amount=line["debit_amount"],
                credit_amount=line["credit_amount"],
                line_number=idx,
                description=line["description"] or default_description,
            )
        )
    db.session.flush()


def _write_header(entry: JournalEntry, atomic: bool) -> None:
    """Persist the header so it has an id; retries the entry number on a unique clash."""
    for attempt in range(ENTRY_NUMBER_RETRIES):
        db.session.add(entry)
        try:
            if atomic:
                db.session.flush()
            else:
                db.session.commit()
            return
        except IntegrityError:
            db.session.rollback()
            entry.entry_number = _timestamp_entry_number() + (str(attempt) if attempt else "")
            common.logger.warning(f"Entry number clash, retrying with {entry.entry_number}")
        except SQLAlchemyError as exc:
            db.session.rollback()
            common.logger.error(f"Error creating journal entry header: {exc}")
            raise StoreError(f"Failed to create journal entry: {exc.__class__.__name__}") from exc
    raise StoreError("Failed to allocate a unique entry number")


def create_entry(entry_date, description, lines, reference=None) -> int:
    """
    Validate and persist a balanced journal entry, returning its id.

    Validation failures raise ValidationError before anything is written.
    With LEDGER_ATOMIC_WRITES the header and lines share one transaction.
    Otherwise the header is committed first and deleted again if the lines
    cannot be written.
    """
    entry_date, description, norm, total_debit, total_credit = _validate(entry_date, description, lines)
    atomic = bool(common.config_value("LEDGER_ATOMIC_WRITES", True))

    entry = JournalEntry(
        entry_number=next_entry_number(),
        entry_date=entry_date,
        description=description,
        reference=(reference or "").strip() or None,
        total_debit=total_debit,
        total_credit=total_credit,
        is_balanced=True,
        created_at=datetime.utcnow(),
    )
    _write_header(entry, atomic)
    entry_id = entry.id
    common.logger.debug(f"Journal entry header {entry.entry_number} written (id={entry_id}, atomic={atomic})")

    try:
        _insert_lines(entry, norm, description)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        common.logger.error(f"Error creating journal entry lines for {entry_id}: {exc}")
        if not atomic:
            _delete_orphan_header(entry_id)
        raise StoreError(f"Failed to create journal entry lines: {exc.__class__.__name__}") from exc

    common.logger.info(f"Journal entry {entry.entry_number} created with {len(norm)} lines")
    return entry_id


def _delete_orphan_header(entry_id: int) -> None:
    """Best-effort compensating delete of a header whose lines failed."""
    try:
        db.session.query(JournalEntryLine).filter(JournalEntryLine.journal_entry_id == entry_id).delete()
        db.session.query(JournalEntry).filter(JournalEntry.id == entry_id).delete()
        db.session.commit()
        common.logger.warning(f"Removed journal entry header {entry_id} after failed line insert")
    except SQLAlchemyError as exc:
        db.session.rollback()
        common.logger.error(f"Could not clean up journal entry header {entry_id}: {exc}")


def _restore_header(entry_id: int, previous: Dict[str, Any]) -> None:
    """Best-effort write-back of header fields committed before a failed line replace."""
    try:
        db.session.query(JournalEntry).filter(JournalEntry.id == entry_id).update(previous)
        db.session.commit()
        common.logger.warning(f"Restored journal entry header {entry_id} after failed line replace")
    except SQLAlchemyError as exc:
        db.session.rollback()
        common.logger.error(f"Could not restore journal entry header {entry_id}: {exc}")


def _get_entry_model(entry_id) -> JournalEntry:
    entry = db.session.get(JournalEntry, entry_id)
    if entry is None:
        raise NotFoundError(f"Journal entry not found: {entry_id}")
    return entry


def update_entry(entry_id, entry_date, description, lines) -> None:
    """
    Replace the header fields and every line of an entry.

    Destructive replace, not a diff: concurrent updates of the same entry are
    last-write-wins.
    """
    entry = _get_entry_model(entry_id)
    entry_date, description, norm, total_debit, total_credit = _validate(entry_date, description, lines)
    atomic = bool(common.config_value("LEDGER_ATOMIC_WRITES", True))
    previous = {field: getattr(entry, field) for field in HEADER_FIELDS}

    entry.entry_date = entry_date
    entry.description = description
    entry.total_debit = total_debit
    entry.total_credit = total_credit
    entry.is_balanced = is_balanced(total_debit, total_credit)
    entry.updated_at = datetime.utcnow()

    try:
        if atomic:
            db.session.flush()
        else:
            db.session.commit()

        db.session.query(JournalEntryLine).filter(JournalEntryLine.journal_entry_id == entry.id).delete()
        db.session.expire(entry, ["lines"])
        _insert_lines(entry, norm, description)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        common.logger.error(f"Error updating journal entry {entry_id}: {exc}")
        if not atomic:
            _restore_header(entry_id, previous)
        raise StoreError(f"Failed to update journal entry: {exc.__class__.__name__}") from exc

    common.logger.info(f"Journal entry {entry.entry_number} updated with {len(norm)} lines")


def reverse_entry(entry_id) -> None:
    """Swap debit and credit on every line and on the header totals."""
    entry = _get_entry_model(entry_id)
    lines = (
        db.session.query(JournalEntryLine)
        .filter(JournalEntryLine.journal_entry_id == entry.id)
        .order_by(JournalEntryLine.line_number)
        .all()
    )
    if not lines:
        raise NotFoundError(f"No journal entry lines found for entry {entry_id}")

    for line in lines:
        line.debit_amount, line.credit_amount = line.credit_amount, line.debit_amount

    entry.total_debit = sum(float(l.debit_amount or 0.0) for l in lines)
    entry.total_credit = sum(float(l.credit_amount or 0.0) for l in lines)
    entry.is_balanced = is_balanced(entry.total_debit, entry.total_credit)
    entry.updated_at = datetime.utcnow()

    commit_or_raise(f"reverse journal entry {entry_id}")
    common.logger.info(f"Journal entry {entry.entry_number} reversed")


# ---- reads ----

def _line_rows(entry_ids: List[int]) -> Dict[int, List[Dict[str, Any]]]:
    if not entry_ids:
        return {}
    rows = (
        db.session.query(JournalEntryLine, Account, AccountType)
        .outerjoin(Account, JournalEntryLine.account_id == Account.id)
        .outerjoin(AccountType, Account.account_type_id == AccountType.id)
        .filter(JournalEntryLine.journal_entry_id.in_(entry_ids))
        .order_by(JournalEntryLine.journal_entry_id, JournalEntryLine.line_number)
        .all()
    )
    out: Dict[int, List[Dict[str, Any]]] = {}
    for line, account, acct_type in rows:
        out.setdefault(line.journal_entry_id, []).append({
            "id": line.id,
            "journal_entry_id": line.journal_entry_id,
            "account_id": line.account_id,
            "account_code": account.code if account else None,
            "account_name": account.name if account else None,
            "account_type": acct_type.name if acct_type else None,
            "description": line.description,
            "debit_amount": money(line.debit_amount),
            "credit_amount": money(line.credit_amount),
            "line_number": line.line_number,
        })
    return out


def get_entry(entry_id) -> Dict[str, Any]:
    entry = _get_entry_model(entry_id)
    result = entry.to_dict()
    result["lines"] = _line_rows([entry.id]).get(entry.id, [])
    return result


def list_entries(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    search: Optional[str] = None,
    account_type: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Entries newest first, each with its lines. `search` matches description,
    entry number, reference or any line's account code / name.
    """
    query = db.session.query(JournalEntry)

    start_date = parse_iso_date(start_date)
    end_date = parse_iso_date(end_date)
    if start_date:
        query = query.filter(JournalEntry.entry_date >= start_date)
    if end_date:
        query = query.filter(JournalEntry.entry_date <= end_date)

    if search:
        like = f"%{search.strip()}%"
        matching_lines = (
            db.session.query(JournalEntryLine.journal_entry_id)
            .join(Account, JournalEntryLine.account_id == Account.id)
            .filter(or_(Account.name.ilike(like), Account.code.ilike(like)))
        )
        query = query.filter(or_(
            JournalEntry.description.ilike(like),
            JournalEntry.entry_number.ilike(like),
            JournalEntry.reference.ilike(like),
            JournalEntry.id.in_(matching_lines),
        ))

    if account_type and account_type != "All Types":
        typed_lines = (
            db.session.query(JournalEntryLine.journal_entry_id)
            .join(Account, JournalEntryLine.account_id == Account.id)
            .join(AccountType, Account.account_type_id == AccountType.id)
            .filter(AccountType.name == account_type)
        )
        query = query.filter(JournalEntry.id.in_(typed_lines))

    entries = query.order_by(JournalEntry.entry_date.desc(), JournalEntry.id.desc()).all()
    lines_by_entry = _line_rows([e.id for e in entries])

    common.logger.debug(f"Fetched {len(entries)} journal entries (start={start_date}, end={end_date}, search={search!r})")

    result = []
    for entry in entries:
        row = entry.to_dict()
        row["lines"] = lines_by_entry.get(entry.id, [])
        result.append(row)
    return result
