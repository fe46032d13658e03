"""
Chart of accounts: tree queries, reparenting, soft delete, code generation
and account type maintenance.
"""

import pytest

from conftest import line
from LedgerApp.app.accounting_db import db
from LedgerApp.app.errors import ConstraintError, CycleError, NotFoundError, ValidationError
from LedgerApp.app.models.account import Account
from LedgerApp.app.services import accounts as account_service
from LedgerApp.app.services import journal_entries
from LedgerApp.app.services.account_tree import AccountNode, AccountTree


def test_children_and_descendants_are_ordered_by_code_as_strings(make_account):
    root = make_account("5000", "Expenses", "Expense")
    make_account("5200", "Rent", "Expense", parent=root)
    make_account("510", "Short code", "Expense", parent=root)
    cogs = make_account("5100", "COGS", "Expense", parent=root)
    make_account("5110", "Freight", "Expense", parent=cogs)

    assert [n.code for n in account_service.children(root.id)] == ["510", "5100", "5200"]
    assert [n.code for n in account_service.descendants(root.id)] == ["510", "5100", "5110", "5200"]


def test_create_account_with_missing_parent_is_not_found(types):
    with pytest.raises(NotFoundError):
        account_service.create_account("Orphan", types["Asset"].id, code="1999", parent_account_id=9999)
    assert db.session.query(Account).count() == 0


def test_create_account_requires_name_and_unique_code(make_account, types):
    make_account("1000", "Cash", "Asset")
    with pytest.raises(ValidationError):
        account_service.create_account("", types["Asset"].id, code="1001")
    with pytest.raises(ValidationError):
        account_service.create_account("Cash again", types["Asset"].id, code="1000")


def test_create_account_rejects_inactive_type(types):
    account_service.delete_account_type(types["Equity"].id)
    with pytest.raises(ValidationError):
        account_service.create_account("Capital", types["Equity"].id, code="3000")


def test_reparent_rejects_self_and_descendants(make_account):
    root = make_account("1000", "Assets", "Asset")
    child = make_account("1100", "Current", "Asset", parent=root)
    grandchild = make_account("1110", "Cash", "Asset", parent=child)

    with pytest.raises(CycleError):
        account_service.reparent(root.id, root.id)
    with pytest.raises(CycleError):
        account_service.reparent(root.id, grandchild.id)

    assert db.session.get(Account, root.id).parent_account_id is None


def test_reparent_moves_subtree_and_to_root(make_account):
    a = make_account("1000", "Assets", "Asset")
    b = make_account("1500", "Fixed", "Asset")
    c = make_account("1510", "Vehicles", "Asset", parent=a)

    account_service.reparent(c.id, b.id)
    assert [n.code for n in account_service.children(b.id)] == ["1510"]
    assert account_service.children(a.id) == []

    account_service.reparent(c.id, None)
    assert db.session.get(Account, c.id).parent_account_id is None


def test_update_account_parent_change_goes_through_cycle_check(make_account):
    root = make_account("1000", "Assets", "Asset")
    child = make_account("1100", "Current", "Asset", parent=root)

    with pytest.raises(CycleError):
        account_service.update_account(root.id, parent_account_id=child.id)

    updated = account_service.update_account(child.id, name="Current Assets", code="1150")
    assert (updated.name, updated.code) == ("Current Assets", "1150")


def test_update_account_rejects_unknown_fields(make_account):
    acct = make_account("1000", "Cash", "Asset")
    with pytest.raises(ValidationError):
        account_service.update_account(acct.id, colour="blue")


def test_is_deletable_and_soft_delete(make_account):
    parent = make_account("1000", "Assets", "Asset")
    cash = make_account("1010", "Cash", "Asset", parent=parent)
    sales = make_account("4000", "Sales", "Revenue")
    spare = make_account("1020", "Petty cash", "Asset", parent=parent)

    journal_entries.create_entry("2024-01-05", "Cash sale", [line(cash, debit=10), line(sales, credit=10)])

    assert account_service.is_deletable(parent.id) is False
    assert account_service.is_deletable(cash.id) is False
    assert account_service.is_deletable(spare.id) is True

    with pytest.raises(ConstraintError):
        account_service.delete_account(cash.id)

    account_service.delete_account(spare.id)
    row = db.session.get(Account, spare.id)
    assert row is not None and row.is_active is False
    assert [n.code for n in account_service.children(parent.id)] == ["1010"]


def test_account_with_opening_balance_is_not_deletable(make_account, set_opening):
    carried = make_account("1030", "Savings", "Asset")
    empty = make_account("1040", "Float", "Asset")
    set_opening(carried, 250)
    set_opening(empty, 0)

    assert account_service.is_deletable(carried.id) is False
    assert account_service.is_deletable(empty.id) is True
    with pytest.raises(ConstraintError):
        account_service.delete_account(carried.id)


def test_inactive_parent_is_rejected(types, make_account):
    old = make_account("1000", "Old assets", "Asset")
    cash = make_account("1100", "Cash", "Asset")
    account_service.delete_account(old.id)

    with pytest.raises(ValidationError):
        make_account("1010", "Till", "Asset", parent=old)
    with pytest.raises(ValidationError):
        account_service.reparent(cash.id, old.id)
    assert db.session.get(Account, cash.id).parent_account_id is None


def test_account_path_and_level(make_account):
    root = make_account("1000", "Assets", "Asset")
    child = make_account("1100", "Current Assets", "Asset", parent=root)
    leaf = make_account("1110", "Cash", "Asset", parent=child)

    assert account_service.account_path(leaf.id) == "Assets > Current Assets > Cash"

    chart = account_service.get_hierarchical_chart()
    assert chart[0]["code"] == "1000" and chart[0]["level"] == 1
    assert chart[0]["children"][0]["children"][0]["level"] == 3


def test_generate_account_code_uses_type_digit_and_parent_code(make_account, types):
    assert account_service.generate_account_code(types["Asset"].id) == "100001"
    assert account_service.generate_account_code(types["Expense"].id) == "500001"

    parent = make_account("1000", "Assets", "Asset")
    make_account("100000001", "Existing", "Asset", parent=parent)
    assert account_service.generate_account_code(types["Asset"].id, parent.id) == "100000002"


def test_generate_account_code_for_unknown_type_uses_nine(types):
    other = account_service.create_account_type("Memo", "debit")
    assert account_service.generate_account_code(other.id).startswith("9")


def test_create_account_without_code_generates_one(types):
    acct = account_service.create_account("Bank", types["Asset"].id)
    assert acct.code == "100001"


def test_cash_flow_category_is_inherited_from_type(types):
    loan_type = account_service.create_account_type("Loan", "credit", cash_flow_category="financing")
    inherited = account_service.create_account("Bank loan", loan_type.id, code="2100")
    explicit = account_service.create_account("Other loan", loan_type.id, code="2200", cash_flow_category="none")

    assert inherited.cash_flow_category == "financing"
    assert explicit.cash_flow_category is None


def test_account_type_normal_balance_is_immutable_once_used(types, make_account):
    make_account("1000", "Cash", "Asset")
    with pytest.raises(ConstraintError):
        account_service.update_account_type(types["Asset"].id, normal_balance="credit")

    updated = account_service.update_account_type(types["Liability"].id, normal_balance="debit")
    assert updated.normal_balance == "debit"


def test_account_type_invalid_category_stored_as_null(types):
    acct_type = account_service.create_account_type("Deposits", "debit", cash_flow_category="none")
    assert acct_type.cash_flow_category is None

    acct_type = account_service.update_account_type(acct_type.id, cash_flow_category="Investing")
    assert acct_type.cash_flow_category == "investing"


def test_delete_account_type_in_use_is_blocked(types, make_account):
    make_account("4000", "Sales", "Revenue")
    with pytest.raises(ConstraintError):
        account_service.delete_account_type(types["Revenue"].id)

    account_service.delete_account_type(types["Equity"].id)
    names = [t.name for t in account_service.get_account_types()]
    assert "Equity" not in names and "Revenue" in names


def test_tree_breaks_stored_parent_loops():
    nodes = [
        AccountNode(id=1, code="1000", name="A", parent_account_id=2, account_type_id=None),
        AccountNode(id=2, code="2000", name="B", parent_account_id=1, account_type_id=None),
        AccountNode(id=3, code="3000", name="C", parent_account_id=None, account_type_id=None),
    ]
    tree = AccountTree(nodes)

    assert [n.code for n in tree.root_nodes()] == ["1000", "3000"]
    assert [n.code for n in tree.descendants(1)] == ["2000"]
    assert tree.level(2) <= len(tree)
