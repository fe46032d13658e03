# LedgerApp/app/services/account_tree.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from LedgerApp.app.accounting_db import db
from LedgerApp.app.models.account import Account
from LedgerApp.app.models.account_type import AccountType


@dataclass
class AccountNode:
    """
    Detached snapshot of one account plus the type fields the reports need.

    type_name / normal_balance are None when the account's type cannot be
    resolved (dangling or missing account_type_id). Such accounts still sit in
    the tree but carry a zero own balance.
    """
    id: int
    code: str
    name: str
    parent_account_id: Optional[int]
    account_type_id: Optional[int]
    type_name: Optional[str] = None
    normal_balance: Optional[str] = None
    type_cash_flow_category: Optional[str] = None
    cash_flow_category: Optional[str] = None
    expense_category: Optional[str] = None
    description: Optional[str] = None
    is_active: bool = True
    children: List[int] = field(default_factory=list)

    @property
    def has_type(self) -> bool:
        return self.normal_balance in ("debit", "credit")


class AccountTree:
    """
    In-memory forest built from one read of `accounts` + `account_types`.

    Children lists are ordered by code (plain string compare). Accounts whose
    parent is not part of the snapshot are promoted to roots so their balances
    still show up somewhere.
    """

    def __init__(self, nodes: Iterable[AccountNode]):
        self.nodes: Dict[int, AccountNode] = {}
        for node in sorted(nodes, key=lambda n: n.code or ""):
            node.children = []
            self.nodes[node.id] = node

        self.roots: List[int] = []
        for node in self.nodes.values():
            parent = self.nodes.get(node.parent_account_id) if node.parent_account_id else None
            if parent is None or parent.id == node.id:
                self.roots.append(node.id)
            else:
                parent.children.append(node.id)

        self._break_loops()

    def _break_loops(self) -> None:
        """
        Rows that already form a parent loop in storage are unreachable from
        any root. Promote the lowest-coded stranded account to a root (dropping
        its parent link in this snapshot) until every account is reachable.
        """
        reached = set()
        stack = list(self.roots)
        while True:
            while stack:
                node_id = stack.pop()
                if node_id in reached:
                    continue
                reached.add(node_id)
                stack.extend(self.nodes[node_id].children)

            stranded = [n for n in self.nodes.values() if n.id not in reached]
            if not stranded:
                return

            node = stranded[0]
            parent = self.nodes.get(node.parent_account_id)
            if parent is not None and node.id in parent.children:
                parent.children.remove(node.id)
            self.roots.append(node.id)
            self.roots.sort(key=lambda i: self.nodes[i].code or "")
            stack = [node.id]

    @classmethod
    def load(cls, include_inactive: bool = False) -> "AccountTree":
        query = (
            db.session.query(Account, AccountType)
            .outerjoin(AccountType, Account.account_type_id == AccountType.id)
            .order_by(Account.code)
        )
        if not include_inactive:
            query = query.filter(Account.is_active.is_(True))

        nodes = []
        for acct, acct_type in query.all():
            nodes.append(AccountNode(
                id=acct.id,
                code=acct.code,
                name=acct.name,
                parent_account_id=acct.parent_account_id,
                account_type_id=acct.account_type_id,
                type_name=acct_type.name if acct_type else None,
                normal_balance=acct_type.normal_balance if acct_type else None,
                type_cash_flow_category=acct_type.cash_flow_category if acct_type else None,
                cash_flow_category=acct.cash_flow_category,
                expense_category=acct.expense_category,
                description=acct.description,
                is_active=bool(acct.is_active),
            ))
        return cls(nodes)

    def __contains__(self, account_id) -> bool:
        return account_id in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def get(self, account_id) -> Optional[AccountNode]:
        return self.nodes.get(account_id)

    def ordered(self) -> List[AccountNode]:
        return list(self.nodes.values())

    def root_nodes(self) -> List[AccountNode]:
        return [self.nodes[i] for i in self.roots]

    def children(self, account_id) -> List[AccountNode]:
        node = self.nodes.get(account_id)
        if node is None:
            return []
        return [self.nodes[c] for c in node.children]

    def descendants(self, account_id) -> List[AccountNode]:
        """Transitive closure below account_id, ordered by code."""
        out: List[AccountNode] = []
        seen = {account_id}
        stack = list(reversed(self.nodes[account_id].children)) if account_id in self.nodes else []
        while stack:
            child_id = stack.pop()
            if child_id in seen:
                continue
            seen.add(child_id)
            out.append(self.nodes[child_id])
            stack.extend(reversed(self.nodes[child_id].children))
        return sorted(out, key=lambda n: n.code or "")

    def subtree_ids(self, account_id) -> List[int]:
        return [account_id] + [n.id for n in self.descendants(account_id)]

    def ancestors(self, account_id) -> List[AccountNode]:
        """Parent first, root last. Stops after len(tree) hops."""
        out: List[AccountNode] = []
        node = self.nodes.get(account_id)
        steps = 0
        while node is not None and node.parent_account_id and steps < len(self.nodes):
            node = self.nodes.get(node.parent_account_id)
            if node is None or node.id == account_id:
                break
            out.append(node)
            steps += 1
        return out

    def level(self, account_id) -> int:
        return len(self.ancestors(account_id)) + 1

    def path(self, account_id, sep: str = " > ") -> str:
        node = self.nodes.get(account_id)
        if node is None:
            return ""
        names = [a.name for a in reversed(self.ancestors(account_id))] + [node.name]
        return sep.join(names)

    def has_children(self, account_id) -> bool:
        node = self.nodes.get(account_id)
        return bool(node and node.children)

    def would_create_cycle(self, account_id, new_parent_id) -> bool:
        if new_parent_id is None:
            return False
        if new_parent_id == account_id:
            return True
        return any(n.id == new_parent_id for n in self.descendants(account_id))

    def as_nested(self, account_id=None) -> List[dict]:
        ids = self.roots if account_id is None else self.nodes[account_id].children
        return [
            {
                "id": n.id,
                "code": n.code,
                "name": n.name,
                "account_type": n.type_name,
                "parent_account_id": n.parent_account_id,
                "cash_flow_category": n.cash_flow_category,
                "expense_category": n.expense_category,
                "level": self.level(n.id),
                "children": self.as_nested(n.id),
            }
            for n in (self.nodes[i] for i in ids)
        ]
