import logging
import re
from abc import ABC, abstractmethod
from typing import List, Optional

import sqlglot
from sqlglot.errors import TokenError

from app.core.exceptions import SecurityViolation
from app.core.security import SUPER_ADMIN_ROLE, CallerSession

# -----------------------------------------------------------------------------
# SQL GUARD MODULE
# Purpose: decide whether a model-written query may run for the caller.
# Why: the query text comes from the model, so tenant isolation is checked here
# before anything touches the database.
# -----------------------------------------------------------------------------

logger = logging.getLogger(__name__)


def strip_sql_comments(sql_query: str) -> str:
    """
    Rebuild the query from its Postgres tokens, leaving comments out.

    The tokenizer knows string literals, so `'--'` or `'%/*%'` stay part of
    the value they belong to. Token gaps (whitespace or comments) become a
    single space.

    Raises:
        TokenError: the query cannot be lexed, e.g. an unterminated literal.
    """
    pieces = []
    previous_end = -1
    for token in sqlglot.tokenize(sql_query, read="postgres"):
        if token.start > previous_end + 1:
            pieces.append(" ")
        pieces.append(sql_query[token.start : token.end + 1])
        previous_end = token.end
    return "".join(pieces)


def tenant_predicate_pattern(tenant_id: str) -> re.Pattern:
    """
    Match `tenant_id = 'X'` in the tolerated spellings.

    Accepts single or double quotes, any whitespace around `=`, and a table
    qualifier (`o.tenant_id`). The tenant literal must match exactly and be
    closed by the same quote it was opened with, so `'T1'` never matches `'T10'`.
    """
    return re.compile(
        r"(?<![\w])(?i:tenant_id)\s*=\s*(['\"])" + re.escape(tenant_id) + r"\1"
    )


class AccessPolicy(ABC):
    """Base for the two ways a staff session may read the store."""

    name = "base"
    cross_tenant = False

    @abstractmethod
    def security_clause(self, tenant_id: Optional[str]) -> str:
        ...

    @abstractmethod
    def example_queries(self, tenant_id: Optional[str]) -> List[str]:
        ...

    @abstractmethod
    def authorize(self, sql_query: str, tenant_id: Optional[str]) -> None:
        ...


class UnrestrictedPolicy(AccessPolicy):
    """Super-admin: any read query, across every tenant."""

    name = "unrestricted"
    cross_tenant = True

    def security_clause(self, tenant_id):
        return (
            "As a superadmin, you have access to all data across all tenants. "
            "You may query any table without tenant_id restrictions."
        )

    def example_queries(self, tenant_id):
        return [
            "To get all pending orders: "
            "SELECT * FROM orders WHERE status = 'pending';",
            "To get top customers across all tenants: "
            "SELECT c.name, SUM(o.total_amount) AS total_spent FROM customers c "
            "JOIN orders o ON c.id = o.customer_id GROUP BY c.name "
            "ORDER BY total_spent DESC LIMIT 5;",
            "To get stock levels for all tenants: "
            "SELECT p.name, p.stock_quantity, t.name AS tenant_name FROM products p "
            "JOIN tenants t ON p.tenant_id = t.id;",
        ]

    def authorize(self, sql_query, tenant_id):
        return None


class TenantScopedPolicy(AccessPolicy):
    """Everyone else: every query must pin tenant_id to the caller's tenant."""

    name = "tenant_scoped"

    def security_clause(self, tenant_id):
        return (
            f"ALL database queries MUST include a WHERE tenant_id = '{tenant_id}' "
            "clause. This is non-negotiable for data isolation."
        )

    def example_queries(self, tenant_id):
        return [
            "To get pending orders: "
            f"SELECT * FROM orders WHERE tenant_id = '{tenant_id}' "
            "AND status = 'pending';",
            "To get top customers: "
            "SELECT c.name, SUM(o.total_amount) AS total_spent FROM customers c "
            f"JOIN orders o ON c.id = o.customer_id WHERE c.tenant_id = '{tenant_id}' "
            "GROUP BY c.name ORDER BY total_spent DESC LIMIT 5;",
            "To get stock levels: "
            "SELECT p.name, p.stock_quantity FROM products p "
            f"WHERE p.tenant_id = '{tenant_id}';",
        ]

    def authorize(self, sql_query, tenant_id):
        # Fail closed: no tenant, or no matching predicate, means no query
        if not tenant_id:
            raise SecurityViolation()
        try:
            searchable = strip_sql_comments(sql_query)
        except TokenError as error:
            raise SecurityViolation() from error
        if not tenant_predicate_pattern(tenant_id).search(searchable):
            raise SecurityViolation()


UNRESTRICTED = UnrestrictedPolicy()
TENANT_SCOPED = TenantScopedPolicy()


def policy_for_role(role: str) -> AccessPolicy:
    if role == SUPER_ADMIN_ROLE:
        return UNRESTRICTED
    return TENANT_SCOPED


def policy_for(session: CallerSession) -> AccessPolicy:
    return policy_for_role(session.role)


def enforce_tenant_scope(sql_query: str, session: CallerSession) -> None:
    """
    Approve or reject a proposed query for this caller.

    Raises:
        SecurityViolation: the caller is tenant-scoped and the query does not
            filter on their own tenant_id.
    """
    policy = policy_for(session)
    try:
        policy.authorize(sql_query, session.tenant_id)
    except SecurityViolation:
        logger.warning(
            f"[User {session.caller_id}] Rejected query for tenant "
            f"{session.tenant_id} ({policy.name}): {sql_query!r}"
        )
        raise
