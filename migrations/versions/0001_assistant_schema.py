"""tenants, staff profiles, sales data, activity log and execute_sql()

Revision ID: 0001
Revises:
Create Date: 2025-06-19 11:31:45

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# Read-only gateway for assistant queries: mutating keywords are refused and
# rows come back as one jsonb array ([] when empty, {"error": ...} on failure).
EXECUTE_SQL_FUNCTION = r"""
CREATE OR REPLACE FUNCTION execute_sql(query_text TEXT)
RETURNS JSONB
LANGUAGE plpgsql
SECURITY DEFINER
SET search_path = public
AS $$
DECLARE
  result JSONB;
  query_lower TEXT := lower(query_text);
BEGIN
  IF query_lower !~ '^\s*(select|with)\M' THEN
    RAISE EXCEPTION 'Only SELECT queries are allowed';
  END IF;
  IF query_lower ~ '\mdrop\s+' THEN
    RAISE EXCEPTION 'DROP operations are not allowed';
  END IF;
  IF query_lower ~ '\mtruncate\s+' THEN
    RAISE EXCEPTION 'TRUNCATE operations are not allowed';
  END IF;
  IF query_lower ~ '\mdelete\s+from' THEN
    RAISE EXCEPTION 'DELETE operations are not allowed';
  END IF;
  IF query_lower ~ '\mupdate\s+' THEN
    RAISE EXCEPTION 'UPDATE operations are not allowed';
  END IF;
  IF query_lower ~ '\minsert\s+into' THEN
    RAISE EXCEPTION 'INSERT operations are not allowed';
  END IF;
  IF query_lower ~ '\malter\s+' THEN
    RAISE EXCEPTION 'ALTER operations are not allowed';
  END IF;
  IF query_lower ~ '\mcreate\s+' THEN
    RAISE EXCEPTION 'CREATE operations are not allowed';
  END IF;
  IF query_lower ~ '\mgrant\s+' THEN
    RAISE EXCEPTION 'GRANT operations are not allowed';
  END IF;
  IF query_lower ~ '\mrevoke\s+' THEN
    RAISE EXCEPTION 'REVOKE operations are not allowed';
  END IF;

  EXECUTE 'SELECT jsonb_agg(row_to_json(t)) FROM (' || query_text || ') t' INTO result;
  RETURN COALESCE(result, '[]'::jsonb);
EXCEPTION
  WHEN OTHERS THEN
    RETURN jsonb_build_object('error', SQLERRM, 'detail', SQLSTATE, 'query', query_text);
END;
$$;
"""


def _id():
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        primary_key=True,
        server_default=sa.text("gen_random_uuid()"),
    )


def _tenant_id(nullable=False):
    return sa.Column(
        "tenant_id",
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=nullable,
        index=True,
    )


def _created_at(name="created_at"):
    return sa.Column(
        name,
        sa.TIMESTAMP(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    op.create_table(
        "tenants",
        _id(),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("subscription_plan", sa.String(), nullable=False, server_default="basic"),
        sa.Column("max_users", sa.Integer(), nullable=False, server_default="5"),
        _created_at(),
    )
    op.create_table(
        "profiles",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        _tenant_id(nullable=True),
        sa.Column("role", sa.String(), nullable=False, server_default="sales"),
        sa.Column("first_name", sa.String()),
        sa.Column("last_name", sa.String()),
        _created_at(),
    )
    op.create_table(
        "customers",
        _id(),
        _tenant_id(),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String()),
        sa.Column("phone", sa.String()),
        sa.Column("address", sa.Text()),
        _created_at(),
    )
    op.create_table(
        "products",
        _id(),
        _tenant_id(),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("price", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("sku", sa.String(), index=True),
        sa.Column("stock_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("category", sa.String()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        _created_at(),
    )
    op.create_table(
        "orders",
        _id(),
        _tenant_id(),
        sa.Column(
            "customer_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("customers.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
        _created_at("order_date"),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("status", sa.String(), nullable=False, server_default="pending", index=True),
    )
    op.create_table(
        "order_items",
        _id(),
        sa.Column(
            "order_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("orders.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "product_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("products.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False),
    )
    op.create_table(
        "user_activity_logs",
        _id(),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("profiles.id"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "tenant_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("tenants.id"),
            nullable=True,
            index=True,
        ),
        sa.Column("action_type", sa.String(), nullable=False, index=True),
        sa.Column("details", postgresql.JSONB(), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
            index=True,
        ),
    )

    op.execute(EXECUTE_SQL_FUNCTION)


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS execute_sql(text)")
    op.drop_table("user_activity_logs")
    op.drop_table("order_items")
    op.drop_table("orders")
    op.drop_table("products")
    op.drop_table("customers")
    op.drop_table("profiles")
    op.drop_table("tenants")
