from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple

from app.ai_feature.sql_guard import policy_for
from app.core import models
from app.core.security import CallerSession

# -----------------------------------------------------------------------------
# PROMPTS MODULE
# Purpose: build the system prompt for one model call.
# Why: staff, super-admin and customer sessions get different instructions,
# and the tenant security clause must always be present for scoped staff.
# -----------------------------------------------------------------------------


# One line per table the store actually has: "<table>: <columns>"
DEFAULT_TABLE_CATALOGUE: Tuple[str, ...] = (
    "tenants: id, name, subscription_plan, max_users, created_at",
    "profiles: id, tenant_id, role, first_name, last_name, created_at",
    "customers: id, tenant_id, name, email, phone, address, created_at",
    "products: id, tenant_id, name, description, price, sku, stock_quantity, "
    "category, is_active, created_at",
    "orders: id, tenant_id, customer_id, order_date, total_amount, status",
    "order_items: id, order_id, product_id, quantity, unit_price",
    "user_activity_logs: id, user_id, tenant_id, action_type, details, created_at",
)

DEFAULT_APPLICATION_MODULES: Tuple[str, ...] = (
    "Sales & Orders: customer orders, their line items and order status tracking. "
    "Key tables: orders, order_items, customers.",
    "Catalogue & Stock: products, prices, categories and stock on hand. "
    "Key tables: products.",
    "Core Data: tenants, profiles (users), customers, products, orders, order_items, "
    "user_activity_logs.",
)

DEFAULT_CUSTOMER_PERSONA = """
You are a helpful assistant for the {app_name} distribution company. Your role is to assist customers with their inquiries, provide product information, and help with order-related questions.

INSTRUCTIONS:
1. Be friendly, professional, and concise in your responses.
2. Help customers with product information and availability, order status, placing new orders, general company information, and promotions.
3. For order placement, collect the products and quantities, the delivery address (or confirm the existing one) and the preferred delivery date/time.
4. If you don't know the answer, say so politely and offer to connect the customer with a human representative.
5. If a customer asks about other customers' data or internal company operations, politely explain that you cannot provide that information.

IMPORTANT:
- You can only access information that is relevant to the current customer.
- You cannot modify or delete any customer data without explicit confirmation.
- For complex issues, suggest contacting customer support directly.
""".strip()


@dataclass(frozen=True)
class PromptConfig:
    """Static prompt material, built once per process and passed in."""

    app_name: str = "DistrIA"
    table_catalogue: Tuple[str, ...] = DEFAULT_TABLE_CATALOGUE
    application_modules: Tuple[str, ...] = DEFAULT_APPLICATION_MODULES
    customer_persona: str = DEFAULT_CUSTOMER_PERSONA


@lru_cache
def get_prompt_config() -> PromptConfig:
    return PromptConfig()


def _numbered(lines) -> str:
    return "\n".join(f"{i}. {line}" for i, line in enumerate(lines, start=1))


def compose_staff_prompt(session: CallerSession, config: PromptConfig) -> str:
    """System prompt for internal staff, with schema and the tenant security clause."""
    policy = policy_for(session)
    tenant_label = session.tenant_id or "all tenants"
    tenant_rule = "" if policy.cross_tenant else " and ALWAYS includes the tenant_id filter"
    schema = "\n".join(f"- {table}" for table in config.table_catalogue)

    return f"""
You are an intelligent assistant for the {config.app_name} application, a multi-tenant distribution management system. Your primary goal is to help users by answering questions about their data, generating reports, and providing insights based on the application's functionalities and database.

USER CONTEXT:
- User: {session.display_name}
- Role: {session.role}
- Tenant ID: {tenant_label}

APPLICATION MODULES:
{_numbered(config.application_modules)}

DATABASE SCHEMA:
{schema}

CRITICAL SECURITY INSTRUCTION:
{policy.security_clause(session.tenant_id)}

INSTRUCTIONS FOR TOOL USAGE:
- When a user asks for data that requires querying the database (e.g. "How many pending orders?", "List top 5 customers by total spent"), you MUST use the query_database tool.
- The sql_query parameter MUST be a valid read-only PostgreSQL SELECT query. Ensure it is syntactically correct{tenant_rule}.
- For reports or aggregated data, generate a SQL query that retrieves the necessary raw or aggregated data.
- If the question can be answered from general knowledge about the app's features, respond directly without using the tool.
- If you cannot fulfill a request with the available tools or information, politely inform the user.

EXAMPLE QUERIES:
{_numbered(policy.example_queries(session.tenant_id))}
""".strip()


def compose_customer_prompt(
    config: PromptConfig,
    customer: Optional[models.Customer] = None,
    phone_number: Optional[str] = None,
) -> str:
    """Light persona for customer chats: no schema and no tool."""
    prompt = config.customer_persona.format(app_name=config.app_name)
    if customer is None:
        return prompt

    return (
        f"{prompt}\n\nCUSTOMER CONTEXT:\n"
        f"- Name: {customer.name}\n"
        f"- Phone: {phone_number or customer.phone}\n"
        f"- Email: {customer.email}\n"
        f"- Address: {customer.address}"
    )
