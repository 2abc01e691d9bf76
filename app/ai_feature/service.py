"""Orchestration layer for the staff/customer assistant.

Flow:
1. Compose the system prompt for the caller's mode and role
2. Ask the model once, offering the query tool to staff only
3. Validate the tool call and check tenant scope (SQL guard)
4. Execute the read-only query
5. Write the audit log entry
6. Narrate the result
"""

import logging
import uuid
from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.ai_feature.audit import AuditLogger
from app.ai_feature.executor import QueryExecutor
from app.ai_feature.llm_client import (
    QUERY_DATABASE_TOOL,
    ToolCallingClient,
    parse_tool_invocation,
)
from app.ai_feature.narrator import narrate
from app.ai_feature.prompts import (
    PromptConfig,
    compose_customer_prompt,
    compose_staff_prompt,
)
from app.ai_feature.sql_guard import enforce_tenant_scope
from app.core import models, schemas
from app.core.security import CallerSession

logger = logging.getLogger(__name__)

ORDER_KEYWORDS = ("order", "buy", "purchase")


def is_order_request(chat_request: schemas.ChatRequest) -> bool:
    """Rough WhatsApp order detection, only for known customers."""
    if not chat_request.customer_id or chat_request.channel != "whatsapp":
        return False
    message = chat_request.message.lower()
    return any(keyword in message for keyword in ORDER_KEYWORDS)


async def load_customer(
    db: AsyncSession, customer_id: Optional[str], session: CallerSession
) -> Optional[models.Customer]:
    """Customer profile for the persona prompt, limited to the caller's tenant."""
    if not customer_id:
        return None
    try:
        customer_uuid = uuid.UUID(customer_id)
        tenant_uuid = None if session.is_super_admin else uuid.UUID(session.tenant_id)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring customer lookup for malformed id {customer_id!r}")
        return None

    query = select(models.Customer).where(models.Customer.id == customer_uuid)
    if tenant_uuid is not None:
        query = query.where(models.Customer.tenant_id == tenant_uuid)

    result = await db.execute(query)
    return result.scalars().first()


async def answer_customer(
    chat_request: schemas.ChatRequest,
    session: CallerSession,
    *,
    chat_client: ToolCallingClient,
    prompt_config: PromptConfig,
    customer: Optional[models.Customer] = None,
) -> schemas.TextResponse:
    system_prompt = compose_customer_prompt(
        prompt_config, customer, chat_request.phone_number
    )
    reply = await chat_client.complete(system_prompt, chat_request.message, tools=[])

    # Tool calls are never honoured here, even if the model produced one
    if reply.wants_tool:
        logger.warning(
            f"[User {session.caller_id}] Ignored tool call in customer mode"
        )

    response_type = (
        schemas.ResponseType.ORDER_REQUEST
        if is_order_request(chat_request)
        else schemas.ResponseType.TEXT
    )
    return schemas.TextResponse(
        type=response_type, content=reply.content or "", usage=reply.usage
    )


async def answer_staff(
    chat_request: schemas.ChatRequest,
    session: CallerSession,
    *,
    chat_client: ToolCallingClient,
    executor: QueryExecutor,
    audit_logger: AuditLogger,
    prompt_config: PromptConfig,
) -> Union[schemas.DataResponse, schemas.TextResponse]:
    system_prompt = compose_staff_prompt(session, prompt_config)
    reply = await chat_client.complete(
        system_prompt, chat_request.message, tools=[QUERY_DATABASE_TOOL]
    )

    if not reply.wants_tool:
        return schemas.TextResponse(content=reply.content or "", usage=reply.usage)

    # Only the first tool call is considered
    invocation = parse_tool_invocation(reply.tool_calls[0])
    enforce_tenant_scope(invocation.sql_query, session)

    rows = await executor.run(invocation.sql_query)
    logger.info(
        f"[User {session.caller_id}] Query for tenant {session.tenant_id} "
        f"returned {len(rows)} rows"
    )

    await audit_logger.record_query(
        session, invocation.sql_query, invocation.description
    )

    narrated = narrate(
        reply.content, rows, invocation.description, invocation.sql_query
    )
    return schemas.DataResponse(
        content=narrated.content,
        data=narrated.rows,
        query_description=narrated.description,
        raw_sql_query=narrated.sql_query,
        usage=reply.usage,
    )
