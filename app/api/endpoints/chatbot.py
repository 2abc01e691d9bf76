import json
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.ai_feature import service
from app.ai_feature.audit import AuditLogger
from app.ai_feature.executor import QueryExecutor
from app.ai_feature.llm_client import ToolCallingClient, get_chat_client
from app.ai_feature.prompts import PromptConfig, get_prompt_config
from app.core import schemas
from app.core.config import require_configuration
from app.core.database import get_db
from app.core.exceptions import InvalidRequestError
from app.core.security import CallerSession, get_current_session

router = APIRouter(prefix="/chatbot-api", tags=["Chatbot"])

logger = logging.getLogger(__name__)


def get_query_executor(db: Annotated[AsyncSession, Depends(get_db)]) -> QueryExecutor:
    return QueryExecutor(db)


def get_audit_logger(db: Annotated[AsyncSession, Depends(get_db)]) -> AuditLogger:
    return AuditLogger(db)


async def get_chat_request(request: Request) -> schemas.ChatRequest:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InvalidRequestError("Request body must be JSON")

    try:
        return schemas.ChatRequest.model_validate(body)
    except ValidationError as error:
        if any(err["loc"][:1] == ("message",) for err in error.errors()):
            raise InvalidRequestError("Message is required")
        raise InvalidRequestError("Invalid chat request")


db_dep = Annotated[AsyncSession, Depends(get_db)]
session_dep = Annotated[CallerSession, Depends(get_current_session)]
chat_request_dep = Annotated[schemas.ChatRequest, Depends(get_chat_request)]
client_dep = Annotated[ToolCallingClient, Depends(get_chat_client)]
executor_dep = Annotated[QueryExecutor, Depends(get_query_executor)]
audit_dep = Annotated[AuditLogger, Depends(get_audit_logger)]
prompt_config_dep = Annotated[PromptConfig, Depends(get_prompt_config)]


@router.post(
    "",
    response_model=schemas.DataResponse | schemas.TextResponse,
    dependencies=[Depends(require_configuration)],
)
async def chat(
    chat_request: chat_request_dep,
    session: session_dep,
    db: db_dep,
    chat_client: client_dep,
    executor: executor_dep,
    audit_logger: audit_dep,
    prompt_config: prompt_config_dep,
):
    """Answer a staff or customer message, querying the database when the model asks to."""
    if chat_request.is_customer:
        customer = await service.load_customer(db, chat_request.customer_id, session)
        return await service.answer_customer(
            chat_request,
            session,
            chat_client=chat_client,
            prompt_config=prompt_config,
            customer=customer,
        )

    return await service.answer_staff(
        chat_request,
        session,
        chat_client=chat_client,
        executor=executor,
        audit_logger=audit_logger,
        prompt_config=prompt_config,
    )
