import json
import logging
from dataclasses import dataclass, field
from typing import Annotated, Any, Dict, List, Optional

from fastapi import Depends
from openai import NOT_GIVEN, AsyncOpenAI, OpenAIError
from pydantic import ValidationError

from app.core.config import Settings, get_settings
from app.core.exceptions import ModelError
from app.core.schemas import ToolInvocationRequest

logger = logging.getLogger(__name__)

QUERY_DATABASE_TOOL_NAME = "query_database"

QUERY_DATABASE_TOOL = {
    "type": "function",
    "function": {
        "name": QUERY_DATABASE_TOOL_NAME,
        "description": (
            "Executes a read-only SQL query against the application's PostgreSQL "
            "database. Use it to answer questions about the user's data, build "
            "reports or give insights. ALWAYS include tenant_id filtering in your "
            "queries for security."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "sql_query": {
                    "type": "string",
                    "description": (
                        "A valid PostgreSQL SELECT query. "
                        "MUST include tenant_id filtering for security."
                    ),
                },
                "description": {
                    "type": "string",
                    "description": (
                        "A human-readable description of what this query is doing and why."
                    ),
                },
            },
            "required": ["sql_query", "description"],
        },
    },
}


@dataclass
class ToolCall:
    name: str
    arguments: str


@dataclass
class ModelReply:
    """Either plain text, or a tool call (optionally with text), plus token usage."""

    content: Optional[str]
    tool_calls: List[ToolCall] = field(default_factory=list)
    usage: Dict[str, Any] = field(default_factory=dict)

    @property
    def wants_tool(self) -> bool:
        return bool(self.tool_calls)


class ToolCallingClient:
    """One chat-completion request per user message. No retries."""

    def __init__(self, client: AsyncOpenAI, model: str):
        self.client = client
        self.model = model

    async def complete(
        self, system_prompt: str, message: str, tools: List[dict]
    ) -> ModelReply:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": message},
                ],
                # Without tools the model cannot ask for one
                tools=tools or NOT_GIVEN,
                tool_choice="auto" if tools else NOT_GIVEN,
            )
        except OpenAIError as error:
            logger.error(f"Model request failed: {error}")
            raise ModelError(f"Language model request failed: {error}")

        if not response.choices:
            raise ModelError("Language model returned no choices")

        message_out = response.choices[0].message
        tool_calls = [
            ToolCall(name=call.function.name, arguments=call.function.arguments or "")
            for call in (message_out.tool_calls or [])
            if getattr(call, "function", None) is not None
        ]
        usage = response.usage.model_dump() if response.usage else {}

        return ModelReply(content=message_out.content, tool_calls=tool_calls, usage=usage)


def parse_tool_invocation(tool_call: ToolCall) -> ToolInvocationRequest:
    """
    Validate the model's tool call before anything uses it.

    Raises:
        ModelError: unknown tool, arguments that are not a JSON object, or
            missing / mistyped `sql_query` and `description`.
    """
    if tool_call.name != QUERY_DATABASE_TOOL_NAME:
        raise ModelError(f"Model requested an unknown tool: {tool_call.name}")

    try:
        arguments = json.loads(tool_call.arguments)
    except json.JSONDecodeError:
        raise ModelError("Model returned malformed tool arguments")

    if not isinstance(arguments, dict):
        raise ModelError("Model returned malformed tool arguments")

    try:
        return ToolInvocationRequest.model_validate(arguments)
    except ValidationError as error:
        fields = ", ".join(str(err["loc"][0]) for err in error.errors() if err["loc"])
        raise ModelError(f"Model returned invalid tool arguments: {fields}")


def get_chat_client(
    config: Annotated[Settings, Depends(get_settings)],
) -> ToolCallingClient:
    client = AsyncOpenAI(api_key=config.OPENAI_API_KEY, max_retries=0)
    return ToolCallingClient(client, config.OPENAI_MODEL)
