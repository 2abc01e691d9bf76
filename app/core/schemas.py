from typing import Optional, List, Dict, Any, Literal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator


# =========================
# Enums
# =========================
class UserType(str, Enum):
    INTERNAL = "internal"
    CUSTOMER = "customer"


class ResponseType(str, Enum):
    DATA = "data"
    TEXT = "text"
    ORDER_REQUEST = "order_request"
    ERROR = "error"


# =========================
# CHAT REQUEST
# =========================
class ChatRequest(BaseModel):
    message: str = Field(min_length=1)
    user_type: UserType = Field(default=UserType.INTERNAL, alias="userType")
    customer_id: Optional[str] = Field(default=None, alias="customerId")
    channel: Optional[str] = None
    phone_number: Optional[str] = Field(default=None, alias="phoneNumber")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("message must not be blank")
        return value

    @property
    def is_customer(self) -> bool:
        return self.user_type == UserType.CUSTOMER


# =========================
# TOOL INVOCATION (untrusted, produced by the model)
# =========================
class ToolInvocationRequest(BaseModel):
    sql_query: StrictStr = Field(min_length=1)
    description: StrictStr = Field(min_length=1)

    model_config = ConfigDict(extra="ignore")

    @field_validator("sql_query", "description")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value.strip()


# =========================
# RESPONSES
# =========================
class DataResponse(BaseModel):
    type: Literal[ResponseType.DATA] = ResponseType.DATA
    content: str
    data: List[Dict[str, Any]]
    query_description: str
    raw_sql_query: str
    usage: Dict[str, Any] = Field(default_factory=dict)


class TextResponse(BaseModel):
    type: Literal[ResponseType.TEXT, ResponseType.ORDER_REQUEST] = ResponseType.TEXT
    content: str
    usage: Dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    type: Literal[ResponseType.ERROR] = ResponseType.ERROR
    content: str
