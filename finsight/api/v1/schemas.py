"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Literal, Optional

from finsight.domain.models import ChatMessage, EngineResponse


class ChatMessageSchema(BaseModel):
    """One earlier turn of the conversation"""

    role: Literal["user", "assistant"]
    text: str = Field(..., max_length=500)

    def to_domain(self) -> ChatMessage:
        return ChatMessage(role=self.role, text=self.text)


class QueryRequest(BaseModel):
    """Request body for POST /v1/query"""

    model_config = ConfigDict(str_strip_whitespace=True)

    text: str = Field(..., min_length=1, max_length=500, description="Natural-language question")
    history: List[ChatMessageSchema] = Field(default_factory=list, max_length=20)


class SourceSchema(BaseModel):
    id: str
    label: str


class EngineResponseSchema(BaseModel):
    """Response for POST /v1/query"""

    model_config = ConfigDict(populate_by_name=True)

    text: str
    type: Literal["text", "insight", "warning", "suggestion"]
    quick_actions: List[str] = Field(default_factory=list, alias="quickActions")
    sources: Optional[List[SourceSchema]] = None
    intent: str
    data: Optional[Dict[str, Any]] = None

    @classmethod
    def from_domain(cls, response: EngineResponse) -> "EngineResponseSchema":
        return cls(
            text=response.text,
            type=response.type.value,
            quick_actions=response.quick_actions,
            sources=[SourceSchema(id=s.id, label=s.label) for s in response.sources] if response.sources else None,
            intent=response.intent.value,
            data=response.data,
        )


class SuggestionsResponse(BaseModel):
    """Response for GET /v1/suggestions"""

    owner_id: str
    suggestions: List[str]
