"""Pydantic models for the Anthropic Messages API."""

import logging
from typing import Annotated, Optional, Any, Dict, List, Literal, Union

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


class TextBlock(BaseModel):
    type: Literal["text"] = "text"
    text: str = ""


class ToolUseBlock(BaseModel):
    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: Dict[str, Any] = Field(default_factory=dict)


class ToolResultBlock(BaseModel):
    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: Union[str, List[Dict[str, Any]]] = ""


ContentBlock = Annotated[
    Union[TextBlock, ToolUseBlock, ToolResultBlock],
    Field(discriminator="type"),
]

CONTENT_BLOCK_TYPES = {"text", "tool_use", "tool_result"}


class AnthropicMessage(BaseModel):
    """Anthropic only accepts user/assistant turns; system text is top-level."""
    role: Literal["user", "assistant"]
    content: Union[str, List[ContentBlock]]


class AnthropicTool(BaseModel):
    name: str
    description: str = ""
    input_schema: Dict[str, Any] = Field(default_factory=dict)


class MessagesRequest(BaseModel):
    model: str
    max_tokens: int
    messages: List[AnthropicMessage]
    system: Optional[str] = None
    temperature: Optional[float] = None
    tools: Optional[List[AnthropicTool]] = None

    def to_payload(self) -> Dict[str, Any]:
        """Wire body; optional fields are omitted rather than sent as null."""
        return self.model_dump(exclude_none=True)


class AnthropicUsage(BaseModel):
    input_tokens: Optional[int] = 0
    output_tokens: Optional[int] = 0
    model_config = {"extra": "allow"}


class MessagesResponse(BaseModel):
    id: Optional[str] = None
    type: Optional[str] = None
    role: Optional[str] = None
    model: Optional[str] = None
    content: List[ContentBlock] = Field(default_factory=list)
    stop_reason: Optional[str] = None
    usage: AnthropicUsage = Field(default_factory=AnthropicUsage)
    model_config = {"extra": "allow"}

    @field_validator("content", mode="before")
    @classmethod
    def _drop_unknown_blocks(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []
        known = []
        for block in value:
            if isinstance(block, dict) and block.get("type") in CONTENT_BLOCK_TYPES:
                known.append(block)
            else:
                logger.debug("Skipping unsupported content block: %r", block)
        return known

    @field_validator("usage", mode="before")
    @classmethod
    def _usage_or_default(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}
