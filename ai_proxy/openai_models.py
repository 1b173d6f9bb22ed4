# OpenAI-compatible schema models for chat completions API

from typing import List, Optional, Literal, Dict, Any, Union
from pydantic import BaseModel, Field, model_validator


class ContentPart(BaseModel):
    # OpenAI content part (we only need 'text'; allow extras for forward-compat)
    type: Optional[str] = None
    text: Optional[str] = None
    model_config = {"extra": "allow"}


class FunctionCall(BaseModel):
    name: str
    # JSON-encoded arguments string, as produced by the model
    arguments: str = ""


class ToolCall(BaseModel):
    id: str
    type: Literal["function"] = "function"
    function: FunctionCall


class FunctionDefinition(BaseModel):
    name: str
    description: Optional[str] = None
    parameters: Optional[Dict[str, Any]] = None


class ToolSpec(BaseModel):
    type: str = "function"
    function: Optional[FunctionDefinition] = None
    model_config = {"extra": "allow"}


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant", "tool"]
    # Accept both string and array-of-parts per OpenAI SDKs
    content: Optional[Union[str, List[Union[str, ContentPart, Dict[str, Any]]]]] = None
    name: Optional[str] = None
    tool_calls: Optional[List[ToolCall]] = None
    tool_call_id: Optional[str] = None
    model_config = {"extra": "allow"}

    @model_validator(mode="after")
    def _unique_tool_call_ids(self) -> "ChatMessage":
        ids = [call.id for call in self.tool_calls or []]
        if len(ids) != len(set(ids)):
            raise ValueError("tool_calls ids must be unique within a message")
        return self


class ChatCompletionsRequest(BaseModel):
    model: Optional[str] = None
    messages: List[ChatMessage] = Field(default_factory=list)
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    tools: List[ToolSpec] = Field(default_factory=list)
    stream: Optional[bool] = False
    model_config = {"extra": "allow", "frozen": True}


class ChatMessageResponse(BaseModel):
    role: Literal["assistant"] = "assistant"
    content: str = ""
    tool_calls: Optional[List[ToolCall]] = None


class ChatChoice(BaseModel):
    index: int = 0
    message: ChatMessageResponse
    finish_reason: Optional[str] = None


class Usage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatCompletion(BaseModel):
    id: str
    object: Literal["chat.completion"] = "chat.completion"
    created: int
    model: str
    choices: List[ChatChoice]
    usage: Optional[Usage] = None


class ModelData(BaseModel):
    id: str
    object: str = "model"
    created: int = 0
    owned_by: str = ""
    model_config = {"extra": "allow"}


class ModelList(BaseModel):
    object: Literal["list"] = "list"
    data: List[ModelData]


def content_to_text(content: Any) -> str:
    """Convert OpenAI content (string or array-of-parts) into plain text."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, str):
                parts.append(item)
            elif isinstance(item, ContentPart):
                if isinstance(item.text, str):
                    parts.append(item.text)
            elif isinstance(item, dict):
                # OpenAI content part: prefer 'text'
                t = item.get("text")
                if isinstance(t, str):
                    parts.append(t)
        return "\n".join([p for p in parts if p])
    # Fallback for unexpected types
    return str(content)
