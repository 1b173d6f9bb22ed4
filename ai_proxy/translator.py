"""
Translation between the OpenAI chat-completions schema and other vendors' schemas.

The OpenAI shape is the public contract of the gateway. Providers that speak a
different protocol register a ChatTranslator; requests for them are rewritten
on the way out and their responses rewritten back on the way in.
"""

import json
import logging
import time
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Type, Union

from .anthropic_models import (
    AnthropicMessage,
    AnthropicTool,
    MessagesRequest,
    MessagesResponse,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)
from .config import Provider, Settings, get_settings
from .openai_models import (
    ChatChoice,
    ChatCompletion,
    ChatCompletionsRequest,
    ChatMessage,
    ChatMessageResponse,
    FunctionCall,
    ToolCall,
    Usage,
    content_to_text,
)

logger = logging.getLogger(__name__)

SYSTEM_SEPARATOR = "\n\n"

STOP_REASON_MAP = {
    "end_turn": "stop",
    "stop_sequence": "stop",
    "max_tokens": "length",
    "tool_use": "tool_calls",
}


def _parse_tool_arguments(arguments: Optional[str]) -> Dict[str, Any]:
    # Malformed arguments degrade to an empty object instead of failing the request
    try:
        value = json.loads(arguments or "")
    except (TypeError, ValueError):
        logger.debug("Tool call arguments are not valid JSON, using empty input")
        return {}
    return value if isinstance(value, dict) else {}


def _content_blocks(content: Any) -> Union[str, List[TextBlock]]:
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    blocks = []
    for part in content:
        text = content_to_text([part])
        if text:
            blocks.append(TextBlock(text=text))
    return blocks or ""


def _convert_message(message: ChatMessage) -> AnthropicMessage:
    if message.role == "tool":
        return AnthropicMessage(
            role="user",
            content=[
                ToolResultBlock(
                    tool_use_id=message.tool_call_id or "",
                    content=content_to_text(message.content),
                )
            ],
        )

    if message.tool_calls:
        blocks: List[Union[TextBlock, ToolUseBlock]] = []
        text = content_to_text(message.content)
        if text:
            blocks.append(TextBlock(text=text))
        for call in message.tool_calls:
            blocks.append(
                ToolUseBlock(
                    id=call.id,
                    name=call.function.name,
                    input=_parse_tool_arguments(call.function.arguments),
                )
            )
        return AnthropicMessage(role=message.role, content=blocks)

    return AnthropicMessage(role=message.role, content=_content_blocks(message.content))


def to_anthropic(
    request: ChatCompletionsRequest,
    default_model: str = "claude-3-sonnet-20240229",
    default_max_tokens: int = 1000,
) -> MessagesRequest:
    """
    Convert an OpenAI chat-completions request into an Anthropic Messages request.

    System messages are hoisted into the top-level ``system`` field, tool calls
    become ``tool_use`` blocks and tool results become user ``tool_result``
    blocks. Message order is preserved.
    """
    system_parts: List[str] = []
    messages: List[AnthropicMessage] = []

    for message in request.messages:
        if message.role == "system":
            text = content_to_text(message.content)
            if text:
                system_parts.append(text)
            continue
        messages.append(_convert_message(message))

    tools = [
        AnthropicTool(
            name=tool.function.name,
            description=tool.function.description or "",
            input_schema=tool.function.parameters or {},
        )
        for tool in request.tools
        if tool.type == "function" and tool.function is not None
    ]

    return MessagesRequest(
        model=request.model or default_model,
        max_tokens=request.max_tokens if request.max_tokens is not None else default_max_tokens,
        messages=messages,
        system=SYSTEM_SEPARATOR.join(system_parts) or None,
        temperature=request.temperature,
        tools=tools or None,
    )


def to_openai(response: MessagesResponse, default_model: str = "claude-3-sonnet-20240229") -> ChatCompletion:
    """Convert an Anthropic Messages response into an OpenAI chat completion."""
    text_parts: List[str] = []
    tool_calls: List[ToolCall] = []

    for block in response.content:
        if isinstance(block, TextBlock):
            text_parts.append(block.text)
        elif isinstance(block, ToolUseBlock):
            tool_calls.append(
                ToolCall(
                    id=block.id,
                    function=FunctionCall(name=block.name, arguments=json.dumps(block.input)),
                )
            )

    prompt_tokens = response.usage.input_tokens or 0
    completion_tokens = response.usage.output_tokens or 0

    if response.stop_reason:
        finish_reason = STOP_REASON_MAP.get(response.stop_reason, response.stop_reason)
    else:
        finish_reason = "stop"

    return ChatCompletion(
        id=response.id or f"chatcmpl-{uuid.uuid4().hex}",
        created=int(time.time()),
        model=response.model or default_model,
        choices=[
            ChatChoice(
                index=0,
                message=ChatMessageResponse(
                    content="\n".join(text_parts),
                    tool_calls=tool_calls or None,
                ),
                finish_reason=finish_reason,
            )
        ],
        usage=Usage(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        ),
    )


class ChatTranslator(ABC):
    """Rewrites chat-completions traffic for one provider that is not OpenAI-shaped."""

    provider: Provider
    # Path of the provider's chat endpoint, relative to its API root
    upstream_path: str

    def __init__(self, settings: Optional[Settings] = None):
        self.settings: Settings = settings or get_settings()

    @abstractmethod
    def translate_request(self, request: ChatCompletionsRequest) -> Dict[str, Any]:
        """Build the provider's request body from an OpenAI request."""

    @abstractmethod
    def translate_response(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Build an OpenAI chat completion body from the provider's response."""


class AnthropicChatTranslator(ChatTranslator):
    provider = Provider.ANTHROPIC
    upstream_path = "messages"

    def translate_request(self, request: ChatCompletionsRequest) -> Dict[str, Any]:
        return to_anthropic(
            request,
            default_model=self.settings.DEFAULT_ANTHROPIC_MODEL,
            default_max_tokens=self.settings.DEFAULT_MAX_TOKENS,
        ).to_payload()

    def translate_response(self, data: Dict[str, Any]) -> Dict[str, Any]:
        response = MessagesResponse.model_validate(data)
        completion = to_openai(response, default_model=self.settings.DEFAULT_ANTHROPIC_MODEL)
        return completion.model_dump(exclude_none=True)


_TRANSLATORS: Dict[Provider, Type[ChatTranslator]] = {
    Provider.ANTHROPIC: AnthropicChatTranslator,
}


def get_chat_translator(provider: Provider, settings: Optional[Settings] = None) -> Optional[ChatTranslator]:
    """Return the translator for a provider, or None when it speaks OpenAI natively."""
    translator_cls = _TRANSLATORS.get(provider)
    if translator_cls is None:
        return None
    return translator_cls(settings)
