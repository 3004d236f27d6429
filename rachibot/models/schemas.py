"""Shared Pydantic models for inbound commands, chat messages and generations."""

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter


class CommandRequest(BaseModel):
    """Inbound message posted by the chat front-end.

    The legacy wire names (``qq``, ``group``, ``msg``, ``ref``, ``image``)
    are accepted alongside the descriptive field names.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, coerce_numbers_to_str=True)

    caller_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("caller_id", "qq"),
        description="Identifier of the sender",
    )
    group_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("group_id", "group"),
        description="Identifier of the conversation group",
    )
    message: str = Field(
        ...,
        validation_alias=AliasChoices("message", "msg"),
        description="Raw message text",
    )
    reference: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("reference", "ref"),
        description="Quoted message the sender replied to",
    )
    image_uri: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("image_uri", "image"),
        description="Image attached to the message",
    )


class TextPart(BaseModel):
    """Plain text content part."""

    type: Literal["text"] = "text"
    text: str


class ImagePart(BaseModel):
    """Image content part referenced by URL or data URI."""

    type: Literal["image"] = "image"
    image: str


ContentPart = Annotated[Union[TextPart, ImagePart], Field(discriminator="type")]

Role = Literal["system", "user", "assistant", "tool"]


class ChatMessage(BaseModel):
    """One role-tagged message of a conversation."""

    role: Role
    content: Union[str, list[ContentPart]]

    def text_parts(self) -> list[str]:
        """Return the textual pieces of the content, skipping images."""
        if isinstance(self.content, str):
            return [self.content]
        return [part.text for part in self.content if isinstance(part, TextPart)]

    def to_wire(self) -> dict[str, Any]:
        """Render the message in OpenAI chat-completions format."""
        if isinstance(self.content, str):
            return {"role": self.role, "content": self.content}
        parts: list[dict[str, Any]] = []
        for part in self.content:
            if isinstance(part, ImagePart):
                parts.append({"type": "image_url", "image_url": {"url": part.image}})
            else:
                parts.append({"type": "text", "text": part.text})
        return {"role": self.role, "content": parts}


# A conversation turn is persisted as a JSON array of messages.
ConversationTurn = list[ChatMessage]
turn_adapter: TypeAdapter[list[ChatMessage]] = TypeAdapter(list[ChatMessage])


class Usage(BaseModel):
    """Token accounting reported by the provider."""

    prompt_tokens: int = Field(default=0, description="Input tokens")
    completion_tokens: int = Field(default=0, description="Output tokens")
    total_tokens: int = Field(default=0, description="Input + output tokens")


class Generation(BaseModel):
    """Result of one model invocation."""

    text: str = Field(..., description="Generated text")
    model_id: str = Field(..., description="Model that served the request")
    usage: Usage = Field(default_factory=Usage)
    messages: list[ChatMessage] = Field(
        default_factory=list,
        description="Messages the provider produced for this turn",
    )
