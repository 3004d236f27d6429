"""Request-scoped mutable state threaded through every command handler."""

from dataclasses import dataclass, field
from typing import Any, Optional

from rachibot.core.parser import parse_message
from rachibot.models.schemas import ChatMessage, CommandRequest, ContentPart

SNAPSHOT_IMAGE_CHARS = 42


@dataclass
class RequestState:
    """Everything one request accumulates between parsing and the model call.

    Handlers read and mutate this object instead of sharing globals.
    Tags double as a side channel: a handler may add a tag that a later
    stage reads (``links``, ``lol``) or consume one meant for it
    (``random``, ``nolinks``, ``cheerio``, ``context``).

    Attributes:
        request: The immutable inbound request.
        message: Current remainder of the message text.
        name: Directive name peeled from the message.
        chain: Alias chain, seeded with ``name``.
        tags: Ordered tag set.
        labels: Tag labels.
        content: Enrichment parts for the outgoing user message.
        context: Prior conversation messages replayed to the model.
        model_id: Fully-qualified model identifier once resolved.
    """

    request: CommandRequest
    message: str
    name: str = ""
    chain: list[str] = field(default_factory=list)
    tags: dict[str, None] = field(default_factory=dict)
    labels: dict[str, Optional[str]] = field(default_factory=dict)
    content: list[ContentPart] = field(default_factory=list)
    context: list[ChatMessage] = field(default_factory=list)
    model_id: Optional[str] = None

    @classmethod
    def from_request(cls, request: CommandRequest) -> "RequestState":
        """Parse the request message and seed the state."""
        parsed = parse_message(request.message)
        return cls(
            request=request,
            message=parsed.remainder,
            name=parsed.name,
            chain=[parsed.name],
            tags=parsed.tags,
            labels=parsed.labels,
        )

    # ── Request shortcuts ─────────────────────────────────────────

    @property
    def caller(self) -> str:
        return self.request.caller_id or ""

    @property
    def group(self) -> str:
        return self.request.group_id or ""

    @property
    def reference(self) -> Optional[str]:
        return self.request.reference

    @property
    def image(self) -> Optional[str]:
        return self.request.image_uri

    # ── Tags ──────────────────────────────────────────────────────

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    def add_tag(self, tag: str) -> None:
        self.tags[tag] = None

    def discard_tag(self, tag: str) -> None:
        self.tags.pop(tag, None)

    def consume_tag(self, tag: str) -> bool:
        """Remove *tag* and report whether it was set."""
        if tag in self.tags:
            del self.tags[tag]
            return True
        return False

    def label(self, tag: str) -> Optional[str]:
        return self.labels.get(tag)

    def snapshot(self) -> dict[str, Any]:
        """Loggable view of the request with the image truncated."""
        image = self.image[:SNAPSHOT_IMAGE_CHARS] if self.image else self.image
        return {
            "caller_id": self.request.caller_id,
            "group_id": self.request.group_id,
            "message": self.request.message,
            "reference": self.reference,
            "image_uri": image,
        }
