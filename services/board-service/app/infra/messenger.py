# app/infra/messenger.py
# Outbound chat protocol. A run talks to the requester through:
#   reply   -> a (possibly ephemeral) answer to the inbound interaction
#   send    -> a durable channel message
#   edit    -> full replacement of a durable message's content + attachments
#   delete  -> remove a message (used for the ephemeral "Loading" ack)
from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence

from pydantic import BaseModel

from app.config import settings
from app.infra.rabbit import RabbitPublisher

log = logging.getLogger(__name__)


class MessageHandle(BaseModel):
    message_id: str
    channel_id: Optional[str] = None
    interaction_id: Optional[str] = None
    ephemeral: bool = False


class Messenger(Protocol):
    async def reply(self, interaction_id: str, channel_id: Optional[str], content: str,
                    *, ephemeral: bool = False) -> MessageHandle: ...
    async def send(self, channel_id: str, content: str, files: Sequence[Path] = ()) -> MessageHandle: ...
    async def edit(self, handle: MessageHandle, content: str, files: Sequence[Path] = ()) -> MessageHandle: ...
    async def delete(self, handle: MessageHandle) -> None: ...


def clip(content: str, limit: Optional[int] = None) -> str:
    """Hard stop at the transport's message-size limit."""
    limit = limit or settings.MESSAGE_MAX_LENGTH
    if len(content) <= limit:
        return content
    return content[: max(0, limit - 1)] + "…"


def describe_files(files: Sequence[Path]) -> List[Dict[str, Any]]:
    out = []
    for f in files:
        p = Path(f)
        out.append({"name": p.name, "path": str(p), "size": p.stat().st_size if p.exists() else None})
    return out


class RabbitMessenger:
    """
    Messages are published as board events; the chat gateway consuming
    <org>.board.message.*.v1 owns the actual delivery.
    """
    def __init__(self, publisher: Optional[RabbitPublisher] = None, org: Optional[str] = None):
        self.publisher = publisher or RabbitPublisher()
        self.org = org or settings.EVENTS_ORG

    async def _emit(self, event: str, payload: dict) -> None:
        await self.publisher.publish_v1(
            org=self.org, event=event, payload=payload, correlation_id=payload["message_id"],
        )

    async def reply(self, interaction_id: str, channel_id: Optional[str], content: str,
                    *, ephemeral: bool = False) -> MessageHandle:
        handle = MessageHandle(message_id=str(uuid.uuid4()), channel_id=channel_id,
                               interaction_id=interaction_id, ephemeral=ephemeral)
        await self._emit("message.replied", {**handle.model_dump(), "content": clip(content)})
        return handle

    async def send(self, channel_id: str, content: str, files: Sequence[Path] = ()) -> MessageHandle:
        handle = MessageHandle(message_id=str(uuid.uuid4()), channel_id=channel_id)
        await self._emit("message.created", {
            **handle.model_dump(), "content": clip(content), "files": describe_files(files),
        })
        return handle

    async def edit(self, handle: MessageHandle, content: str, files: Sequence[Path] = ()) -> MessageHandle:
        await self._emit("message.edited", {
            **handle.model_dump(), "content": clip(content), "files": describe_files(files),
        })
        return handle

    async def delete(self, handle: MessageHandle) -> None:
        await self._emit("message.deleted", handle.model_dump())
