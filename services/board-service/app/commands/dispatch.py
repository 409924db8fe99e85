# app/commands/dispatch.py
from __future__ import annotations

import logging
from typing import Optional

from app.config import settings
from app.commands.load import run_load_command
from app.infra.messenger import Messenger
from app.models.interactions import (
    LOAD_COMMAND,
    ChannelMessage,
    CommandInteraction,
    ComponentInteraction,
    InboundEvent,
)
from app.models.state import RunState
from app.utils.bounded import to_json_code_fence

logger = logging.getLogger(__name__)


async def send_debug(event: CommandInteraction | ComponentInteraction, messenger: Messenger) -> None:
    """Echo an interaction we don't handle back to its sender, size-bounded."""
    dump = {"interaction": event.model_dump(mode="json"), "handled": False}
    logger.debug("board.interaction.debug", extra={"interaction_id": event.id})
    await messenger.reply(
        event.id, event.channel_id,
        to_json_code_fence(dump, max_length=settings.DIAGNOSTIC_MAX_LENGTH),
        ephemeral=True,
    )


async def dispatch(event: InboundEvent, messenger: Messenger, **run_kwargs) -> Optional[RunState]:
    match event:
        case CommandInteraction(command=name) if name == LOAD_COMMAND.name:
            return await run_load_command(event, messenger, **run_kwargs)
        case CommandInteraction() | ComponentInteraction():
            await send_debug(event, messenger)
        case ChannelMessage():
            logger.info("board.message.seen", extra={"message_id": event.id, "channel_id": event.channel_id})
    return None
