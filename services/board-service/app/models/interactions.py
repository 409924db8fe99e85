# app/models/interactions.py
# Inbound events are classified once, here, by their `type` tag.
from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class Requester(BaseModel):
    id: str
    username: Optional[str] = None


class CommandOption(BaseModel):
    name: str
    value: Any = None


class CommandInteraction(BaseModel):
    type: Literal["command"] = "command"
    id: str
    command: str
    options: List[CommandOption] = []
    user: Requester
    channel_id: Optional[str] = None

    def option(self, name: str) -> Optional[Any]:
        for opt in self.options:
            if opt.name == name:
                return opt.value
        return None


class ComponentInteraction(BaseModel):
    """Button / select-menu clicks and modal submits. Not handled; answered with a debug dump."""
    type: Literal["component"] = "component"
    id: str
    component_type: str
    custom_id: Optional[str] = None
    values: List[str] = []
    user: Requester
    channel_id: Optional[str] = None


class ChannelMessage(BaseModel):
    type: Literal["message"] = "message"
    id: str
    content: str = ""
    author: Requester
    channel_id: Optional[str] = None


InboundEvent = Annotated[
    Union[CommandInteraction, ComponentInteraction, ChannelMessage],
    Field(discriminator="type"),
]


class InboundEnvelope(BaseModel):
    event: InboundEvent


class CommandOptionSpec(BaseModel):
    name: str
    description: str
    type: Literal["string"] = "string"
    required: bool = True


class CommandSpec(BaseModel):
    name: str
    description: str
    options: List[CommandOptionSpec] = []


LOAD_COMMAND = CommandSpec(
    name="load",
    description="Loads a board from a url",
    options=[CommandOptionSpec(name="url", description="The url of the board", required=True)],
)


class InteractionAccepted(BaseModel):
    accepted: bool = True
    kind: str
    run_id: Optional[str] = None
    detail: Dict[str, Any] = {}
