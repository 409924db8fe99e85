# app/main.py
from __future__ import annotations

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import BackgroundTasks, Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from app.config import settings
from app.logging import setup_logging
from app.commands.dispatch import dispatch
from app.infra.messenger import Messenger, RabbitMessenger
from app.infra.rabbit import RabbitPublisher
from app.infra.readiness import ReadinessState
from app.models.interactions import (
    LOAD_COMMAND,
    CommandInteraction,
    CommandSpec,
    InboundEnvelope,
    InteractionAccepted,
)

# Initialize logging early
setup_logging()
logger = logging.getLogger("app.main")

RECONNECT_DELAY_S = 5.0


async def _connect_upstream(publisher: RabbitPublisher, readiness: ReadinessState) -> None:
    """Keep trying until the messaging session is up, then flip readiness."""
    while True:
        try:
            await publisher.connect()
            readiness.mark_ready()
            logger.info("board.upstream.ready", extra={"exchange": publisher.exchange_name})
            return
        except Exception as e:
            readiness.mark_unavailable(f"{type(e).__name__}: {e}")
            logger.warning("board.upstream.unavailable; retrying in %ss: %s", RECONNECT_DELAY_S, e)
            await asyncio.sleep(RECONNECT_DELAY_S)


@asynccontextmanager
async def lifespan(app: FastAPI):
    publisher = RabbitPublisher()
    app.state.readiness = ReadinessState()
    app.state.messenger = RabbitMessenger(publisher)
    task = asyncio.create_task(_connect_upstream(publisher, app.state.readiness))
    try:
        yield
    finally:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        app.state.readiness.mark_unavailable("shutting down")
        await publisher.close()
        logger.info("board.service.shutdown")


app = FastAPI(title=settings.SERVICE_NAME, version="0.1.0", lifespan=lifespan)


def get_messenger(request: Request) -> Messenger:
    return request.app.state.messenger


def get_readiness(request: Request) -> ReadinessState:
    return request.app.state.readiness


@app.get("/healthz")
async def health(readiness: ReadinessState = Depends(get_readiness)):
    if readiness.is_ready():
        return {"status": "ok", "service": settings.SERVICE_NAME}
    return JSONResponse(
        status_code=503,
        content={"status": "unavailable", "service": settings.SERVICE_NAME, "reason": readiness.reason},
    )


@app.get("/commands", response_model=list[CommandSpec])
async def commands():
    """Registration payload for the chat gateway."""
    return [LOAD_COMMAND]


@app.post("/interactions", status_code=202, response_model=InteractionAccepted)
async def interactions(envelope: InboundEnvelope, bg: BackgroundTasks,
                       messenger: Messenger = Depends(get_messenger)):
    """
    Accepts one inbound event. /load runs continue in the background; progress
    goes out as message events, not in this response.
    """
    event = envelope.event
    logger.info("board.interaction.received", extra={"type": event.type, "interaction_id": event.id})
    detail, run_kwargs = {}, {}
    if isinstance(event, CommandInteraction):
        detail = {"command": event.command}
        if event.command == LOAD_COMMAND.name:
            run_kwargs["run_id"] = str(uuid.uuid4())
    bg.add_task(dispatch, event, messenger, **run_kwargs)
    return InteractionAccepted(kind=event.type, run_id=run_kwargs.get("run_id"), detail=detail)


if __name__ == "__main__":
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=settings.SERVICE_PORT,
        log_level="info",
    )
