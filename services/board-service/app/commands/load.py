# app/commands/load.py
from __future__ import annotations

import logging
import uuid
from typing import Optional

import httpx

from libs.board_common.schemas import GraphDescriptorV1
from app.clients.graph_fetcher import fetch_graph, is_json_url, validate_url
from app.config import settings
from app.errors import BoardError, FetchError, InputError, RenderError, SchemaError
from app.infra.messenger import Messenger
from app.infra.renderer import MermaidRenderer
from app.infra.workspace import TempWorkspace
from app.models.interactions import CommandInteraction
from app.models.state import RunState
from app.pipeline.artifact_pipeline import ArtifactPipeline
from app.progress.render import board_metadata_markdown
from app.progress.tracker import StageTracker
from app.utils.bounded import to_json_code_fence, truncate_object
from app.validation.graph_schema import validate_schema

logger = logging.getLogger(__name__)


def _fence(value) -> str:
    return to_json_code_fence(value, max_length=settings.DIAGNOSTIC_MAX_LENGTH)


def _shown(url: str) -> str:
    """The user's URL as echoed back in replies, bounded like any other diagnostic."""
    return truncate_object(url, max_length=settings.URL_DISPLAY_MAX_LENGTH)


def error_reply(url: str, exc: BaseException) -> str:
    """User-facing text for a terminal error. Diagnostics always go through the bounded serializer."""
    url = _shown(url)
    if isinstance(exc, InputError):
        return str(exc)
    if isinstance(exc, FetchError):
        return "\n".join([f"I couldn't load that {url}", _fence(exc.message)])
    if isinstance(exc, SchemaError):
        return "\n".join([f"Uh oh, that doesn't look like a board:\n{url}", _fence({"issues": exc.issues})])
    if isinstance(exc, RenderError):
        return "\n".join([
            f"I couldn't render {url}",
            _fence({"error": str(exc), "returncode": exc.returncode, "stderr": exc.stderr}),
        ])
    return "\n".join([f"Something went wrong while loading {url}", _fence({"error": str(exc), "type": type(exc).__name__})])


def check_url(url: str) -> None:
    if not validate_url(url):
        raise InputError(f"Invalid URL: `{_shown(url)}`", url)
    if not is_json_url(url):
        raise InputError(f"That URL does not end with .json: `{_shown(url)}`", url)


async def load_board(url: str, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> tuple[dict, GraphDescriptorV1]:
    """URL check, fetch and structural validation. Nothing is posted yet."""
    check_url(url)
    raw = await fetch_graph(url, transport=transport)
    result = validate_schema(raw)
    if not result.ok:
        raise SchemaError(f"{url} is not a board", result.diagnostic())
    return raw, result.graph


async def run_load_command(
    cmd: CommandInteraction,
    messenger: Messenger,
    *,
    renderer: Optional[MermaidRenderer] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    workspace_factory=TempWorkspace,
    run_id: Optional[str] = None,
) -> Optional[RunState]:
    """
    One /load run, start to finish. Every failure ends here as a reply;
    nothing propagates to the caller.
    """
    run_id = run_id or str(uuid.uuid4())
    url = str(cmd.option("url") or "")
    logger.info("board.run.started", extra={"run_id": run_id, "url": url, "user": cmd.user.id})

    async def _reply(content: str, ephemeral: bool = False):
        return await messenger.reply(cmd.id, cmd.channel_id, content, ephemeral=ephemeral)

    try:
        raw, graph = await load_board(url, transport=transport)
    except BoardError as e:
        logger.info("board.run.rejected", extra={"run_id": run_id, "url": url, "error": type(e).__name__})
        await _reply(error_reply(url, e))
        return None
    except Exception as e:
        logger.exception("board.run.load_failed", extra={"run_id": run_id, "url": url})
        await _reply(error_reply(url, e))
        return None

    if not cmd.channel_id:
        await _reply("No channel to respond in")
        return None

    try:
        ack = await _reply(f"Loading {_shown(url)}", ephemeral=True)
        tracker = StageTracker(messenger, cmd.channel_id, cmd.user.id, board_metadata_markdown(url, graph))
        await tracker.post(ack)
        pipeline = ArtifactPipeline(tracker, workspace_factory(), renderer)
        return await pipeline.run(url, raw, graph, run_id=run_id)
    except RenderError as e:
        logger.warning("board.render.failed", extra={"run_id": run_id, "url": url, "returncode": e.returncode})
        await _reply(error_reply(url, e))
    except Exception as e:
        logger.exception("board.run.failed", extra={"run_id": run_id, "url": url})
        try:
            await _reply(error_reply(url, e))
        except Exception:
            logger.exception("board.run.reply_failed", extra={"run_id": run_id})
    return None
