# app/progress/tracker.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from app.errors import StageOrderError
from app.infra.messenger import MessageHandle, Messenger
from app.models.state import PipelineStage, RunStatus, StageState
from app.progress.render import progress_content

log = logging.getLogger(__name__)


class StageTracker:
    """
    Owns the single progress message of one run.

      NotStarted -> RawDataDone -> DiagramSourceDone -> RenderedImageDone
                 \\-> Failed(stage, error)   (from any point)

    Stages only move Pending -> Done, in order. Each transition edits the
    same message with the full content and the cumulative attachment list.
    """
    def __init__(self, messenger: Messenger, channel_id: str, requester_id: str, metadata: str):
        self.messenger = messenger
        self.channel_id = channel_id
        self.mention = f"<@{requester_id}>"
        self.metadata = metadata
        self.stages: Dict[PipelineStage, StageState] = {s: StageState.PENDING for s in PipelineStage.ordered()}
        self.files: List[Path] = []
        self.status = RunStatus.NOT_STARTED
        self.failure: Optional[Tuple[PipelineStage, str]] = None
        self.handle: Optional[MessageHandle] = None

    def content(self) -> str:
        return progress_content(self.mention, self.metadata, self.stages)

    def next_stage(self) -> Optional[PipelineStage]:
        for s in PipelineStage.ordered():
            if self.stages[s] is StageState.PENDING:
                return s
        return None

    async def post(self, ack: Optional[MessageHandle] = None) -> MessageHandle:
        """Create the durable message (all stages pending) and drop the ephemeral ack if one was shown."""
        if self.handle is not None:
            return self.handle
        self.handle = await self.messenger.send(self.channel_id, self.content())
        self.status = RunStatus.RUNNING
        if ack is not None:
            await self.messenger.delete(ack)
        return self.handle

    async def advance(self, stage: PipelineStage, *files: Path) -> MessageHandle:
        if self.handle is None:
            raise StageOrderError("progress message has not been posted")
        if self.status is RunStatus.FAILED:
            raise StageOrderError(f"run already failed at {self.failure[0].display_name}")

        if self.stages[stage] is not StageState.DONE:
            expected = self.next_stage()
            if stage is not expected:
                raise StageOrderError(f"cannot complete {stage.display_name} before {expected.display_name}")
            self.stages[stage] = StageState.DONE

        for f in files:
            if f not in self.files:
                self.files.append(f)

        # full replacement: re-sending the same state yields the same edit
        self.handle = await self.messenger.edit(self.handle, self.content(), list(self.files))
        if self.next_stage() is None:
            self.status = RunStatus.COMPLETED
        log.info("board.stage.done", extra={"stage": stage.value, "files": [f.name for f in self.files]})
        return self.handle

    def fail(self, stage: PipelineStage, error: str) -> None:
        """Terminal failure. Completed stages and their attachments are left as they are."""
        if self.status is RunStatus.COMPLETED:
            raise StageOrderError("run already completed")
        self.status = RunStatus.FAILED
        self.failure = (stage, error)
        log.info("board.run.failed", extra={"stage": stage.value, "error": error})
