from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, TypedDict


class PipelineStage(str, Enum):
    RAW_DATA = "raw_data"
    DIAGRAM_SOURCE = "diagram_source"
    RENDERED_IMAGE = "rendered_image"

    @property
    def display_name(self) -> str:
        return _DISPLAY[self]

    @classmethod
    def ordered(cls) -> List["PipelineStage"]:
        return [cls.RAW_DATA, cls.DIAGRAM_SOURCE, cls.RENDERED_IMAGE]


_DISPLAY = {
    PipelineStage.RAW_DATA: "json",
    PipelineStage.DIAGRAM_SOURCE: "markdown",
    PipelineStage.RENDERED_IMAGE: "mermaid",
}


class StageState(str, Enum):
    PENDING = "pending"
    DONE = "done"


class RunStatus(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class RunState(TypedDict, total=False):
    run_id: str
    url: str
    name: str
    workspace: str
    raw: Dict[str, Any]
    files: Dict[str, Path]
    failed_stage: Optional[str]
    error: Optional[str]
