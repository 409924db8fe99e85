# app/pipeline/artifact_pipeline.py
# json -> mermaid/markdown -> rendered image, strictly in that order: every
# stage reads the file the previous one wrote.

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

from libs.board_common.schemas import GraphDescriptorV1
from app.clients.graph_fetcher import file_name_and_extension
from app.diagrams.mermaid import to_markdown, to_mermaid
from app.infra.renderer import MermaidRenderer
from app.infra.workspace import TempWorkspace
from app.models.state import PipelineStage, RunState
from app.progress.tracker import StageTracker
from app.utils.bounded import dumps

logger = logging.getLogger(__name__)


class ArtifactPipeline:
    def __init__(self, tracker: StageTracker, workspace: TempWorkspace, renderer: Optional[MermaidRenderer] = None):
        self.tracker = tracker
        self.workspace = workspace
        self.renderer = renderer or MermaidRenderer()

    async def _raw_data(self, state: RunState) -> None:
        json_file = await self.workspace.write_text(f"{state['name']}.json", dumps(state["raw"]))
        state["files"]["json"] = json_file
        await self.tracker.advance(PipelineStage.RAW_DATA, json_file)

    async def _diagram_source(self, state: RunState, graph: GraphDescriptorV1) -> None:
        source = to_mermaid(graph)
        mmd_file = await self.workspace.write_text(f"{state['name']}.mmd", source)
        md_file = await self.workspace.write_text(f"{state['name']}.md", to_markdown(state["url"], source))
        state["files"]["mmd"] = mmd_file
        state["files"]["markdown"] = md_file
        await self.tracker.advance(PipelineStage.DIAGRAM_SOURCE, md_file)

    async def _rendered_image(self, state: RunState) -> None:
        mmd_file = state["files"]["mmd"]
        target = self.workspace.file(f"{state['name']}.{self.renderer.output_format}")
        image_file = await self.renderer.render(mmd_file, target)
        state["files"]["image"] = image_file
        await self.tracker.advance(PipelineStage.RENDERED_IMAGE, image_file)

    async def run(self, url: str, raw: Dict[str, Any], graph: GraphDescriptorV1, *, run_id: str = "") -> RunState:
        """
        Run the three stages. On the first failure the tracker is marked failed
        and the exception propagates; attachments already delivered stay.
        """
        name, _ = file_name_and_extension(url)
        state: RunState = {
            "run_id": run_id,
            "url": url,
            "name": name or "board",
            "workspace": str(self.workspace.path),
            "raw": raw,
            "files": {},
            "failed_stage": None,
            "error": None,
        }
        steps = [
            (PipelineStage.RAW_DATA, lambda: self._raw_data(state)),
            (PipelineStage.DIAGRAM_SOURCE, lambda: self._diagram_source(state, graph)),
            (PipelineStage.RENDERED_IMAGE, lambda: self._rendered_image(state)),
        ]
        t0 = time.time()
        succeeded = False
        try:
            for stage, step in steps:
                try:
                    await step()
                except Exception as e:
                    state["failed_stage"] = stage.value
                    state["error"] = str(e)
                    self.tracker.fail(stage, str(e))
                    raise
            succeeded = True
            logger.info(
                "board.run.completed",
                extra={"run_id": run_id, "url": url, "duration_ms": int((time.time() - t0) * 1000)},
            )
            return state
        finally:
            self.workspace.close(succeeded=succeeded)
