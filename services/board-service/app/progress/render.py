# app/progress/render.py
from __future__ import annotations

from typing import Dict, List

from libs.board_common.schemas import GraphDescriptorV1
from app.clients.graph_fetcher import file_name_and_extension
from app.models.state import PipelineStage, StageState

DONE_MARK = "✅"
PENDING_MARK = "⌛️"


def board_metadata_markdown(url: str, graph: GraphDescriptorV1) -> str:
    name, extension = file_name_and_extension(url)
    filename = f"{name}.{extension}" if extension else name

    lines: List[str] = [f"# [{graph.title or filename}]({graph.url or url})"]
    if graph.description:
        lines.append(f"> {graph.description}")
    if graph.schema_:
        lines.append(f"[$chema]({graph.schema_})")

    lines.append("\n".join([
        "```",
        f"nodes: {len(graph.nodes)}",
        f"edges: {len(graph.edges)}",
        f"kits: {graph.kit_count}",
        f"graphs: {graph.graph_count}",
        "```",
    ]))
    return "\n".join(lines)


def stage_line(stage: PipelineStage, state: StageState) -> str:
    mark = DONE_MARK if state is StageState.DONE else PENDING_MARK
    return f"{mark} `{stage.display_name}`"


def progress_content(mention: str, metadata: str, stages: Dict[PipelineStage, StageState]) -> str:
    """Full message text for a given state; once everything is done the checklist is dropped."""
    lines = [mention, metadata]
    if any(stages[s] is not StageState.DONE for s in PipelineStage.ordered()):
        lines += [stage_line(s, stages[s]) for s in PipelineStage.ordered()]
    return "\n".join(lines)
