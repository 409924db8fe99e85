# app/diagrams/mermaid.py
# Turn a board (nodes/edges/subgraphs) into Mermaid flowchart source.
# Output is a pure function of the board: same input, byte-identical text.

from __future__ import annotations

import re

from libs.board_common.schemas import EdgeV1, GraphDescriptorV1, NodeV1

_INIT = "%%{init: 'themeVariables': { 'fontFamily': 'Fira Code, monospace' }}%%"
_UNSAFE_ID = re.compile(r"[^A-Za-z0-9_]")

_CLASS_DEFS = [
    "classDef default stroke:#ffab40,fill:#fff2ccff,color:#000",
    "classDef input stroke:#3c78d8,fill:#c9daf8ff,color:#000",
    "classDef output stroke:#38761d,fill:#b6d7a8ff,color:#000",
    "classDef passthrough stroke:#a64d79,fill:#ead1dcff,color:#000",
    "classDef slot stroke:#a64d79,fill:#ead1dcff,color:#000",
    "classDef config stroke:#a64d79,fill:#ead1dcff,color:#000",
    "classDef secrets stroke:#db4437,fill:#f4cccc,color:#000",
    "classDef slotted stroke:#a64d79",
]


def _safe_id(raw: str, prefix: str = "") -> str:
    ident = _UNSAFE_ID.sub("", raw) or "node"
    return f"{prefix}_{ident}" if prefix else ident


def _label(text: str) -> str:
    return text.replace('"', "#quot;")


def _class_name(node_type: str) -> str:
    return _UNSAFE_ID.sub("", node_type) or "default"


def _node_line(node: NodeV1, prefix: str) -> str:
    ident = _safe_id(node.id, prefix)
    text = _label(f"{node.type} <br> id='{node.id}'")
    if node.type in ("input", "output"):
        shape = f'[/"{text}"/]'
    elif node.type == "secrets":
        shape = f'(("{text}"))'
    else:
        shape = f'["{text}"]'
    return f"{ident}{shape}:::{_class_name(node.type)}"


def _edge_line(edge: EdgeV1, prefix: str) -> str:
    src = _safe_id(edge.from_, prefix)
    dst = _safe_id(edge.to, prefix)
    if edge.out == "*":
        label = "all"
    elif edge.out or edge.in_:
        label = f'"{_label(edge.out or "")}->{_label(edge.in_ or "")}"'
    else:
        label = ""

    if edge.optional:
        arrow = f"-. {label} .->" if label else "-.->"
    elif edge.constant:
        arrow = f"== {label} ==>" if label else "==>"
    else:
        arrow = f"-- {label} -->" if label else "-->"
    return f"{src} {arrow} {dst}"


def _body(graph: GraphDescriptorV1, prefix: str = "") -> list[str]:
    lines = [_node_line(n, prefix) for n in graph.nodes]
    lines += [_edge_line(e, prefix) for e in graph.edges]
    for name, sub in (graph.graphs or {}).items():
        sub_prefix = _safe_id(name, prefix)
        lines.append(f'subgraph sg_{sub_prefix} ["{_label(name)}"]')
        lines += [f"  {line}" for line in _body(sub, sub_prefix)]
        lines.append("end")
    return lines


def to_mermaid(graph: GraphDescriptorV1) -> str:
    """
    graph TD source with one declaration per node, then one line per edge.
    `*` wiring is labelled `all`; optional edges are dotted, constant edges thick.
    Named subgraphs become `subgraph` blocks whose ids are prefixed by the subgraph name.
    """
    return "\n".join([_INIT, "graph TD;", *_body(graph), *_CLASS_DEFS])


def to_markdown(url: str, mermaid_source: str) -> str:
    return "\n".join([url, "```mermaid", mermaid_source, "```"])
