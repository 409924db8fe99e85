# app/validation/graph_schema.py
from __future__ import annotations

import logging
from typing import Any, List, Optional

from pydantic import BaseModel, ValidationError

from libs.board_common.schemas import GraphDescriptorV1

logger = logging.getLogger(__name__)

# pydantic error type -> the shape we tell the user we expected
_EXPECTED = {
    "missing": "required field",
    "list_type": "array",
    "dict_type": "object",
    "model_type": "object",
    "string_type": "string",
    "bool_type": "boolean",
    "int_type": "integer",
}


class SchemaIssue(BaseModel):
    path: str
    expected: str
    message: str


class ValidationResult(BaseModel):
    ok: bool
    graph: Optional[GraphDescriptorV1] = None
    issues: List[SchemaIssue] = []

    def diagnostic(self) -> List[dict]:
        return [i.model_dump() for i in self.issues]


def _path(loc: tuple) -> str:
    out = ""
    for part in loc:
        if isinstance(part, int):
            out += f"[{part}]"
        else:
            out += f".{part}" if out else str(part)
    return out or "$"


def validate_schema(value: Any) -> ValidationResult:
    """
    Structural check of a decoded board against GraphDescriptor.

    Strict: nothing is coerced, so `"nodes": {}` or `"id": 3` are rejected
    rather than converted. Unknown keys are allowed.
    """
    if not isinstance(value, dict):
        issue = SchemaIssue(path="$", expected="object", message=f"expected an object, got {type(value).__name__}")
        return ValidationResult(ok=False, issues=[issue])
    try:
        graph = GraphDescriptorV1.model_validate(value)
    except ValidationError as e:
        issues = [
            SchemaIssue(
                path=_path(tuple(err.get("loc") or ())),
                expected=_EXPECTED.get(err.get("type", ""), err.get("type", "")),
                message=err.get("msg", ""),
            )
            for err in e.errors()
        ]
        logger.debug("board.schema.invalid", extra={"issues": [i.model_dump() for i in issues]})
        return ValidationResult(ok=False, issues=issues)
    return ValidationResult(ok=True, graph=graph)
