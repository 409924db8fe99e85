# graph_v1.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr

# scalars are Strict* so nothing is coerced (3 is not an id, "true" is not a flag);
# unknown keys are kept
_STRICT = ConfigDict(extra="allow", populate_by_name=True)


class NodeV1(BaseModel):
    model_config = _STRICT

    id: StrictStr
    type: StrictStr
    configuration: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None


class EdgeV1(BaseModel):
    model_config = _STRICT

    from_: StrictStr = Field(alias="from")
    to: StrictStr
    out: Optional[StrictStr] = None
    in_: Optional[StrictStr] = Field(default=None, alias="in")
    optional: Optional[StrictBool] = None
    constant: Optional[StrictBool] = None


class KitV1(BaseModel):
    model_config = _STRICT

    url: StrictStr
    title: Optional[StrictStr] = None
    description: Optional[StrictStr] = None
    version: Optional[StrictStr] = None


class GraphDescriptorV1(BaseModel):
    model_config = _STRICT

    nodes: List[NodeV1]
    edges: List[EdgeV1]
    kits: Optional[List[KitV1]] = None
    graphs: Optional[Dict[str, "GraphDescriptorV1"]] = None

    title: Optional[StrictStr] = None
    description: Optional[StrictStr] = None
    schema_: Optional[StrictStr] = Field(default=None, alias="$schema")
    url: Optional[StrictStr] = None
    version: Optional[StrictStr] = None

    @property
    def kit_count(self) -> int:
        return len(self.kits or [])

    @property
    def graph_count(self) -> int:
        # the main graph plus every named subgraph
        return 1 + len(self.graphs or {})


GraphDescriptorV1.model_rebuild()
