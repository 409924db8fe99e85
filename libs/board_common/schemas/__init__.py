from .graph_v1 import GraphDescriptorV1, NodeV1, EdgeV1, KitV1

__all__ = ["GraphDescriptorV1", "NodeV1", "EdgeV1", "KitV1"]
