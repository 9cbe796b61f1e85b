"""Visual status of a node, derived from what the executor last reported."""

import enum

from .schemas import FlowNode


class NodeStatus(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    ERROR = "error"


def project_status(node: FlowNode) -> NodeStatus:
    # Recomputed on every read; GraphStore.record_result logs the transitions
    data = node.data
    if data.error:
        return NodeStatus.ERROR
    if data.output is not None:
        return NodeStatus.RUNNING
    return NodeStatus.IDLE
