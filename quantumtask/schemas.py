from pydantic import BaseModel, Field
from typing import List, Dict, Any, Optional

class NodeMetadata(BaseModel):
    type: str
    label: str
    description: str
    inputs: List[str]
    outputs: List[str]
    params: Dict[str, Any]
    defaults: Dict[str, Any]

class Edge(BaseModel):
    source: str
    target: str
    sourceHandle: Optional[str] = None
    targetHandle: Optional[str] = None

class NodeData(BaseModel):
    description: str = ""
    config: Dict[str, Any] = Field(default_factory=dict)
    # Written by the external executor, only observed here
    output: Optional[Any] = None
    error: Optional[str] = None

class FlowNode(BaseModel):
    id: str
    type: str # This should match NodeMetadata.type
    position: Dict[str, float] = Field(default_factory=lambda: {"x": 0.0, "y": 0.0})
    data: NodeData = Field(default_factory=NodeData)

    @property
    def enabled(self) -> bool:
        return self.data.config.get("isEnabled") is not False

class Workflow(BaseModel):
    nodes: List[FlowNode] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)

# Request bodies

class AddNodeRequest(BaseModel):
    type: str
    id: Optional[str] = None
    position: Optional[Dict[str, float]] = None
    description: str = ""

class ConfigUpdate(BaseModel):
    """Fields submitted from the configuration dialog."""
    changes: Dict[str, Any]

class ExecutionResult(BaseModel):
    output: Optional[Any] = None
    error: Optional[str] = None

class GraphEvent(BaseModel):
    """Change notification pushed to canvas clients."""
    type: str
    payload: Dict[str, Any] = Field(default_factory=dict)

    @property
    def workflow(self) -> Optional[str]:
        # Workflow-level events carry "name", node/edge events carry "workflow"
        return self.payload.get("workflow", self.payload.get("name"))
