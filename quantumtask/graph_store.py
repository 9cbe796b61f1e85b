import json
import uuid
import logging
import threading
from typing import Callable, Dict, Any, List, Optional

from .node_registry import registry
from .nodes.base import ConfigValidationError
from .schemas import Edge, FlowNode, NodeData, Workflow
from .status import NodeStatus, project_status

logger = logging.getLogger(__name__)


class WorkflowNotFoundError(LookupError):
    pass


class NodeNotFoundError(LookupError):
    pass


class GraphStore:
    """In-memory workflows shown on the canvas.

    Every mutation builds a new node/edge list and swaps it in, so readers
    never observe a half-applied change. `on_event(event, payload)` is called
    after each change.
    """

    def __init__(self, on_event: Optional[Callable[[str, Dict[str, Any]], None]] = None):
        self.workflows: Dict[str, Workflow] = {}
        self.on_event = on_event
        self._lock = threading.Lock()

    def _emit(self, event: str, payload: Dict[str, Any]):
        if self.on_event:
            try:
                self.on_event(event, payload)
            except Exception as e:
                logger.error(f"Event callback failed for {event}: {e}")

    def _workflow(self, name: str) -> Workflow:
        workflow = self.workflows.get(name)
        if workflow is None:
            raise WorkflowNotFoundError(f"Workflow {name} does not exist")
        return workflow

    def _find(self, workflow: Workflow, name: str, node_id: str) -> FlowNode:
        for node in workflow.nodes:
            if node.id == node_id:
                return node
        raise NodeNotFoundError(f"Node {node_id} not found in workflow {name}")

    def _replace_node(self, name: str, workflow: Workflow, updated: FlowNode):
        nodes = [updated if n.id == updated.id else n for n in workflow.nodes]
        self.workflows[name] = workflow.model_copy(update={"nodes": nodes})

    @staticmethod
    def _label(node: FlowNode) -> str:
        cls = registry.get_node_class(node.type)
        return cls.LABEL if cls else node.type

    # --- WORKFLOWS ---

    def list_workflows(self) -> List[str]:
        return sorted(self.workflows)

    def create_workflow(self, name: str) -> Workflow:
        with self._lock:
            if name in self.workflows:
                raise ValueError(f"Workflow {name} already exists")
            self.workflows[name] = Workflow()
        logger.info(f"Created workflow: {name}")
        self._emit("workflow_created", {"name": name})
        return self.workflows[name]

    def get_workflow(self, name: str) -> Workflow:
        return self._workflow(name)

    def save_workflow(self, name: str, workflow: Workflow) -> Workflow:
        """Replace a whole graph (e.g. after a canvas import), creating it if needed."""
        ids = set()
        nodes = []
        for node in workflow.nodes:
            cls = registry.require_node_class(node.type)
            if node.id in ids:
                raise ValueError(f"Duplicate node id: {node.id}")
            ids.add(node.id)
            try:
                config = cls.check_stored(node.data.description, node.data.config)
            except ConfigValidationError as e:
                raise ValueError(f"Node {node.id}: {e.message}")
            data = node.data.model_copy(update={"config": config})
            nodes.append(node.model_copy(update={"data": data}))

        by_id = {n.id: n for n in nodes}
        edges = []
        for edge in workflow.edges:
            edge = self._check_edge(by_id, edge)
            if edge not in edges:
                edges.append(edge)

        with self._lock:
            self.workflows[name] = Workflow(nodes=nodes, edges=edges)
        logger.info(f"Saved workflow {name} with {len(nodes)} nodes and {len(edges)} edges")
        self._emit("workflow_saved", {"name": name})
        return self.workflows[name]

    def delete_workflow(self, name: str):
        with self._lock:
            self._workflow(name)
            del self.workflows[name]
        logger.info(f"Deleted workflow: {name}")
        self._emit("workflow_deleted", {"name": name})

    # --- NODES ---

    def add_node(self, name: str, node_type: str, node_id: Optional[str] = None,
                 position: Optional[Dict[str, float]] = None, description: str = "") -> FlowNode:
        cls = registry.require_node_class(node_type)
        node = FlowNode(
            id=node_id or f"{node_type}-{uuid.uuid4().hex[:8]}",
            type=node_type,
            position=position or {"x": 0.0, "y": 0.0},
            data=NodeData(description=description, config=cls.default_config()),
        )
        with self._lock:
            workflow = self._workflow(name)
            if any(n.id == node.id for n in workflow.nodes):
                raise ValueError(f"Node {node.id} already exists in workflow {name}")
            self.workflows[name] = workflow.model_copy(update={"nodes": workflow.nodes + [node]})
        logger.info(f"{cls.LABEL} {node.id}: Added")
        self._emit("node_added", {"workflow": name, "node": node.model_dump()})
        return node

    def get_node(self, name: str, node_id: str) -> FlowNode:
        return self._find(self._workflow(name), name, node_id)

    def delete_node(self, name: str, node_id: str) -> FlowNode:
        """Remove one node together with every edge touching it."""
        with self._lock:
            workflow = self._workflow(name)
            node = self._find(workflow, name, node_id)
            nodes = [n for n in workflow.nodes if n.id != node_id]
            edges = [e for e in workflow.edges if e.source != node_id and e.target != node_id]
            self.workflows[name] = Workflow(nodes=nodes, edges=edges)
        dropped = len(workflow.edges) - len(edges)
        logger.info(f"{self._label(node)} {node_id}: Deleted ({dropped} edges removed)")
        self._emit("node_deleted", {"workflow": name, "node_id": node_id})
        return node

    def toggle_node(self, name: str, node_id: str) -> bool:
        with self._lock:
            workflow = self._workflow(name)
            node = self._find(workflow, name, node_id)
            enabled = not node.enabled
            config = {**node.data.config, "isEnabled": enabled}
            data = node.data.model_copy(update={"config": config})
            self._replace_node(name, workflow, node.model_copy(update={"data": data}))
        logger.info(f"{self._label(node)} {node_id}: {'Enabled' if enabled else 'Disabled'}")
        self._emit("node_updated", {"workflow": name, "node_id": node_id, "enabled": enabled})
        return enabled

    def update_node_data(self, name: str, node_id: str, description: Optional[str] = None,
                         config: Optional[Dict[str, Any]] = None) -> FlowNode:
        """Merge committed editor fields into one node, leaving the others untouched."""
        with self._lock:
            workflow = self._workflow(name)
            node = self._find(workflow, name, node_id)
            update = {"config": {**node.data.config, **(config or {})}}
            if description is not None:
                update["description"] = description
            updated = node.model_copy(update={"data": node.data.model_copy(update=update)})
            self._replace_node(name, workflow, updated)
        self._emit("node_updated", {"workflow": name, "node_id": node_id})
        return updated

    def record_result(self, name: str, node_id: str, output: Any = None,
                      error: Optional[str] = None) -> NodeStatus:
        """Store what the executor reported for a node; None clears a field."""
        with self._lock:
            workflow = self._workflow(name)
            node = self._find(workflow, name, node_id)
            data = node.data.model_copy(update={"output": output, "error": error})
            updated = node.model_copy(update={"data": data})
            self._replace_node(name, workflow, updated)
        status = project_status(updated)
        if status is NodeStatus.ERROR:
            logger.error(f"{self._label(updated)} {node_id}: {error}")
        elif status is NodeStatus.RUNNING:
            logger.info(f"{self._label(updated)} {node_id}: output - {json.dumps(output, default=str)}")
        self._emit("node_status", {"workflow": name, "node_id": node_id, "status": status.value})
        return status

    def node_status(self, name: str, node_id: str) -> NodeStatus:
        return project_status(self.get_node(name, node_id))

    # --- EDGES ---

    @staticmethod
    def _check_edge(by_id: Dict[str, FlowNode], edge: Edge) -> Edge:
        """Return the edge with handles spelled as port names, None for "default"."""
        for end in (edge.source, edge.target):
            if end not in by_id:
                raise ValueError(f"Edge references unknown node {end}")
        source = registry.require_node_class(by_id[edge.source].type).resolve_handle(edge.sourceHandle, "out")
        target = registry.require_node_class(by_id[edge.target].type).resolve_handle(edge.targetHandle, "in")
        return Edge(
            source=edge.source,
            target=edge.target,
            sourceHandle=None if source == "default" else source,
            targetHandle=None if target == "default" else target,
        )

    def add_edge(self, name: str, edge: Edge) -> Edge:
        with self._lock:
            workflow = self._workflow(name)
            edge = self._check_edge({n.id: n for n in workflow.nodes}, edge)
            if edge in workflow.edges:
                raise ValueError(f"Edge {edge.source} -> {edge.target} already exists")
            self.workflows[name] = workflow.model_copy(update={"edges": workflow.edges + [edge]})
        logger.info(f"Connected {edge.source}:{edge.sourceHandle or 'default'} -> "
                    f"{edge.target}:{edge.targetHandle or 'default'}")
        self._emit("edge_added", {"workflow": name, "edge": edge.model_dump()})
        return edge

    def remove_edge(self, name: str, edge: Edge):
        with self._lock:
            workflow = self._workflow(name)
            edge = self._check_edge({n.id: n for n in workflow.nodes}, edge)
            if edge not in workflow.edges:
                raise ValueError(f"Edge {edge.source} -> {edge.target} does not exist")
            edges = [e for e in workflow.edges if e != edge]
            self.workflows[name] = workflow.model_copy(update={"edges": edges})
        self._emit("edge_removed", {"workflow": name, "edge": edge.model_dump()})
