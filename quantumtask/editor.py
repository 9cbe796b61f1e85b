import logging
from typing import Any, Dict, Optional

from .graph_store import GraphStore
from .nodes.base import ConfigValidationError
from .node_registry import registry

logger = logging.getLogger(__name__)


class ConfigEditor:
    """
    Editing session for one node's configuration dialog.

    The draft is local until `save()` passes the node kind's validator;
    a rejected save leaves the stored node as it was and keeps the dialog
    open with `error_message` set.
    """

    def __init__(self, store: GraphStore, workflow: str, node_id: str):
        self.store = store
        self.workflow = workflow
        self.node_id = node_id
        node = store.get_node(workflow, node_id)
        self.kind = registry.require_node_class(node.type)
        self.draft: Dict[str, Any] = self.kind.draft_from(node.data.description, node.data.config)
        self.error_message: Optional[str] = None
        self.is_open = True

    def set_field(self, field: str, value: Any):
        if field not in self.kind.editable_fields():
            raise ValueError(f"{self.kind.LABEL} has no field '{field}'")
        self.draft[field] = value

    def update(self, changes: Dict[str, Any]):
        for field, value in changes.items():
            self.set_field(field, value)

    def save(self) -> bool:
        try:
            description, config = self.kind.validate(self.draft)
        except ConfigValidationError as e:
            self.error_message = e.message
            logger.warning(f"{self.kind.LABEL} {self.node_id}: Save rejected - {e.message}")
            return False

        self.store.update_node_data(self.workflow, self.node_id, description=description, config=config)
        self.error_message = None
        self.is_open = False
        logger.info(f"{self.kind.LABEL} {self.node_id}: Configuration saved - {description}, {config}")
        return True

    def cancel(self):
        self.error_message = None
        self.is_open = False
