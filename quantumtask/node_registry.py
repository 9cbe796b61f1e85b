import logging
from typing import Dict, Type, Optional
from .nodes.base import BaseNodeKind
from .nodes.network import ProxyNode
from .nodes.ai import AIImageGenerationNode
from .nodes.general import ErrorHandlerNode

logger = logging.getLogger(__name__)

class NodeRegistry:
    def __init__(self):
        self.node_classes: Dict[str, Type[BaseNodeKind]] = {}

        # Explicit registration
        self.register(ProxyNode)
        self.register(AIImageGenerationNode)
        self.register(ErrorHandlerNode)

    def register(self, cls):
        if hasattr(cls, "NODE_TYPE"):
            self.node_classes[cls.NODE_TYPE] = cls

    def get_node_class(self, node_type: str) -> Optional[Type[BaseNodeKind]]:
        return self.node_classes.get(node_type)

    def require_node_class(self, node_type: str) -> Type[BaseNodeKind]:
        cls = self.get_node_class(node_type)
        if cls is None:
            raise ValueError(f"Unknown node type: {node_type}")
        return cls

    def get_all_metadata(self):
        nodes = []
        for _, cls in self.node_classes.items():
            try:
                nodes.append(cls.get_schema())
            except Exception as e:
                logger.error(f"Error extracting schema from {cls}: {e}")
        return nodes

registry = NodeRegistry()
