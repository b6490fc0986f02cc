from dataclasses import dataclass, field
from typing import Optional


@dataclass
class TxNode:
    """Common base for run-file nodes. textX fills `parent` while building the model."""

    parent: Optional[object] = field(default=None, repr=False)

    @property
    def root(self) -> "TxNode":
        node = self
        while isinstance(node.parent, TxNode):
            node = node.parent
        return node
