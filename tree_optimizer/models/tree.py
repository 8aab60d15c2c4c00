from typing import Iterator, List, Literal, Optional, Tuple
from pydantic import BaseModel, ConfigDict

NodeKind = Literal["question", "solution"]

class TroubleshootingNode(BaseModel):
    """A node of the troubleshooting tree.

    Nodes are frozen: edits go through ``model_copy(update=...)`` and only the
    path from the root to the edited node is rebuilt, so untouched subtrees are
    shared between tree versions safely.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    kind: NodeKind
    title: str
    description: str = ""
    children: Tuple["TroubleshootingNode", ...] = ()

# A tree is an ordered forest of top-level nodes.
Forest = Tuple[TroubleshootingNode, ...]

class NodeSnapshot(BaseModel):
    """Partial node shape recorded in a suggestion's before/after lists."""
    id: Optional[str] = None
    kind: Optional[NodeKind] = None
    title: Optional[str] = None
    description: Optional[str] = None
    children: Optional[List[TroubleshootingNode]] = None
    # Where the node sat when captured; None parent_id means top level.
    parent_id: Optional[str] = None
    position: Optional[int] = None

    @classmethod
    def capture(cls, tree: Forest, node: TroubleshootingNode, with_children: bool = False) -> "NodeSnapshot":
        parent_id, position = locate_node(tree, node.id) or (None, None)
        return cls(
            id=node.id,
            kind=node.kind,
            title=node.title,
            description=node.description,
            children=list(node.children) if with_children else None,
            parent_id=parent_id,
            position=position,
        )

def iter_nodes(tree: Forest) -> Iterator[TroubleshootingNode]:
    """Depth-first, pre-order walk over every node of the forest."""
    for node in tree:
        yield node
        yield from iter_nodes(node.children)

def node_ids(tree: Forest) -> List[str]:
    return [node.id for node in iter_nodes(tree)]

def find_node(tree: Forest, node_id: str) -> Optional[TroubleshootingNode]:
    for node in iter_nodes(tree):
        if node.id == node_id:
            return node
    return None

def locate_node(tree: Forest, node_id: str, parent_id: Optional[str] = None) -> Optional[Tuple[Optional[str], int]]:
    """Returns (parent id, index among siblings) or None when the id is absent."""
    for index, node in enumerate(tree):
        if node.id == node_id:
            return parent_id, index
        found = locate_node(node.children, node_id, node.id)
        if found:
            return found
    return None

def load_forest(data) -> Forest:
    return tuple(TroubleshootingNode.model_validate(item) for item in data)

def dump_forest(tree: Forest) -> List[dict]:
    return [node.model_dump() for node in tree]
