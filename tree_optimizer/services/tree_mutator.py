import uuid
import logging
from typing import Callable, Iterable, List, Optional, Set, Tuple
from tree_optimizer.models.optimization import OptimizationSuggestion
from tree_optimizer.models.tree import (
    Forest,
    NodeSnapshot,
    TroubleshootingNode,
    find_node,
    locate_node,
    node_ids,
)

logger = logging.getLogger(__name__)

REVERSE_TYPES = {
    "add": "remove",
    "remove": "add",
    "merge": "split",
    "split": "merge",
    "modify": "modify",
    "reorder": "reorder",
}

# Returns the nodes that replace the visited one, or None to keep it and descend.
Visitor = Callable[[TroubleshootingNode], Optional[Tuple[TroubleshootingNode, ...]]]

def reverse_change_type(change_type: str) -> str:
    return REVERSE_TYPES[change_type]

def _rewrite(nodes: Forest, visit: Visitor) -> Forest:
    """
    Rebuilds only the branches the visitor touches.

    Unchanged sibling lists are returned as the very same tuple, so callers
    can detect "nothing happened" with an identity check.
    """
    out = []
    changed = False
    for node in nodes:
        replacement = visit(node)
        if replacement is None:
            children = _rewrite(node.children, visit)
            if children is not node.children:
                node = node.model_copy(update={"children": children})
                changed = True
            out.append(node)
        else:
            out.extend(replacement)
            changed = True
    return tuple(out) if changed else nodes

def _remove_ids(tree: Forest, ids: Set[str]) -> Forest:
    return _rewrite(tree, lambda node: () if node.id in ids else None)

def _update_children(tree: Forest, parent_id: Optional[str], update: Callable[[Forest], Forest]) -> Forest:
    if parent_id is None:
        return update(tree)
    return _rewrite(tree, lambda node: (
        (node.model_copy(update={"children": update(node.children)}),) if node.id == parent_id else None
    ))

def _insert(tree: Forest, node: TroubleshootingNode, parent_id: Optional[str], position: Optional[int]) -> Forest:
    if parent_id is not None and find_node(tree, parent_id) is None:
        # Parent is gone: fall back to a new top-level node
        parent_id, position = None, None

    def place(siblings: Forest) -> Forest:
        items = list(siblings)
        index = len(items) if position is None else max(0, min(position, len(items)))
        items.insert(index, node)
        return tuple(items)

    return _update_children(tree, parent_id, place)

def _new_node_id() -> str:
    return f"new_node_{uuid.uuid4().hex[:9]}"

def _build_node(snapshot: NodeSnapshot) -> TroubleshootingNode:
    return TroubleshootingNode(
        id=snapshot.id or _new_node_id(),
        kind=snapshot.kind or "question",
        title=snapshot.title or "New Node",
        description=snapshot.description or "",
        children=tuple(snapshot.children or ()),
    )

class TreeMutator:
    """
    Applies suggestions to a tree and returns the candidate tree.

    Input trees are never modified (nodes are frozen), and an operation that
    names a node the tree no longer has is skipped rather than reported, so a
    batch keeps going when an earlier suggestion already removed its target.
    """

    def apply(self, tree: Forest, suggestions: Iterable[OptimizationSuggestion]) -> Forest:
        tree = tuple(tree)
        for suggestion in suggestions:
            handler = getattr(self, f"_apply_{suggestion.type}", None)
            if handler is None:
                logger.warning(f"Skipping suggestion with unknown type: {suggestion.type}")
                continue
            tree = handler(tree, suggestion)
        return tree

    def _apply_remove(self, tree: Forest, suggestion: OptimizationSuggestion) -> Forest:
        return _remove_ids(tree, set(suggestion.affected_nodes))

    def _apply_modify(self, tree: Forest, suggestion: OptimizationSuggestion) -> Forest:
        modifications = {snap.id: snap for snap in suggestion.after or [] if snap.id}
        if not modifications:
            return tree

        def visit(node: TroubleshootingNode):
            snap = modifications.get(node.id)
            if snap is None:
                return None
            update = {field: getattr(snap, field) for field in ("kind", "title", "description")
                      if getattr(snap, field) is not None}
            children = tuple(snap.children) if snap.children is not None else node.children
            update["children"] = _rewrite(children, visit)
            return (node.model_copy(update=update),)

        return _rewrite(tree, visit)

    def _apply_reorder(self, tree: Forest, suggestion: OptimizationSuggestion) -> Forest:
        if len(suggestion.affected_nodes) < 2:
            return tree
        first_id, second_id = suggestion.affected_nodes[:2]
        first, second = locate_node(tree, first_id), locate_node(tree, second_id)
        if not first or not second or first_id == second_id:
            return tree
        if first[0] != second[0]:
            logger.debug(f"Not reordering {first_id} and {second_id}: they have different parents")
            return tree

        i, j = first[1], second[1]

        def swap(siblings: Forest) -> Forest:
            items = list(siblings)
            items[i], items[j] = items[j], items[i]
            return tuple(items)

        return _update_children(tree, first[0], swap)

    def _apply_add(self, tree: Forest, suggestion: OptimizationSuggestion) -> Forest:
        existing = set(node_ids(tree))
        for snap in suggestion.after or []:
            node = _build_node(snap)
            incoming = set(node_ids((node,)))
            if incoming & existing:
                # Ids stay unique: an existing node is never replaced
                logger.debug(f"Not adding {node.id}: ids already in the tree: {sorted(incoming & existing)}")
                continue
            existing |= incoming
            tree = _insert(tree, node, snap.parent_id, snap.position)
        return tree

    def _apply_merge(self, tree: Forest, suggestion: OptimizationSuggestion) -> Forest:
        if len(suggestion.affected_nodes) < 2:
            return tree
        source_id, target_id = suggestion.affected_nodes[:2]
        if source_id == target_id:
            return tree
        source, target = find_node(tree, source_id), find_node(tree, target_id)
        if not source or not target:
            return tree
        if find_node(source.children, target_id):
            logger.debug(f"Not merging {source_id} into its own descendant {target_id}")
            return tree

        moved = source.children
        tree = _rewrite(tree, lambda node: (
            (node.model_copy(update={"children": node.children + moved}),) if node.id == target_id else None
        ))
        return _remove_ids(tree, {source_id})

    def _apply_split(self, tree: Forest, suggestion: OptimizationSuggestion) -> Forest:
        if len(suggestion.affected_nodes) < 2:
            return tree
        new_id, source_id = suggestion.affected_nodes[:2]
        snap = next((s for s in suggestion.after or [] if s.id == new_id), None)
        source = find_node(tree, source_id)
        if snap is None or source is None or new_id == source_id or find_node(tree, new_id):
            return tree

        carved = {child.id for child in snap.children or ()}
        taken = tuple(child for child in source.children if child.id in carved)
        kept = tuple(child for child in source.children if child.id not in carved)
        tree = _rewrite(tree, lambda node: (
            (node.model_copy(update={"children": kept}),) if node.id == source_id else None
        ))

        new_node = TroubleshootingNode(
            id=new_id,
            kind=snap.kind or source.kind,
            title=snap.title or source.title,
            description=snap.description if snap.description is not None else source.description,
            children=taken,
        )
        if snap.parent_id is not None or snap.position is not None:
            return _insert(tree, new_node, snap.parent_id, snap.position)
        parent_id, index = locate_node(tree, source_id)
        return _insert(tree, new_node, parent_id, index + 1)

def invert_suggestion(suggestion: OptimizationSuggestion) -> OptimizationSuggestion:
    """The suggestion that undoes ``suggestion`` when applied after it."""
    affected = list(suggestion.affected_nodes)
    if suggestion.type == "add":
        # An add also names its anchor node; undoing it must only drop what it created
        affected = [snap.id for snap in suggestion.after or [] if snap.id]

    inverse = suggestion.model_copy(update={
        "type": reverse_change_type(suggestion.type),
        "description": f"Rollback: {suggestion.description}",
        "affected_nodes": affected,
        "before": suggestion.after,
        "after": suggestion.before,
    })
    # model_copy does not copy update values, so detach the swapped snapshot lists
    return inverse.model_copy(deep=True)

def pin_added_nodes(suggestions: List[OptimizationSuggestion], original_tree: Forest,
                    optimized_tree: Forest) -> List[OptimizationSuggestion]:
    """
    Ties every ``add`` to the nodes it actually created in ``optimized_tree``.

    Snapshots without an id take the generated ``new_node_`` ids, in tree
    order. Snapshots whose node was not created (the id was already taken)
    are dropped. Inverting the pinned suggestions then removes exactly the
    new nodes and nothing else.
    """
    before = set(node_ids(original_tree))
    created = [node_id for node_id in node_ids(optimized_tree) if node_id not in before]

    named = set()
    for suggestion in suggestions:
        if suggestion.type != "add":
            continue
        for snap in suggestion.after or []:
            if snap.id:
                named.add(snap.id)
            named.update(node_ids(tuple(snap.children or ())))
    generated = iter([node_id for node_id in created if node_id.startswith("new_node_") and node_id not in named])
    created = set(created)

    pinned = []
    for suggestion in suggestions:
        if suggestion.type != "add":
            pinned.append(suggestion)
            continue

        after, dropped, filled = [], set(), []
        for snap in suggestion.after or []:
            if snap.id is None:
                new_id = next(generated, None)
                if new_id is None:
                    continue
                snap = snap.model_copy(update={"id": new_id})
                filled.append(new_id)
            elif snap.id not in created:
                dropped.add(snap.id)
                continue
            after.append(snap)

        affected = [node_id for node_id in suggestion.affected_nodes if node_id not in dropped]
        affected += [node_id for node_id in filled if node_id not in affected]
        pinned.append(suggestion.model_copy(update={"after": after, "affected_nodes": affected}))
    return pinned
