from tree_optimizer.models.tree import TroubleshootingNode
from tree_optimizer.services.tree_store import TreeStore

def test_replace_and_reset(tree):
    store = TreeStore(tree)
    assert store.current == tree

    replacement = (TroubleshootingNode(id="Z", kind="solution", title="Only node"),)
    store.replace(replacement)
    assert store.current == replacement
    assert store.seed == tree

    store.reset()
    assert store.current == tree

def test_accepts_any_sequence(tree):
    store = TreeStore(list(tree))
    assert isinstance(store.current, tuple)
