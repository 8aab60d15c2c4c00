from tree_optimizer.models.tree import Forest

class TreeStore:
    """Holds the seed tree and the currently accepted tree.

    Trees are immutable, so handing out the stored forest is as safe as
    handing out a deep copy.
    """

    def __init__(self, seed: Forest):
        self.seed: Forest = tuple(seed)
        self._current: Forest = self.seed

    @property
    def current(self) -> Forest:
        return self._current

    def replace(self, tree: Forest):
        self._current = tuple(tree)

    def reset(self):
        self._current = self.seed
