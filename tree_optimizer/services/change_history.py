import uuid
from datetime import datetime
from typing import List, Optional
from tree_optimizer.models.optimization import MetricsChange, TreeChangeHistory, TreeOptimizationResult
from tree_optimizer.services.tree_mutator import invert_suggestion

class ChangeHistoryLedger:
    """
    Append-only record of accepted optimizations.

    Rolling back never deletes anything: the reversed entry is marked
    ``applied=False`` and an inverse entry pointing at it is appended.
    Every accessor returns deep copies; only the ledger edits stored entries.
    """

    def __init__(self):
        self.entries: List[TreeChangeHistory] = []

    def record(self, result: TreeOptimizationResult, author: str) -> TreeChangeHistory:
        entry = TreeChangeHistory(
            id=f"change_{uuid.uuid4().hex}",
            timestamp=datetime.now(),
            description=f"Tree optimization ({len(result.suggestions)} suggestions applied)",
            author=author,
            changes=[s.model_copy(deep=True) for s in result.suggestions],
            metrics=MetricsChange(
                before=result.metrics.snapshot("before"),
                after=result.metrics.snapshot("after"),
            ),
            applied=True,
        )
        self.entries.append(entry)
        return entry.model_copy(deep=True)

    def get(self, change_id: str) -> Optional[TreeChangeHistory]:
        entry = next((e for e in self.entries if e.id == change_id), None)
        return entry.model_copy(deep=True) if entry else None

    def rollback(self, change_id: str) -> Optional[TreeChangeHistory]:
        """Returns the appended inverse entry, or None if there is nothing to roll back."""
        index = next((i for i, e in enumerate(self.entries) if e.id == change_id), None)
        if index is None or not self.entries[index].applied:
            return None

        original = self.entries[index]
        inverse = TreeChangeHistory(
            id=f"rollback_{uuid.uuid4().hex}",
            timestamp=datetime.now(),
            description=f"Rollback: {original.description}",
            author=original.author,
            changes=[invert_suggestion(change) for change in original.changes],
            metrics=MetricsChange(before=original.metrics.after, after=original.metrics.before)
            if original.metrics else None,
            applied=True,
            rollback_id=original.id,
        )

        self.entries[index] = original.model_copy(update={"applied": False})
        self.entries.append(inverse)
        return inverse.model_copy(deep=True)

    def history(self) -> List[TreeChangeHistory]:
        # Newest first; reversing before the stable sort puts later entries first on equal timestamps
        ordered = sorted(reversed(self.entries), key=lambda e: e.timestamp, reverse=True)
        return [e.model_copy(deep=True) for e in ordered]
