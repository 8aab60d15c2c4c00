import logging
from typing import Dict, List, Optional
from tree_optimizer.core.seed import load_seed_tree
from tree_optimizer.models.diagnostics import DiagnosticSession, DiagnosticsFilterOptions
from tree_optimizer.models.optimization import (
    NodeUsageStats,
    OptimizationSettings,
    OptimizationSuggestion,
    PathStats,
    SimulationResult,
    TreeChangeHistory,
    TreeOptimizationResult,
)
from tree_optimizer.models.tree import Forest
from tree_optimizer.services.change_history import ChangeHistoryLedger
from tree_optimizer.services.diagnostics_log import DiagnosticsSource
from tree_optimizer.services.metrics import compare_metrics, compute_metrics, simulate
from tree_optimizer.services.path_analyzer import analyze_path_stats
from tree_optimizer.services.suggestion_generator import SuggestionGenerator
from tree_optimizer.services.tree_mutator import TreeMutator, pin_added_nodes
from tree_optimizer.services.tree_store import TreeStore
from tree_optimizer.services.usage_analyzer import analyze_node_usage

logger = logging.getLogger(__name__)

class TreeOptimizerService:
    """
    Tree optimization engine.

    Mines diagnostic telemetry into usage statistics, proposes and previews
    structural changes, and keeps the accepted tree together with its change
    history. All operations are synchronous; the engine assumes one writer, so
    concurrent ``apply_optimization``/``rollback_change`` calls must be
    serialized by the caller.
    """

    def __init__(self, diagnostics: DiagnosticsSource, initial_tree: Optional[Forest] = None):
        self.diagnostics = diagnostics
        self.store = TreeStore(load_seed_tree() if initial_tree is None else initial_tree)
        self.ledger = ChangeHistoryLedger()
        self.mutator = TreeMutator()

    def get_current_tree(self) -> Forest:
        return self.store.current

    def _sessions(self, sessions: Optional[List[DiagnosticSession]]) -> List[DiagnosticSession]:
        return self.diagnostics.get_sessions() if sessions is None else list(sessions)

    def analyze_node_usage(self, sessions: Optional[List[DiagnosticSession]] = None) -> Dict[str, NodeUsageStats]:
        return analyze_node_usage(self._sessions(sessions), self.diagnostics.get_session_steps)

    def analyze_path_stats(self, sessions: Optional[List[DiagnosticSession]] = None) -> List[PathStats]:
        return analyze_path_stats(self._sessions(sessions), self.diagnostics.get_session_steps)

    def generate_optimization_suggestions(self, node_stats: Dict[str, NodeUsageStats], path_stats: List[PathStats],
                                          settings: OptimizationSettings) -> List[OptimizationSuggestion]:
        return SuggestionGenerator(self.store.current).generate(node_stats, path_stats, settings)

    def optimize_tree(self, settings: OptimizationSettings) -> TreeOptimizationResult:
        """Builds a candidate tree from current telemetry without touching the accepted tree."""
        filters = DiagnosticsFilterOptions(date_range=settings.date_range) if settings.date_range else None
        sessions = self.diagnostics.get_sessions(filters)

        node_stats = self.analyze_node_usage(sessions)
        path_stats = self.analyze_path_stats(sessions)
        suggestions = self.generate_optimization_suggestions(node_stats, path_stats, settings)

        original_tree = self.store.current
        optimized_tree = self.mutator.apply(original_tree, suggestions)
        suggestions = pin_added_nodes(suggestions, original_tree, optimized_tree)

        get_steps = self.diagnostics.get_session_steps
        metrics = compare_metrics(
            compute_metrics(original_tree, sessions, get_steps),
            compute_metrics(optimized_tree, sessions, get_steps),
        )
        logger.info(f"Optimization preview over {len(sessions)} sessions produced {len(suggestions)} suggestions")

        return TreeOptimizationResult(
            original_tree=original_tree,
            optimized_tree=optimized_tree,
            suggestions=suggestions,
            metrics=metrics,
        )

    def simulate_optimized_tree(self, original_tree: Forest, optimized_tree: Forest,
                                sessions: Optional[List[DiagnosticSession]] = None) -> SimulationResult:
        return simulate(original_tree, optimized_tree, self._sessions(sessions), self.diagnostics.get_session_steps)

    def apply_optimization(self, result: TreeOptimizationResult, author: str) -> str:
        # Results built outside optimize_tree may still carry id-less adds
        pinned = pin_added_nodes(result.suggestions, result.original_tree, result.optimized_tree)
        entry = self.ledger.record(result.model_copy(update={"suggestions": pinned}), author)
        self.store.replace(result.optimized_tree)
        logger.info(f"Applied change {entry.id} by {author} ({len(entry.changes)} suggestions)")
        return entry.id

    def rollback_change(self, change_id: str) -> bool:
        """
        Reverts an accepted change by replaying its inverse through the mutator.

        Inverse operations run last-to-first, so each one sees the tree the way
        its forward counterpart left it. Later changes stay in place.
        """
        inverse = self.ledger.rollback(change_id)
        if inverse is None:
            return False

        self.store.replace(self.mutator.apply(self.store.current, reversed(inverse.changes)))
        logger.info(f"Rolled back change {change_id} as {inverse.id}")
        return True

    def get_change_history(self) -> List[TreeChangeHistory]:
        return self.ledger.history()
