import uuid
import logging
from typing import Dict, List, Optional
from tree_optimizer.models.optimization import (
    NodeUsageStats,
    OptimizationSettings,
    OptimizationSuggestion,
    PathStats,
)
from tree_optimizer.models.tree import Forest, NodeSnapshot, TroubleshootingNode, find_node

logger = logging.getLogger(__name__)

DEAD_END_EXIT_RATE = 0.5
SLOW_NODE_RATIO = 1.5
REORDER_PATH_LIMIT = 5
SHORTCUT_COMPLETION_RATE = 0.8
MERGE_COMPLETION_RATE = 0.7

class SuggestionGenerator:
    """
    Turns usage and path statistics into structural change proposals.

    Five independent rules run in a fixed order and their output is
    concatenated; that order is also the order the mutator applies them in.
    Node titles and kinds are read from ``tree``, and statistics for ids the
    tree does not contain produce no proposal.
    """

    def __init__(self, tree: Forest):
        self.tree = tree

    def generate(self, node_stats: Dict[str, NodeUsageStats], path_stats: List[PathStats],
                 settings: OptimizationSettings) -> List[OptimizationSuggestion]:
        preserved = set(settings.preserve_nodes)
        suggestions: List[OptimizationSuggestion] = []
        suggestions += self._prune_low_traffic(node_stats, settings, preserved)
        suggestions += self._convert_dead_ends(node_stats, settings, preserved)
        suggestions += self._reorder_slow_steps(node_stats, path_stats, settings, preserved)
        suggestions += self._insert_shortcut(path_stats, settings)
        suggestions += self._merge_duplicate_paths(path_stats)

        kept = filter_by_strength(suggestions, settings.optimization_strength)
        logger.debug(f"Generated {len(suggestions)} suggestions, {len(kept)} kept at {settings.optimization_strength} strength")
        return kept

    def _node(self, node_id: str) -> Optional[TroubleshootingNode]:
        return find_node(self.tree, node_id)

    def _prune_low_traffic(self, node_stats, settings, preserved) -> List[OptimizationSuggestion]:
        suggestions = []
        for stat in node_stats.values():
            if stat.visits >= settings.min_data_points or stat.node_id in preserved:
                continue
            node = self._node(stat.node_id)
            if not node:
                continue
            suggestions.append(OptimizationSuggestion(
                type="remove",
                description=f'Remove rarely used node: "{node.title}"',
                confidence=0.7,
                impact="low",
                affected_nodes=[node.id],
                # Full subtree with placement so a rollback can put it back
                before=[NodeSnapshot.capture(self.tree, node, with_children=True)],
                after=[],
                reasoning=(f"This node was visited only {stat.visits} times, below the minimum "
                           f"of {settings.min_data_points} data points."),
            ))
        return suggestions

    def _convert_dead_ends(self, node_stats, settings, preserved) -> List[OptimizationSuggestion]:
        suggestions = []
        for stat in node_stats.values():
            if (stat.exit_rate <= DEAD_END_EXIT_RATE or stat.visits < settings.min_data_points
                    or stat.node_id in preserved):
                continue
            node = self._node(stat.node_id)
            if not node or node.kind == "solution":
                continue
            suggestions.append(OptimizationSuggestion(
                type="modify",
                description=f'Convert high-exit node into a solution node: "{node.title}"',
                confidence=0.8,
                impact="medium",
                affected_nodes=[node.id],
                before=[NodeSnapshot(id=node.id, kind=node.kind, title=node.title)],
                after=[NodeSnapshot(id=node.id, kind="solution", title=node.title)],
                reasoning=(f"{round(stat.exit_rate * 100)}% of visitors end their diagnosis here. "
                           "Turning it into a solution node gives them an answer where they stop."),
            ))
        return suggestions

    def _reorder_slow_steps(self, node_stats, path_stats, settings, preserved) -> List[OptimizationSuggestion]:
        suggestions = []
        frequent = [p for p in path_stats if p.frequency >= settings.min_data_points][:REORDER_PATH_LIMIT]

        for path_stat in frequent:
            dwell = [(node_id, node_stats[node_id].average_time_spent if node_id in node_stats else 0.0)
                     for node_id in path_stat.path]

            for (current_id, current_time), (next_id, next_time) in zip(dwell, dwell[1:]):
                if current_time <= next_time * SLOW_NODE_RATIO:
                    continue
                if current_id in preserved or next_id in preserved:
                    continue
                current, following = self._node(current_id), self._node(next_id)
                if not current or not following:
                    continue
                suggestions.append(OptimizationSuggestion(
                    type="reorder",
                    description=f'Reorder nodes: swap "{current.title}" and "{following.title}"',
                    confidence=0.6,
                    impact="medium",
                    affected_nodes=[current_id, next_id],
                    before=[NodeSnapshot(id=current_id, title=current.title),
                            NodeSnapshot(id=next_id, title=following.title)],
                    after=[NodeSnapshot(id=next_id, title=following.title),
                           NodeSnapshot(id=current_id, title=current.title)],
                    reasoning=(f'"{current.title}" takes {round(current_time / 1000)}s on average while '
                               f'"{following.title}" takes only {round(next_time / 1000)}s. '
                               "Asking the quicker question first shortens the dialogue."),
                ))
        return suggestions

    def _insert_shortcut(self, path_stats, settings) -> List[OptimizationSuggestion]:
        candidates = [p for p in path_stats
                      if p.completion_rate > SHORTCUT_COMPLETION_RATE and p.frequency >= settings.min_data_points]
        if not candidates:
            return []

        # max() keeps the first of equally satisfying paths, i.e. the more frequent one
        best = max(candidates, key=lambda p: p.satisfaction_rate)
        first_id = best.path[0]
        if not self._node(first_id):
            return []

        shortcut_id = f"suggested_shortcut_{uuid.uuid4().hex[:12]}"
        return [OptimizationSuggestion(
            type="add",
            description="Add a shortcut node for the most successful diagnosis path",
            confidence=0.7,
            impact="high",
            affected_nodes=[first_id, shortcut_id],
            before=[],
            after=[NodeSnapshot(
                id=shortcut_id,
                kind="question",
                title="Quick diagnosis",
                description="Jump straight to the diagnosis path with the best success rate.",
            )],
            reasoning=(f"Found a path with {round(best.satisfaction_rate * 100)}% satisfaction and "
                       f"{round(best.completion_rate * 100)}% completion. A shortcut to it saves users steps."),
        )]

    def _merge_duplicate_paths(self, path_stats) -> List[OptimizationSuggestion]:
        groups: Dict[tuple, List[PathStats]] = {}
        for path_stat in path_stats:
            groups.setdefault((path_stat.path[0], path_stat.path[-1]), []).append(path_stat)

        suggestions = []
        for (start_id, end_id), group in groups.items():
            if len(group) < 2:
                continue
            best = max(group, key=lambda p: p.completion_rate)
            if best.completion_rate <= MERGE_COMPLETION_RATE:
                continue
            start, end = self._node(start_id), self._node(end_id)
            if not start or not end:
                continue

            intermediate: List[str] = []
            for other in group:
                if other is best:
                    continue
                for node_id in other.path:
                    if node_id not in (start_id, end_id) and node_id not in intermediate:
                        intermediate.append(node_id)

            suggestions.append(OptimizationSuggestion(
                type="merge",
                description=f'Merge duplicate paths from "{start.title}" to "{end.title}"',
                confidence=0.75,
                impact="high",
                affected_nodes=[start_id, end_id, *intermediate],
                before=[NodeSnapshot.capture(self.tree, start, with_children=True),
                        NodeSnapshot.capture(self.tree, end)],
                reasoning=(f'{len(group)} different paths lead from "{start.title}" to "{end.title}". '
                           f"Consolidating on the best one ({round(best.completion_rate * 100)}% completion) "
                           "makes the diagnosis more efficient."),
            ))
        return suggestions

def filter_by_strength(suggestions: List[OptimizationSuggestion], strength: str) -> List[OptimizationSuggestion]:
    if strength == "conservative":
        return [s for s in suggestions if s.confidence > 0.8 and s.impact in ("low", "medium")]
    if strength == "balanced":
        return [s for s in suggestions if s.confidence > 0.6]
    return list(suggestions)
