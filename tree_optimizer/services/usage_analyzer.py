from collections import defaultdict
from typing import Callable, Dict, Iterable, List
from tree_optimizer.models.diagnostics import DiagnosticSession, DiagnosticStep
from tree_optimizer.models.optimization import NodeUsageStats

StepsLookup = Callable[[str], List[DiagnosticStep]]

def analyze_node_usage(sessions: Iterable[DiagnosticSession], get_steps: StepsLookup) -> Dict[str, NodeUsageStats]:
    """
    Aggregates per-node visit statistics over the given sessions.

    Only nodes that appear in at least one step get an entry; callers must not
    read a missing key as zero traffic.
    """
    visits: Dict[str, int] = defaultdict(int)
    exits: Dict[str, int] = defaultdict(int)
    successes: Dict[str, int] = defaultdict(int)
    time_spent: Dict[str, List[float]] = defaultdict(list)

    for session in sessions:
        steps = get_steps(session.id)
        completed = session.completion_status == "completed"

        for index, step in enumerate(steps):
            node_id = step.node_id
            visits[node_id] += 1

            if index == len(steps) - 1:
                exits[node_id] += 1
            else:
                gap = steps[index + 1].timestamp - step.timestamp
                time_spent[node_id].append(gap.total_seconds() * 1000)

            if completed:
                successes[node_id] += 1

    stats = {}
    for node_id, count in visits.items():
        gaps = time_spent.get(node_id, [])
        stats[node_id] = NodeUsageStats(
            node_id=node_id,
            visits=count,
            exit_rate=exits[node_id] / count if count else 0.0,
            average_time_spent=sum(gaps) / len(gaps) if gaps else 0.0,
            success_rate=successes[node_id] / count if count else 0.0,
        )
    return stats
