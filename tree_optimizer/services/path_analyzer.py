from collections import defaultdict
from typing import Dict, Iterable, List, Tuple
from tree_optimizer.models.diagnostics import DiagnosticSession
from tree_optimizer.models.optimization import PathStats
from tree_optimizer.services.usage_analyzer import StepsLookup

def analyze_path_stats(sessions: Iterable[DiagnosticSession], get_steps: StepsLookup) -> List[PathStats]:
    """
    Groups sessions by the exact ordered sequence of visited node ids.

    Completion time and satisfaction only count completed sessions; satisfaction
    further ignores sessions that left no feedback. Sorted by frequency, most
    common first.
    """
    counts: Dict[Tuple[str, ...], int] = {}
    completions: Dict[Tuple[str, ...], int] = defaultdict(int)
    times: Dict[Tuple[str, ...], List[float]] = defaultdict(list)
    satisfaction: Dict[Tuple[str, ...], List[int]] = defaultdict(list)

    for session in sessions:
        steps = get_steps(session.id)
        if not steps:
            continue

        key = tuple(step.node_id for step in steps)
        counts[key] = counts.get(key, 0) + 1

        if session.completion_status != "completed":
            continue
        completions[key] += 1

        if session.start_time and session.end_time:
            times[key].append((session.end_time - session.start_time).total_seconds() * 1000)

        if session.user_feedback is not None:
            satisfaction[key].append(1 if session.user_feedback.helpful else 0)

    path_stats = []
    for key, frequency in counts.items():
        durations = times.get(key, [])
        scores = satisfaction.get(key, [])
        path_stats.append(PathStats(
            path=list(key),
            frequency=frequency,
            completion_rate=completions.get(key, 0) / frequency if frequency else 0.0,
            average_completion_time=sum(durations) / len(durations) if durations else 0.0,
            satisfaction_rate=sum(scores) / len(scores) if scores else 0.0,
        ))

    # list.sort is stable: equally frequent paths keep first-seen order
    path_stats.sort(key=lambda p: p.frequency, reverse=True)
    return path_stats
