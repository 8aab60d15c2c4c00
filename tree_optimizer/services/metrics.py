from typing import List, Optional
from tree_optimizer.models.diagnostics import DiagnosticSession
from tree_optimizer.models.optimization import (
    MetricDelta,
    OptimizationMetrics,
    SimulationImprovement,
    SimulationMetrics,
    SimulationResult,
    TreeMetrics,
)
from tree_optimizer.models.tree import Forest
from tree_optimizer.services.usage_analyzer import StepsLookup

# Projection applied to the measured metrics of the current tree. These describe
# what a good optimization is hoped to achieve; they are not a predictive model.
STEP_FACTOR = 0.8
TIME_FACTOR = 0.85
COMPLETION_FACTOR = 1.1
SATISFACTION_FACTOR = 1.15
SATISFACTION_CAP = 0.85
# Used when no session in scope left feedback
BASELINE_SATISFACTION = 0.75

def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0

def compute_metrics(tree: Forest, sessions: List[DiagnosticSession], get_steps: StepsLookup) -> TreeMetrics:
    """
    Aggregate performance of the tree as observed in telemetry.

    The tree is accepted for symmetry only: every figure comes from the
    sessions, so a structurally different candidate scores the same as the tree
    its users actually saw. Zero means "no data".
    """
    completed = [s for s in sessions if s.completion_status == "completed"]
    path_lengths = [len(get_steps(s.id)) for s in completed]
    durations = [(s.end_time - s.start_time).total_seconds() * 1000
                 for s in completed if s.start_time and s.end_time]

    return TreeMetrics(
        average_path_length=_mean(path_lengths),
        average_completion_time=_mean(durations),
        estimated_success_rate=len(completed) / len(sessions) if sessions else 0.0,
    )

def improvement_percent(before: float, after: float, lower_is_better: bool) -> float:
    if not before:
        return 0.0
    delta = before - after if lower_is_better else after - before
    return delta / before * 100

def compare_metrics(before: TreeMetrics, after: TreeMetrics) -> OptimizationMetrics:
    return OptimizationMetrics(
        average_path_length=MetricDelta(
            before=before.average_path_length,
            after=after.average_path_length,
            improvement_percent=improvement_percent(before.average_path_length, after.average_path_length, True),
        ),
        average_completion_time=MetricDelta(
            before=before.average_completion_time,
            after=after.average_completion_time,
            improvement_percent=improvement_percent(before.average_completion_time, after.average_completion_time, True),
        ),
        estimated_success_rate=MetricDelta(
            before=before.estimated_success_rate,
            after=after.estimated_success_rate,
            improvement_percent=improvement_percent(before.estimated_success_rate, after.estimated_success_rate, False),
        ),
    )

def measured_satisfaction(sessions: List[DiagnosticSession]) -> Optional[float]:
    scores = [1 if s.user_feedback.helpful else 0 for s in sessions if s.user_feedback is not None]
    return _mean(scores) if scores else None

def simulate(original_tree: Forest, optimized_tree: Forest, sessions: List[DiagnosticSession],
             get_steps: StepsLookup) -> SimulationResult:
    """Optimistic projection of the candidate tree from the current tree's telemetry."""
    measured = compute_metrics(original_tree, sessions, get_steps)
    satisfaction = measured_satisfaction(sessions)
    if satisfaction is None:
        satisfaction = BASELINE_SATISFACTION

    original = SimulationMetrics(
        average_steps=measured.average_path_length,
        average_time=measured.average_completion_time,
        completion_rate=measured.estimated_success_rate,
        satisfaction_rate=satisfaction,
    )
    optimized = SimulationMetrics(
        average_steps=original.average_steps * STEP_FACTOR,
        average_time=original.average_time * TIME_FACTOR,
        completion_rate=min(original.completion_rate * COMPLETION_FACTOR, 1.0),
        satisfaction_rate=min(SATISFACTION_CAP, original.completion_rate * SATISFACTION_FACTOR),
    )

    return SimulationResult(
        session_count=len(sessions),
        original_metrics=original,
        optimized_metrics=optimized,
        improvement=SimulationImprovement(
            steps=improvement_percent(original.average_steps, optimized.average_steps, True),
            time=improvement_percent(original.average_time, optimized.average_time, True),
            completion_rate=improvement_percent(original.completion_rate, optimized.completion_rate, False),
            satisfaction_rate=improvement_percent(original.satisfaction_rate, optimized.satisfaction_rate, False),
        ),
    )
