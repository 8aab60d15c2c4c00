from datetime import timedelta
import pytest
from conftest import BASE_TIME
from tree_optimizer.models.diagnostics import DateRange
from tree_optimizer.models.optimization import OptimizationSettings, OptimizationSuggestion, TreeMetrics, TreeOptimizationResult
from tree_optimizer.models.tree import NodeSnapshot, node_ids
from tree_optimizer.services.diagnostics_log import InMemoryDiagnosticsLog
from tree_optimizer.services.metrics import compare_metrics
from tree_optimizer.services.tree_mutator import TreeMutator
from tree_optimizer.services.tree_optimizer_service import TreeOptimizerService

@pytest.fixture
def service(tree, telemetry):
    return TreeOptimizerService(telemetry, initial_tree=tree)

def add_result(service, node_id):
    """A hand-built optimization adding one top-level node to the current tree."""
    current = service.get_current_tree()
    add = OptimizationSuggestion(type="add", description=f"Add {node_id}", confidence=0.7, impact="high",
                                 affected_nodes=[node_id], before=[], after=[NodeSnapshot(id=node_id)])
    return TreeOptimizationResult(
        original_tree=current,
        optimized_tree=TreeMutator().apply(current, [add]),
        suggestions=[add],
        metrics=compare_metrics(TreeMetrics(), TreeMetrics()),
    )

def test_defaults_to_seed_tree():
    service = TreeOptimizerService(InMemoryDiagnosticsLog())
    assert service.get_current_tree()[0].id == "root"

def test_reads_are_repeatable(service):
    assert service.analyze_node_usage() == service.analyze_node_usage()
    assert service.analyze_path_stats() == service.analyze_path_stats()
    assert service.get_current_tree() == service.get_current_tree()

def test_applied_add_shows_up_in_current_tree(service):
    change_id = service.apply_optimization(add_result(service, "X"), "admin")

    assert change_id.startswith("change_")
    assert service.get_current_tree()[-1].id == "X"
    assert service.get_change_history()[0].id == change_id

def test_optimize_tree_is_a_preview(service, tree):
    settings = OptimizationSettings(min_data_points=5)

    result = service.optimize_tree(settings)

    assert [s.type for s in result.suggestions] == ["remove", "modify", "add"]
    assert result.original_tree == tree
    assert "B" not in node_ids(result.optimized_tree)
    assert result.optimized_tree[-1].id.startswith("suggested_shortcut_")
    assert service.get_current_tree() == tree
    assert service.get_change_history() == []

def test_optimize_tree_reports_current_metrics(service):
    result = service.optimize_tree(OptimizationSettings(min_data_points=5))

    assert result.metrics.estimated_success_rate.before == pytest.approx(0.6)
    assert result.metrics.average_path_length.before == pytest.approx(1.0)

def test_optimize_tree_honours_date_range(service, tree):
    later = DateRange(start=BASE_TIME + timedelta(days=1), end=BASE_TIME + timedelta(days=2))

    result = service.optimize_tree(OptimizationSettings(min_data_points=5, date_range=later))

    assert result.suggestions == []
    assert result.optimized_tree == tree

def test_rollback_restores_tree_before_optimization(service, tree):
    change_id = service.apply_optimization(service.optimize_tree(OptimizationSettings(min_data_points=5)), "admin")
    assert service.get_current_tree() != tree

    assert service.rollback_change(change_id) is True
    assert service.get_current_tree() == tree

def test_rollback_replays_inverse_instead_of_resetting(service):
    first = service.apply_optimization(add_result(service, "X"), "admin")
    service.apply_optimization(add_result(service, "Y"), "admin")

    assert service.rollback_change(first)

    ids = node_ids(service.get_current_tree())
    assert "X" not in ids
    # The later change survives; the store is not reset to the seed
    assert "Y" in ids

def test_rollback_history(service):
    change_id = service.apply_optimization(add_result(service, "X"), "admin")
    service.rollback_change(change_id)

    latest, original = service.get_change_history()
    assert latest.rollback_id == change_id
    assert original.applied is False

def test_rollback_of_unknown_or_reverted_change(service):
    change_id = service.apply_optimization(add_result(service, "X"), "admin")

    assert service.rollback_change("change_missing") is False
    assert service.rollback_change(change_id) is True
    assert service.rollback_change(change_id) is False

def test_simulate_uses_all_sessions_by_default(service, tree):
    result = service.simulate_optimized_tree(tree, tree)
    assert result.session_count == 10

    assert service.simulate_optimized_tree(tree, tree, sessions=[]).session_count == 0

def test_rollback_removes_add_without_id(service, tree):
    current = service.get_current_tree()
    add = OptimizationSuggestion(type="add", description="Add shortcut", confidence=0.7, impact="high",
                                 affected_nodes=["root"], before=[], after=[NodeSnapshot(title="Shortcut")])
    result = TreeOptimizationResult(
        original_tree=current,
        optimized_tree=TreeMutator().apply(current, [add]),
        suggestions=[add],
        metrics=compare_metrics(TreeMetrics(), TreeMetrics()),
    )
    change_id = service.apply_optimization(result, "admin")

    (recorded,) = service.get_change_history()[0].changes
    assert recorded.after[0].id == service.get_current_tree()[-1].id

    assert service.rollback_change(change_id) is True
    assert service.get_current_tree() == tree

def test_add_reusing_an_id_keeps_existing_subtree(service, tree):
    current = service.get_current_tree()
    add = OptimizationSuggestion(type="add", description="Add A", confidence=0.7, impact="high",
                                 affected_nodes=["A"], before=[], after=[NodeSnapshot(id="A", title="New A")])
    result = TreeOptimizationResult(
        original_tree=current,
        optimized_tree=TreeMutator().apply(current, [add]),
        suggestions=[add],
        metrics=compare_metrics(TreeMetrics(), TreeMetrics()),
    )
    assert result.optimized_tree == tree

    change_id = service.apply_optimization(result, "admin")
    assert service.rollback_change(change_id) is True
    assert service.get_current_tree() == tree

def test_previewed_adds_carry_created_ids(service):
    result = service.optimize_tree(OptimizationSettings(min_data_points=5))

    (add,) = [s for s in result.suggestions if s.type == "add"]
    assert add.after[0].id == result.optimized_tree[-1].id
    assert add.affected_nodes[-1] == add.after[0].id

def test_history_cannot_be_edited_from_outside(service, tree):
    change_id = service.apply_optimization(add_result(service, "X"), "admin")

    service.get_change_history()[0].changes[0].after[0].id = "A"
    service.get_change_history()[0].changes[0].affected_nodes.append("A")

    assert service.rollback_change(change_id) is True
    assert service.get_current_tree() == tree
