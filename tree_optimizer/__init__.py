from tree_optimizer.services.tree_optimizer_service import TreeOptimizerService
from tree_optimizer.services.diagnostics_log import InMemoryDiagnosticsLog

__all__ = ["TreeOptimizerService", "InMemoryDiagnosticsLog"]
