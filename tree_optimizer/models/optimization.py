from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field
from tree_optimizer.models.diagnostics import DateRange
from tree_optimizer.models.tree import Forest, NodeSnapshot

SuggestionType = Literal["add", "remove", "modify", "reorder", "merge", "split"]
Impact = Literal["low", "medium", "high"]
OptimizationStrength = Literal["conservative", "balanced", "aggressive"]
TargetMetric = Literal["pathLength", "completionTime", "successRate"]

class NodeUsageStats(BaseModel):
    node_id: str
    visits: int
    exit_rate: float  # share of visits that ended the session here
    average_time_spent: float  # ms until the next step
    success_rate: float  # share of visits in sessions that completed

class PathStats(BaseModel):
    path: List[str]
    frequency: int
    completion_rate: float
    average_completion_time: float  # ms
    satisfaction_rate: float

class OptimizationSuggestion(BaseModel):
    type: SuggestionType
    description: str
    confidence: float = Field(ge=0, le=1)
    impact: Impact
    affected_nodes: List[str]
    before: Optional[List[NodeSnapshot]] = None
    after: Optional[List[NodeSnapshot]] = None
    reasoning: str = ""

class OptimizationSettings(BaseModel):
    min_data_points: int = Field(default=20, ge=0)
    optimization_strength: OptimizationStrength = "balanced"
    target_metrics: List[TargetMetric] = ["pathLength", "completionTime", "successRate"]
    preserve_nodes: List[str] = []
    date_range: Optional[DateRange] = None

class TreeMetrics(BaseModel):
    average_path_length: float = 0.0
    average_completion_time: float = 0.0
    estimated_success_rate: float = 0.0

class MetricDelta(BaseModel):
    before: float
    after: float
    improvement_percent: float

class OptimizationMetrics(BaseModel):
    average_path_length: MetricDelta
    average_completion_time: MetricDelta
    estimated_success_rate: MetricDelta

    def snapshot(self, side: Literal["before", "after"]) -> TreeMetrics:
        return TreeMetrics(
            average_path_length=getattr(self.average_path_length, side),
            average_completion_time=getattr(self.average_completion_time, side),
            estimated_success_rate=getattr(self.estimated_success_rate, side),
        )

class TreeOptimizationResult(BaseModel):
    original_tree: Forest
    optimized_tree: Forest
    suggestions: List[OptimizationSuggestion]
    metrics: OptimizationMetrics

class SimulationMetrics(BaseModel):
    average_steps: float
    average_time: float
    completion_rate: float
    satisfaction_rate: float

class SimulationImprovement(BaseModel):
    steps: float
    time: float
    completion_rate: float
    satisfaction_rate: float

class SimulationResult(BaseModel):
    session_count: int
    original_metrics: SimulationMetrics
    optimized_metrics: SimulationMetrics
    improvement: SimulationImprovement

class MetricsChange(BaseModel):
    before: TreeMetrics
    after: TreeMetrics

class TreeChangeHistory(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: datetime
    description: str
    author: str
    changes: List[OptimizationSuggestion]
    metrics: Optional[MetricsChange] = None
    applied: bool = True
    rollback_id: Optional[str] = None  # set on entries that reverse another entry
