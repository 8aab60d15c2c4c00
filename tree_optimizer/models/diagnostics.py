from datetime import datetime
from typing import Dict, List, Literal, Optional
from pydantic import BaseModel

CompletionStatus = Literal["completed", "abandoned", "in_progress"]

class UserFeedback(BaseModel):
    helpful: bool
    comments: Optional[str] = None

class DiagnosticSession(BaseModel):
    id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    completion_status: CompletionStatus = "in_progress"
    user_id: Optional[str] = None
    vehicle_model: Optional[str] = None
    charging_station_type: Optional[str] = None
    initial_problem_category: Optional[str] = None
    final_node_id: Optional[str] = None
    user_feedback: Optional[UserFeedback] = None
    user_inputs: Dict[str, str] = {}

class DiagnosticStep(BaseModel):
    session_id: str
    node_id: str
    timestamp: datetime
    response_time: Optional[float] = None  # ms
    user_choice: Optional[str] = None

class DateRange(BaseModel):
    start: datetime
    end: datetime

class DiagnosticsFilterOptions(BaseModel):
    date_range: Optional[DateRange] = None
    vehicle_models: List[str] = []
    charging_station_types: List[str] = []
    problem_categories: List[str] = []
    completion_status: List[CompletionStatus] = []
