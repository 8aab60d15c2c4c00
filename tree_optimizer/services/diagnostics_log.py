import uuid
from datetime import datetime
from typing import Dict, List, Optional, Protocol
from tree_optimizer.models.diagnostics import (
    DiagnosticSession,
    DiagnosticStep,
    DiagnosticsFilterOptions,
    UserFeedback,
)

class DiagnosticsSource(Protocol):
    """What the optimizer needs from the diagnostics log."""

    def get_sessions(self, filters: Optional[DiagnosticsFilterOptions] = None) -> List[DiagnosticSession]: ...

    def get_session_steps(self, session_id: str) -> List[DiagnosticStep]: ...

class InMemoryDiagnosticsLog:
    def __init__(self):
        # In-memory storage; a real deployment would back this with a database
        self.sessions: List[DiagnosticSession] = []
        self.steps: List[DiagnosticStep] = []

    def start_session(self, start_time: Optional[datetime] = None, **initial_data) -> DiagnosticSession:
        session = DiagnosticSession(
            id=initial_data.pop("id", None) or f"session_{uuid.uuid4().hex}",
            start_time=start_time or datetime.now(),
            **initial_data
        )
        self.sessions.append(session)
        return session

    def update_session(self, session_id: str, **updates) -> Optional[DiagnosticSession]:
        for i, session in enumerate(self.sessions):
            if session.id == session_id:
                self.sessions[i] = session.model_copy(update=updates)
                return self.sessions[i]
        return None

    def complete_session(self, session_id: str, final_node_id: str, user_feedback: Optional[UserFeedback] = None,
                         end_time: Optional[datetime] = None) -> Optional[DiagnosticSession]:
        return self.update_session(
            session_id,
            end_time=end_time or datetime.now(),
            completion_status="completed",
            final_node_id=final_node_id,
            user_feedback=user_feedback,
        )

    def abandon_session(self, session_id: str, end_time: Optional[datetime] = None) -> Optional[DiagnosticSession]:
        return self.update_session(session_id, end_time=end_time or datetime.now(), completion_status="abandoned")

    def record_step(self, session_id: str, node_id: str, timestamp: Optional[datetime] = None, **extra) -> DiagnosticStep:
        step = DiagnosticStep(session_id=session_id, node_id=node_id, timestamp=timestamp or datetime.now(), **extra)
        self.steps.append(step)
        return step

    def get_session(self, session_id: str) -> Optional[DiagnosticSession]:
        return next((s for s in self.sessions if s.id == session_id), None)

    def get_sessions(self, filters: Optional[DiagnosticsFilterOptions] = None) -> List[DiagnosticSession]:
        if not filters:
            return list(self.sessions)
        return [s for s in self.sessions if self._matches(s, filters)]

    def get_session_steps(self, session_id: str) -> List[DiagnosticStep]:
        # sorted() is stable, so steps sharing a timestamp keep recording order
        return sorted((s for s in self.steps if s.session_id == session_id), key=lambda s: s.timestamp)

    @staticmethod
    def _matches(session: DiagnosticSession, filters: DiagnosticsFilterOptions) -> bool:
        if filters.date_range:
            if session.start_time < filters.date_range.start:
                return False
            if session.end_time and session.end_time > filters.date_range.end:
                return False

        # Descriptive filters only exclude sessions that carry the attribute
        attribute_filters: Dict[str, List[str]] = {
            "vehicle_model": filters.vehicle_models,
            "charging_station_type": filters.charging_station_types,
            "initial_problem_category": filters.problem_categories,
        }
        for attr, allowed in attribute_filters.items():
            value = getattr(session, attr)
            if allowed and value and value not in allowed:
                return False

        if filters.completion_status and session.completion_status not in filters.completion_status:
            return False
        return True
