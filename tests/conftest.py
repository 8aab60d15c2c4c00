from datetime import datetime, timedelta
import pytest
from tree_optimizer.models.diagnostics import UserFeedback
from tree_optimizer.models.tree import TroubleshootingNode
from tree_optimizer.services.diagnostics_log import InMemoryDiagnosticsLog

BASE_TIME = datetime(2024, 3, 1, 9, 0, 0)

def record_session(log, path, status="completed", helpful=None, start=BASE_TIME, step_seconds=10, **attrs):
    """Writes one session walking ``path`` with a fixed gap between steps."""
    session = log.start_session(start_time=start, **attrs)
    for i, node_id in enumerate(path):
        log.record_step(session.id, node_id, timestamp=start + timedelta(seconds=i * step_seconds))

    end = start + timedelta(seconds=len(path) * step_seconds)
    if status == "completed":
        feedback = UserFeedback(helpful=helpful) if helpful is not None else None
        log.complete_session(session.id, final_node_id=path[-1], user_feedback=feedback, end_time=end)
    elif status == "abandoned":
        log.abandon_session(session.id, end_time=end)
    return log.get_session(session.id)

@pytest.fixture
def tree():
    #   root -> A -> C, D
    #        -> B -> E
    #   F
    return (
        TroubleshootingNode(id="root", kind="question", title="What is wrong?", children=(
            TroubleshootingNode(id="A", kind="question", title="Charging problem?", children=(
                TroubleshootingNode(id="C", kind="solution", title="Replug the cable"),
                TroubleshootingNode(id="D", kind="solution", title="Try another charger"),
            )),
            TroubleshootingNode(id="B", kind="question", title="Payment problem?", children=(
                TroubleshootingNode(id="E", kind="solution", title="Update the card"),
            )),
        )),
        TroubleshootingNode(id="F", kind="question", title="Anything else?"),
    )

@pytest.fixture
def diagnostics():
    return InMemoryDiagnosticsLog()

@pytest.fixture
def telemetry(diagnostics):
    # 6 sessions finish right at A, 4 go on to B and give up
    for _ in range(6):
        record_session(diagnostics, ["A"], status="completed", helpful=True)
    for _ in range(4):
        record_session(diagnostics, ["A", "B"], status="abandoned")
    return diagnostics
