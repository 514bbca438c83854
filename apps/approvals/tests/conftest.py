import pytest

from apps.approvals.main import decision_registry


@pytest.fixture(autouse=True)
def _reset_decisions():
    """Clean the decision ledger between tests."""
    decision_registry.reset()
    yield
    decision_registry.reset()
