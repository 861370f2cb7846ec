"""
Sequence counter tests.

Tests cover:
- Monotonic allocation from the seeded counter row
- Counter row created on first use for unknown names
- Allocation rolled back together with a failed savepoint
"""

import pytest

from wallet_ledger.services.sequence_service import SequenceService


class TestSequenceService:
    def test_seeded_at_zero(self, session):
        assert SequenceService(session).current_value() == 0

    def test_monotonic(self, session):
        service = SequenceService(session)
        values = [service.next_value() for _ in range(5)]
        assert values == [1, 2, 3, 4, 5]
        assert service.current_value() == 5

    def test_unknown_counter_created_on_first_use(self, session):
        service = SequenceService(session)
        assert service.current_value("other") is None
        assert service.next_value("other") == 1

    def test_allocation_rolled_back_with_savepoint(self, session):
        service = SequenceService(session)
        service.next_value()
        with pytest.raises(RuntimeError):
            with session.begin_nested():
                service.next_value()
                raise RuntimeError("abort")
        assert service.current_value() == 1
        assert service.next_value() == 2
