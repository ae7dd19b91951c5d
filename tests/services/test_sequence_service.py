"""Tests for SequenceService document numbering."""

from datetime import date

from warehouse_kernel.services.sequence_service import SequenceService


class TestSequenceService:
    def test_first_value_is_one(self, session):
        assert SequenceService(session).next_value("ORD-20240101") == 1

    def test_monotonic(self, session):
        service = SequenceService(session)
        values = [service.next_value("RCV-20240101") for _ in range(5)]
        assert values == [1, 2, 3, 4, 5]

    def test_counters_are_independent(self, session):
        service = SequenceService(session)
        service.next_value("ORD-20240101")
        service.next_value("ORD-20240101")
        assert service.next_value("RCV-20240101") == 1
        assert service.current_value("ORD-20240101") == 2

    def test_current_value_unknown(self, session):
        assert SequenceService(session).current_value("NOPE") is None

    def test_document_number_format(self, session):
        service = SequenceService(session, width=3)
        assert service.next_document_number("SO", date(2024, 3, 9)) == "SO-20240309-001"
        assert service.next_document_number("SO", date(2024, 3, 9)) == "SO-20240309-002"
        assert service.current_value("SO-20240309") == 2

    def test_width_does_not_truncate(self, session):
        service = SequenceService(session, width=1)
        for _ in range(9):
            service.next_document_number("X", date(2024, 1, 1))
        assert service.next_document_number("X", date(2024, 1, 1)) == "X-20240101-10"
