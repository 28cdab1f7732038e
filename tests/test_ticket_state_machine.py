import pytest

from apps.api.services.errors import InvalidTransitionError
from apps.api.services.tickets import SenderRole, TicketStateMachine, TicketStatus, parse_status


def test_initial_state_is_open():
    assert TicketStateMachine().initial_state() is TicketStatus.OPEN


def test_explicit_transitions_are_unconstrained():
    machine = TicketStateMachine()
    for current in TicketStatus:
        for target in TicketStatus:
            assert machine.can_transition(current, target)
            machine.assert_transition(current, target)


def test_operator_reply_starts_work_on_open_ticket():
    machine = TicketStateMachine()
    assert machine.on_reply(TicketStatus.OPEN, SenderRole.ADMIN) is TicketStatus.IN_PROGRESS
    assert machine.on_reply(TicketStatus.RESOLVED, SenderRole.ADMIN) is TicketStatus.RESOLVED


def test_owner_reply_reopens_resolved_and_closed_tickets():
    machine = TicketStateMachine()
    assert machine.on_reply(TicketStatus.CLOSED, SenderRole.USER) is TicketStatus.IN_PROGRESS
    assert machine.on_reply(TicketStatus.RESOLVED, SenderRole.USER) is TicketStatus.IN_PROGRESS
    assert machine.on_reply(TicketStatus.OPEN, SenderRole.USER) is TicketStatus.OPEN


def test_in_progress_ticket_stays_in_progress_for_either_sender():
    machine = TicketStateMachine()
    for sender in SenderRole:
        assert machine.on_reply(TicketStatus.IN_PROGRESS, sender) is TicketStatus.IN_PROGRESS


def test_parse_status_rejects_values_outside_the_enumeration():
    assert parse_status("resolved") is TicketStatus.RESOLVED
    with pytest.raises(InvalidTransitionError):
        parse_status("ESCALATED")
