"""
Tests for the job state machine.
"""
import pytest
from unittest.mock import MagicMock

from scout_shared import fsm
from scout_shared.errors import ConflictError, ConcurrentUpdateError
from scout_shared.fsm import JobEvent, TRANSITIONS
from scout_shared.models import JobStatus

NOW = '2026-10-18T10:00:00+00:00'


class TestTransitionTable:
    """Only the documented transitions are legal."""

    @pytest.mark.parametrize('current,event,expected', [
        (JobStatus.DRAFT, JobEvent.PUBLISH, JobStatus.POSTED),
        (JobStatus.DRAFT, JobEvent.CANCEL, JobStatus.CANCELLED),
        (JobStatus.POSTED, JobEvent.ACCEPT, JobStatus.ACCEPTED),
        (JobStatus.POSTED, JobEvent.CANCEL, JobStatus.CANCELLED),
        (JobStatus.POSTED, JobEvent.EXPIRE, JobStatus.EXPIRED),
        (JobStatus.ACCEPTED, JobEvent.START, JobStatus.IN_PROGRESS),
        (JobStatus.ACCEPTED, JobEvent.SUBMIT, JobStatus.SUBMITTED),
        (JobStatus.IN_PROGRESS, JobEvent.SUBMIT, JobStatus.SUBMITTED),
        (JobStatus.SUBMITTED, JobEvent.APPROVE, JobStatus.APPROVED),
        (JobStatus.SUBMITTED, JobEvent.REJECT, JobStatus.REJECTED),
        (JobStatus.SUBMITTED, JobEvent.REQUEST_RESUBMISSION, JobStatus.IN_PROGRESS),
        (JobStatus.APPROVED, JobEvent.SETTLE, JobStatus.PAID),
    ])
    def test_legal_transitions(self, current, event, expected):
        assert fsm.next_status(current, event) == expected

    def test_table_has_exactly_twelve_transitions(self):
        assert len(TRANSITIONS) == 12

    @pytest.mark.parametrize('current,event', [
        (JobStatus.DRAFT, JobEvent.ACCEPT),
        (JobStatus.POSTED, JobEvent.SUBMIT),
        (JobStatus.SUBMITTED, JobEvent.CANCEL),
        (JobStatus.APPROVED, JobEvent.APPROVE),
        (JobStatus.REJECTED, JobEvent.SETTLE),
        (JobStatus.PAID, JobEvent.CANCEL),
    ])
    def test_illegal_transitions_conflict(self, current, event):
        with pytest.raises(ConflictError) as exc:
            fsm.next_status(current, event)
        assert exc.value.reason == ConflictError.ILLEGAL_TRANSITION

    @pytest.mark.parametrize('terminal', [JobStatus.EXPIRED, JobStatus.CANCELLED, JobStatus.PAID])
    def test_terminal_statuses_have_no_exits(self, terminal):
        assert not [key for key in TRANSITIONS if key[0] == terminal]


class TestPlan:

    def test_plan_stamps_event_timestamp(self):
        job = {'jobId': 'job-1', 'status': JobStatus.POSTED}
        planned = fsm.plan(job, JobEvent.ACCEPT, NOW, extra={'assignedScoutId': 'scout-1'})

        assert planned.from_status == JobStatus.POSTED
        assert planned.to_status == JobStatus.ACCEPTED
        assert planned.updates == {
            'status': JobStatus.ACCEPTED,
            'acceptedAt': NOW,
            'updatedAt': NOW,
            'assignedScoutId': 'scout-1',
        }

    def test_plan_does_not_touch_job(self):
        job = {'jobId': 'job-1', 'status': JobStatus.DRAFT}
        fsm.plan(job, JobEvent.PUBLISH, NOW)
        assert job['status'] == JobStatus.DRAFT


class TestTransition:

    def test_transition_uses_compare_and_swap(self):
        repository = MagicMock()
        repository.transition_job.return_value = True
        job = {'jobId': 'job-1', 'status': JobStatus.DRAFT, 'title': 'Audit'}

        updated = fsm.transition(repository, job, JobEvent.PUBLISH, NOW, actor='manager-1')

        repository.transition_job.assert_called_once_with(
            'job-1', JobStatus.DRAFT, {'status': JobStatus.POSTED, 'postedAt': NOW, 'updatedAt': NOW}
        )
        assert updated['status'] == JobStatus.POSTED
        assert updated['title'] == 'Audit'

    def test_lost_race_raises_concurrent_update(self):
        repository = MagicMock()
        repository.transition_job.return_value = False
        job = {'jobId': 'job-1', 'status': JobStatus.POSTED}

        with pytest.raises(ConcurrentUpdateError) as exc:
            fsm.transition(repository, job, JobEvent.ACCEPT, NOW)
        assert exc.value.reason == ConflictError.CONCURRENT_UPDATE
        assert exc.value.status_code == 409

    def test_illegal_event_never_writes(self):
        repository = MagicMock()
        with pytest.raises(ConflictError):
            fsm.transition(repository, {'jobId': 'job-1', 'status': JobStatus.EXPIRED}, JobEvent.PUBLISH, NOW)
        repository.transition_job.assert_not_called()
