"""
Job state machine.

The single authority for legal job status transitions. Every status change
goes through ``transition()``, which persists it as a compare-and-swap on the
job's current status.
"""
from typing import Any, Dict, Optional

from .errors import ConflictError, ConcurrentUpdateError
from .logging import log_transition
from .models import JobStatus


class JobEvent:
    """Events that move a job between statuses."""
    PUBLISH = 'publish'
    CANCEL = 'cancel'
    ACCEPT = 'accept'
    START = 'start'
    SUBMIT = 'submit'
    APPROVE = 'approve'
    REJECT = 'reject'
    REQUEST_RESUBMISSION = 'request_resubmission'
    EXPIRE = 'expire'
    SETTLE = 'settle'


TRANSITIONS = {
    (JobStatus.DRAFT, JobEvent.PUBLISH): JobStatus.POSTED,
    (JobStatus.DRAFT, JobEvent.CANCEL): JobStatus.CANCELLED,
    (JobStatus.POSTED, JobEvent.ACCEPT): JobStatus.ACCEPTED,
    (JobStatus.POSTED, JobEvent.CANCEL): JobStatus.CANCELLED,
    (JobStatus.POSTED, JobEvent.EXPIRE): JobStatus.EXPIRED,
    (JobStatus.ACCEPTED, JobEvent.START): JobStatus.IN_PROGRESS,
    (JobStatus.ACCEPTED, JobEvent.SUBMIT): JobStatus.SUBMITTED,
    (JobStatus.IN_PROGRESS, JobEvent.SUBMIT): JobStatus.SUBMITTED,
    (JobStatus.SUBMITTED, JobEvent.APPROVE): JobStatus.APPROVED,
    (JobStatus.SUBMITTED, JobEvent.REJECT): JobStatus.REJECTED,
    (JobStatus.SUBMITTED, JobEvent.REQUEST_RESUBMISSION): JobStatus.IN_PROGRESS,
    (JobStatus.APPROVED, JobEvent.SETTLE): JobStatus.PAID,
}

# Lifecycle timestamp stamped by each event
EVENT_TIMESTAMPS = {
    JobEvent.PUBLISH: 'postedAt',
    JobEvent.CANCEL: 'cancelledAt',
    JobEvent.ACCEPT: 'acceptedAt',
    JobEvent.START: 'startedAt',
    JobEvent.SUBMIT: 'submittedAt',
    JobEvent.APPROVE: 'approvedAt',
    JobEvent.REJECT: 'rejectedAt',
    JobEvent.REQUEST_RESUBMISSION: 'resubmissionRequestedAt',
    JobEvent.EXPIRE: 'expiredAt',
    JobEvent.SETTLE: 'paidAt',
}


class Transition:
    """A planned status change: where from, where to, and the attributes to write."""

    def __init__(self, job_id: str, event: str, from_status: str, to_status: str, updates: Dict[str, Any]):
        self.job_id = job_id
        self.event = event
        self.from_status = from_status
        self.to_status = to_status
        self.updates = updates

    def __repr__(self):
        return f"Transition({self.job_id}: {self.from_status} -[{self.event}]-> {self.to_status})"


def next_status(current: str, event: str) -> str:
    """
    Look up the status an event leads to.

    Raises:
        ConflictError: the event is not legal from the current status
    """
    target = TRANSITIONS.get((current, event))
    if target is None:
        raise ConflictError(f"Cannot {event.replace('_', ' ')} a job that is {current}")
    return target


def plan(job: Dict[str, Any], event: str, now: str, extra: Optional[Dict[str, Any]] = None) -> Transition:
    """
    Build the transition for ``event`` without writing it.

    Components that must persist the job change together with other records
    (submissions, reviews, settlements) hand the plan to the repository.
    """
    current = job.get('status')
    target = next_status(current, event)
    updates = {
        'status': target,
        EVENT_TIMESTAMPS[event]: now,
        'updatedAt': now,
    }
    if extra:
        updates.update(extra)
    return Transition(job['jobId'], event, current, target, updates)


def transition(repository, job: Dict[str, Any], event: str, now: str,
               extra: Optional[Dict[str, Any]] = None, actor: str = None) -> Dict[str, Any]:
    """
    Apply ``event`` to a job with a conditional update on its status.

    Returns:
        The job item with the updates applied

    Raises:
        ConflictError: the event is illegal from the job's status
        ConcurrentUpdateError: the job's status changed after it was read
    """
    planned = plan(job, event, now, extra)
    if not repository.transition_job(planned.job_id, planned.from_status, planned.updates):
        raise ConcurrentUpdateError(
            f"Job {planned.job_id} was updated concurrently; it is no longer {planned.from_status}"
        )
    log_transition('Job', planned.job_id, planned.from_status, planned.to_status, actor)
    updated = dict(job)
    updated.update(planned.updates)
    return updated
