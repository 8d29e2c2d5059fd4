"""
Job Poster / Assigner.
Creates jobs from a template snapshot and drives the pre-submission part of
the job lifecycle: publish, cancel, accept, start and scheduled expiry.
Also serves the scout job feed.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from . import fsm
from .auth import require_manager
from .catalog import optional_text, require_text
from .config import config
from .errors import AuthorizationError, ConflictError, ConcurrentUpdateError, NotFoundError, ValidationError
from .fsm import JobEvent
from .logging import logger
from .models import JobStatus, PayoutType
from .utils import new_id, parse_timestamp, to_decimal, to_iso, utc_now

# Attributes copied verbatim from a template step into the job's snapshot
SNAPSHOT_STEP_FIELDS = (
    'orderIndex', 'prompt', 'stepType', 'isRequired', 'minPhotos',
    'minVideos', 'guidanceText', 'validationRules', 'templateVersion',
)

# Company-only job attributes left out of what scouts see
SCOUT_HIDDEN_FIELDS = ('notesInternal', 'createdBy', 'approvedSubmissionId')

FEED_ACTIVE = 'active'
FEED_HISTORY = 'history'
# Scope -> (statuses, attribute to sort by, newest first)
FEED_SCOPES = {
    FEED_ACTIVE: (JobStatus.SCOUT_ACTIVE, 'acceptedAt'),
    FEED_HISTORY: (JobStatus.SCOUT_HISTORY, 'updatedAt'),
}


def snapshot_steps(job_id: str, template_steps: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Copy template steps into job steps with identical ordering and rules."""
    job_steps = []
    for step in template_steps:
        job_step = {'jobId': job_id, 'stepId': new_id()}
        job_step.update({field: step.get(field) for field in SNAPSHOT_STEP_FIELDS})
        job_steps.append(job_step)
    return job_steps


def parse_time_window(time_window: Optional[Dict[str, Any]]):
    """Return (start, end) ISO strings; either may be None."""
    if not time_window:
        return None, None
    if not isinstance(time_window, dict):
        raise ValidationError('timeWindow must be an object with start and end')
    start = parse_timestamp(time_window.get('start'), 'timeWindow.start')
    end = parse_timestamp(time_window.get('end'), 'timeWindow.end')
    if start and end and datetime.fromisoformat(end) <= datetime.fromisoformat(start):
        raise ValidationError('timeWindow.end must be after timeWindow.start')
    return start, end


def is_window_closed(job: Dict[str, Any], now: datetime) -> bool:
    end = job.get('timeWindowEnd')
    return bool(end) and datetime.fromisoformat(end) <= now


def scout_view(job: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in job.items() if k not in SCOUT_HIDDEN_FIELDS}


class JobPoster:
    """Posts jobs, moves them up to submission and lists them for scouts."""

    def __init__(self, repository, notifier):
        self.repository = repository
        self.notifier = notifier

    def _load_job(self, job_id: str) -> Dict[str, Any]:
        job = self.repository.get_job(job_id)
        if not job:
            raise NotFoundError('Job not found')
        return job

    def _apply(self, job: Dict[str, Any], event: str, actor: str,
               extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        updated = fsm.transition(self.repository, job, event, to_iso(utc_now()), extra=extra, actor=actor)
        self.notifier.job_status_changed(updated, actor)
        return updated

    def create_job(self, template_id: str, location_id: str, title: str, payout_amount: Any,
                   caller_id: str, currency: str = None, payout_type: str = PayoutType.CASH,
                   time_window: Optional[Dict[str, Any]] = None, publish: bool = False,
                   reward_description: Optional[str] = None, voucher_expires_at: Optional[str] = None,
                   notes_public: Optional[str] = None, notes_internal: Optional[str] = None) -> Dict[str, Any]:
        """
        Create a job from the template's current version.

        The template version and a copy of its steps are captured here and
        never refreshed. Job and job steps are written in one transaction.

        Raises:
            NotFoundError: unknown template
            AuthorizationError: caller is not a manager of the template's company
            ConflictError: template archived
            ValidationError: template has no steps, or invalid job fields
            ConcurrentUpdateError: the template was edited while snapshotting
        """
        template = self.repository.get_template(template_id)
        if not template:
            raise NotFoundError('Template not found')
        require_manager(self.repository, template['companyId'], caller_id)
        if not template.get('isActive', True):
            raise ConflictError('Template is archived')

        version = int(template['version'])
        template_steps = self.repository.list_template_steps(template_id)
        if not template_steps:
            raise ValidationError('Template has no steps; a job needs at least one')
        if any(int(step.get('templateVersion', version)) != version for step in template_steps):
            raise ConcurrentUpdateError('Template is being edited; retry')

        amount = to_decimal(payout_amount, 'payoutAmount')
        if amount < 0:
            raise ValidationError('payoutAmount cannot be negative')
        if payout_type not in PayoutType.ALL:
            raise ValidationError(f'payoutType must be one of: {", ".join(PayoutType.ALL)}')
        currency = (currency or config.DEFAULT_CURRENCY).strip().upper()
        if len(currency) != 3 or not currency.isalpha():
            raise ValidationError('currency must be a 3-letter code')
        window_start, window_end = parse_time_window(time_window)

        job_id = new_id()
        now = to_iso(utc_now())
        status = JobStatus.POSTED if publish else JobStatus.DRAFT
        job = {
            'jobId': job_id,
            'companyId': template['companyId'],
            'locationId': require_text(location_id, 'locationId'),
            'templateId': template_id,
            'templateVersion': version,
            'title': require_text(title, 'title'),
            'status': status,
            'payoutAmount': amount,
            'currency': currency,
            'payoutType': payout_type,
            'rewardDescription': optional_text(reward_description, 'rewardDescription'),
            'voucherExpiresAt': parse_timestamp(voucher_expires_at, 'voucherExpiresAt'),
            'timeWindowStart': window_start,
            'timeWindowEnd': window_end,
            'assignedScoutId': None,
            'notesPublic': optional_text(notes_public, 'notesPublic'),
            'notesInternal': optional_text(notes_internal, 'notesInternal'),
            'createdBy': caller_id,
            'createdAt': now,
            'updatedAt': now,
            'postedAt': now if publish else None,
        }
        job_steps = snapshot_steps(job_id, template_steps)

        if not self.repository.create_job(job, job_steps):
            raise ConcurrentUpdateError('Template changed or was archived while the job was being created')

        logger.info(f"Created job {job_id} ({status}) from template {template_id} v{version} with {len(job_steps)} steps")
        if publish:
            self.notifier.job_status_changed(job, caller_id)
        return dict(job, steps=job_steps)

    def get_job(self, job_id: str, caller_id: str) -> Dict[str, Any]:
        """
        Job with its step snapshot.

        Company members see the full job. Scouts see a posted, unassigned job
        or one assigned to them, without the company's internal fields.
        """
        job = self._load_job(job_id)
        steps = self.repository.list_job_steps(job_id)
        if self.repository.get_company_role(job['companyId'], caller_id):
            return dict(job, steps=steps)
        assigned = job.get('assignedScoutId')
        if assigned == caller_id or (job['status'] == JobStatus.POSTED and not assigned):
            return dict(scout_view(job), steps=steps)
        raise AuthorizationError('You cannot view this job')

    def list_available_jobs(self, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Posted, unassigned jobs whose window is still open, newest first."""
        now = now or utc_now()
        jobs = [
            job for job in self.repository.list_jobs_by_status(JobStatus.POSTED)
            if not job.get('assignedScoutId') and not is_window_closed(job, now)
        ]
        jobs.sort(key=lambda j: j.get('postedAt') or '', reverse=True)
        return [scout_view(job) for job in jobs]

    def list_scout_jobs(self, scout_id: str, scope: str = FEED_ACTIVE) -> List[Dict[str, Any]]:
        """A scout's active jobs (latest accepted first) or finished jobs (latest update first)."""
        if scope not in FEED_SCOPES:
            raise ValidationError(f'scope must be one of: {", ".join(FEED_SCOPES)}')
        statuses, order_by = FEED_SCOPES[scope]
        jobs = [job for job in self.repository.list_jobs_by_scout(scout_id) if job['status'] in statuses]
        jobs.sort(key=lambda j: j.get(order_by) or '', reverse=True)
        return [scout_view(job) for job in jobs]

    def publish_job(self, job_id: str, caller_id: str) -> Dict[str, Any]:
        job = self._load_job(job_id)
        require_manager(self.repository, job['companyId'], caller_id)
        return self._apply(job, JobEvent.PUBLISH, caller_id)

    def cancel_job(self, job_id: str, caller_id: str) -> Dict[str, Any]:
        job = self._load_job(job_id)
        require_manager(self.repository, job['companyId'], caller_id)
        return self._apply(job, JobEvent.CANCEL, caller_id)

    def accept_job(self, job_id: str, scout_id: str) -> Dict[str, Any]:
        """
        Assign a posted job to the calling scout.

        Race-safe: only one of several concurrent accepts succeeds, the others
        get a ConcurrentUpdateError.
        """
        job = self._load_job(job_id)
        assigned = job.get('assignedScoutId')
        if job['status'] != JobStatus.POSTED and assigned and assigned != scout_id:
            raise ConcurrentUpdateError('Job was accepted by another scout')
        fsm.next_status(job['status'], JobEvent.ACCEPT)
        if is_window_closed(job, utc_now()):
            raise ConflictError('The time window for this job has closed')
        return self._apply(job, JobEvent.ACCEPT, scout_id, extra={'assignedScoutId': scout_id})

    def start_job(self, job_id: str, scout_id: str) -> Dict[str, Any]:
        job = self._load_job(job_id)
        if job.get('assignedScoutId') != scout_id:
            raise AuthorizationError('Job is not assigned to you')
        return self._apply(job, JobEvent.START, scout_id)

    def expire_overdue_jobs(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """
        Move posted jobs whose time window has ended to ``expired``.

        Invoked by the scheduler; a job accepted in the meantime is skipped.
        """
        now = now or utc_now()
        posted = self.repository.list_jobs_by_status(JobStatus.POSTED)
        overdue = [job for job in posted if is_window_closed(job, now)]
        logger.info(f"Found {len(overdue)} overdue posted jobs out of {len(posted)}")

        expired = 0
        for job in overdue:
            try:
                self._apply(job, JobEvent.EXPIRE, 'scheduler')
                expired += 1
            except ConflictError as e:
                logger.warning(f"Skipped expiring job {job['jobId']}: {e.message}")

        return {'checked': len(overdue), 'expired': expired}
