"""
Review Engine.
Records a manager's per-step results and overall decision for a submission,
drives the job to its post-review status and triggers settlement on approval.
"""
from typing import Any, Dict, List, Optional

from . import fsm
from .auth import require_manager
from .catalog import optional_text
from .errors import ConflictError, ConcurrentUpdateError, NotFoundError, ValidationError
from .fsm import JobEvent
from .logging import logger, log_transition
from .models import JobStatus, StepStatus, SubmissionStatus
from .utils import to_iso, utc_now

# Job event driven by each review decision
DECISION_EVENTS = {
    SubmissionStatus.APPROVED: JobEvent.APPROVE,
    SubmissionStatus.REJECTED: JobEvent.REJECT,
    SubmissionStatus.RESUBMIT_REQUIRED: JobEvent.REQUEST_RESUBMISSION,
}


def normalize_step_results(raw_results: Any, answers: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Validate per-step results against the submission's step answers.

    Each entry is ``{"stepAnswerId", "stepStatus", "reviewerComment"}`` with
    ``stepStatus`` passed or failed.
    """
    if raw_results is None:
        return []
    if not isinstance(raw_results, list):
        raise ValidationError('stepResults must be a list')

    answer_ids = {answer['stepAnswerId'] for answer in answers}
    seen = set()
    results = []
    for index, raw in enumerate(raw_results):
        if not isinstance(raw, dict):
            raise ValidationError(f'Step result {index + 1} must be an object')
        answer_id = raw.get('stepAnswerId')
        if answer_id not in answer_ids:
            raise ValidationError(f'Step result {index + 1} references an answer that is not part of this submission')
        if answer_id in seen:
            raise ValidationError(f'Answer {answer_id} was reviewed more than once')
        seen.add(answer_id)
        if raw.get('stepStatus') not in StepStatus.REVIEWED:
            raise ValidationError(f'Step result {index + 1} stepStatus must be passed or failed')
        comment = raw.get('reviewerComment')
        if comment is not None and not isinstance(comment, str):
            raise ValidationError(f'Step result {index + 1} reviewerComment must be text')
        results.append({
            'stepAnswerId': answer_id,
            'stepStatus': raw['stepStatus'],
            'reviewerComment': comment or None,
        })
    return results


class ReviewEngine:
    """Serves the review queue and applies review decisions; settlement is delegated to the payout issuer."""

    def __init__(self, repository, issuer, notifier):
        self.repository = repository
        self.issuer = issuer
        self.notifier = notifier

    def review(self, submission_id: str, reviewer_id: str, decision: str,
               step_results: Optional[List[Dict[str, Any]]] = None,
               reviewer_notes: Optional[str] = None) -> Dict[str, Any]:
        """
        Review a submitted submission.

        The submission update, the step results and the job transition are one
        conditional write on the submission still being ``submitted``. Only
        the caller whose write applied goes on to settlement, so concurrent
        approvals settle once.

        Returns:
            ``{"submission", "job", "payout"}``; payout is None unless approved

        Raises:
            NotFoundError: unknown submission or job
            AuthorizationError: reviewer is not a manager of the job's company
            ConflictError: submission already reviewed
            ValidationError: unknown decision or malformed step results
            ConcurrentUpdateError: another review won the race
        """
        submission = self.repository.get_submission(submission_id)
        if not submission:
            raise NotFoundError('Submission not found')
        job = self.repository.get_job(submission['jobId'])
        if not job:
            raise NotFoundError('Job not found')
        require_manager(self.repository, job['companyId'], reviewer_id)

        if submission['status'] != SubmissionStatus.SUBMITTED:
            raise ConflictError(f"Submission has already been reviewed ({submission['status']})")
        # Submission and job change status in one write, so a job that has
        # moved on means another review committed between the two reads
        if job['status'] != JobStatus.SUBMITTED or job.get('liveSubmissionId') != submission_id:
            logger.warning(f"Review of submission {submission_id} lost a race; not settling")
            raise ConcurrentUpdateError('Submission was reviewed concurrently')
        if decision not in DECISION_EVENTS:
            raise ValidationError(f'decision must be one of: {", ".join(SubmissionStatus.DECISIONS)}')
        reviewer_notes = optional_text(reviewer_notes, 'reviewerNotes')

        results = normalize_step_results(step_results, self.repository.list_step_answers(submission_id))

        now = to_iso(utc_now())
        submission_updates = {
            'status': decision,
            'reviewedAt': now,
            'reviewerId': reviewer_id,
            'reviewerNotes': reviewer_notes or None,
            'updatedAt': now,
        }
        extra = {'approvedSubmissionId': submission_id} if decision == SubmissionStatus.APPROVED else None
        planned = fsm.plan(job, DECISION_EVENTS[decision], now, extra=extra)

        applied = self.repository.complete_review(
            submission_id, submission_updates, results,
            job['jobId'], planned.from_status, planned.updates,
        )
        if not applied:
            logger.warning(f"Review of submission {submission_id} lost a race; not settling")
            raise ConcurrentUpdateError('Submission was reviewed concurrently')

        log_transition('Submission', submission_id, SubmissionStatus.SUBMITTED, decision, reviewer_id)
        log_transition('Job', job['jobId'], planned.from_status, planned.to_status, reviewer_id)

        updated_submission = dict(submission)
        updated_submission.update(submission_updates)
        updated_job = dict(job)
        updated_job.update(planned.updates)
        updated_job.pop('liveSubmissionId', None)
        self.notifier.job_status_changed(updated_job, reviewer_id)

        payout = None
        if decision == SubmissionStatus.APPROVED:
            payout = self.issuer.issue_for_job(updated_job, submission_id)

        return {'submission': updated_submission, 'job': updated_job, 'payout': payout}

    def list_submissions(self, company_id: str, caller_id: str,
                         status: Optional[str] = None) -> List[Dict[str, Any]]:
        """The company's review queue, latest submission first."""
        require_manager(self.repository, company_id, caller_id)
        if status is not None and status not in SubmissionStatus.ALL:
            raise ValidationError(f'status must be one of: {", ".join(SubmissionStatus.ALL)}')
        submissions = self.repository.list_submissions(company_id, status)
        return sorted(submissions, key=lambda s: s.get('submittedAt', ''), reverse=True)

    def get_submission(self, submission_id: str, caller_id: str) -> Dict[str, Any]:
        """
        Submission with its ``answers`` and ``media``.

        Readable by managers of the job's company and by the scout who submitted it.
        """
        submission = self.repository.get_submission(submission_id)
        if not submission:
            raise NotFoundError('Submission not found')
        if submission.get('scoutId') != caller_id:
            require_manager(self.repository, submission['companyId'], caller_id)
        return dict(
            submission,
            answers=self.repository.list_step_answers(submission_id),
            media=self.repository.list_media(submission_id),
        )
