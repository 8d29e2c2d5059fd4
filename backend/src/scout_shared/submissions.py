"""
Submission Recorder.
Accepts a scout's answers and evidence media against the job's frozen step
snapshot and hands the job over to review.
"""
from collections import Counter
from typing import Any, Dict, List, Optional

from . import fsm
from .catalog import optional_text
from .errors import AuthorizationError, ConflictError, ConcurrentUpdateError, NotFoundError, ValidationError
from .fsm import JobEvent
from .logging import logger
from .models import JobStatus, MediaType, StepStatus, StepType, SubmissionStatus
from .step_types import parse_answer
from .utils import new_id, parse_timestamp, to_iso, utc_now


def _validate_media(raw_media: Any, steps_by_id: Dict[str, Dict[str, Any]]) -> List[Dict[str, Any]]:
    if raw_media is None:
        return []
    if not isinstance(raw_media, list):
        raise ValidationError('media must be a list')

    rows = []
    for index, raw in enumerate(raw_media):
        if not isinstance(raw, dict):
            raise ValidationError(f'Media {index + 1} must be an object')
        if raw.get('stepId') not in steps_by_id:
            raise ValidationError(f'Media {index + 1} references a step that is not part of this job')
        if raw.get('mediaType') not in MediaType.ALL:
            raise ValidationError(f'Media {index + 1} mediaType must be photo or video')
        storage_path = raw.get('storagePath')
        if not isinstance(storage_path, str) or not storage_path.strip():
            raise ValidationError(f'Media {index + 1} storagePath is required')
        rows.append({
            'stepId': raw['stepId'],
            'mediaType': raw['mediaType'],
            'storagePath': storage_path.strip(),
            'capturedAt': parse_timestamp(raw.get('capturedAt'), f'Media {index + 1} capturedAt'),
        })
    return rows


def _index_answers(raw_answers: Any, steps_by_id: Dict[str, Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    if raw_answers is None:
        return {}
    if not isinstance(raw_answers, list):
        raise ValidationError('answers must be a list')

    by_step = {}
    for index, raw in enumerate(raw_answers):
        if not isinstance(raw, dict):
            raise ValidationError(f'Answer {index + 1} must be an object')
        step_id = raw.get('stepId')
        if step_id not in steps_by_id:
            raise ValidationError(f'Answer {index + 1} references a step that is not part of this job')
        if step_id in by_step:
            raise ValidationError(f'Step {step_id} was answered more than once')
        by_step[step_id] = raw
    return by_step


def _step_label(step: Dict[str, Any]) -> str:
    return f'Step {int(step["orderIndex"]) + 1} ("{step.get("prompt", "")}")'


class SubmissionRecorder:
    """Records a scout's submission for an accepted or in-progress job."""

    def __init__(self, repository, notifier):
        self.repository = repository
        self.notifier = notifier

    def submit(self, job_id: str, scout_id: str, answers: Optional[List[Dict[str, Any]]],
               media: Optional[List[Dict[str, Any]]], notes: Optional[str] = None) -> Dict[str, Any]:
        """
        Create a submission and move the job to ``submitted``.

        Answers are ``{"stepId", "value"}`` entries (``note`` for photo/video
        steps); media entries are ``{"stepId", "mediaType", "storagePath",
        "capturedAt"}``. A required photo/video step counts as answered when
        it has media.

        Raises:
            NotFoundError: unknown job
            ConflictError: job not accepted/in progress, or a submission is already under review
            AuthorizationError: caller is not the assigned scout
            ValidationError: bad step references, invalid answers, missing required answers or media
            ConcurrentUpdateError: the job changed while the submission was being written
        """
        job = self.repository.get_job(job_id)
        if not job:
            raise NotFoundError('Job not found')
        if job['status'] not in JobStatus.SUBMITTABLE:
            raise ConflictError(f"Cannot submit a job that is {job['status']}")
        if job.get('assignedScoutId') != scout_id:
            raise AuthorizationError('Job is not assigned to you')
        if job.get('liveSubmissionId'):
            raise ConflictError('A submission for this job is already awaiting review')

        steps = self.repository.list_job_steps(job_id)
        steps_by_id = {step['stepId']: step for step in steps}
        media_rows = _validate_media(media, steps_by_id)
        answers_by_step = _index_answers(answers, steps_by_id)
        overall_notes = optional_text(notes, 'notes')
        media_counts = Counter((row['stepId'], row['mediaType']) for row in media_rows)

        typed_answers = {}
        for step in steps:
            step_id = step['stepId']
            photos = media_counts[(step_id, MediaType.PHOTO)]
            videos = media_counts[(step_id, MediaType.VIDEO)]
            raw = answers_by_step.get(step_id)
            has_media = photos + videos > 0

            if raw is not None:
                typed_answers[step_id] = parse_answer(step, raw, media_count=photos + videos)
            elif step['stepType'] in StepType.MEDIA and has_media:
                typed_answers[step_id] = parse_answer(step, {}, media_count=photos + videos)
            elif step.get('isRequired'):
                raise ValidationError(f'{_step_label(step)} requires an answer')

            if step.get('isRequired') or step_id in typed_answers or has_media:
                if photos < int(step.get('minPhotos', 0)):
                    raise ValidationError(f'{_step_label(step)} needs at least {int(step["minPhotos"])} photos')
                if videos < int(step.get('minVideos', 0)):
                    raise ValidationError(f'{_step_label(step)} needs at least {int(step["minVideos"])} videos')

        submission_id = new_id()
        now = to_iso(utc_now())
        submission = {
            'submissionId': submission_id,
            'jobId': job_id,
            'companyId': job['companyId'],
            'scoutId': scout_id,
            'status': SubmissionStatus.SUBMITTED,
            'overallNotes': overall_notes,
            'submittedAt': now,
            'createdAt': now,
        }
        answer_items = []
        for step_id, answer in typed_answers.items():
            item = {
                'submissionId': submission_id,
                'stepAnswerId': new_id(),
                'stepId': step_id,
                'jobId': job_id,
                'stepStatus': StepStatus.PENDING,
                'createdAt': now,
            }
            item.update(answer.to_item())
            answer_items.append(item)
        media_items = [
            dict(row, submissionId=submission_id, mediaId=new_id(), jobId=job_id, createdAt=now)
            for row in media_rows
        ]

        planned = fsm.plan(job, JobEvent.SUBMIT, now, extra={'liveSubmissionId': submission_id})
        if not self.repository.create_submission(submission, answer_items, media_items,
                                                 planned.from_status, planned.updates):
            raise ConcurrentUpdateError('Job changed or already has a submission under review')

        logger.info(f"Submission {submission_id} recorded for job {job_id}: "
                    f"{len(answer_items)} answers, {len(media_items)} media")
        updated_job = dict(job)
        updated_job.update(planned.updates)
        self.notifier.job_status_changed(updated_job, scout_id)
        return dict(submission, answers=answer_items, media=media_items)
