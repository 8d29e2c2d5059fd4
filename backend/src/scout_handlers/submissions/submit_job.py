"""
Submit Job Handler.
POST /scout/jobs/{jobId}/submit
Records the assigned scout's answers and media and moves the job to submitted.
"""
from scout_shared.auth import require_caller
from scout_shared.dynamo import get_repository
from scout_shared.events import get_notifier
from scout_shared.submissions import SubmissionRecorder
from scout_shared.utils import api_handler, parse_body, require_path_param


@api_handler(success_status=201)
def handler(event, context):
    """
    Body:
        answers: [{stepId, value, note}]
        media: [{stepId, mediaType, storagePath, capturedAt}]
        notes: optional overall notes
    """
    scout_id = require_caller(event)
    job_id = require_path_param(event, 'jobId')
    body = parse_body(event)

    recorder = SubmissionRecorder(get_repository(), get_notifier())
    submission = recorder.submit(
        job_id=job_id,
        scout_id=scout_id,
        answers=body.get('answers'),
        media=body.get('media'),
        notes=body.get('notes'),
    )
    return {
        'message': 'Submission received',
        'submissionId': submission['submissionId'],
        'jobId': job_id,
        'status': submission['status'],
        'submittedAt': submission['submittedAt'],
    }
