"""
Update Job Status Handler.
POST /jobs/{jobId}/{action}
Manager actions on a job: publish a draft, or cancel a draft/posted job.
"""
from scout_shared.auth import require_caller
from scout_shared.dynamo import get_repository
from scout_shared.errors import ValidationError
from scout_shared.events import get_notifier
from scout_shared.job_poster import JobPoster
from scout_shared.utils import api_handler, require_path_param

ACTIONS = ('publish', 'cancel')


@api_handler()
def handler(event, context):
    caller_id = require_caller(event)
    job_id = require_path_param(event, 'jobId')
    action = require_path_param(event, 'action')
    if action not in ACTIONS:
        raise ValidationError(f'action must be one of: {", ".join(ACTIONS)}')

    poster = JobPoster(get_repository(), get_notifier())
    if action == 'publish':
        job = poster.publish_job(job_id, caller_id)
    else:
        job = poster.cancel_job(job_id, caller_id)

    return {'jobId': job['jobId'], 'status': job['status'], 'updatedAt': job['updatedAt']}
