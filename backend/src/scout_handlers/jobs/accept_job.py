"""
Accept Job Handler.
POST /scout/jobs/{jobId}/accept
Only one scout can win a posted job; losers get a 409 with reason concurrent_update.
"""
from scout_shared.auth import is_scout, require_caller
from scout_shared.dynamo import get_repository
from scout_shared.errors import AuthorizationError
from scout_shared.events import get_notifier
from scout_shared.job_poster import JobPoster
from scout_shared.utils import api_handler, require_path_param


@api_handler()
def handler(event, context):
    scout_id = require_caller(event)
    if not is_scout(event):
        raise AuthorizationError('Only scouts can accept jobs')
    job_id = require_path_param(event, 'jobId')

    job = JobPoster(get_repository(), get_notifier()).accept_job(job_id, scout_id)
    return {
        'message': 'Job accepted',
        'jobId': job['jobId'],
        'status': job['status'],
        'acceptedAt': job['acceptedAt'],
    }
