"""
Get Job Handler.
GET /jobs/{jobId}
Company members get the full job; scouts get the public view of a job they
may accept or are assigned to.
"""
from scout_shared.auth import require_caller
from scout_shared.dynamo import get_repository
from scout_shared.events import get_notifier
from scout_shared.job_poster import JobPoster
from scout_shared.utils import api_handler, require_path_param


@api_handler()
def handler(event, context):
    caller_id = require_caller(event)
    job_id = require_path_param(event, 'jobId')
    return JobPoster(get_repository(), get_notifier()).get_job(job_id, caller_id)
