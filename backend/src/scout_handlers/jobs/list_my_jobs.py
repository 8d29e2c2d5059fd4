"""
List My Jobs Handler.
GET /scout/jobs?scope=active|history
Jobs assigned to the calling scout; ``active`` is the default scope.
"""
from scout_shared.auth import is_scout, require_caller
from scout_shared.dynamo import get_repository
from scout_shared.errors import AuthorizationError
from scout_shared.events import get_notifier
from scout_shared.job_poster import FEED_ACTIVE, JobPoster
from scout_shared.utils import api_handler, get_query_param


@api_handler()
def handler(event, context):
    scout_id = require_caller(event)
    if not is_scout(event):
        raise AuthorizationError('Only scouts have a job feed')
    scope = get_query_param(event, 'scope', FEED_ACTIVE)

    jobs = JobPoster(get_repository(), get_notifier()).list_scout_jobs(scout_id, scope)
    return {
        'jobs': jobs,
        'scope': scope,
        'count': len(jobs),
    }
