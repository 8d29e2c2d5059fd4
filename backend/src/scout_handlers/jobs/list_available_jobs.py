"""
List Available Jobs Handler.
GET /scout/jobs/available
Posted jobs nobody has accepted yet whose time window is still open.
"""
from scout_shared.auth import is_scout, require_caller
from scout_shared.dynamo import get_repository
from scout_shared.errors import AuthorizationError
from scout_shared.events import get_notifier
from scout_shared.job_poster import JobPoster
from scout_shared.logging import logger
from scout_shared.utils import api_handler


@api_handler()
def handler(event, context):
    require_caller(event)
    if not is_scout(event):
        raise AuthorizationError('Only scouts can browse available jobs')

    jobs = JobPoster(get_repository(), get_notifier()).list_available_jobs()
    logger.info(f"Found {len(jobs)} available jobs")
    return {
        'jobs': jobs,
        'count': len(jobs),
    }
