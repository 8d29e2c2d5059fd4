"""
Expire Jobs Handler.
Triggered by an EventBridge schedule to expire posted jobs whose time window
ended before any scout accepted them.
"""
from scout_shared.dynamo import get_repository
from scout_shared.events import get_notifier
from scout_shared.job_poster import JobPoster
from scout_shared.logging import logger


def handler(event, context):
    """
    Scheduled handler; safe to run as often as the schedule fires.
    A job accepted between the scan and its expiry is skipped.
    """
    logger.info("Running job expiration check...")
    result = JobPoster(get_repository(), get_notifier()).expire_overdue_jobs()
    logger.info(f"Expired {result['expired']} of {result['checked']} overdue jobs")
    return result
