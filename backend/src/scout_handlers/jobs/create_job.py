"""
Create Job Handler.
POST /jobs
Snapshots the template's current version and steps into a new job.
"""
from scout_shared.auth import require_caller
from scout_shared.catalog import require_text
from scout_shared.dynamo import get_repository
from scout_shared.errors import ValidationError
from scout_shared.events import get_notifier
from scout_shared.job_poster import JobPoster
from scout_shared.models import PayoutType
from scout_shared.utils import api_handler, parse_body


@api_handler(success_status=201)
def handler(event, context):
    """
    Body: templateId, locationId, title, payoutAmount, currency, payoutType,
    timeWindow {start, end}, publish, rewardDescription, voucherExpiresAt,
    notesPublic, notesInternal
    """
    caller_id = require_caller(event)
    body = parse_body(event)

    publish = body.get('publish', False)
    if not isinstance(publish, bool):
        raise ValidationError('publish must be true or false')

    poster = JobPoster(get_repository(), get_notifier())
    return poster.create_job(
        template_id=require_text(body.get('templateId'), 'templateId'),
        location_id=body.get('locationId'),
        title=body.get('title'),
        payout_amount=body.get('payoutAmount', 0),
        caller_id=caller_id,
        currency=body.get('currency'),
        payout_type=body.get('payoutType') or PayoutType.CASH,
        time_window=body.get('timeWindow'),
        publish=publish,
        reward_description=body.get('rewardDescription'),
        voucher_expires_at=body.get('voucherExpiresAt'),
        notes_public=body.get('notesPublic'),
        notes_internal=body.get('notesInternal'),
    )
