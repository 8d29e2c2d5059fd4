"""
Mark Payout Paid Handler.
POST /payouts/{jobId}/paid
"""
from scout_shared.auth import require_caller
from scout_shared.dynamo import get_repository
from scout_shared.events import get_notifier
from scout_shared.settlement import PayoutIssuer
from scout_shared.utils import api_handler, require_path_param


@api_handler()
def handler(event, context):
    """Record that the scout's payout was paid out; the job moves to paid."""
    caller_id = require_caller(event)
    job_id = require_path_param(event, 'jobId')

    payout = PayoutIssuer(get_repository(), get_notifier()).mark_paid(job_id, caller_id)
    return {
        'jobId': job_id,
        'payoutId': payout['payoutId'],
        'amount': payout['amount'],
        'currency': payout['currency'],
        'status': payout['status'],
        'paidAt': payout['paidAt'],
    }
