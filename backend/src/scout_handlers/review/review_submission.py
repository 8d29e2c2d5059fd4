"""
Review Submission Handler.
POST /submissions/{submissionId}/review
Approving settles the job (payout and, for non-cash jobs, a voucher) exactly once.
"""
from scout_shared.auth import require_caller
from scout_shared.dynamo import get_repository
from scout_shared.events import get_notifier
from scout_shared.review import ReviewEngine
from scout_shared.settlement import PayoutIssuer
from scout_shared.utils import api_handler, parse_body, require_path_param


@api_handler()
def handler(event, context):
    """
    Body: decision (approved | rejected | resubmit_required),
    stepResults [{stepAnswerId, stepStatus, reviewerComment}], reviewerNotes
    """
    reviewer_id = require_caller(event)
    submission_id = require_path_param(event, 'submissionId')
    body = parse_body(event)

    repository = get_repository()
    notifier = get_notifier()
    engine = ReviewEngine(repository, PayoutIssuer(repository, notifier), notifier)
    result = engine.review(
        submission_id=submission_id,
        reviewer_id=reviewer_id,
        decision=body.get('decision'),
        step_results=body.get('stepResults'),
        reviewer_notes=body.get('reviewerNotes'),
    )

    submission = result['submission']
    payout = result['payout']
    return {
        'submissionId': submission_id,
        'status': submission['status'],
        'reviewedAt': submission['reviewedAt'],
        'jobStatus': result['job']['status'],
        'payoutId': payout.get('payoutId') if payout else None,
        'voucherId': payout.get('voucherId') if payout else None,
    }
