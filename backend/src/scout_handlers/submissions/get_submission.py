"""
Get Submission Handler.
GET /submissions/{submissionId}
Returns the submission with its step answers and media.
"""
from scout_shared.auth import require_caller
from scout_shared.dynamo import get_repository
from scout_shared.events import get_notifier
from scout_shared.review import ReviewEngine
from scout_shared.settlement import PayoutIssuer
from scout_shared.utils import api_handler, require_path_param


@api_handler()
def handler(event, context):
    caller_id = require_caller(event)
    submission_id = require_path_param(event, 'submissionId')

    repository = get_repository()
    notifier = get_notifier()
    engine = ReviewEngine(repository, PayoutIssuer(repository, notifier), notifier)
    return engine.get_submission(submission_id, caller_id)
