"""
List Submissions Handler.
GET /submissions?companyId=...&status=submitted
The company's review queue, latest submission first.
"""
from scout_shared.auth import require_caller
from scout_shared.dynamo import get_repository
from scout_shared.errors import ValidationError
from scout_shared.events import get_notifier
from scout_shared.review import ReviewEngine
from scout_shared.settlement import PayoutIssuer
from scout_shared.utils import api_handler, get_query_param


@api_handler()
def handler(event, context):
    caller_id = require_caller(event)
    company_id = get_query_param(event, 'companyId')
    if not company_id:
        raise ValidationError('companyId is required')
    status = get_query_param(event, 'status')

    repository = get_repository()
    notifier = get_notifier()
    engine = ReviewEngine(repository, PayoutIssuer(repository, notifier), notifier)
    submissions = engine.list_submissions(company_id, caller_id, status)
    return {
        'submissions': submissions,
        'count': len(submissions),
    }
