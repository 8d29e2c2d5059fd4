"""
List Templates Handler.
GET /templates?companyId=...&includeArchived=true
Archived templates are left out unless asked for.
"""
from scout_shared.auth import require_caller
from scout_shared.catalog import TemplateCatalog
from scout_shared.dynamo import get_repository
from scout_shared.errors import ValidationError
from scout_shared.utils import api_handler, get_query_param


@api_handler()
def handler(event, context):
    caller_id = require_caller(event)
    company_id = get_query_param(event, 'companyId')
    if not company_id:
        raise ValidationError('companyId is required')
    include_archived = get_query_param(event, 'includeArchived', 'false').lower() == 'true'

    templates = TemplateCatalog(get_repository()).list_templates(company_id, caller_id, include_archived)
    return {
        'templates': templates,
        'count': len(templates),
    }
