"""
Create Template Handler.
POST /templates
"""
from scout_shared.auth import require_caller
from scout_shared.catalog import TemplateCatalog, require_text
from scout_shared.dynamo import get_repository
from scout_shared.utils import api_handler, parse_body


@api_handler(success_status=201)
def handler(event, context):
    """
    Create a versioned inspection template for a company.

    Body: companyId, title, category, durationMinutes, steps[], guidanceText
    """
    caller_id = require_caller(event)
    body = parse_body(event)

    catalog = TemplateCatalog(get_repository())
    return catalog.create_template(
        company_id=require_text(body.get('companyId'), 'companyId'),
        caller_id=caller_id,
        title=body.get('title'),
        category=body.get('category'),
        duration_minutes=body.get('durationMinutes'),
        steps=body.get('steps'),
        guidance_text=body.get('guidanceText'),
    )
