"""
Update Template Handler.
PUT /templates/{templateId}
Replaces the template's fields and whole step set and bumps its version.
"""
from scout_shared.auth import require_caller
from scout_shared.catalog import TemplateCatalog
from scout_shared.dynamo import get_repository
from scout_shared.utils import api_handler, parse_body, require_path_param


@api_handler()
def handler(event, context):
    caller_id = require_caller(event)
    template_id = require_path_param(event, 'templateId')
    body = parse_body(event)

    catalog = TemplateCatalog(get_repository())
    return catalog.update_template(
        template_id=template_id,
        caller_id=caller_id,
        title=body.get('title'),
        category=body.get('category'),
        duration_minutes=body.get('durationMinutes'),
        steps=body.get('steps'),
        guidance_text=body.get('guidanceText'),
    )
