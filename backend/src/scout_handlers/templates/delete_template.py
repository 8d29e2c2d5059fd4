"""
Delete Template Handler.
DELETE /templates/{templateId}
Templates are archived, never removed; jobs created from them are unaffected.
"""
from scout_shared.auth import require_caller
from scout_shared.catalog import TemplateCatalog
from scout_shared.dynamo import get_repository
from scout_shared.utils import api_handler, require_path_param


@api_handler()
def handler(event, context):
    caller_id = require_caller(event)
    template_id = require_path_param(event, 'templateId')

    template = TemplateCatalog(get_repository()).delete_template(template_id, caller_id)
    return {
        'message': 'Template archived',
        'templateId': template_id,
        'archivedAt': template['archivedAt'],
    }
