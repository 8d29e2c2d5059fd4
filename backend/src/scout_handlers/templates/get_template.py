"""
Get Template Handler.
GET /templates/{templateId}
"""
from scout_shared.auth import require_caller
from scout_shared.catalog import TemplateCatalog
from scout_shared.dynamo import get_repository
from scout_shared.utils import api_handler, require_path_param


@api_handler()
def handler(event, context):
    caller_id = require_caller(event)
    template_id = require_path_param(event, 'templateId')
    return TemplateCatalog(get_repository()).get_template(template_id, caller_id)
