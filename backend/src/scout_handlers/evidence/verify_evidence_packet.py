"""
Verify Evidence Packet Handler.
GET /evidence-packets/{submissionId}/verify
Re-reads the stored packet and checks its content hash.
"""
from scout_shared.auth import require_caller
from scout_shared.dynamo import get_repository
from scout_shared.evidence import EvidencePacketCompiler
from scout_shared.s3_utils import get_blob_store
from scout_shared.utils import api_handler, require_path_param


@api_handler()
def handler(event, context):
    caller_id = require_caller(event)
    submission_id = require_path_param(event, 'submissionId')

    compiler = EvidencePacketCompiler(get_repository(), get_blob_store())
    result = compiler.verify_packet(submission_id, caller_id)
    return {'submissionId': submission_id, 'valid': result['valid'], 'contentHash': result['contentHash']}
