"""
Generate Evidence Packet Handler.
POST /evidence-packets
Input {submissionId}; output {success: true, packetPath}.
"""
from scout_shared.auth import require_caller
from scout_shared.dynamo import get_repository
from scout_shared.errors import ValidationError
from scout_shared.evidence import EvidencePacketCompiler
from scout_shared.s3_utils import get_blob_store
from scout_shared.utils import api_handler, parse_body


@api_handler()
def handler(event, context):
    caller_id = require_caller(event)
    body = parse_body(event)

    submission_id = body.get('submissionId')
    if not submission_id or not isinstance(submission_id, str):
        raise ValidationError('submissionId is required')

    compiler = EvidencePacketCompiler(get_repository(), get_blob_store())
    packet_path = compiler.generate_packet(submission_id, caller_id)
    return {'success': True, 'packetPath': packet_path}
