"""
Evidence Packet Compiler.
Joins a submission's job, answers, review outcomes and media pointers into a
JSON document for audit export. The document carries a SHA-256 hash of its
own canonical form so later tampering can be detected.
"""
import hashlib
import json
from typing import Any, Dict, List, Tuple

from .auth import require_manager
from .errors import NotFoundError
from .logging import logger
from .models import AuditAction
from .step_types import answer_from_item
from .utils import DecimalEncoder, new_id, to_iso, utc_now

PACKET_FILE_NAME = 'evidence-packet.json'
PACKET_CONTENT_TYPE = 'application/json'
PACKET_FORMAT_VERSION = 1

# Length of the scout id prefix shown in packets
SCOUT_ID_VISIBLE_CHARS = 8


def packet_path(company_id: str, job_id: str, submission_id: str) -> str:
    return f"{company_id}/{job_id}/{submission_id}/{PACKET_FILE_NAME}"


def anonymize_scout_id(scout_id: str) -> str:
    return scout_id[:SCOUT_ID_VISIBLE_CHARS] if scout_id else None


def content_hash(document: Dict[str, Any]) -> str:
    """SHA-256 over the canonical JSON of the document without its ``contentHash``."""
    body = {k: v for k, v in document.items() if k != 'contentHash'}
    canonical = json.dumps(body, sort_keys=True, separators=(',', ':'), cls=DecimalEncoder)
    return hashlib.sha256(canonical.encode('utf-8')).hexdigest()


def _step_entry(step: Dict[str, Any], answer: Dict[str, Any], media: List[Dict[str, Any]]) -> Dict[str, Any]:
    entry = {
        'orderIndex': int(step['orderIndex']),
        'stepId': step['stepId'],
        'prompt': step.get('prompt'),
        'stepType': step.get('stepType'),
        'isRequired': bool(step.get('isRequired')),
        'answer': None,
        'media': [
            {
                'mediaId': row['mediaId'],
                'mediaType': row['mediaType'],
                'storagePath': row['storagePath'],
                'capturedAt': row.get('capturedAt'),
            }
            for row in media
        ],
    }
    if answer:
        typed = answer_from_item(answer)
        entry['answer'] = {
            'stepAnswerId': answer['stepAnswerId'],
            'value': typed.to_packet() if typed else None,
            'stepStatus': answer.get('stepStatus'),
            'reviewerComment': answer.get('reviewerComment'),
        }
    return entry


def build_packet(job: Dict[str, Any], submission: Dict[str, Any], steps: List[Dict[str, Any]],
                 answers: List[Dict[str, Any]], media: List[Dict[str, Any]],
                 generated_by: str, generated_at: str) -> Dict[str, Any]:
    """
    Assemble the packet document, steps in ``orderIndex`` order.

    Values are normalized to plain JSON types before hashing so a packet read
    back from storage hashes to the same value.
    """
    answers_by_step = {answer['stepId']: answer for answer in answers}
    media_by_step = {}
    for row in sorted(media, key=lambda m: (m.get('capturedAt') or '', m['mediaId'])):
        media_by_step.setdefault(row['stepId'], []).append(row)

    document = {
        'formatVersion': PACKET_FORMAT_VERSION,
        'generatedAt': generated_at,
        'generatedBy': generated_by,
        'companyId': job['companyId'],
        'locationId': job.get('locationId'),
        'job': {
            'jobId': job['jobId'],
            'title': job.get('title'),
            'status': job.get('status'),
            'templateId': job.get('templateId'),
            'templateVersion': job.get('templateVersion'),
            'scoutAnonymizedId': anonymize_scout_id(submission.get('scoutId')),
        },
        'submission': {
            'submissionId': submission['submissionId'],
            'status': submission.get('status'),
            'submittedAt': submission.get('submittedAt'),
            'reviewedAt': submission.get('reviewedAt'),
            'overallNotes': submission.get('overallNotes'),
            'reviewerNotes': submission.get('reviewerNotes'),
        },
        'steps': [
            _step_entry(step, answers_by_step.get(step['stepId']), media_by_step.get(step['stepId'], []))
            for step in sorted(steps, key=lambda s: int(s['orderIndex']))
        ],
        'mediaCount': len(media),
    }
    document = json.loads(json.dumps(document, cls=DecimalEncoder))
    document['contentHash'] = content_hash(document)
    return document


class EvidencePacketCompiler:
    """Builds, stores and verifies evidence packets."""

    def __init__(self, repository, store):
        self.repository = repository
        self.store = store

    def _authorized_records(self, submission_id: str, caller_id: str) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        submission = self.repository.get_submission(submission_id)
        if not submission:
            raise NotFoundError('Submission not found')
        job = self.repository.get_job(submission['jobId'])
        if not job:
            raise NotFoundError('Job not found')
        require_manager(self.repository, job['companyId'], caller_id)
        return submission, job

    def generate_packet(self, submission_id: str, caller_id: str) -> str:
        """
        Compile and store the packet for a submission; returns its storage path.

        Regenerating overwrites the packet at the same path and appends another
        audit entry.

        Raises:
            NotFoundError: unknown submission
            AuthorizationError: caller is not a manager of the job's company
            StorageError: the packet could not be written; nothing was recorded
        """
        submission, job = self._authorized_records(submission_id, caller_id)
        steps = self.repository.list_job_steps(job['jobId'])
        answers = self.repository.list_step_answers(submission_id)
        media = self.repository.list_media(submission_id)

        generated_at = to_iso(utc_now())
        document = build_packet(job, submission, steps, answers, media, caller_id, generated_at)
        path = packet_path(job['companyId'], job['jobId'], submission_id)
        body = json.dumps(document, indent=2, sort_keys=True).encode('utf-8')

        self.store.write(path, body, PACKET_CONTENT_TYPE, upsert=True)
        self.repository.set_packet_path(submission_id, path, generated_at)
        self.repository.append_audit_log({
            'auditId': new_id(),
            'companyId': job['companyId'],
            'userId': caller_id,
            'action': AuditAction.GENERATE_EVIDENCE_PACKET,
            'entityType': 'submission',
            'entityId': submission_id,
            'details': {'packetPath': path, 'contentHash': document['contentHash']},
            'createdAt': generated_at,
        })

        logger.info(f"Generated evidence packet for submission {submission_id} "
                    f"({len(document['steps'])} steps, {document['mediaCount']} media)")
        return path

    def verify_packet(self, submission_id: str, caller_id: str) -> Dict[str, Any]:
        """
        Re-read a stored packet and check its content hash.

        Returns:
            ``{"valid", "packetPath", "contentHash"}``
        """
        submission, _ = self._authorized_records(submission_id, caller_id)
        path = submission.get('packetStoragePath')
        if not path:
            raise NotFoundError('No evidence packet has been generated for this submission')

        raw = self.store.read(path)
        try:
            document = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning(f"Evidence packet for submission {submission_id} is not valid JSON")
            return {'valid': False, 'packetPath': path, 'contentHash': None}

        stored_hash = document.get('contentHash') if isinstance(document, dict) else None
        valid = bool(stored_hash) and stored_hash == content_hash(document)
        if not valid:
            logger.warning(f"Evidence packet for submission {submission_id} failed hash verification")
        return {'valid': valid, 'packetPath': path, 'contentHash': stored_hash}
