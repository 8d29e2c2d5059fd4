"""
DynamoDB implementation of the scout job repository.

Multi-record writes use transact_write_items with condition expressions so
each unit of work either fully applies or leaves no trace; a failed condition
is reported to the caller instead of being overwritten.
"""
import boto3
from typing import List, Dict, Any, Optional
from boto3.dynamodb.conditions import Key
from boto3.dynamodb.types import TypeSerializer
from botocore.exceptions import ClientError
from .config import config
from .errors import UnexpectedError, ValidationError
from .logging import logger
from .models import JobStatus, PayoutStatus, SubmissionStatus
from .repository import ScoutRepository, VoucherCodeTaken

# DynamoDB rejects transactions with more items than this
MAX_TRANSACTION_ITEMS = 100

CONDITION_FAILED = 'ConditionalCheckFailed'

# Global secondary indexes
TEMPLATE_COMPANY_INDEX = 'CompanyIndex'
JOB_STATUS_INDEX = 'StatusIndex'
JOB_SCOUT_INDEX = 'ScoutIndex'
SUBMISSION_COMPANY_INDEX = 'CompanyStatusIndex'

_serializer = TypeSerializer()


def marshal(item: Dict[str, Any]) -> Dict[str, Any]:
    """Convert a plain item to DynamoDB attribute values for the low level client."""
    return {k: _serializer.serialize(v) for k, v in item.items()}


def build_update(updates: Dict[str, Any]) -> Dict[str, Any]:
    """
    Build UpdateExpression parameters from a dict of attribute updates.
    ``None`` values are removed from the item instead of stored.
    """
    names = {}
    values = {}
    set_parts = []
    remove_parts = []
    for idx, (attr, value) in enumerate(updates.items()):
        name = f'#u{idx}'
        names[name] = attr
        if value is None:
            remove_parts.append(name)
        else:
            values[f':u{idx}'] = value
            set_parts.append(f'{name} = :u{idx}')

    expression = ''
    if set_parts:
        expression = 'SET ' + ', '.join(set_parts)
    if remove_parts:
        expression += (' ' if expression else '') + 'REMOVE ' + ', '.join(remove_parts)
    return {'UpdateExpression': expression, 'ExpressionAttributeNames': names, 'ExpressionAttributeValues': values}


class DynamoRepository(ScoutRepository):
    """Scout job records stored across the workflow's DynamoDB tables."""

    def __init__(self, dynamodb=None, client=None):
        self.dynamodb = dynamodb or boto3.resource('dynamodb', region_name=config.AWS_REGION)
        self.client = client or self.dynamodb.meta.client

    # -------------------------------------------------------------------------
    # Low level helpers
    # -------------------------------------------------------------------------

    def _table(self, name: str):
        return self.dynamodb.Table(name)

    def _get(self, table_name: str, key: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        try:
            response = self._table(table_name).get_item(Key=key, ConsistentRead=True)
        except ClientError as e:
            logger.error(f"Error getting item from {table_name}: {e}")
            raise UnexpectedError()
        return response.get('Item')

    def _query_all(self, table_name: str, key_condition, index_name: str = None) -> List[Dict[str, Any]]:
        """Query every page of a partition, on the table or one of its GSIs."""
        table = self._table(table_name)
        params = {'KeyConditionExpression': key_condition}
        if index_name:
            # GSIs only support eventually consistent reads
            params['IndexName'] = index_name
        else:
            params['ConsistentRead'] = True
        items = []
        try:
            while True:
                response = table.query(**params)
                items.extend(response.get('Items', []))
                if 'LastEvaluatedKey' not in response:
                    return items
                params['ExclusiveStartKey'] = response['LastEvaluatedKey']
        except ClientError as e:
            logger.error(f"Error querying {table_name}: {e}")
            raise UnexpectedError()

    def _conditional_update(self, table_name: str, key: Dict[str, Any], updates: Dict[str, Any],
                            condition: str, condition_names: Dict[str, str],
                            condition_values: Dict[str, Any]) -> bool:
        params = build_update(updates)
        params['ExpressionAttributeNames'].update(condition_names)
        params['ExpressionAttributeValues'].update(condition_values)
        if not params['ExpressionAttributeValues']:
            del params['ExpressionAttributeValues']
        try:
            self._table(table_name).update_item(Key=key, ConditionExpression=condition, **params)
            return True
        except ClientError as e:
            if e.response['Error']['Code'] == 'ConditionalCheckFailedException':
                return False
            logger.error(f"Error updating item in {table_name}: {e}")
            raise UnexpectedError()

    def _transact(self, transact_items: List[Dict[str, Any]]) -> Optional[List[str]]:
        """
        Run a write transaction.

        Returns:
            None when it committed, otherwise the per-item cancellation codes
            (in TransactItems order; 'None' for items that did not fail)
        """
        if len(transact_items) > MAX_TRANSACTION_ITEMS:
            raise ValidationError('Too many records for a single request')
        try:
            self.client.transact_write_items(TransactItems=transact_items)
            return None
        except ClientError as e:
            if e.response['Error']['Code'] == 'TransactionCanceledException':
                reasons = e.response.get('CancellationReasons') or []
                codes = [r.get('Code', 'None') for r in reasons]
                logger.warning(f"Transaction cancelled: {codes}")
                return codes or [CONDITION_FAILED]
            logger.error(f"Transaction error: {e}")
            raise UnexpectedError()

    @staticmethod
    def _put(table_name: str, item: Dict[str, Any], key_attr: str = None) -> Dict[str, Any]:
        # Unset attributes are left out; GSI key attributes cannot be NULL
        put = {'TableName': table_name, 'Item': marshal({k: v for k, v in item.items() if v is not None})}
        if key_attr:
            put['ConditionExpression'] = f'attribute_not_exists({key_attr})'
        return {'Put': put}

    @staticmethod
    def _update(table_name: str, key: Dict[str, Any], updates: Dict[str, Any], condition: str = None,
                condition_names: Dict[str, str] = None, condition_values: Dict[str, Any] = None) -> Dict[str, Any]:
        params = build_update(updates)
        names = dict(params['ExpressionAttributeNames'])
        values = dict(params['ExpressionAttributeValues'])
        names.update(condition_names or {})
        values.update(condition_values or {})
        update = {
            'TableName': table_name,
            'Key': marshal(key),
            'UpdateExpression': params['UpdateExpression'],
            'ExpressionAttributeNames': names,
        }
        if values:
            update['ExpressionAttributeValues'] = marshal(values)
        if condition:
            update['ConditionExpression'] = condition
        return {'Update': update}

    # -------------------------------------------------------------------------
    # Templates
    # -------------------------------------------------------------------------

    def get_template(self, template_id: str) -> Optional[Dict[str, Any]]:
        return self._get(config.TEMPLATES_TABLE, {'templateId': template_id})

    def list_templates(self, company_id: str) -> List[Dict[str, Any]]:
        return self._query_all(config.TEMPLATES_TABLE, Key('companyId').eq(company_id),
                               index_name=TEMPLATE_COMPANY_INDEX)

    def list_template_steps(self, template_id: str) -> List[Dict[str, Any]]:
        steps = self._query_all(config.TEMPLATE_STEPS_TABLE, Key('templateId').eq(template_id))
        return sorted(steps, key=lambda s: int(s['orderIndex']))

    def create_template(self, template: Dict[str, Any], steps: List[Dict[str, Any]]) -> None:
        items = [self._put(config.TEMPLATES_TABLE, template, key_attr='templateId')]
        items.extend(self._put(config.TEMPLATE_STEPS_TABLE, step) for step in steps)
        if self._transact(items) is not None:
            raise UnexpectedError('Failed to save template')

    def replace_template_steps(self, template_id: str, expected_version: int,
                               template_updates: Dict[str, Any], steps: List[Dict[str, Any]]) -> bool:
        existing = self.list_template_steps(template_id)
        new_indexes = {int(step['orderIndex']) for step in steps}

        items = [self._update(
            config.TEMPLATES_TABLE,
            {'templateId': template_id},
            template_updates,
            condition='attribute_exists(templateId) AND #version = :expected',
            condition_names={'#version': 'version'},
            condition_values={':expected': expected_version},
        )]
        # A put overwrites the step at the same orderIndex; only surplus old steps are deleted
        items.extend(self._put(config.TEMPLATE_STEPS_TABLE, step) for step in steps)
        items.extend(
            {'Delete': {
                'TableName': config.TEMPLATE_STEPS_TABLE,
                'Key': marshal({'templateId': template_id, 'orderIndex': old['orderIndex']}),
            }}
            for old in existing if int(old['orderIndex']) not in new_indexes
        )
        return self._transact(items) is None

    def archive_template(self, template_id: str, archived_at: str) -> bool:
        return self._conditional_update(
            config.TEMPLATES_TABLE,
            {'templateId': template_id},
            {'isActive': False, 'archivedAt': archived_at, 'updatedAt': archived_at},
            'attribute_exists(templateId)', {}, {},
        )

    # -------------------------------------------------------------------------
    # Jobs
    # -------------------------------------------------------------------------

    def create_job(self, job: Dict[str, Any], steps: List[Dict[str, Any]]) -> bool:
        items = [
            {'ConditionCheck': {
                'TableName': config.TEMPLATES_TABLE,
                'Key': marshal({'templateId': job['templateId']}),
                'ConditionExpression': 'isActive = :active AND #version = :version',
                'ExpressionAttributeNames': {'#version': 'version'},
                'ExpressionAttributeValues': marshal({':active': True, ':version': job['templateVersion']}),
            }},
            self._put(config.JOBS_TABLE, job, key_attr='jobId'),
        ]
        items.extend(self._put(config.JOB_STEPS_TABLE, step) for step in steps)

        codes = self._transact(items)
        if codes is None:
            return True
        if codes[0] == CONDITION_FAILED:
            return False
        raise UnexpectedError('Failed to save job')

    def get_job(self, job_id: str) -> Optional[Dict[str, Any]]:
        return self._get(config.JOBS_TABLE, {'jobId': job_id})

    def list_job_steps(self, job_id: str) -> List[Dict[str, Any]]:
        steps = self._query_all(config.JOB_STEPS_TABLE, Key('jobId').eq(job_id))
        return sorted(steps, key=lambda s: int(s['orderIndex']))

    def transition_job(self, job_id: str, from_status: str, updates: Dict[str, Any]) -> bool:
        return self._conditional_update(
            config.JOBS_TABLE,
            {'jobId': job_id},
            updates,
            '#status = :from_status',
            {'#status': 'status'},
            {':from_status': from_status},
        )

    def list_jobs_by_status(self, status: str) -> List[Dict[str, Any]]:
        return self._query_all(config.JOBS_TABLE, Key('status').eq(status), index_name=JOB_STATUS_INDEX)

    def list_jobs_by_scout(self, scout_id: str) -> List[Dict[str, Any]]:
        return self._query_all(config.JOBS_TABLE, Key('assignedScoutId').eq(scout_id), index_name=JOB_SCOUT_INDEX)

    # -------------------------------------------------------------------------
    # Submissions
    # -------------------------------------------------------------------------

    def create_submission(self, submission: Dict[str, Any], answers: List[Dict[str, Any]],
                          media: List[Dict[str, Any]], job_from_status: str,
                          job_updates: Dict[str, Any]) -> bool:
        items = [
            self._update(
                config.JOBS_TABLE,
                {'jobId': submission['jobId']},
                job_updates,
                condition='#status = :from_status AND attribute_not_exists(liveSubmissionId)',
                condition_names={'#status': 'status'},
                condition_values={':from_status': job_from_status},
            ),
            self._put(config.SUBMISSIONS_TABLE, submission, key_attr='submissionId'),
        ]
        items.extend(self._put(config.STEP_ANSWERS_TABLE, answer) for answer in answers)
        items.extend(self._put(config.MEDIA_TABLE, row) for row in media)

        codes = self._transact(items)
        if codes is None:
            return True
        if codes[0] == CONDITION_FAILED:
            return False
        raise UnexpectedError('Failed to save submission')

    def get_submission(self, submission_id: str) -> Optional[Dict[str, Any]]:
        return self._get(config.SUBMISSIONS_TABLE, {'submissionId': submission_id})

    def list_submissions(self, company_id: str, status: Optional[str] = None) -> List[Dict[str, Any]]:
        condition = Key('companyId').eq(company_id)
        if status:
            condition = condition & Key('status').eq(status)
        return self._query_all(config.SUBMISSIONS_TABLE, condition, index_name=SUBMISSION_COMPANY_INDEX)

    def list_step_answers(self, submission_id: str) -> List[Dict[str, Any]]:
        return self._query_all(config.STEP_ANSWERS_TABLE, Key('submissionId').eq(submission_id))

    def list_media(self, submission_id: str) -> List[Dict[str, Any]]:
        return self._query_all(config.MEDIA_TABLE, Key('submissionId').eq(submission_id))

    def complete_review(self, submission_id: str, submission_updates: Dict[str, Any],
                        step_results: List[Dict[str, Any]], job_id: str,
                        job_from_status: str, job_updates: Dict[str, Any]) -> bool:
        job_updates = dict(job_updates, liveSubmissionId=None)
        items = [
            self._update(
                config.SUBMISSIONS_TABLE,
                {'submissionId': submission_id},
                submission_updates,
                condition='#status = :submitted',
                condition_names={'#status': 'status'},
                condition_values={':submitted': SubmissionStatus.SUBMITTED},
            ),
            self._update(
                config.JOBS_TABLE,
                {'jobId': job_id},
                job_updates,
                condition='#status = :from_status',
                condition_names={'#status': 'status'},
                condition_values={':from_status': job_from_status},
            ),
        ]
        items.extend(
            self._update(
                config.STEP_ANSWERS_TABLE,
                {'submissionId': submission_id, 'stepAnswerId': result['stepAnswerId']},
                {'stepStatus': result['stepStatus'], 'reviewerComment': result.get('reviewerComment')},
                condition='attribute_exists(stepAnswerId)',
            )
            for result in step_results
        )

        codes = self._transact(items)
        if codes is None:
            return True
        if CONDITION_FAILED in codes[:2]:
            return False
        raise UnexpectedError('Failed to save review')

    def set_packet_path(self, submission_id: str, packet_path: str, generated_at: str) -> None:
        try:
            self._table(config.SUBMISSIONS_TABLE).update_item(
                Key={'submissionId': submission_id},
                UpdateExpression='SET packetStoragePath = :path, packetGeneratedAt = :ts',
                ExpressionAttributeValues={':path': packet_path, ':ts': generated_at},
            )
        except ClientError as e:
            logger.error(f"Error recording packet path for submission {submission_id}: {e}")
            raise UnexpectedError()

    # -------------------------------------------------------------------------
    # Payouts & Vouchers
    # -------------------------------------------------------------------------

    def get_payout(self, job_id: str) -> Optional[Dict[str, Any]]:
        return self._get(config.PAYOUTS_TABLE, {'jobId': job_id})

    def create_settlement(self, payout: Dict[str, Any], voucher: Optional[Dict[str, Any]] = None) -> bool:
        items = []
        if voucher:
            items.append(self._put(
                config.VOUCHER_CODES_TABLE,
                {'code': voucher['code'], 'voucherId': voucher['voucherId']},
                key_attr='code',
            ))
            items.append(self._put(config.VOUCHERS_TABLE, voucher, key_attr='voucherId'))
        items.append(self._put(config.PAYOUTS_TABLE, payout, key_attr='jobId'))

        codes = self._transact(items)
        if codes is None:
            return True
        if codes[-1] == CONDITION_FAILED:
            return False
        if voucher and codes[0] == CONDITION_FAILED:
            raise VoucherCodeTaken(voucher['code'])
        raise UnexpectedError('Failed to save settlement')

    def settle_payout(self, job_id: str, paid_at: str, job_updates: Dict[str, Any]) -> bool:
        items = [
            self._update(
                config.PAYOUTS_TABLE,
                {'jobId': job_id},
                {'status': PayoutStatus.PAID, 'paidAt': paid_at},
                condition='#status = :pending',
                condition_names={'#status': 'status'},
                condition_values={':pending': PayoutStatus.PENDING},
            ),
            self._update(
                config.JOBS_TABLE,
                {'jobId': job_id},
                job_updates,
                condition='#status = :approved',
                condition_names={'#status': 'status'},
                condition_values={':approved': JobStatus.APPROVED},
            ),
        ]
        codes = self._transact(items)
        if codes is None:
            return True
        if CONDITION_FAILED in codes:
            return False
        raise UnexpectedError('Failed to settle payout')

    def get_voucher(self, voucher_id: str) -> Optional[Dict[str, Any]]:
        return self._get(config.VOUCHERS_TABLE, {'voucherId': voucher_id})

    def find_voucher_by_code(self, code: str) -> Optional[Dict[str, Any]]:
        claim = self._get(config.VOUCHER_CODES_TABLE, {'code': code})
        if not claim:
            return None
        return self.get_voucher(claim['voucherId'])

    def update_voucher_status(self, voucher_id: str, from_status: str, updates: Dict[str, Any]) -> bool:
        return self._conditional_update(
            config.VOUCHERS_TABLE,
            {'voucherId': voucher_id},
            updates,
            '#status = :from_status',
            {'#status': 'status'},
            {':from_status': from_status},
        )

    # -------------------------------------------------------------------------
    # Tenancy & Audit
    # -------------------------------------------------------------------------

    def get_company_role(self, company_id: str, user_id: str) -> Optional[str]:
        membership = self._get(config.COMPANY_USERS_TABLE, {'companyId': company_id, 'userId': user_id})
        return membership.get('companyRole') if membership else None

    def append_audit_log(self, entry: Dict[str, Any]) -> None:
        try:
            self._table(config.AUDIT_LOG_TABLE).put_item(
                Item=entry,
                ConditionExpression='attribute_not_exists(auditId)',
            )
        except ClientError as e:
            logger.error(f"Error writing audit log entry {entry.get('auditId')}: {e}")
            raise UnexpectedError()


# Initialize lazily so importing handlers does not require AWS credentials
_repository = None


def get_repository() -> DynamoRepository:
    """Get or create the DynamoDB repository."""
    global _repository
    if _repository is None:
        _repository = DynamoRepository()
    return _repository
