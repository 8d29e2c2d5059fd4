"""
Tests for the Lambda handlers with API Gateway proxy events.
"""
import json

import pytest

from fakes import COMPANY_ID, MANAGER_ID, MEMBER_ID, SCOUT_ID, store_audit_steps, valid_payload
from scout_shared import dynamo, events, s3_utils
from scout_handlers.evidence import generate_evidence_packet, verify_evidence_packet
from scout_handlers.jobs import (
    accept_job, create_job, expire_jobs, get_job, list_available_jobs, list_my_jobs, start_job, update_job_status,
)
from scout_handlers.payouts import mark_payout_paid, redeem_voucher
from scout_handlers.review import review_submission
from scout_handlers.submissions import get_submission, list_submissions, submit_job
from scout_handlers.templates import create_template, delete_template, get_template, list_templates, update_template


def api_event(body=None, path=None, sub=MANAGER_ID, groups=None, query=None):
    event = {
        'httpMethod': 'POST' if body is not None else 'GET',
        'body': json.dumps(body) if body is not None else None,
        'pathParameters': path,
        'queryStringParameters': query,
        'requestContext': {'requestId': 'req-1'},
    }
    if sub:
        claims = {'sub': sub}
        if groups:
            claims['cognito:groups'] = groups
        event['requestContext']['authorizer'] = {'claims': claims}
    return event


def call(module, **kwargs):
    response = module.handler(api_event(**kwargs), None)
    return response['statusCode'], json.loads(response['body'])


@pytest.fixture(autouse=True)
def wired(monkeypatch, repo, notifier, store):
    """Point the lazily created AWS-backed singletons at the fakes."""
    monkeypatch.setattr(dynamo, '_repository', repo)
    monkeypatch.setattr(events, '_notifier', notifier)
    monkeypatch.setattr(s3_utils, '_store', store)


def post_template():
    status, body = call(create_template, body={
        'companyId': COMPANY_ID, 'title': 'Store audit', 'category': 'retail',
        'durationMinutes': 30, 'steps': store_audit_steps(),
    })
    assert status == 201
    return body


def post_job(template_id, **fields):
    payload = {'templateId': template_id, 'locationId': 'location-1', 'title': 'Audit store 12',
               'payoutAmount': 50, 'currency': 'RON', 'payoutType': 'cash', 'publish': True}
    payload.update(fields)
    status, body = call(create_job, body=payload)
    assert status == 201
    return body


def submit(repo, job):
    call(accept_job, path={'jobId': job['jobId']}, sub=SCOUT_ID, groups='scout')
    answers, media = valid_payload(repo.list_job_steps(job['jobId']))
    status, body = call(submit_job, path={'jobId': job['jobId']}, sub=SCOUT_ID,
                        body={'answers': answers, 'media': media, 'notes': 'Done'})
    assert status == 201
    return body


class TestTemplateHandlers:

    def test_create_update_delete(self):
        template = post_template()
        assert template['version'] == 1
        assert len(template['steps']) == 3

        status, updated = call(update_template, path={'templateId': template['templateId']}, body={
            'title': 'Store audit v2', 'category': 'retail', 'durationMinutes': 20,
            'steps': [{'prompt': 'Lights on?', 'stepType': 'yes_no'}],
        })
        assert status == 200
        assert updated['version'] == 2

        status, deleted = call(delete_template, path={'templateId': template['templateId']})
        assert status == 200
        assert deleted['message'] == 'Template archived'

    def test_unauthenticated(self):
        status, body = call(create_template, sub=None, body={'companyId': COMPANY_ID})
        assert status == 401
        assert body['kind'] == 'AuthenticationError'

    def test_member_is_forbidden(self):
        status, body = call(create_template, sub=MEMBER_ID, body={
            'companyId': COMPANY_ID, 'title': 'x', 'category': 'y', 'durationMinutes': 5,
            'steps': store_audit_steps(),
        })
        assert status == 403

    def test_invalid_json(self):
        response = create_template.handler(dict(api_event(), body='{oops'), None)
        assert response['statusCode'] == 400


class TestJobHandlers:

    def test_create_job_and_publish(self):
        template = post_template()
        job = post_job(template['templateId'], publish=False)
        assert job['status'] == 'draft'
        assert len(job['steps']) == 3

        status, body = call(update_job_status, path={'jobId': job['jobId'], 'action': 'publish'})
        assert status == 200
        assert body['status'] == 'posted'

    def test_unknown_action(self):
        status, _ = call(update_job_status, path={'jobId': 'job-1', 'action': 'archive'})
        assert status == 400

    def test_publish_flag_must_be_boolean(self):
        template = post_template()
        status, _ = call(create_job, body={'templateId': template['templateId'], 'locationId': 'l',
                                           'title': 't', 'payoutAmount': 1, 'publish': 'yes'})
        assert status == 400

    def test_accept_requires_scout_group(self):
        job = post_job(post_template()['templateId'])
        status, _ = call(accept_job, path={'jobId': job['jobId']}, sub=SCOUT_ID)
        assert status == 403

        status, body = call(accept_job, path={'jobId': job['jobId']}, sub=SCOUT_ID, groups='scout')
        assert status == 200
        assert body['status'] == 'accepted'

    def test_second_accept_is_conflict(self):
        job = post_job(post_template()['templateId'])
        call(accept_job, path={'jobId': job['jobId']}, sub=SCOUT_ID, groups='scout')

        status, body = call(accept_job, path={'jobId': job['jobId']}, sub='scout-2', groups='scout')
        assert status == 409
        assert body['kind'] == 'ConflictError'

    def test_start(self):
        job = post_job(post_template()['templateId'])
        call(accept_job, path={'jobId': job['jobId']}, sub=SCOUT_ID, groups='scout')

        status, body = call(start_job, path={'jobId': job['jobId']}, sub=SCOUT_ID, groups='scout')
        assert status == 200
        assert body['status'] == 'in_progress'

    def test_expire_jobs_schedule(self, repo):
        job = post_job(post_template()['templateId'],
                       timeWindow={'start': '2020-01-01T08:00:00Z', 'end': '2020-01-01T10:00:00Z'})

        result = expire_jobs.handler({'source': 'aws.events'}, None)

        assert result == {'checked': 1, 'expired': 1}
        assert repo.get_job(job['jobId'])['status'] == 'expired'


class TestSubmissionAndReviewHandlers:

    def test_submit_and_approve(self, repo):
        job = post_job(post_template()['templateId'])
        submission = submit(repo, job)
        assert submission['status'] == 'submitted'

        status, body = call(review_submission, path={'submissionId': submission['submissionId']},
                            body={'decision': 'approved', 'reviewerNotes': 'Good'})

        assert status == 200
        assert body['jobStatus'] == 'approved'
        assert body['payoutId']
        assert body['voucherId'] is None

    def test_submit_too_few_photos(self, repo):
        job = post_job(post_template()['templateId'])
        call(accept_job, path={'jobId': job['jobId']}, sub=SCOUT_ID, groups='scout')
        answers, media = valid_payload(repo.list_job_steps(job['jobId']), photos=1)

        status, body = call(submit_job, path={'jobId': job['jobId']}, sub=SCOUT_ID,
                            body={'answers': answers, 'media': media})
        assert status == 400
        assert body['kind'] == 'ValidationError'

    def test_double_review_is_conflict(self, repo):
        job = post_job(post_template()['templateId'])
        submission = submit(repo, job)
        path = {'submissionId': submission['submissionId']}
        call(review_submission, path=path, body={'decision': 'approved'})

        status, body = call(review_submission, path=path, body={'decision': 'approved'})
        assert status == 409
        assert len(repo.payouts) == 1


class TestReadHandlers:

    def test_list_and_get_templates(self):
        template = post_template()

        status, body = call(list_templates, sub=MEMBER_ID, query={'companyId': COMPANY_ID})
        assert status == 200
        assert body['count'] == 1
        assert body['templates'][0]['templateId'] == template['templateId']

        status, body = call(get_template, path={'templateId': template['templateId']}, sub=MEMBER_ID)
        assert status == 200
        assert len(body['steps']) == 3

    def test_list_templates_needs_company(self):
        status, body = call(list_templates)
        assert status == 400
        assert body['error'] == 'companyId is required'

    def test_scout_feed(self, repo):
        job = post_job(post_template()['templateId'], notesInternal='Manager is strict')

        status, body = call(list_available_jobs, sub=SCOUT_ID, groups='scout')
        assert status == 200
        assert [j['jobId'] for j in body['jobs']] == [job['jobId']]
        assert 'notesInternal' not in body['jobs'][0]

        call(accept_job, path={'jobId': job['jobId']}, sub=SCOUT_ID, groups='scout')
        status, body = call(list_my_jobs, sub=SCOUT_ID, groups='scout')
        assert status == 200
        assert body['scope'] == 'active'
        assert body['jobs'][0]['status'] == 'accepted'

        status, body = call(list_my_jobs, sub=SCOUT_ID, groups='scout', query={'scope': 'history'})
        assert body['count'] == 0

    def test_feed_requires_scout_group(self):
        status, _ = call(list_available_jobs, sub=SCOUT_ID)
        assert status == 403
        status, _ = call(list_my_jobs, sub=SCOUT_ID, query={'scope': 'active'})
        assert status == 403

    def test_bad_feed_scope(self):
        status, body = call(list_my_jobs, sub=SCOUT_ID, groups='scout', query={'scope': 'all'})
        assert status == 400
        assert body['kind'] == 'ValidationError'

    def test_get_job(self):
        job = post_job(post_template()['templateId'], publish=False)
        path = {'jobId': job['jobId']}

        status, body = call(get_job, path=path, sub=MEMBER_ID)
        assert status == 200
        assert len(body['steps']) == 3

        status, _ = call(get_job, path=path, sub=SCOUT_ID, groups='scout')
        assert status == 403

    def test_review_queue_and_detail(self, repo):
        job = post_job(post_template()['templateId'])
        submission = submit(repo, job)

        status, body = call(list_submissions, query={'companyId': COMPANY_ID, 'status': 'submitted'})
        assert status == 200
        assert [s['submissionId'] for s in body['submissions']] == [submission['submissionId']]

        status, body = call(get_submission, path={'submissionId': submission['submissionId']})
        assert status == 200
        assert len(body['answers']) == 3
        assert len(body['media']) == 2
        assert body['overallNotes'] == 'Done'

    def test_review_queue_for_managers_only(self):
        status, _ = call(list_submissions, sub=MEMBER_ID, query={'companyId': COMPANY_ID})
        assert status == 403


class TestPayoutHandlers:

    def test_mark_paid(self, repo):
        job = post_job(post_template()['templateId'])
        submission = submit(repo, job)
        call(review_submission, path={'submissionId': submission['submissionId']}, body={'decision': 'approved'})

        status, body = call(mark_payout_paid, path={'jobId': job['jobId']})

        assert status == 200
        assert body['status'] == 'paid'
        assert body['amount'] == 50
        assert repo.get_job(job['jobId'])['status'] == 'paid'

    def test_redeem_voucher(self, repo):
        job = post_job(post_template()['templateId'], payoutType='discount', rewardDescription='10% off')
        submission = submit(repo, job)
        call(review_submission, path={'submissionId': submission['submissionId']}, body={'decision': 'approved'})
        code = next(iter(repo.vouchers.values()))['code']

        status, body = call(redeem_voucher, sub=MEMBER_ID, body={'code': code})

        assert status == 200
        assert body['status'] == 'redeemed'
        assert body['termsText'] == '10% off'

    def test_redeem_without_code(self):
        status, _ = call(redeem_voucher, body={})
        assert status == 400


class TestEvidenceHandlers:

    @pytest.fixture
    def submission(self, repo):
        job = post_job(post_template()['templateId'])
        return submit(repo, job)

    def test_generate(self, submission, store):
        status, body = call(generate_evidence_packet, body={'submissionId': submission['submissionId']})

        assert status == 200
        assert body['success'] is True
        assert body['packetPath'] == f"{COMPANY_ID}/{submission['jobId']}/{submission['submissionId']}/evidence-packet.json"
        assert body['packetPath'] in store.objects

    def test_missing_submission_id(self):
        status, body = call(generate_evidence_packet, body={})
        assert status == 400
        assert body['error'] == 'submissionId is required'

    def test_unauthenticated(self, submission):
        status, _ = call(generate_evidence_packet, sub=None, body={'submissionId': submission['submissionId']})
        assert status == 401

    def test_not_a_manager(self, submission):
        status, _ = call(generate_evidence_packet, sub=MEMBER_ID, body={'submissionId': submission['submissionId']})
        assert status == 403

    def test_unknown_submission(self):
        status, _ = call(generate_evidence_packet, body={'submissionId': 'missing'})
        assert status == 404

    def test_storage_failure(self, submission, store):
        store.fail_writes = True
        status, body = call(generate_evidence_packet, body={'submissionId': submission['submissionId']})
        assert status == 500
        assert body == {'error': 'Failed to store evidence', 'kind': 'StorageError'}

    def test_verify(self, submission):
        call(generate_evidence_packet, body={'submissionId': submission['submissionId']})

        status, body = call(verify_evidence_packet, path={'submissionId': submission['submissionId']})
        assert status == 200
        assert body['valid'] is True
