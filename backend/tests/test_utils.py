"""
Tests for request parsing, response formatting and the handler wrapper.
"""
import json
import pytest
from decimal import Decimal
from unittest.mock import patch

from scout_shared.errors import ConcurrentUpdateError, NotFoundError, ValidationError
from scout_shared.logging import log_event
from scout_shared.utils import api_handler, format_response, parse_body, parse_timestamp, to_decimal


class TestFormatResponse:

    def test_cors_and_decimals(self):
        response = format_response(200, {'amount': Decimal('12.50'), 'count': Decimal('3')})

        assert response['headers']['Access-Control-Allow-Origin'] == '*'
        assert response['headers']['Content-Type'] == 'application/json'
        assert json.loads(response['body']) == {'amount': 12.5, 'count': 3}


class TestParsing:

    def test_parse_body(self):
        assert parse_body({'body': '{"a": 1}'}) == {'a': 1}
        assert parse_body({'body': None}) == {}

    @pytest.mark.parametrize('body', ['not json', '[1, 2]'])
    def test_bad_bodies(self, body):
        with pytest.raises(ValidationError):
            parse_body({'body': body})

    def test_timestamps_normalize_to_utc(self):
        assert parse_timestamp('2026-10-18T12:00:00+03:00', 'at') == '2026-10-18T09:00:00+00:00'
        assert parse_timestamp('2026-10-18T09:00:00Z', 'at') == '2026-10-18T09:00:00+00:00'
        assert parse_timestamp(None, 'at') is None

    @pytest.mark.parametrize('value', [None, True, 'abc', 'NaN', float('inf')])
    def test_to_decimal_rejects(self, value):
        with pytest.raises(ValidationError):
            to_decimal(value, 'payoutAmount')


class TestApiHandler:

    def test_success(self):
        @api_handler(success_status=201)
        def handler(event, context):
            return {'ok': True}

        response = handler({}, None)
        assert response['statusCode'] == 201
        assert json.loads(response['body']) == {'ok': True}

    def test_workflow_error(self):
        @api_handler()
        def handler(event, context):
            raise NotFoundError('Job not found')

        response = handler({}, None)
        assert response['statusCode'] == 404
        assert json.loads(response['body']) == {'error': 'Job not found', 'kind': 'NotFoundError'}

    def test_conflict_reason(self):
        @api_handler()
        def handler(event, context):
            raise ConcurrentUpdateError('Job was updated concurrently')

        body = json.loads(handler({}, None)['body'])
        assert body['kind'] == 'ConflictError'
        assert body['reason'] == 'concurrent_update'

    def test_unhandled_error_is_generic(self):
        @api_handler()
        def handler(event, context):
            raise KeyError('internal/table/name')

        response = handler({}, None)
        assert response['statusCode'] == 500
        assert 'internal' not in response['body']


class TestLogEvent:

    def test_body_and_claims_are_not_logged(self):
        event = {
            'path': '/jobs',
            'body': '{"secret": "answer"}',
            'headers': {'Authorization': 'Bearer token'},
            'requestContext': {'requestId': 'r-1', 'authorizer': {'claims': {'email': 'a@b.c'}}},
        }
        with patch('scout_shared.logging.logger') as logger:
            log_event(event)

        logged = logger.info.call_args.args[0]
        assert '/jobs' in logged
        assert 'r-1' in logged
        assert 'answer' not in logged
        assert 'Bearer' not in logged
        assert 'a@b.c' not in logged
