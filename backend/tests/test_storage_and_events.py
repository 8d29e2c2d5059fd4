"""
Tests for the S3 evidence store and EventBridge notifications.
"""
import json
import pytest
from unittest.mock import MagicMock

from botocore.exceptions import ClientError

from scout_shared.errors import StorageError
from scout_shared.events import EventNotifier, event_name
from scout_shared.s3_utils import S3BlobStore


class TestS3BlobStore:

    def test_upsert_write(self):
        s3 = MagicMock()
        store = S3BlobStore(bucket_name='evidence-bucket', s3_client=s3)

        store.write('c/j/s/evidence-packet.json', b'{}', 'application/json')

        s3.put_object.assert_called_once_with(
            Bucket='evidence-bucket',
            Key='c/j/s/evidence-packet.json',
            Body=b'{}',
            ContentType='application/json',
        )

    def test_create_only_write(self):
        s3 = MagicMock()
        S3BlobStore(bucket_name='evidence-bucket', s3_client=s3).write('k', b'x', 'text/plain', upsert=False)
        assert s3.put_object.call_args.kwargs['IfNoneMatch'] == '*'

    def test_write_failure(self):
        s3 = MagicMock()
        s3.put_object.side_effect = ClientError({'Error': {'Code': 'AccessDenied', 'Message': 'no'}}, 'PutObject')

        with pytest.raises(StorageError) as exc:
            S3BlobStore(bucket_name='evidence-bucket', s3_client=s3).write('k', b'x', 'text/plain')
        assert 'evidence-bucket' not in exc.value.message

    def test_read(self):
        s3 = MagicMock()
        s3.get_object.return_value = {'Body': MagicMock(read=MagicMock(return_value=b'packet'))}

        assert S3BlobStore(bucket_name='evidence-bucket', s3_client=s3).read('k') == b'packet'
        s3.get_object.assert_called_once_with(Bucket='evidence-bucket', Key='k')

    def test_read_missing(self):
        s3 = MagicMock()
        s3.get_object.side_effect = ClientError({'Error': {'Code': 'NoSuchKey', 'Message': 'missing'}}, 'GetObject')
        with pytest.raises(StorageError):
            S3BlobStore(bucket_name='evidence-bucket', s3_client=s3).read('k')


class TestEventNotifier:

    def test_event_naming(self):
        assert event_name('job', 'expired') == 'scout_job_expired'

    def test_job_status_event(self):
        events = MagicMock()
        events.put_events.return_value = {'FailedEntryCount': 0}
        notifier = EventNotifier(events_client=events, bus_name='ops-bus', source='operations.scouts')

        sent = notifier.job_status_changed(
            {'jobId': 'job-1', 'companyId': 'c-1', 'status': 'accepted', 'assignedScoutId': 's-1'}, 's-1')

        assert sent is True
        entry = events.put_events.call_args.kwargs['Entries'][0]
        assert entry['DetailType'] == 'scout_job_accepted'
        assert entry['EventBusName'] == 'ops-bus'
        assert entry['Source'] == 'operations.scouts'
        assert json.loads(entry['Detail'])['actorId'] == 's-1'

    def test_delivery_errors_are_swallowed(self):
        events = MagicMock()
        events.put_events.side_effect = ClientError({'Error': {'Code': 'InternalFailure', 'Message': 'x'}}, 'PutEvents')
        notifier = EventNotifier(events_client=events, bus_name='ops-bus', source='operations.scouts')

        assert notifier.emit('scout_job_posted', {'jobId': 'job-1'}) is False

    def test_rejected_entries(self):
        events = MagicMock()
        events.put_events.return_value = {'FailedEntryCount': 1, 'Entries': [{'ErrorCode': 'Throttled'}]}
        notifier = EventNotifier(events_client=events, bus_name='ops-bus', source='operations.scouts')

        assert notifier.emit('scout_job_posted', {'jobId': 'job-1'}) is False
