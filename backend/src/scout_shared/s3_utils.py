"""
S3 utility functions for evidence storage.
Implements the blob write/read contract used for evidence packets.
"""
import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError
from .config import config
from .errors import StorageError
from .logging import logger


class BlobStore:
    """Write/read contract for evidence blobs; S3BlobStore in production, fakes in tests."""

    def write(self, path: str, body: bytes, content_type: str, upsert: bool = True) -> None:
        raise NotImplementedError

    def read(self, path: str) -> bytes:
        raise NotImplementedError


class S3BlobStore(BlobStore):
    """Blob store backed by a single S3 bucket."""

    def __init__(self, bucket_name: str = None, s3_client=None):
        self.bucket = bucket_name or config.EVIDENCE_BUCKET
        self.s3_client = s3_client or boto3.client(
            's3',
            region_name=config.AWS_REGION,
            config=BotoConfig(signature_version='s3v4')
        )

    def write(self, path: str, body: bytes, content_type: str, upsert: bool = True) -> None:
        """
        Store an object at ``path``.

        Args:
            path: Object key inside the bucket
            body: Object bytes
            content_type: MIME type recorded on the object
            upsert: Overwrite an existing object; when False the write fails if one exists

        Raises:
            StorageError: S3 rejected the write
        """
        params = {
            'Bucket': self.bucket,
            'Key': path,
            'Body': body,
            'ContentType': content_type,
        }
        if not upsert:
            params['IfNoneMatch'] = '*'
        try:
            self.s3_client.put_object(**params)
        except ClientError as e:
            logger.error(f"Error writing s3://{self.bucket}/{path}: {e}")
            raise StorageError('Failed to store evidence')
        logger.info(f"Stored {len(body)} bytes at {path}")

    def read(self, path: str) -> bytes:
        """
        Fetch an object's bytes.

        Raises:
            StorageError: the object is missing or S3 rejected the read
        """
        try:
            response = self.s3_client.get_object(Bucket=self.bucket, Key=path)
            return response['Body'].read()
        except ClientError as e:
            logger.error(f"Error reading s3://{self.bucket}/{path}: {e}")
            raise StorageError('Failed to read evidence')


_store = None


def get_blob_store() -> S3BlobStore:
    """Get or create the evidence bucket store."""
    global _store
    if _store is None:
        _store = S3BlobStore()
    return _store
