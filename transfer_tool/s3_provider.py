"""
S3-compatible object store using boto3.

Works with AWS S3, Cloudflare R2, Aliyun OSS (S3 API endpoint) and any other
service that speaks the S3 multipart protocol. Temporary credentials from the
broker are passed as a session token.
"""

import logging
from typing import Any, List, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from shared.constants import DEFAULT_URL_TTL_SECONDS
from shared.exceptions import StorageBackendError
from shared.models import CompletedPart, MultipartHandle, TemporaryCredentials
from .storage_provider import ObjectBody, ObjectStore

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = {'404', 'NoSuchKey', 'NotFound'}


class S3StorageProvider(ObjectStore):
    """
    Object store backed by a boto3 S3 client.
    """

    def __init__(self, bucket_name: str, s3_client: Any):
        self.bucket_name = bucket_name
        self.s3_client = s3_client

    @classmethod
    def connect(cls, credentials: TemporaryCredentials, bucket_name: str,
                endpoint_url: Optional[str] = None, region: Optional[str] = None,
                addressing_style: str = 'auto') -> 'S3StorageProvider':
        """
        Build a client from temporary credentials.

        Args:
            credentials: Credentials issued by the broker
            bucket_name: Bucket all operations target
            endpoint_url: Store endpoint; None for AWS default
            region: Region name ('auto' for R2)
            addressing_style: 'virtual' for OSS, 'auto' otherwise
        """
        s3_client = boto3.client(
            's3',
            endpoint_url=endpoint_url,
            aws_access_key_id=credentials.access_key_id,
            aws_secret_access_key=credentials.access_key_secret,
            aws_session_token=credentials.security_token,
            region_name=region,
            config=BotoConfig(s3={'addressing_style': addressing_style}, signature_version='s3v4'),
        )
        return cls(bucket_name, s3_client)

    def initiate_multipart_upload(self, object_key: str) -> MultipartHandle:
        try:
            response = self.s3_client.create_multipart_upload(Bucket=self.bucket_name, Key=object_key)
        except (ClientError, BotoCoreError) as e:
            raise StorageBackendError(f"Initiate multipart upload failed: {e}") from e
        logger.debug("Multipart upload %s opened for s3://%s/%s",
                     response['UploadId'], self.bucket_name, object_key)
        return MultipartHandle(object_key=object_key, upload_id=response['UploadId'])

    def upload_part(self, handle: MultipartHandle, part_number: int, data: bytes) -> CompletedPart:
        try:
            response = self.s3_client.upload_part(
                Bucket=self.bucket_name,
                Key=handle.object_key,
                UploadId=handle.upload_id,
                PartNumber=part_number,
                Body=data,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageBackendError(f"Upload part {part_number} failed: {e}") from e
        return CompletedPart(part_number=part_number, etag=response['ETag'])

    def complete_multipart_upload(self, handle: MultipartHandle, parts: List[CompletedPart]) -> str:
        try:
            response = self.s3_client.complete_multipart_upload(
                Bucket=self.bucket_name,
                Key=handle.object_key,
                UploadId=handle.upload_id,
                MultipartUpload={
                    'Parts': [{'PartNumber': p.part_number, 'ETag': p.etag} for p in parts]
                },
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageBackendError(f"Complete multipart upload failed: {e}") from e
        return response.get('ETag', '').strip('"')

    def abort_multipart_upload(self, handle: MultipartHandle) -> None:
        try:
            self.s3_client.abort_multipart_upload(
                Bucket=self.bucket_name, Key=handle.object_key, UploadId=handle.upload_id
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageBackendError(f"Abort multipart upload failed: {e}") from e

    def put_object(self, object_key: str, data: ObjectBody) -> str:
        try:
            response = self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=object_key,
                Body=data,
                ContentType='audio/wav',
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageBackendError(f"Put object {object_key} failed: {e}") from e
        return response.get('ETag', '').strip('"')

    def object_exists(self, object_key: str) -> bool:
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=object_key)
            return True
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') in NOT_FOUND_CODES:
                return False
            raise StorageBackendError(f"Existence check for {object_key} failed: {e}") from e
        except BotoCoreError as e:
            raise StorageBackendError(f"Existence check for {object_key} failed: {e}") from e

    def get_file_url(self, object_key: str, expires_in: int = DEFAULT_URL_TTL_SECONDS) -> str:
        """Generate presigned GET URL."""
        try:
            return self.s3_client.generate_presigned_url(
                'get_object',
                Params={'Bucket': self.bucket_name, 'Key': object_key},
                ExpiresIn=expires_in,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageBackendError(f"URL generation for {object_key} failed: {e}") from e
