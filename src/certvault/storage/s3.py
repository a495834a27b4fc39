"""S3 (and S3-compatible, e.g. MinIO) object client."""

from typing import Iterator, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from ..errors import NotExistError, TransientStoreError
from ..models import ObjectEntry


_NOT_FOUND_CODES = {"NoSuchKey", "404", "NotFound"}


def _is_not_found(error: ClientError) -> bool:
    code = error.response.get("Error", {}).get("Code", "")
    return code in _NOT_FOUND_CODES


class S3ObjectClient:
    """
    S3 object client backed by boto3.

    Credentials come from boto3's default chain (AWS_ACCESS_KEY_ID and
    AWS_SECRET_ACCESS_KEY, shared config, instance profile).
    """

    def __init__(
        self,
        bucket: str,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        force_path_style: bool = False,
        client=None,
    ):
        """
        Initialize S3 object client.

        Args:
            bucket: Bucket name
            region: AWS region
            endpoint_url: Custom endpoint for S3-compatible servers
            force_path_style: Use path-style addressing (needed by MinIO)
            client: Pre-built boto3 S3 client (mainly for tests)
        """
        self.bucket = bucket
        if client is None:
            session = boto3.Session(region_name=region)
            client = session.client(
                "s3",
                region_name=region,
                endpoint_url=endpoint_url,
                config=BotoConfig(
                    retries={"max_attempts": 5, "mode": "standard"},
                    s3={"addressing_style": "path" if force_path_style else "auto"},
                ),
            )
        self._s3 = client

    def put_object(self, key: str, data: bytes) -> None:
        """
        Upload object, overwriting any existing content.

        Args:
            key: Object key
            data: Object content
        """
        try:
            self._s3.put_object(Bucket=self.bucket, Key=key, Body=data)
        except (ClientError, BotoCoreError) as e:
            raise TransientStoreError("put", key, str(e)) from e

    def get_object(self, key: str) -> bytes:
        """
        Download object content.

        Args:
            key: Object key

        Returns:
            Object content
        """
        try:
            resp = self._s3.get_object(Bucket=self.bucket, Key=key)
            return resp["Body"].read()
        except ClientError as e:
            if _is_not_found(e):
                raise NotExistError(key) from e
            raise TransientStoreError("get", key, str(e)) from e
        except BotoCoreError as e:
            raise TransientStoreError("get", key, str(e)) from e

    def head_object(self, key: str) -> ObjectEntry:
        """
        Get object metadata with a HEAD request.

        Args:
            key: Object key

        Returns:
            ObjectEntry for the key
        """
        try:
            resp = self._s3.head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _is_not_found(e):
                raise NotExistError(key) from e
            raise TransientStoreError("head", key, str(e)) from e
        except BotoCoreError as e:
            raise TransientStoreError("head", key, str(e)) from e
        return ObjectEntry(
            key=key,
            size=resp.get("ContentLength", 0),
            last_modified=resp["LastModified"],
        )

    def delete_object(self, key: str) -> None:
        """
        Delete object.

        S3 reports success when deleting a missing key, so existence is
        checked with head_object first.

        Args:
            key: Object key
        """
        try:
            self._s3.head_object(Bucket=self.bucket, Key=key)
            self._s3.delete_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _is_not_found(e):
                raise NotExistError(key) from e
            raise TransientStoreError("delete", key, str(e)) from e
        except BotoCoreError as e:
            raise TransientStoreError("delete", key, str(e)) from e

    def list_objects(self, prefix: str) -> Iterator[ObjectEntry]:
        """
        List objects under prefix using list_objects_v2 pagination.

        Args:
            prefix: Raw key prefix

        Returns:
            Iterator of ObjectEntry
        """
        try:
            paginator = self._s3.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                for obj in page.get("Contents", []):
                    yield ObjectEntry(
                        key=obj["Key"],
                        size=obj.get("Size", 0),
                        last_modified=obj["LastModified"],
                    )
        except (ClientError, BotoCoreError) as e:
            raise TransientStoreError("list", prefix, str(e)) from e
