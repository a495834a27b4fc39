"""Azure blob storage object client."""

from typing import Iterator

from ..errors import NotExistError, TransientStoreError
from ..models import ObjectEntry


class AzureObjectClient:
    """
    Azure Blob Storage object client.

    Keys map one-to-one to blob names inside a single container.
    """

    def __init__(self, connection_string: str, container: str):
        """
        Initialize Azure object client.

        Args:
            connection_string: Azure Storage connection string
            container: Container name
        """
        try:
            from azure.core.exceptions import AzureError, ResourceNotFoundError
            from azure.storage.blob import BlobServiceClient
        except ImportError:
            raise ImportError(
                "azure-storage-blob required for Azure blob storage. "
                "Install with: pip install azure-storage-blob"
            )

        self._not_found = ResourceNotFoundError
        self._azure_error = AzureError
        self.client = BlobServiceClient.from_connection_string(connection_string)
        self.container = container
        self.container_client = self.client.get_container_client(container)

        # Ensure container exists
        try:
            if not self.container_client.exists():
                self.container_client.create_container()
        except AzureError as e:
            raise TransientStoreError("create_container", container, str(e)) from e

    def put_object(self, key: str, data: bytes) -> None:
        """
        Upload blob, overwriting any existing content.

        Args:
            key: Blob name
            data: Blob content
        """
        try:
            self.container_client.upload_blob(name=key, data=data, overwrite=True)
        except self._azure_error as e:
            raise TransientStoreError("put", key, str(e)) from e

    def get_object(self, key: str) -> bytes:
        """
        Download blob content.

        Args:
            key: Blob name

        Returns:
            Blob content
        """
        try:
            return self.container_client.download_blob(key).readall()
        except self._not_found as e:
            raise NotExistError(key) from e
        except self._azure_error as e:
            raise TransientStoreError("get", key, str(e)) from e

    def head_object(self, key: str) -> ObjectEntry:
        """
        Get blob properties without downloading content.

        Args:
            key: Blob name

        Returns:
            ObjectEntry for the blob
        """
        try:
            props = self.container_client.get_blob_client(key).get_blob_properties()
        except self._not_found as e:
            raise NotExistError(key) from e
        except self._azure_error as e:
            raise TransientStoreError("head", key, str(e)) from e
        return ObjectEntry(
            key=key,
            size=props.size or 0,
            last_modified=props.last_modified,
        )

    def delete_object(self, key: str) -> None:
        """
        Delete blob.

        Args:
            key: Blob name
        """
        try:
            self.container_client.delete_blob(key)
        except self._not_found as e:
            raise NotExistError(key) from e
        except self._azure_error as e:
            raise TransientStoreError("delete", key, str(e)) from e

    def list_objects(self, prefix: str) -> Iterator[ObjectEntry]:
        """
        List blobs whose name starts with prefix.

        Args:
            prefix: Raw name prefix

        Returns:
            Iterator of ObjectEntry
        """
        try:
            for props in self.container_client.list_blobs(name_starts_with=prefix or None):
                yield ObjectEntry(
                    key=props.name,
                    size=props.size or 0,
                    last_modified=props.last_modified,
                )
        except self._azure_error as e:
            raise TransientStoreError("list", prefix, str(e)) from e
