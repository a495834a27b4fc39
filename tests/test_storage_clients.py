"""Tests for object store clients and the client factory."""

import io
from datetime import datetime, timezone
from unittest.mock import MagicMock, Mock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from certvault.config import StorageConfig
from certvault.errors import ConfigError, NotExistError, TransientStoreError
from certvault.storage.factory import make_object_client
from certvault.storage.fs import FilesystemObjectClient
from certvault.storage.s3 import S3ObjectClient


def _client_error(code: str, operation: str = "GetObject") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class TestFilesystemObjectClient:
    """Test the filesystem client primitives."""

    def test_put_get(self, fs_client):
        fs_client.put_object("a/b/c.crt", b"data")
        assert fs_client.get_object("a/b/c.crt") == b"data"
        assert fs_client.path_for("a/b/c.crt").read_bytes() == b"data"

    def test_no_temp_files_left(self, fs_client):
        fs_client.put_object("a/c.crt", b"one")
        fs_client.put_object("a/c.crt", b"two")
        parent = fs_client.path_for("a/c.crt").parent
        assert [p.name for p in parent.iterdir()] == [fs_client.path_for("a/c.crt").name]

    def test_failed_write_removes_temp_file(self, fs_client):
        fs_client.put_object("a/c.crt", b"old")
        parent = fs_client.path_for("a/c.crt").parent

        with patch("certvault.storage.fs.os.fsync", side_effect=OSError("disk full")):
            with pytest.raises(TransientStoreError):
                fs_client.put_object("a/c.crt", b"new")

        assert [p.name for p in parent.iterdir()] == [fs_client.path_for("a/c.crt").name]
        assert fs_client.get_object("a/c.crt") == b"old"

    def test_get_missing(self, fs_client):
        with pytest.raises(NotExistError):
            fs_client.get_object("missing")

    def test_delete_missing(self, fs_client):
        with pytest.raises(NotExistError):
            fs_client.delete_object("missing")

    def test_head(self, fs_client):
        fs_client.put_object("a/c.crt", b"1234")
        entry = fs_client.head_object("a/c.crt")
        assert entry.key == "a/c.crt"
        assert entry.size == 4
        assert entry.last_modified.tzinfo == timezone.utc

    def test_head_missing(self, fs_client):
        fs_client.put_object("a/c.crt", b"x")
        with pytest.raises(NotExistError):
            fs_client.head_object("a")
        with pytest.raises(NotExistError):
            fs_client.head_object("a/c.crt/deeper")

    def test_key_and_child_key_coexist(self, fs_client):
        fs_client.put_object("a", b"parent")
        fs_client.put_object("a/b", b"child")

        assert fs_client.get_object("a") == b"parent"
        assert fs_client.get_object("a/b") == b"child"
        assert sorted(e.key for e in fs_client.list_objects("a")) == ["a", "a/b"]

    def test_key_reusable_after_children_deleted(self, fs_client):
        fs_client.put_object("a/b", b"child")
        fs_client.delete_object("a/b")
        fs_client.put_object("a", b"parent")

        assert fs_client.get_object("a") == b"parent"
        assert [e.key for e in fs_client.list_objects("")] == ["a"]

    def test_delete_prunes_empty_directories(self, fs_client, store_dir):
        fs_client.put_object("x/y/z", b"1")
        fs_client.put_object("x/keep", b"2")

        fs_client.delete_object("x/y/z")

        assert not fs_client.path_for("x/y/z").parent.exists()
        assert fs_client.path_for("x/keep").exists()
        fs_client.delete_object("x/keep")
        assert list(store_dir.iterdir()) == []

    def test_unusual_segments_round_trip(self, fs_client):
        fs_client.put_object("acme/user@example.com/key%20", b"k")
        assert [e.key for e in fs_client.list_objects("acme/")] == ["acme/user@example.com/key%20"]
        assert fs_client.get_object("acme/user@example.com/key%20") == b"k"

    def test_list_string_prefix(self, fs_client):
        fs_client.put_object("acme/one.crt", b"1")
        fs_client.put_object("acme/one.key", b"22")
        fs_client.put_object("acme/two.crt", b"333")

        entries = {e.key: e for e in fs_client.list_objects("acme/one")}
        assert sorted(entries) == ["acme/one.crt", "acme/one.key"]
        assert entries["acme/one.key"].size == 2
        assert entries["acme/one.key"].last_modified.tzinfo == timezone.utc

    def test_list_missing_directory(self, fs_client):
        assert list(fs_client.list_objects("nope/")) == []

    def test_list_skips_in_flight_temp_files(self, fs_client):
        fs_client.put_object("a/c.crt", b"x")
        (fs_client.path_for("a/c.crt").parent / ".certvault-tmp-abc").write_bytes(b"partial")
        assert [e.key for e in fs_client.list_objects("a/")] == ["a/c.crt"]


class TestS3ObjectClient:
    """Test S3 error mapping with a mocked boto3 client."""

    @pytest.fixture
    def s3(self):
        return MagicMock()

    @pytest.fixture
    def client(self, s3):
        return S3ObjectClient(bucket="s3tlstest", client=s3)

    def test_put(self, client, s3):
        client.put_object("a/b", b"data")
        s3.put_object.assert_called_once_with(Bucket="s3tlstest", Key="a/b", Body=b"data")

    def test_get(self, client, s3):
        s3.get_object.return_value = {"Body": io.BytesIO(b"crt")}
        assert client.get_object("a/b") == b"crt"

    def test_get_missing(self, client, s3):
        s3.get_object.side_effect = _client_error("NoSuchKey")
        with pytest.raises(NotExistError):
            client.get_object("a/b")

    def test_get_access_denied_is_transient(self, client, s3):
        s3.get_object.side_effect = _client_error("AccessDenied")
        with pytest.raises(TransientStoreError) as exc:
            client.get_object("a/b")
        assert isinstance(exc.value.__cause__, ClientError)

    def test_connection_failure_is_transient(self, client, s3):
        s3.put_object.side_effect = EndpointConnectionError(endpoint_url="http://localhost:9000")
        with pytest.raises(TransientStoreError):
            client.put_object("a/b", b"x")

    def test_head(self, client, s3):
        modified = datetime(2025, 1, 1, tzinfo=timezone.utc)
        s3.head_object.return_value = {"ContentLength": 7, "LastModified": modified}

        entry = client.head_object("a/b")

        assert (entry.key, entry.size, entry.last_modified) == ("a/b", 7, modified)
        s3.head_object.assert_called_once_with(Bucket="s3tlstest", Key="a/b")

    def test_head_missing(self, client, s3):
        s3.head_object.side_effect = _client_error("404", "HeadObject")
        with pytest.raises(NotExistError):
            client.head_object("a/b")

    def test_head_forbidden_is_transient(self, client, s3):
        s3.head_object.side_effect = _client_error("403", "HeadObject")
        with pytest.raises(TransientStoreError):
            client.head_object("a/b")

    def test_delete_checks_existence(self, client, s3):
        s3.head_object.side_effect = _client_error("404", "HeadObject")
        with pytest.raises(NotExistError):
            client.delete_object("a/b")
        s3.delete_object.assert_not_called()

    def test_delete(self, client, s3):
        client.delete_object("a/b")
        s3.delete_object.assert_called_once_with(Bucket="s3tlstest", Key="a/b")

    def test_list_paginates(self, client, s3):
        modified = datetime(2025, 1, 1, tzinfo=timezone.utc)
        paginator = Mock()
        paginator.paginate.return_value = [
            {"Contents": [{"Key": "a/1", "Size": 1, "LastModified": modified}]},
            {"Contents": [{"Key": "a/2", "Size": 2, "LastModified": modified}]},
            {},
        ]
        s3.get_paginator.return_value = paginator

        entries = list(client.list_objects("a/"))

        assert [e.key for e in entries] == ["a/1", "a/2"]
        paginator.paginate.assert_called_once_with(Bucket="s3tlstest", Prefix="a/")


class TestAzureObjectClient:
    """Test Azure error mapping with a mocked service client."""

    @pytest.fixture
    def container(self):
        with patch("azure.storage.blob.BlobServiceClient") as service_cls:
            container = MagicMock()
            container.exists.return_value = True
            service_cls.from_connection_string.return_value.get_container_client.return_value = container

            from certvault.storage.azure import AzureObjectClient
            client = AzureObjectClient("UseDevelopmentStorage=true", "certs")
            yield client, container

    def test_put_overwrites(self, container):
        client, c = container
        client.put_object("a/b", b"data")
        c.upload_blob.assert_called_once_with(name="a/b", data=b"data", overwrite=True)

    def test_get_missing(self, container):
        from azure.core.exceptions import ResourceNotFoundError
        client, c = container
        c.download_blob.side_effect = ResourceNotFoundError("missing")
        with pytest.raises(NotExistError):
            client.get_object("a/b")

    def test_head(self, container):
        client, c = container
        props = Mock()
        props.size = 9
        props.last_modified = datetime(2025, 1, 1, tzinfo=timezone.utc)
        c.get_blob_client.return_value.get_blob_properties.return_value = props

        entry = client.head_object("a/b")

        assert entry.size == 9
        c.get_blob_client.assert_called_once_with("a/b")

    def test_head_missing(self, container):
        from azure.core.exceptions import ResourceNotFoundError
        client, c = container
        c.get_blob_client.return_value.get_blob_properties.side_effect = ResourceNotFoundError("missing")
        with pytest.raises(NotExistError):
            client.head_object("a/b")

    def test_delete_missing(self, container):
        from azure.core.exceptions import ResourceNotFoundError
        client, c = container
        c.delete_blob.side_effect = ResourceNotFoundError("missing")
        with pytest.raises(NotExistError):
            client.delete_object("a/b")

    def test_service_error_is_transient(self, container):
        from azure.core.exceptions import ServiceRequestError
        client, c = container
        c.upload_blob.side_effect = ServiceRequestError("connection refused")
        with pytest.raises(TransientStoreError):
            client.put_object("a/b", b"x")

    def test_list(self, container):
        client, c = container
        blob = Mock()
        blob.name = "a/1"
        blob.size = 4
        blob.last_modified = datetime(2025, 1, 1, tzinfo=timezone.utc)
        c.list_blobs.return_value = [blob]

        entries = list(client.list_objects("a/"))

        assert entries[0].key == "a/1"
        assert entries[0].size == 4
        c.list_blobs.assert_called_once_with(name_starts_with="a/")


class TestFactory:
    """Test client construction from config."""

    def test_fs(self, tmp_path):
        client = make_object_client(StorageConfig(provider="fs", container=str(tmp_path / "s")))
        assert isinstance(client, FilesystemObjectClient)
        assert client.base_dir == tmp_path / "s"

    def test_fs_default_root(self, tmp_path):
        with patch("certvault.storage.factory.default_fs_root", return_value=tmp_path / "default"):
            client = make_object_client(StorageConfig(provider="fs"))
        assert client.base_dir == tmp_path / "default"

    def test_azure_requires_connection_string(self, monkeypatch):
        monkeypatch.delenv("AZURE_STORAGE_CONNECTION_STRING", raising=False)
        with pytest.raises(ConfigError, match="AZURE_STORAGE_CONNECTION_STRING"):
            make_object_client(StorageConfig(provider="azure", container="certs"))

    def test_azure_requires_container(self):
        with pytest.raises(ConfigError, match="container"):
            make_object_client(StorageConfig(provider="azure"))

    def test_s3_requires_bucket(self):
        with pytest.raises(ConfigError, match="bucket"):
            make_object_client(StorageConfig(provider="s3"))

    def test_s3(self):
        with patch("certvault.storage.s3.boto3") as mock_boto3:
            client = make_object_client(StorageConfig(
                provider="s3",
                container="s3tlstest",
                region="us-east-1",
                endpoint_url="http://localhost:9000",
                force_path_style=True,
            ))
        assert isinstance(client, S3ObjectClient)
        assert client.bucket == "s3tlstest"
        mock_boto3.Session.assert_called_once_with(region_name="us-east-1")
        _, kwargs = mock_boto3.Session.return_value.client.call_args
        assert kwargs["endpoint_url"] == "http://localhost:9000"
        assert kwargs["config"].s3 == {"addressing_style": "path"}
