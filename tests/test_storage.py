import tempfile
import unittest
from pathlib import Path
from unittest.mock import Mock

from botocore.exceptions import ClientError, EndpointConnectionError

from account_backend.core.errors import StorageError, UploadError
from account_backend.core.settings import Settings
from account_backend.services.storage import (
    LocalObjectStorage,
    S3ObjectStorage,
    StorageConfig,
    build_storage,
    last_path_segment,
)


def client_error(code="AccessDenied", op="PutObject"):
    return ClientError({"Error": {"Code": code, "Message": "nope"}}, op)


class TestKeyCodec(unittest.TestCase):
    def test_last_path_segment(self):
        self.assertEqual(last_path_segment("https://b.s3.r.amazonaws.com/1_abc.png"), "1_abc.png")
        self.assertEqual(last_path_segment("https://cdn.example.com/a/b/c.jpg"), "c.jpg")
        self.assertEqual(last_path_segment("plain"), "plain")

    def test_s3_key_for(self):
        storage = S3ObjectStorage(StorageConfig(bucket="pics", region="ap-northeast-2"), client=Mock())
        self.assertEqual(storage.key_for("https://pics.s3.ap-northeast-2.amazonaws.com/9_x.png"), "9_x.png")
        self.assertEqual(storage.key_for("https://other.example.com/img/7.png"), "7.png")
        self.assertIsNone(storage.key_for(""))
        self.assertIsNone(storage.key_for("http://insecure.example.com/7.png"))
        self.assertIsNone(storage.key_for("https://pics.s3.ap-northeast-2.amazonaws.com/"))

    def test_s3_key_for_accepts_configured_base(self):
        config = StorageConfig(bucket="pics", endpoint_url="http://localhost:9000")
        storage = S3ObjectStorage(config, client=Mock())
        self.assertEqual(storage.key_for("http://localhost:9000/pics/5.png"), "5.png")


class TestS3ObjectStorage(unittest.TestCase):
    def test_upload_returns_virtual_hosted_url(self):
        client = Mock()
        storage = S3ObjectStorage(StorageConfig(bucket="pics", region="us-west-2"), client=client)
        url = storage.upload(b"data", "1_abc.png", "image/png")
        self.assertEqual(url, "https://pics.s3.us-west-2.amazonaws.com/1_abc.png")
        client.put_object.assert_called_once_with(
            Bucket="pics", Key="1_abc.png", Body=b"data", ContentType="image/png"
        )

    def test_prefix_and_public_base(self):
        client = Mock()
        config = StorageConfig(bucket="pics", prefix="avatars", public_base_url="https://cdn.example.com/")
        storage = S3ObjectStorage(config, client=client)
        url = storage.upload(b"data", "1_abc.png", "image/png")
        self.assertEqual(url, "https://cdn.example.com/avatars/1_abc.png")
        self.assertEqual(client.put_object.call_args.kwargs["Key"], "avatars/1_abc.png")

        storage.delete(storage.key_for(url))
        client.delete_object.assert_called_once_with(Bucket="pics", Key="avatars/1_abc.png")

    def test_path_style_for_custom_endpoint(self):
        config = StorageConfig(bucket="pics", endpoint_url="http://localhost:9000")
        storage = S3ObjectStorage(config, client=Mock())
        self.assertEqual(storage.url_for("k.png"), "http://localhost:9000/pics/k.png")

    def test_upload_failure_is_wrapped(self):
        client = Mock()
        client.put_object.side_effect = client_error()
        storage = S3ObjectStorage(StorageConfig(bucket="pics"), client=client)
        with self.assertRaises(UploadError) as ctx:
            storage.upload(b"data", "k.png", "image/png")
        self.assertIsInstance(ctx.exception.__cause__, ClientError)

    def test_delete_failure_is_wrapped(self):
        client = Mock()
        client.delete_object.side_effect = EndpointConnectionError(endpoint_url="https://s3")
        storage = S3ObjectStorage(StorageConfig(bucket="pics"), client=client)
        with self.assertRaises(StorageError) as ctx:
            storage.delete("k.png")
        self.assertNotIsInstance(ctx.exception, UploadError)

    def test_requires_bucket(self):
        with self.assertRaises(ValueError):
            S3ObjectStorage(StorageConfig(bucket=""), client=Mock())

    def test_config_from_settings(self):
        settings = Settings(
            aws_region="eu-central-1",
            profile_image_bucket="pics",
            profile_image_prefix="p",
            aws_access_key_id="AKIA",
            aws_secret_access_key="secret",
        )
        config = StorageConfig.from_settings(settings)
        self.assertEqual(config.bucket, "pics")
        self.assertEqual(config.region, "eu-central-1")
        self.assertEqual(config.prefix, "p")
        self.assertEqual(config.access_key_id, "AKIA")


class TestLocalObjectStorage(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.storage = LocalObjectStorage(Path(self.tmp.name) / "uploads", "http://localhost:8000/static/uploads/")

    def test_upload_and_delete(self):
        url = self.storage.upload(b"abc", "1_x.png", "image/png")
        self.assertEqual(url, "http://localhost:8000/static/uploads/1_x.png")
        path = Path(self.tmp.name) / "uploads" / "1_x.png"
        self.assertEqual(path.read_bytes(), b"abc")

        self.assertEqual(self.storage.key_for(url), "1_x.png")
        self.storage.delete("1_x.png")
        self.assertFalse(path.exists())

    def test_delete_missing_raises(self):
        with self.assertRaises(StorageError):
            self.storage.delete("missing.png")

    def test_rejects_traversal_keys(self):
        for key in ("../x.png", "a/b.png", "..", ""):
            with self.subTest(key=key):
                with self.assertRaises(StorageError):
                    self.storage.upload(b"abc", key, "image/png")

    def test_foreign_reference_not_hosted(self):
        self.assertIsNone(self.storage.key_for("https://pics.s3.us-east-1.amazonaws.com/1.png"))
        self.assertIsNone(self.storage.key_for(""))


class TestBuildStorage(unittest.TestCase):
    def test_local_when_no_bucket(self):
        with tempfile.TemporaryDirectory() as tmp:
            storage = build_storage(Settings(profile_image_bucket="", local_upload_dir=tmp, public_base_url="http://h"))
            self.assertIsInstance(storage, LocalObjectStorage)
            self.assertEqual(storage.base_url, "http://h/static/uploads")

    def test_s3_when_bucket(self):
        storage = build_storage(Settings(profile_image_bucket="pics", aws_region="us-east-1"))
        self.assertIsInstance(storage, S3ObjectStorage)
        self.assertEqual(storage.config.bucket, "pics")
