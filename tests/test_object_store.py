"""
Tests for scanflow/storage/object_store.py

S3 calls are verified with botocore's Stubber; no network access.
"""

import io

import boto3
import pytest
from botocore.exceptions import ClientError
from botocore.response import StreamingBody
from botocore.stub import ANY, Stubber

from scanflow.storage import LocalObjectStore, S3ObjectStore, guess_content_type


@pytest.fixture
def s3_client():
    return boto3.client(
        "s3",
        region_name="eu-north-1",
        aws_access_key_id="test",
        aws_secret_access_key="test",
    )


class TestContentTypes:

    @pytest.mark.parametrize("path, expected", [
        ("doc.md", "text/markdown"),
        ("page_1.txt", "text/plain"),
        ("out/images/page_1.png", "image/png"),
        ("photo.JPEG", "image/jpeg"),
        ("data.json", "application/json"),
        ("report.pdf", "application/pdf"),
        ("table.csv", "text/csv"),
        ("archive.tar.gz", "application/octet-stream"),
        ("no_extension", "application/octet-stream"),
    ])
    def test_guess_content_type(self, path, expected):
        assert guess_content_type(path) == expected


class TestS3ObjectStore:

    def test_get_returns_body_stream(self, s3_client):
        data = b"%PDF-1.4 fake"
        store = S3ObjectStore(client=s3_client)

        with Stubber(s3_client) as stubber:
            stubber.add_response(
                "get_object",
                {"Body": StreamingBody(io.BytesIO(data), len(data))},
                {"Bucket": "in", "Key": "docs/a.pdf"},
            )
            body = store.get("in", "docs/a.pdf")
            assert body.read() == data
            stubber.assert_no_pending_responses()

    def test_put_sends_content_type(self, s3_client):
        store = S3ObjectStore(client=s3_client)

        with Stubber(s3_client) as stubber:
            stubber.add_response(
                "put_object",
                {},
                {"Bucket": "out", "Key": "docs/a.pdf.md", "Body": ANY, "ContentType": "text/markdown"},
            )
            store.put("out", "docs/a.pdf.md", b"# Hello", "text/markdown")
            stubber.assert_no_pending_responses()

    def test_missing_object_raises_client_error(self, s3_client):
        store = S3ObjectStore(client=s3_client)

        with Stubber(s3_client) as stubber:
            stubber.add_client_error("get_object", service_error_code="NoSuchKey", http_status_code=404)
            with pytest.raises(ClientError):
                store.get("in", "missing.pdf")

    def test_builds_path_style_client(self):
        store = S3ObjectStore(
            endpoint_url="http://minio:9000",
            region="eu-north-1",
            access_key="key",
            secret_key="secret",
        )

        assert store.client.meta.endpoint_url == "http://minio:9000"
        assert store.client.meta.region_name == "eu-north-1"
        assert store.client.meta.config.s3["addressing_style"] == "path"


class TestLocalObjectStore:

    def test_put_bytes_and_get(self, tmp_path):
        store = LocalObjectStore(tmp_path)

        store.put("bucket", "dir/file.md", b"content", "text/markdown")

        with store.get("bucket", "dir/file.md") as body:
            assert body.read() == b"content"
        assert (tmp_path / "bucket" / "dir" / "file.md.content-type").read_text() == "text/markdown"

    def test_put_stream(self, tmp_path):
        store = LocalObjectStore(tmp_path)

        store.put("bucket", "img.png", io.BytesIO(b"\x89PNG"), "image/png")

        assert (tmp_path / "bucket" / "img.png").read_bytes() == b"\x89PNG"

    def test_missing_object(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            LocalObjectStore(tmp_path).get("bucket", "nope.pdf")
