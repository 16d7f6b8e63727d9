"""
Tests for scanflow/pipeline/publish.py
"""

import pytest

from scanflow.errors import PublishFailure
from scanflow.logger import create_logger
from scanflow.models import AssembledDocument, Job
from scanflow.pipeline.publish import Publisher
from scanflow.storage import LocalObjectStore, ObjectStore


class FailingStore(ObjectStore):
    def get(self, bucket, key):
        raise OSError("unreachable")

    def put(self, bucket, key, body, content_type):
        raise OSError("disk full")


@pytest.fixture
def job():
    return Job.from_descriptor({
        "sourceBucket": "in",
        "sourceKey": "docs/a.pdf",
        "outputBucket": "out",
        "outputPrefix": "converted",
    })


@pytest.fixture
def document():
    return AssembledDocument(markdown="# A (Page 1)\n\nBody", pages={1: "# A (Page 1)", 2: "Body"})


def make_publisher(store):
    return Publisher(store, create_logger("job", "publish"))


class TestPublishDocument:

    def test_uploads_markdown_with_content_type(self, tmp_path, job, document):
        store = LocalObjectStore(tmp_path)

        key = make_publisher(store).publish_document(job, document)

        assert key == "converted/docs/a.pdf.md"
        target = tmp_path / "out" / "converted" / "docs" / "a.pdf.md"
        assert target.read_text(encoding="utf-8") == document.markdown
        assert target.with_name("a.pdf.md.content-type").read_text() == "text/markdown"

    def test_storage_error_becomes_publish_failure(self, job, document):
        with pytest.raises(PublishFailure):
            make_publisher(FailingStore()).publish_document(job, document)


class TestPublishArtifacts:

    def test_uploads_output_tree(self, tmp_path, job):
        output_dir = tmp_path / "output"
        (output_dir / "text").mkdir(parents=True)
        (output_dir / "images").mkdir()
        (output_dir / "text" / "a_page_1.md").write_text("md")
        (output_dir / "images" / "a_page_1.png").write_bytes(b"png")
        (output_dir / "text" / "a_page_2.md.tmp").write_text("partial")
        store = LocalObjectStore(tmp_path / "objects")

        keys = make_publisher(store).publish_artifacts(job, output_dir)

        assert keys == [
            "converted/docs/a.pdf.artifacts/images/a_page_1.png",
            "converted/docs/a.pdf.artifacts/text/a_page_1.md",
        ]
        png = tmp_path / "objects" / "out" / "converted" / "docs" / "a.pdf.artifacts" / "images" / "a_page_1.png"
        assert png.read_bytes() == b"png"
        assert png.with_name("a_page_1.png.content-type").read_text() == "image/png"
