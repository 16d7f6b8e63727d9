"""
Shared fixtures for scanflow tests.

Tests use real filesystem operations with temporary directories. The model
service is replaced by a recording fake, and page rendering by a stub that
returns blank PIL images (no poppler needed).
"""

import re
import threading
from pathlib import Path

import fitz
import pytest
from PIL import Image

from scanflow.config import ScanflowConfig
from scanflow.errors import ModelServiceError
from scanflow.llm.models import GenerateResult
from scanflow.pipeline import PipelineCoordinator
from scanflow.pipeline.extract import PageExtractor
from scanflow.storage import LocalObjectStore


PARSED_TEXT_RE = re.compile(r"<parsed_text>\n(.*?)\n</parsed_text>", re.DOTALL)
TRANSCRIPTION_RE = re.compile(r"<transcription>\n(.*?)\n</transcription>", re.DOTALL)


class FakeGenerateClient:
    """Records generate calls and answers deterministically.

    Transcription (calls with images) answers `transcribed: <parsed text>`.
    Reconciliation answers `markdown: <transcription>`. `fail_when` can
    make chosen calls raise ModelServiceError.
    """

    def __init__(self, fail_when=None, reconcile_response=None):
        self.calls = []
        self.fail_when = fail_when
        self.reconcile_response = reconcile_response
        self._lock = threading.Lock()

    @property
    def vision_calls(self):
        return [c for c in self.calls if c["images"]]

    @property
    def text_calls(self):
        return [c for c in self.calls if not c["images"]]

    def generate(self, model, system, prompt, images=None):
        call = {"model": model, "system": system, "prompt": prompt, "images": images}
        with self._lock:
            self.calls.append(call)

        if self.fail_when is not None and self.fail_when(call):
            raise ModelServiceError(500, "model exploded")

        if images:
            parsed = PARSED_TEXT_RE.search(prompt).group(1)
            text = f"transcribed: {parsed}".rstrip()
        elif self.reconcile_response is not None:
            text = self.reconcile_response(call)
        else:
            transcription = TRANSCRIPTION_RE.search(prompt).group(1)
            text = f"markdown: {transcription}"

        return GenerateResult(text=text, model_used=model, prompt_tokens=10, completion_tokens=5)


def make_pdf(path: Path, page_texts):
    """Write a PDF with one page per entry; empty entries give blank pages."""
    doc = fitz.open()
    for text in page_texts:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text, fontsize=12)
    doc.save(str(path))
    doc.close()
    return path


def fake_convert_from_path(pdf_path, dpi=150, **kwargs):
    with fitz.open(pdf_path) as doc:
        count = doc.page_count
    return [Image.new('RGB', (200, 260), color='white') for _ in range(count)]


@pytest.fixture
def fake_render(monkeypatch):
    """Replace pdf2image rasterization with blank images, one per PDF page."""
    monkeypatch.setattr("scanflow.pipeline.extract.convert_from_path", fake_convert_from_path)
    return fake_convert_from_path


@pytest.fixture
def sample_pdf(tmp_path):
    """Two pages: 'Hello' on page 1, nothing on page 2."""
    return make_pdf(tmp_path / "sample.pdf", ["Hello", ""])


@pytest.fixture
def config(tmp_path):
    return ScanflowConfig(
        workspace_root=tmp_path / "workspaces",
        vision_model="vision-test",
        text_model="text-test",
        cleanup_policy="never",
    )


@pytest.fixture
def fake_client():
    return FakeGenerateClient()


@pytest.fixture
def object_store(tmp_path):
    return LocalObjectStore(tmp_path / "objects")


@pytest.fixture
def uploaded_pdf(object_store, sample_pdf):
    """The sample PDF stored as s3://in-bucket/docs/sample.pdf."""
    with open(sample_pdf, 'rb') as f:
        object_store.put("in-bucket", "docs/sample.pdf", f, "application/pdf")
    return {"sourceBucket": "in-bucket", "sourceKey": "docs/sample.pdf", "outputBucket": "out-bucket"}


@pytest.fixture
def coordinator(config, object_store, fake_client, fake_render):
    return PipelineCoordinator(
        config,
        object_store,
        fake_client,
        extractor=PageExtractor.from_config(config),
    )
