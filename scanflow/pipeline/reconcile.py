import re
import time
from typing import Optional

from scanflow.errors import ModelServiceError, PageReconciliationFailure
from scanflow.models import Page
from scanflow.storage.cache import CacheStore, markdown_key
from .prompts import RECONCILE_SYSTEM_PROMPT, RECONCILE_USER_PROMPT

CODE_FENCE_RE = re.compile(r"^```[\w+-]*[ \t]*\n(.*?)\n?```\s*$", re.DOTALL)


def strip_code_fence(text: str) -> str:
    """Remove a Markdown code fence wrapping the whole response, if any.

    Text without such a fence is returned unchanged.
    """
    match = CODE_FENCE_RE.match(text.strip())
    if match:
        return match.group(1)
    return text


def annotate_heading(text: str, page_number: int) -> str:
    """Append `(Page N)` to the first line when the page opens with a heading."""
    if not text.startswith("#"):
        return text

    first_line, newline, rest = text.partition("\n")
    return f"{first_line.rstrip()} (Page {page_number}){newline}{rest}"


def postprocess_markdown(text: str, page_number: int) -> str:
    return annotate_heading(strip_code_fence(text), page_number)


class ReconciliationStage:
    """Merges a page's transcription and parsed text into final Markdown."""
    name = "reconcile"

    def __init__(self, client, model: str, cache: CacheStore, input_name: str, logger):
        self.client = client
        self.model = model
        self.cache = cache
        self.input_name = input_name
        self.logger = logger

    def cache_key(self, page_number: int) -> str:
        return markdown_key(self.input_name, page_number)

    def load_cached(self, page: Page) -> Optional[str]:
        key = self.cache_key(page.page_number)
        if not self.cache.exists(key):
            return None

        page.reconciled_markdown = self.cache.read(key)
        self.logger.debug("Using cached markdown", page=page.page_number, cached=True)
        return page.reconciled_markdown

    def run(self, page: Page) -> str:
        cached = self.load_cached(page)
        if cached is not None:
            return cached

        if page.transcription is None:
            raise PageReconciliationFailure(page.page_number, "no transcription available")

        start_time = time.time()
        try:
            result = self.client.generate(
                model=self.model,
                system=RECONCILE_SYSTEM_PROMPT,
                prompt=RECONCILE_USER_PROMPT.format(
                    transcription=page.transcription,
                    parsed_text=page.parsed_text,
                ),
            )
        except ModelServiceError as e:
            self.logger.error(
                "Reconciliation failed",
                page=page.page_number,
                model=self.model,
                error=str(e),
            )
            raise PageReconciliationFailure(page.page_number, str(e)) from e

        markdown = postprocess_markdown(result.text, page.page_number)
        self.cache.write(self.cache_key(page.page_number), markdown)
        page.reconciled_markdown = markdown

        self.logger.info(
            "Reconciled page",
            page=page.page_number,
            model=result.model_used,
            tokens=result.total_tokens,
            duration_seconds=time.time() - start_time,
        )
        return markdown
