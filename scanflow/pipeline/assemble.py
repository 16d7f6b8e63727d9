from typing import List

from scanflow.models import AssembledDocument, Page
from scanflow.storage.cache import CacheStore, document_key

PAGE_SEPARATOR = "\n\n"


def assemble_document(pages: List[Page], cache: CacheStore, input_name: str) -> AssembledDocument:
    """Join per-page Markdown in ascending page order, one blank line apart.

    The full document is also written to the workspace cache.
    """
    ordered = sorted(pages, key=lambda p: p.page_number)

    missing = [p.page_number for p in ordered if p.reconciled_markdown is None]
    if missing:
        raise ValueError(f"Pages without reconciled markdown: {missing}")

    markdown = PAGE_SEPARATOR.join(p.reconciled_markdown for p in ordered)
    cache.write(document_key(input_name), markdown)

    cache_path = None
    if hasattr(cache, "path_for"):
        cache_path = cache.path_for(document_key(input_name))

    return AssembledDocument(
        markdown=markdown,
        pages={p.page_number: p.reconciled_markdown for p in ordered},
        cache_path=cache_path,
    )
