"""HTML to plain text conversion for crawled pages."""

from __future__ import annotations

import html2text

from src.ingestion.models import NormalizedDocument, RawDocument


def _converter() -> html2text.HTML2Text:
    h = html2text.HTML2Text()
    h.body_width = 0  # no hard wrapping; the chunker owns all boundaries
    h.ignore_images = True
    h.ignore_emphasis = True
    h.unicode_snob = True
    return h


def html_to_text(html: str) -> str:
    """Strip markup from *html*, keeping all of its text."""
    return _converter().handle(html).strip()


def normalize_documents(documents: list[RawDocument]) -> list[NormalizedDocument]:
    """Convert each raw page to a :class:`NormalizedDocument`.

    A fresh converter is used per page because ``HTML2Text`` keeps parser
    state between ``handle`` calls.
    """
    normalized: list[NormalizedDocument] = []
    for doc in documents:
        metadata: dict[str, str] = {"source": doc.url}
        if doc.title:
            metadata["title"] = doc.title
        normalized.append(
            NormalizedDocument(page_content=html_to_text(doc.html), metadata=metadata)
        )
    return normalized
