"""Tests for the ingestion pipeline: crawler, normalizer, chunker and orchestration."""

from __future__ import annotations

import json

import httpx
import pytest

from src.deadline import Deadline
from src.errors import CrawlError, EmbeddingServiceError
from src.ingestion.chunking import Chunker, serialize_batch
from src.ingestion.crawler import Crawler, extract_links
from src.ingestion.models import NormalizedDocument, RawDocument
from src.ingestion.normalizer import html_to_text, normalize_documents
from src.ingestion.pipeline import IngestionPipeline
from src.ingestion.storage import InMemoryVectorIndex
from src.pipeline_config import ChunkingStrategy, PipelineConfig
from fakes import FakeEmbedder


def _site(pages: dict[str, str]) -> httpx.MockTransport:
    """Serve *pages* (url -> html); any other URL is a 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        body = pages.get(str(request.url))
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, html=body)

    return httpx.MockTransport(handler)


def _crawler(transport: httpx.MockTransport) -> Crawler:
    return Crawler(client=httpx.Client(transport=transport))


class TestCrawler:
    def test_cycle_terminates_with_each_page_once(self) -> None:
        pages = {
            "https://site.test/a": '<a href="/b">B</a> Page A',
            "https://site.test/b": '<a href="/a">A</a> Page B',
        }
        docs = _crawler(_site(pages)).crawl("https://site.test/a", max_depth=5)
        assert len(docs) == 2
        assert [d.url for d in docs] == ["https://site.test/a", "https://site.test/b"]

    def test_cross_host_links_not_followed(self) -> None:
        requested: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(str(request.url))
            return httpx.Response(200, html='<a href="https://other.test/x">x</a> hi')

        crawler = _crawler(httpx.MockTransport(handler))
        docs = crawler.crawl("https://site.test/", max_depth=3)
        assert len(docs) == 1
        assert requested == ["https://site.test/"]

    def test_depth_bound(self) -> None:
        pages = {
            "https://site.test/0": '<a href="/1">next</a>',
            "https://site.test/1": '<a href="/2">next</a>',
            "https://site.test/2": "end",
        }
        docs = _crawler(_site(pages)).crawl("https://site.test/0", max_depth=1)
        assert [d.url for d in docs] == ["https://site.test/0", "https://site.test/1"]

    def test_zero_depth_fetches_only_seed(self) -> None:
        pages = {"https://site.test/": '<a href="/other">x</a>', "https://site.test/other": "y"}
        docs = _crawler(_site(pages)).crawl("https://site.test/", max_depth=0)
        assert len(docs) == 1

    def test_failed_page_is_skipped(self) -> None:
        pages = {
            "https://site.test/": '<a href="/missing">gone</a><a href="/ok">ok</a>',
            "https://site.test/ok": "fine",
        }
        docs = _crawler(_site(pages)).crawl("https://site.test/", max_depth=2)
        assert [d.url for d in docs] == ["https://site.test/", "https://site.test/ok"]

    def test_non_text_content_is_skipped(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/logo.png":
                return httpx.Response(200, content=b"\x89PNG", headers={"content-type": "image/png"})
            return httpx.Response(200, html='<a href="/logo.png">logo</a> home')

        docs = _crawler(httpx.MockTransport(handler)).crawl("https://site.test/", max_depth=2)
        assert [d.url for d in docs] == ["https://site.test/"]

    def test_connection_error_on_seed_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(CrawlError, match="unreachable"):
            _crawler(httpx.MockTransport(handler)).crawl("https://site.test/", max_depth=1)

    def test_missing_seed_raises(self) -> None:
        with pytest.raises(CrawlError):
            _crawler(_site({})).crawl("https://site.test/", max_depth=1)

    def test_fragments_are_deduplicated(self) -> None:
        pages = {
            "https://site.test/": '<a href="/p#one">1</a><a href="/p#two">2</a>',
            "https://site.test/p": "page",
        }
        docs = _crawler(_site(pages)).crawl("https://site.test/", max_depth=2)
        assert len(docs) == 2

    def test_title_is_captured(self) -> None:
        pages = {"https://site.test/": "<html><head><title> Home </title></head><body>x</body></html>"}
        docs = _crawler(_site(pages)).crawl("https://site.test/", max_depth=0)
        assert docs[0].title == "Home"

    def test_redirected_seed_scopes_links_to_final_host(self) -> None:
        pages = {
            "https://www.site.test/": '<a href="/docs">docs</a><a href="https://site.test/old">old</a>',
            "https://www.site.test/docs": "docs page",
        }

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "site.test":
                return httpx.Response(301, headers={"location": "https://www.site.test/"})
            return _site(pages).handle_request(request)

        client = httpx.Client(transport=httpx.MockTransport(handler), follow_redirects=True)
        docs = Crawler(client=client).crawl("https://site.test/", max_depth=2)
        assert [d.url for d in docs] == ["https://site.test/", "https://www.site.test/docs"]

    def test_context_manager_closes_own_client(self) -> None:
        with Crawler() as crawler:
            client = crawler._client
            assert not client.is_closed
        assert client.is_closed

    def test_close_leaves_caller_client_open(self) -> None:
        client = httpx.Client(transport=_site({}))
        Crawler(client=client).close()
        assert not client.is_closed


class TestExtractLinks:
    def test_resolves_relative_and_skips_mailto(self) -> None:
        html = '<a href="docs">d</a><a href="mailto:a@b.c">m</a><a href="https://x.test/y#z">y</a>'
        links = extract_links(html, "https://site.test/base/")
        assert links == ["https://site.test/base/docs", "https://x.test/y"]


class TestNormalizer:
    def test_strips_markup(self) -> None:
        text = html_to_text("<h1>Courses</h1><p>Learn <b>web</b> development.</p>")
        assert "Courses" in text
        assert "Learn web development." in text
        assert "<" not in text

    def test_long_paragraph_not_wrapped(self) -> None:
        sentence = "Scrimba teaches interactive coding lessons. " * 20
        text = html_to_text(f"<p>{sentence}</p>")
        assert "\n" not in text

    def test_metadata_carries_source_and_title(self) -> None:
        docs = normalize_documents(
            [RawDocument(url="https://site.test/", html="<p>hi</p>", title="Home")]
        )
        assert docs[0].metadata == {"source": "https://site.test/", "title": "Home"}
        assert docs[0].source_url == "https://site.test/"


class TestChunker:
    TEXT = "\n\n".join(
        " ".join(f"word{p}_{w}" for w in range(40)) for p in range(10)
    )

    def test_deterministic(self) -> None:
        chunker = Chunker(chunk_size=200, chunk_overlap=40)
        first = chunker.chunk(self.TEXT, "https://site.test/")
        second = chunker.chunk(self.TEXT, "https://site.test/")
        assert first == second

    def test_chunks_respect_size(self) -> None:
        chunks = Chunker(chunk_size=200, chunk_overlap=40).chunk(self.TEXT, "u")
        assert len(chunks) > 1
        assert all(len(c.text) <= 200 for c in chunks)

    def test_long_word_falls_back_to_character_split(self) -> None:
        giant = "x" * 50
        chunks = Chunker(chunk_size=20, chunk_overlap=5).split_text(f"a {giant} b")
        assert all(len(c) <= 20 for c in chunks)
        assert "".join(chunks).count("x") >= 50

    def test_consecutive_chunks_overlap(self) -> None:
        text = " ".join(f"w{i}" for i in range(200))
        chunks = Chunker(chunk_size=100, chunk_overlap=30).split_text(text)
        assert chunks[1].split()[0] in chunks[0].split()

    def test_sequence_indices(self) -> None:
        chunks = Chunker(chunk_size=200, chunk_overlap=40).chunk(self.TEXT, "u", start_index=3)
        assert [c.sequence_index for c in chunks] == list(range(3, 3 + len(chunks)))

    def test_overlap_must_be_smaller(self) -> None:
        with pytest.raises(ValueError, match="chunk_overlap"):
            Chunker(chunk_size=100, chunk_overlap=100)

    def test_defaults(self) -> None:
        chunker = Chunker()
        assert (chunker.chunk_size, chunker.chunk_overlap) == (1000, 200)

    def test_batch_chunks_serialized_json(self) -> None:
        docs = [
            NormalizedDocument("Alpha page.", {"source": "https://site.test/a"}),
            NormalizedDocument("Beta page.", {"source": "https://site.test/b"}),
        ]
        chunks = Chunker().chunk_batch(docs, "https://site.test/a")
        assert len(chunks) == 1
        assert json.loads(chunks[0].text)[1]["pageContent"] == "Beta page."
        assert chunks[0].source_url == "https://site.test/a"

    def test_batch_of_nothing(self) -> None:
        assert Chunker().chunk_batch([], "https://site.test/") == []

    def test_per_document_keeps_source(self) -> None:
        docs = [
            NormalizedDocument("Alpha page.", {"source": "https://site.test/a"}),
            NormalizedDocument("", {"source": "https://site.test/empty"}),
            NormalizedDocument("Beta page.", {"source": "https://site.test/b"}),
        ]
        chunks = Chunker().chunk_per_document(docs)
        assert [(c.source_url, c.sequence_index) for c in chunks] == [
            ("https://site.test/a", 0),
            ("https://site.test/b", 1),
        ]


def test_serialize_batch_layout() -> None:
    blob = serialize_batch([NormalizedDocument("Hi", {"source": "s"})])
    assert json.loads(blob) == [{"pageContent": "Hi", "metadata": {"source": "s"}}]


class TestIngestionPipeline:
    PAGES = {
        "https://site.test/": '<p>Scrimba offers courses on web development.</p><a href="/more">more</a>',
        "https://site.test/more": "<p>Courses include JavaScript and React.</p>",
    }

    def _pipeline(
        self,
        pages: dict[str, str],
        index: InMemoryVectorIndex,
        embedder: FakeEmbedder,
        strategy: ChunkingStrategy = ChunkingStrategy.BATCH,
    ) -> IngestionPipeline:
        return IngestionPipeline(
            crawler=_crawler(_site(pages)),
            embedder=embedder,
            index=index,
            config=PipelineConfig(chunking_strategy=strategy, crawl_max_depth=1),
        )

    def test_ingest_stores_chunks(self, index: InMemoryVectorIndex, embedder: FakeEmbedder) -> None:
        result = self._pipeline(self.PAGES, index, embedder).ingest("https://site.test/")
        assert result.page_count == 2
        assert result.chunk_count >= 1
        assert len(index) == result.chunk_count

    def test_batch_strategy_mixes_pages_in_one_blob(
        self, index: InMemoryVectorIndex, embedder: FakeEmbedder
    ) -> None:
        self._pipeline(self.PAGES, index, embedder).ingest("https://site.test/")
        text = embedder.calls[0][0]
        assert "web development" in text
        assert "JavaScript" in text

    def test_per_document_strategy(self, index: InMemoryVectorIndex, embedder: FakeEmbedder) -> None:
        pipeline = self._pipeline(self.PAGES, index, embedder, ChunkingStrategy.PER_DOCUMENT)
        result = pipeline.ingest("https://site.test/")
        assert result.chunk_count == 2
        hits = index.query(embedder.embed("JavaScript React courses"), k=1)
        assert hits[0][0].source_url == "https://site.test/more"

    def test_empty_page_per_document_yields_zero(
        self, index: InMemoryVectorIndex, embedder: FakeEmbedder
    ) -> None:
        pipeline = self._pipeline(
            {"https://site.test/": "<html></html>"}, index, embedder, ChunkingStrategy.PER_DOCUMENT
        )
        result = pipeline.ingest("https://site.test/")
        assert result.chunk_count == 0
        assert embedder.calls == []

    def test_reingest_duplicates(self, index: InMemoryVectorIndex, embedder: FakeEmbedder) -> None:
        pipeline = self._pipeline(self.PAGES, index, embedder)
        first = pipeline.ingest("https://site.test/")
        pipeline.ingest("https://site.test/")
        assert len(index) == 2 * first.chunk_count

    def test_seed_failure_propagates(self, index: InMemoryVectorIndex, embedder: FakeEmbedder) -> None:
        with pytest.raises(CrawlError):
            self._pipeline({}, index, embedder).ingest("https://site.test/")
        assert len(index) == 0

    def test_embedding_failure_stores_nothing(self, index: InMemoryVectorIndex) -> None:
        class BrokenEmbedder(FakeEmbedder):
            def embed_batch(
                self,
                texts: list[str],
                timeout: float | None = None,
                deadline: Deadline | None = None,
            ) -> list[list[float]]:
                raise EmbeddingServiceError("quota")

        with pytest.raises(EmbeddingServiceError):
            self._pipeline(self.PAGES, index, BrokenEmbedder()).ingest("https://site.test/")
        assert len(index) == 0

    def test_embedder_gets_live_deadline(self, index: InMemoryVectorIndex) -> None:
        seen: list[Deadline | None] = []

        class RecordingEmbedder(FakeEmbedder):
            def embed_batch(
                self,
                texts: list[str],
                timeout: float | None = None,
                deadline: Deadline | None = None,
            ) -> list[list[float]]:
                seen.append(deadline)
                return super().embed_batch(texts, timeout=timeout, deadline=deadline)

        self._pipeline(self.PAGES, index, RecordingEmbedder()).ingest("https://site.test/")
        assert len(seen) == 1
        assert isinstance(seen[0], Deadline)
