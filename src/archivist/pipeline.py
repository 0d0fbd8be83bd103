"""Ingestion and query orchestration.

Ingestion:  extract → clean → chunk → embed (every chunk, in order)
            → open/create collection → write entries (one transaction)
Query:      question → embed → top-K nearest → rank → top context_window
            → synthesize → Answer, or NO_RELEVANT_INFORMATION when nothing matched

Collections are reached through an explicit CollectionRegistry keyed by
name; there is no process-wide "current collection".
"""

from __future__ import annotations

import hashlib
import re
import sqlite3
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from archivist.config import ArchivistConfig
from archivist.db.connection import Database
from archivist.db.schema import initialize
from archivist.db.store import Collection, VectorStore
from archivist.errors import CollectionExistsError, InvalidInputError, UpstreamServiceError
from archivist.ingest.chunker import WordChunker
from archivist.ingest.cleaner import TextCleaner
from archivist.ingest.embedder import Embedder, LiteLLMEmbedder
from archivist.ingest.extract import AutoExtractor, Extractor
from archivist.log import get_logger
from archivist.rag.assembler import assemble
from archivist.rag.retriever import RankedResult, retrieve
from archivist.rag.synthesizer import AnswerSynthesizer

logger = get_logger(__name__)

ID_SCHEMES = ("document", "positional")

_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")


class Synthesizer(Protocol):
    def answer(self, question: str, context: str) -> Any: ...


# ------------------------------------------------------------------
# Results
# ------------------------------------------------------------------


@dataclass(frozen=True)
class NotFoundResult:
    """Terminal, non-error outcome: the query matched nothing."""

    message: str = "No relevant information found."

    def __str__(self) -> str:
        return self.message


NO_RELEVANT_INFORMATION = NotFoundResult()


@dataclass
class Answer:
    """A synthesized answer and the ranked chunks its context came from."""

    answer: str
    context: str = ""
    sources: list[RankedResult] = field(default_factory=list)


# ------------------------------------------------------------------
# Identifiers
# ------------------------------------------------------------------


def document_id_for(document: str | Path) -> str:
    """Derive a stable document id from a path, or pass an existing id through.

    A path maps to its slugified stem plus a short hash of the resolved
    path, so same-named files in different directories get distinct ids:
    "docs/South Africa 2012.pdf" -> "South_Africa_2012_<8 hex digits>".
    A bare id (letters, digits, "_" and "-", naming no existing file) is
    returned unchanged, which keeps the function idempotent.
    """
    text = str(document).strip()
    if not text:
        raise InvalidInputError("Cannot derive a document id from an empty name.")
    if _ID_RE.match(text) and not Path(text).exists():
        return text
    path = Path(text).expanduser().resolve()
    slug = _slug(path.stem) or "document"
    digest = hashlib.sha1(str(path).encode("utf-8")).hexdigest()[:8]
    return f"{slug}_{digest}"


def resolve_document(collection: Collection, document: str | Path) -> str | None:
    """Find the stored document id that *document* refers to, or None.

    Accepts a path, a full document id, or the id without its hash suffix
    when that prefix names exactly one stored document.

    Raises:
        InvalidInputError: If a hash-less id matches several documents.
    """
    stored = [doc for doc, _ in collection.documents()]
    document_id = document_id_for(document)
    if document_id in stored:
        return document_id
    slug = _slug(Path(str(document)).stem)
    matches = [doc for doc in stored if doc.rsplit("_", 1)[0] == slug]
    if len(matches) > 1:
        raise InvalidInputError(
            f"'{document}' matches several documents: {', '.join(sorted(matches))}"
        )
    return matches[0] if matches else None


def _slug(stem: str) -> str:
    return re.sub(r"[^A-Za-z0-9_-]+", "_", stem).strip("_")


def chunk_ids(document_id: str, count: int, scheme: str = "document") -> list[str]:
    """Entry ids for *count* chunks of one document.

    'document'   → "<document_id>_<index>"  (unique across documents)
    'positional' → "chunk_<index>"          (a later document overwrites
                                             entries with the same index)
    """
    if scheme == "document":
        return [f"{document_id}_{i}" for i in range(count)]
    if scheme == "positional":
        return [f"chunk_{i}" for i in range(count)]
    raise ValueError(f"Unknown id scheme '{scheme}', expected one of {ID_SCHEMES}")


# ------------------------------------------------------------------
# Registry
# ------------------------------------------------------------------


class CollectionRegistry:
    """Named collection handles, opened lazily and cached.

    ``open()`` checks ``list_collections()`` first and then calls
    ``get_collection()`` or ``create_collection()``. When another connection
    creates the name in between, creation falls back to ``get_collection()``.
    ``lock(name)`` serialises ingestion into one collection.
    """

    def __init__(self, store: VectorStore) -> None:
        self._store = store
        self._handles: dict[str, Collection] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def lock(self, name: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(name, threading.Lock())

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Store transaction that also forgets handles opened inside a failed block."""
        before = set(self._handles)
        try:
            with self._store.transaction():
                yield
        except BaseException:
            for name in set(self._handles) - before:
                del self._handles[name]
            raise

    def open(self, name: str, dimensions: int) -> Collection:
        """Return collection *name*, creating it with *dimensions* if absent."""
        if name in self._handles:
            return self._handles[name]
        if name in self._store.list_collections():
            logger.info("Reusing existing collection '%s'", name)
            handle = self._store.get_collection(name)
        else:
            logger.info("Creating new collection '%s'", name)
            try:
                handle = self._store.create_collection(name, dimensions)
            except CollectionExistsError:
                logger.info("Collection '%s' was created concurrently; reusing it", name)
                handle = self._store.get_collection(name)
        self._handles[name] = handle
        return handle

    def get(self, name: str) -> Collection:
        """Return existing collection *name*.

        Raises:
            InvalidInputError: If the collection does not exist.
        """
        if name not in self._handles:
            self._handles[name] = self._store.get_collection(name)
        return self._handles[name]

    def names(self) -> list[str]:
        return self._store.list_collections()

    def drop(self, name: str) -> None:
        with self.lock(name):
            self._store.delete_collection(name)
            self._handles.pop(name, None)


# ------------------------------------------------------------------
# Ingestion
# ------------------------------------------------------------------


class IngestionPipeline:
    """Turn a document into index entries of a named collection.

    Every chunk is embedded before the store is touched, and the entries
    are written in one transaction together with the collection they
    create, if any: a failure anywhere leaves the store exactly as it was.
    """

    def __init__(
        self,
        registry: CollectionRegistry,
        embedder: Embedder,
        *,
        extractor: Extractor | None = None,
        cleaner: TextCleaner | None = None,
        chunker: WordChunker | None = None,
        collection: str = "pdf_data",
        id_scheme: str = "document",
        dimensions: int = 1536,
    ) -> None:
        if id_scheme not in ID_SCHEMES:
            raise ValueError(f"Unknown id scheme '{id_scheme}', expected one of {ID_SCHEMES}")
        self._registry = registry
        self._embedder = embedder
        self._extractor = extractor or AutoExtractor()
        self._cleaner = cleaner or TextCleaner()
        self._chunker = chunker or WordChunker()
        self.collection = collection
        self.id_scheme = id_scheme
        self.dimensions = dimensions

    def ingest(self, document_path: str | Path, collection: str | None = None) -> Collection:
        """Extract, clean, chunk, embed and store *document_path*.

        Returns the collection the document was written to.

        Raises:
            InvalidInputError: If no text could be extracted.
            UpstreamServiceError: If extraction, embedding or the store fails.
        """
        name = collection or self.collection
        raw_text = self._extract(document_path)
        if raw_text is None:
            raise InvalidInputError(f"No text could be extracted from '{document_path}'.")

        cleaned = self._cleaner.clean(raw_text)
        document_id = document_id_for(document_path)
        chunks = self._chunker.chunk(document_id, cleaned)
        logger.info("'%s': %d chunks", document_path, len(chunks))

        embeddings = [self._embedder.embed(c.text) for c in chunks]
        ids = chunk_ids(document_id, len(chunks), self.id_scheme)
        metadatas = [
            {"text": c.text, "document": document_id, "chunk_index": c.chunk_index}
            for c in chunks
        ]
        dimensions = len(embeddings[0]) if embeddings else self.dimensions

        # Creating the collection and writing the entries commit together.
        with self._registry.lock(name):
            try:
                with self._registry.transaction():
                    handle = self._registry.open(name, dimensions)
                    if self.id_scheme == "document":
                        handle.replace_document(document_id, ids, embeddings, metadatas)
                    elif chunks:
                        handle.add(ids, embeddings, metadatas)
            except sqlite3.Error as exc:
                raise UpstreamServiceError("store", f"writing '{name}' failed: {exc}") from exc

        logger.info("Stored %d chunks of '%s' in '%s'", len(chunks), document_id, name)
        return handle

    def remove(self, document: str | Path, collection: str | None = None) -> int:
        """Delete a document's entries. Returns how many were removed.

        *document* is a path, a document id, or an id without its hash
        suffix (see resolve_document()).
        """
        name = collection or self.collection
        with self._registry.lock(name):
            handle = self._registry.get(name)
            document_id = resolve_document(handle, document)
            if document_id is None:
                logger.info("No document '%s' in '%s'", document, name)
                return 0
            try:
                removed = handle.delete_document(document_id)
            except sqlite3.Error as exc:
                raise UpstreamServiceError("store", f"removing from '{name}' failed: {exc}") from exc
        logger.info("Removed %d entries of '%s' from '%s'", removed, document_id, name)
        return removed

    def _extract(self, document_path: str | Path) -> str | None:
        try:
            return self._extractor.extract_text(document_path)
        except Exception as exc:
            raise UpstreamServiceError(
                "extractor", f"extracting '{document_path}' failed: {exc}"
            ) from exc


# ------------------------------------------------------------------
# Query
# ------------------------------------------------------------------


class QueryPipeline:
    """Answer a question from the closest chunks of one collection."""

    def __init__(
        self,
        embedder: Embedder,
        synthesizer: Synthesizer,
        *,
        top_k: int = 5,
        context_window: int = 3,
        max_context_chars: int | None = None,
    ) -> None:
        if top_k < 1:
            raise ValueError("top_k must be >= 1")
        if not 1 <= context_window <= top_k:
            raise ValueError(
                f"context_window must be between 1 and top_k ({top_k}), got {context_window}"
            )
        self._embedder = embedder
        self._synthesizer = synthesizer
        self.top_k = top_k
        self.context_window = context_window
        self.max_context_chars = max_context_chars

    def query(self, question: str, collection: Collection) -> Answer | NotFoundResult:
        """Return an Answer, or NO_RELEVANT_INFORMATION when nothing matched.

        Raises:
            InvalidInputError: If *question* is missing or blank.
            UpstreamServiceError: If embedding, the store or synthesis fails.
        """
        if not isinstance(question, str) or not question.strip():
            raise InvalidInputError("A non-empty question is required.")

        try:
            ranked = retrieve(question, collection, self._embedder, top_k=self.top_k)
        except sqlite3.Error as exc:
            raise UpstreamServiceError("store", f"querying '{collection.name}' failed: {exc}") from exc

        if not ranked:
            logger.info("No matches in '%s'", collection.name)
            return NO_RELEVANT_INFORMATION

        context = assemble(ranked, self.context_window, self.max_context_chars)
        result = self._synthesizer.answer(question, context.text)
        text = result["answer"] if isinstance(result, Mapping) else result.answer
        return Answer(answer=text, context=context.text, sources=context.results)


# ------------------------------------------------------------------
# Facade
# ------------------------------------------------------------------


class Archive:
    """One archive database with its ingestion and query pipelines.

    Build with ``Archive.open(config)``; close with ``close()`` or use as a
    context manager. The underlying sqlite connection is bound to the
    thread that opened it.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        config: ArchivistConfig,
        *,
        embedder: Embedder | None = None,
        synthesizer: Synthesizer | None = None,
        extractor: Extractor | None = None,
    ) -> None:
        self.config = config
        self._conn = conn
        self.store = VectorStore(conn, config.embedding.model)
        self.registry = CollectionRegistry(self.store)

        e, g, r = config.embedding, config.generation, config.retrieval
        embedder = embedder or LiteLLMEmbedder(
            e.model, timeout=e.timeout, num_retries=e.num_retries
        )
        synthesizer = synthesizer or AnswerSynthesizer(
            g.model,
            max_tokens=g.max_tokens,
            temperature=g.temperature,
            timeout=g.timeout,
            num_retries=g.num_retries,
        )
        self.ingestion = IngestionPipeline(
            self.registry,
            embedder,
            extractor=extractor,
            cleaner=TextCleaner(config.cleaning.boilerplate_marker, config.cleaning.domains),
            chunker=WordChunker(config.chunking.chunk_size),
            collection=config.store.collection,
            id_scheme=config.store.id_scheme,
            dimensions=e.dimensions,
        )
        self.querying = QueryPipeline(
            embedder,
            synthesizer,
            top_k=r.top_k,
            context_window=r.context_window,
            max_context_chars=r.max_context_chars,
        )

    @classmethod
    def open(
        cls,
        config: ArchivistConfig | None = None,
        db_path: Path | str | None = None,
        **components: Any,
    ) -> Archive:
        """Open (or create) the archive database and run migrations."""
        cfg = config or ArchivistConfig()
        conn = Database(db_path or cfg.store.path).connect()
        initialize(conn)
        return cls(conn, cfg, **components)

    def ingest(self, document_path: str | Path, collection: str | None = None) -> Collection:
        return self.ingestion.ingest(document_path, collection)

    def query(
        self, question: str, collection: Collection | str | None = None
    ) -> Answer | NotFoundResult:
        """Answer *question* from *collection* (a handle or a name)."""
        if isinstance(collection, Collection):
            handle = collection
        else:
            handle = self.registry.get(collection or self.config.store.collection)
        if handle.embedding_model != self.config.embedding.model:
            logger.warning(
                "Collection '%s' was built with '%s' but queries use '%s'",
                handle.name, handle.embedding_model, self.config.embedding.model,
            )
        return self.querying.query(question, handle)

    def collections(self) -> list[Collection]:
        return [self.registry.get(name) for name in self.registry.names()]

    def remove(self, document: str | Path, collection: str | None = None) -> int:
        return self.ingestion.remove(document, collection)

    def drop_collection(self, name: str) -> None:
        """Delete collection *name* with all of its entries."""
        try:
            self.registry.drop(name)
        except sqlite3.Error as exc:
            raise UpstreamServiceError("store", f"dropping '{name}' failed: {exc}") from exc

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> Archive:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
