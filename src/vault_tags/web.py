"""FastAPI server exposing the tag index.

Provides REST endpoints for tag listing, fuzzy search and reindexing.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query, Request
from pydantic import BaseModel

from vault_tags.config import Config
from vault_tags.index import TagIndexer, create_indexer, load_or_build
from vault_tags.persistence import DEFAULT_MAX_AGE_MS
from vault_tags.store import ContentStoreError

logger = logging.getLogger(__name__)


# ── Lifespan ──────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load config and a ready index on startup."""
    if getattr(app.state, "indexer", None) is None:
        config = Config.from_env()
        app.state.config = config
        app.state.indexer = create_indexer(config)
        await load_or_build(app.state.indexer, config.max_age_ms)
    yield


app = FastAPI(title="Vault Tags", lifespan=lifespan)


# ── Models ────────────────────────────────────────────────
class TagModel(BaseModel):
    tag: str
    count: int
    score: float | None = None


class TagListResponse(BaseModel):
    tags: list[TagModel]
    count: int


class SearchResponse(BaseModel):
    query: str
    results: list[TagModel]
    count: int


class TagFilesResponse(BaseModel):
    tag: str
    files: list[str]


class DocumentTagsResponse(BaseModel):
    path: str
    tags: list[str]


class StatsResponse(BaseModel):
    file_count: int
    tag_count: int
    last_indexed: int
    stale: bool


def _indexer(request: Request) -> TagIndexer:
    return request.app.state.indexer


def _stats(request: Request) -> StatsResponse:
    indexer = _indexer(request)
    config: Config | None = getattr(request.app.state, "config", None)
    max_age = config.max_age_ms if config else DEFAULT_MAX_AGE_MS
    return StatsResponse(
        file_count=indexer.meta.file_count,
        tag_count=indexer.meta.tag_count,
        last_indexed=indexer.meta.last_indexed,
        stale=indexer.is_stale(max_age),
    )


# ── API: Tags ─────────────────────────────────────────────
@app.get("/api/tags", response_model=TagListResponse)
async def api_tags(request: Request, limit: int | None = Query(None, ge=1)):
    """All tags, most used first."""
    entries = _indexer(request).all_tags()
    if limit:
        entries = entries[:limit]
    tags = [TagModel(tag=e.tag, count=e.count) for e in entries]
    return TagListResponse(tags=tags, count=len(tags))


@app.get("/api/tags/search", response_model=SearchResponse)
async def api_search(
    request: Request,
    q: str = Query("", description="Search query"),
    num: int = Query(20, ge=1, le=200),
):
    """Fuzzy tag search."""
    results = _indexer(request).search(q, limit=num)
    models = [TagModel(tag=r.tag, count=r.count, score=r.score) for r in results]
    return SearchResponse(query=q, results=models, count=len(models))


@app.get("/api/tags/{tag}/files", response_model=TagFilesResponse)
async def api_tag_files(request: Request, tag: str):
    """Documents carrying ``tag``."""
    return TagFilesResponse(tag=tag, files=_indexer(request).get_files_for_tag(tag))


@app.get("/api/documents/tags", response_model=DocumentTagsResponse)
async def api_document_tags(request: Request, path: str = Query(..., min_length=1)):
    """Tags of one document."""
    return DocumentTagsResponse(path=path, tags=_indexer(request).get_tags_for_document(path))


# ── API: Index ────────────────────────────────────────────
@app.get("/api/stats", response_model=StatsResponse)
async def api_stats(request: Request):
    """Index metadata."""
    return _stats(request)


@app.post("/api/reindex", response_model=StatsResponse)
async def api_reindex(request: Request):
    """Rebuild the whole index."""
    try:
        await _indexer(request).build()
    except ContentStoreError as e:
        logger.error("Reindex failed: %s", e)
        raise HTTPException(status_code=503, detail=str(e)) from e
    return _stats(request)
