"""FastAPI application exposing pattern search and indexing."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, List

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from patternfinder.config import AppConfig
from patternfinder.errors import ConfigurationError, IndexingError, PatternFinderError, ProviderError
from patternfinder.models import Match
from patternfinder.service import PatternService, build_service, format_matches

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="PatternFinder", version="0.1.0")


class SearchPayload(BaseModel):
    query: str
    max_results: int = Field(default=5, ge=1, le=50)


class SimilarPayload(BaseModel):
    code: str
    max_results: int = Field(default=3, ge=1, le=50)


class MatchModel(BaseModel):
    path: str
    score: float
    text: str


class SearchResponse(BaseModel):
    results: List[MatchModel]
    text: str


@lru_cache(maxsize=1)
def get_service() -> PatternService:
    return build_service(AppConfig.from_env())


@app.on_event("startup")
async def startup_event() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


def _to_response(matches: List[Match], text: str) -> SearchResponse:
    return SearchResponse(
        results=[MatchModel(path=m.path, score=m.score, text=m.text) for m in matches],
        text=text,
    )


def _raise_http(exc: PatternFinderError) -> None:
    LOGGER.error("Request failed: %s", exc)
    if isinstance(exc, ConfigurationError):
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    if isinstance(exc, (ProviderError, IndexingError)):
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    raise HTTPException(status_code=500, detail=str(exc)) from exc


@app.post("/search", response_model=SearchResponse)
def search_patterns(
    payload: SearchPayload, service: PatternService = Depends(get_service)
) -> SearchResponse:
    query = payload.query.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Empty query")
    try:
        matches = service.search_patterns(query, max_results=payload.max_results)
    except PatternFinderError as exc:
        _raise_http(exc)
    return _to_response(matches, format_matches(matches))


@app.post("/similar", response_model=SearchResponse)
def similar_to_code(
    payload: SimilarPayload, service: PatternService = Depends(get_service)
) -> SearchResponse:
    if not payload.code.strip():
        raise HTTPException(status_code=400, detail="Empty code")
    try:
        matches = service.similar_to_code(payload.code, max_results=payload.max_results)
    except PatternFinderError as exc:
        _raise_http(exc)
    text = format_matches(
        matches,
        include_score=False,
        header="Here are similar patterns from the golden microservice:",
        empty_message="No similar golden patterns found.",
    )
    return _to_response(matches, text)


@app.post("/index")
def index_repository(service: PatternService = Depends(get_service)) -> dict[str, Any]:
    try:
        stats = service.index_golden_repo()
    except PatternFinderError as exc:
        _raise_http(exc)
    return {"status": "ok", "stats": stats.as_dict()}
