"""
Geocode API routes.

Stateless forward-geocoding lookup for browser clients that run their own
debounce loop.
"""
import logging
from typing import List
from fastapi import APIRouter, Query
from pydantic import BaseModel

from services.geocoding import SearchFailure, get_default_geocode_client

router = APIRouter()
logger = logging.getLogger(__name__)


class CandidateResponse(BaseModel):
    place_id: str
    label: str
    lat: float
    lon: float
    provider: str


class GeocodeSearchResponse(BaseModel):
    query: str
    results: List[CandidateResponse]


@router.get("/search", response_model=GeocodeSearchResponse)
def search(q: str = Query("", max_length=512), limit: int = Query(5, ge=1, le=20)):
    """
    Look up candidates for `q`.

    Blank queries and provider failures both yield an empty result list.
    """
    query = q.strip()
    if not query:
        return GeocodeSearchResponse(query=q, results=[])

    client = get_default_geocode_client()
    try:
        candidates = client.search(query, limit=limit)
    except SearchFailure as exc:
        logger.warning("Geocode search failed for %r: %s", query, exc)
        candidates = []

    return GeocodeSearchResponse(
        query=q,
        results=[CandidateResponse(**c.to_dict()) for c in candidates],
    )
