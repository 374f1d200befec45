"""
Core domain models for location search and map navigation.
These are framework-agnostic and can be used across all services.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class SearchPhase(str, Enum):
    """Phase of the search box state machine."""
    IDLE = "idle"  # empty query, no candidates
    TYPING = "typing"  # query non-empty, geocode call not issued yet
    LOADING = "loading"  # a geocode call is outstanding
    SHOWING = "showing"  # candidates present, results panel visible
    HIDDEN = "hidden"  # candidates present, results panel dismissed


@dataclass(frozen=True)
class CandidateLocation:
    """
    A single geocoding match for a query.

    Candidates are immutable once received; a successful search replaces the
    whole candidate list rather than merging into it.
    """
    place_id: str
    label: str
    lat: float
    lon: float
    provider: str = "nominatim"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "place_id": self.place_id,
            "label": self.label,
            "lat": self.lat,
            "lon": self.lon,
            "provider": self.provider,
        }


@dataclass(frozen=True)
class SelectedLocation:
    """Backing data of the single marker currently shown on the map."""
    lat: float
    lon: float
    label: str


@dataclass(frozen=True)
class CameraTarget:
    """Viewport the map animates to."""
    center_lat: float
    center_lon: float
    zoom: int

    @property
    def center(self) -> tuple:
        return (self.center_lat, self.center_lon)


@dataclass
class SearchState:
    """
    Aggregate state of the search box.

    Invariants kept by SearchSession:
    - results_visible is False whenever candidates is empty
    - loading is True only while a geocode call is outstanding
    """
    query: str = ""
    candidates: List[CandidateLocation] = field(default_factory=list)
    results_visible: bool = False
    loading: bool = False
    phase: SearchPhase = SearchPhase.IDLE

    def snapshot(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "candidates": [c.to_dict() for c in self.candidates],
            "results_visible": self.results_visible,
            "loading": self.loading,
            "phase": self.phase.value,
        }


def _parse_coord(value: Any) -> Optional[float]:
    """Parse a numeric or numeric-string coordinate; None when unusable."""
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if parsed != parsed or parsed in (float("inf"), float("-inf")):
        return None
    return parsed


@dataclass(frozen=True)
class NominatimPlace:
    """Raw record from OpenStreetMap Nominatim `/search?format=json`."""
    place_id: str
    display_name: str
    lat: Any
    lon: Any

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NominatimPlace":
        return cls(
            place_id=str(data.get("place_id", "")),
            display_name=str(data.get("display_name") or data.get("name") or ""),
            lat=data.get("lat"),
            lon=data.get("lon"),
        )

    def to_candidate(self) -> Optional[CandidateLocation]:
        lat = _parse_coord(self.lat)
        lon = _parse_coord(self.lon)
        if lat is None or lon is None:
            return None
        label = self.display_name or f"({lat:.4f}, {lon:.4f})"
        return CandidateLocation(
            place_id=self.place_id or f"{lat},{lon}",
            label=label,
            lat=lat,
            lon=lon,
            provider="nominatim",
        )


@dataclass(frozen=True)
class KakaoPlace:
    """Raw document from the Kakao Local keyword search (x is longitude, y is latitude)."""
    id: str
    place_name: str
    address_name: str
    x: Any
    y: Any

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KakaoPlace":
        return cls(
            id=str(data.get("id", "")),
            place_name=str(data.get("place_name") or ""),
            address_name=str(data.get("road_address_name") or data.get("address_name") or ""),
            x=data.get("x"),
            y=data.get("y"),
        )

    def to_candidate(self) -> Optional[CandidateLocation]:
        lat = _parse_coord(self.y)
        lon = _parse_coord(self.x)
        if lat is None or lon is None:
            return None
        label = self.place_name or self.address_name or f"({lat:.4f}, {lon:.4f})"
        return CandidateLocation(
            place_id=self.id or f"{lat},{lon}",
            label=label,
            lat=lat,
            lon=lon,
            provider="kakao",
        )


RawGeoResult = Union[NominatimPlace, KakaoPlace]
