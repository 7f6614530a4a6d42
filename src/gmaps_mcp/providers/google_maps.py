"""Async client for the Google Maps web services used by the tools.

Three APIs are involved:

- Geocoding API (``maps.googleapis.com``), authenticated with a ``key`` query
  parameter and reporting failures through a ``status`` field in a 200 body.
- Places API (New) v1 (``places.googleapis.com``) and Routes API v2
  (``routes.googleapis.com``), authenticated with ``X-Goog-Api-Key`` and
  scoped with an ``X-Goog-FieldMask`` header. They report failures through
  non-2xx responses carrying ``{"error": {"status", "message"}}``.

Every call carries the client's bounded timeout; timeouts, transport failures
and error statuses are raised as ``ProviderError``.
"""

from __future__ import annotations

import logging
from typing import Any, Final, Literal

import httpx

from gmaps_mcp.exceptions import ProviderError

logger = logging.getLogger(__name__)

GEOCODE_URL: Final[str] = "https://maps.googleapis.com/maps/api/geocode/json"
PLACES_BASE_URL: Final[str] = "https://places.googleapis.com/v1"
ROUTES_URL: Final[str] = "https://routes.googleapis.com/directions/v2:computeRoutes"

DEFAULT_TIMEOUT: Final[float] = 10.0

# Geocoding statuses that are not failures.
GEOCODE_OK_STATUSES: Final[frozenset[str]] = frozenset({"OK", "ZERO_RESULTS"})

PLACE_SEARCH_FIELDS: Final[tuple[str, ...]] = (
    "places.id",
    "places.displayName",
    "places.formattedAddress",
    "places.location",
    "places.rating",
    "places.userRatingCount",
    "places.primaryType",
)

PLACE_DETAIL_FIELDS: Final[tuple[str, ...]] = (
    "id",
    "displayName",
    "formattedAddress",
    "location",
    "rating",
    "userRatingCount",
    "primaryType",
    "types",
    "internationalPhoneNumber",
    "websiteUri",
)

AUTOCOMPLETE_FIELDS: Final[tuple[str, ...]] = (
    "suggestions.placePrediction.placeId",
    "suggestions.placePrediction.text",
    "suggestions.placePrediction.distanceMeters",
    "suggestions.queryPrediction.text",
)

ROUTE_FIELDS: Final[tuple[str, ...]] = (
    "routes.distanceMeters",
    "routes.duration",
    "routes.legs.startLocation",
    "routes.legs.endLocation",
    "routes.legs.distanceMeters",
    "routes.legs.duration",
)

DirectionsMode = Literal["driving", "walking", "bicycling", "transit"]

TRAVEL_MODES: Final[dict[str, str]] = {
    "driving": "DRIVE",
    "walking": "WALK",
    "bicycling": "BICYCLE",
    "transit": "TRANSIT",
}


def _circle(lat: float, lng: float, radius_meters: float) -> dict[str, Any]:
    return {"circle": {"center": {"latitude": lat, "longitude": lng}, "radius": radius_meters}}


def place_resource_name(place_id: str) -> str:
    """Normalize a place id to its ``places/{id}`` resource name."""
    return place_id if place_id.startswith("places/") else f"places/{place_id}"


class GoogleMapsClient:
    """Thin async wrapper over the Google Maps REST endpoints.

    The client owns an ``httpx.AsyncClient`` unless one is passed in, and must
    be closed with ``aclose()`` (or used as an async context manager).

    Args:
        api_key: Google Maps Platform API key
        timeout: per-call timeout in seconds
        http_client: optional pre-built client, e.g. one with a mock transport
    """

    def __init__(
        self,
        api_key: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("api_key must not be empty")
        self._api_key = api_key
        self._timeout = httpx.Timeout(timeout)
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=self._timeout, follow_redirects=True)

    async def __aenter__(self) -> GoogleMapsClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    # -- Geocoding API ---------------------------------------------------------

    async def geocode(self, address: str) -> dict[str, Any]:
        """Resolve a free-form address to Geocoding API results."""
        data = await self._send("GET", GEOCODE_URL, params={"address": address, "key": self._api_key})
        status = data.get("status", "UNKNOWN_ERROR")
        if status not in GEOCODE_OK_STATUSES:
            raise ProviderError(data.get("error_message") or "Geocoding request failed", status=status)
        return data

    # -- Places API (New) ------------------------------------------------------

    async def search_text(self, text_query: str) -> dict[str, Any]:
        return await self._send(
            "POST",
            f"{PLACES_BASE_URL}/places:searchText",
            json={"textQuery": text_query},
            field_mask=PLACE_SEARCH_FIELDS,
        )

    async def search_nearby(
        self,
        lat: float,
        lng: float,
        radius_meters: float,
        *,
        included_primary_types: list[str] | None = None,
        max_result_count: int | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"locationRestriction": _circle(lat, lng, radius_meters)}
        if included_primary_types:
            body["includedPrimaryTypes"] = included_primary_types
        if max_result_count is not None:
            body["maxResultCount"] = max_result_count
        return await self._send(
            "POST",
            f"{PLACES_BASE_URL}/places:searchNearby",
            json=body,
            field_mask=PLACE_SEARCH_FIELDS,
        )

    async def autocomplete(
        self,
        text_input: str,
        *,
        bias_lat: float | None = None,
        bias_lng: float | None = None,
        bias_radius_meters: float | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"input": text_input}
        # The bias needs a full circle; a partial one is ignored.
        if bias_lat is not None and bias_lng is not None and bias_radius_meters:
            body["locationBias"] = _circle(bias_lat, bias_lng, bias_radius_meters)
        return await self._send(
            "POST",
            f"{PLACES_BASE_URL}/places:autocomplete",
            json=body,
            field_mask=AUTOCOMPLETE_FIELDS,
        )

    async def get_place(self, place_id: str) -> dict[str, Any]:
        return await self._send(
            "GET",
            f"{PLACES_BASE_URL}/{place_resource_name(place_id)}",
            field_mask=PLACE_DETAIL_FIELDS,
        )

    # -- Routes API ------------------------------------------------------------

    async def compute_routes(self, origin: str, destination: str, mode: DirectionsMode = "driving") -> dict[str, Any]:
        return await self._send(
            "POST",
            ROUTES_URL,
            json={
                "origin": {"address": origin},
                "destination": {"address": destination},
                "travelMode": TRAVEL_MODES[mode],
            },
            field_mask=ROUTE_FIELDS,
        )

    # -- plumbing --------------------------------------------------------------

    async def _send(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        field_mask: tuple[str, ...] | None = None,
    ) -> dict[str, Any]:
        headers: dict[str, str] = {}
        if field_mask is not None:
            headers["X-Goog-Api-Key"] = self._api_key
            headers["X-Goog-FieldMask"] = ",".join(field_mask)

        # Never log params: the geocoding key travels in the query string.
        logger.debug("%s %s", method, url)
        try:
            response = await self._http.request(
                method, url, params=params, json=json, headers=headers, timeout=self._timeout
            )
        except httpx.TimeoutException as e:
            raise ProviderError(f"Request to {url} timed out", status="TIMEOUT") from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Request to {url} failed: {type(e).__name__}", status="UNAVAILABLE") from e

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.is_error:
            error = data.get("error") if isinstance(data, dict) else None
            if isinstance(error, dict):
                raise ProviderError(
                    error.get("message") or response.reason_phrase,
                    status=error.get("status") or str(response.status_code),
                )
            raise ProviderError(response.reason_phrase or "Request failed", status=str(response.status_code))

        if not isinstance(data, dict):
            raise ProviderError(f"Unexpected response body from {url}", status="MALFORMED_RESPONSE")
        return data
