"""Google Maps tools: geocoding, places and directions.

Each handler makes exactly one provider call and reshapes the provider's
camelCase payload into the snake_case output model. Optional fields the
provider leaves out stay ``None`` and are dropped from the serialized result.
"""

from __future__ import annotations

import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from gmaps_mcp.context import RequestContext
from gmaps_mcp.providers.google_maps import GoogleMapsClient
from gmaps_mcp.tools.registry import ToolRegistry, ToolSpec

_DURATION_RE = re.compile(r"^([0-9]+(?:\.[0-9]+)?)s$")


def duration_to_seconds(duration: str | dict[str, Any] | None) -> float | None:
    """Convert a protobuf Duration to float seconds.

    Accepts the JSON form (``"3.5s"``) and the structured form
    (``{"seconds": 3, "nanos": 500000000}``, where ``seconds`` may be a string).
    Returns None for a missing or unparseable duration, never 0.
    """
    if not duration:
        return None
    if isinstance(duration, str):
        match = _DURATION_RE.match(duration)
        return float(match.group(1)) if match else None
    try:
        seconds = float(duration.get("seconds") or 0)
        nanos = float(duration.get("nanos") or 0)
    except (TypeError, ValueError):
        return None
    return seconds + nanos / 1e9


def _maps(ctx: RequestContext) -> GoogleMapsClient:
    return ctx.server_state.maps


# --- Shared output shapes ---


class LatLng(BaseModel):
    lat: float
    lng: float


class PlaceSummary(BaseModel):
    id: str | None = None
    display_name: str | None = None
    formatted_address: str | None = None
    location: LatLng | None = None
    rating: float | None = None
    user_rating_count: int | None = None
    primary_type: str | None = None


class PlaceDetails(PlaceSummary):
    phone: str | None = None
    website_uri: str | None = None


class PlaceSearchOutput(BaseModel):
    results: list[PlaceSummary]
    status: Literal["OK", "ZERO_RESULTS"]


def _location(value: dict[str, Any] | None) -> dict[str, Any] | None:
    if not value:
        return None
    return {"lat": value.get("latitude"), "lng": value.get("longitude")}


def _place_fields(place: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": place.get("id"),
        "display_name": (place.get("displayName") or {}).get("text"),
        "formatted_address": place.get("formattedAddress"),
        "location": _location(place.get("location")),
        "rating": place.get("rating"),
        "user_rating_count": place.get("userRatingCount"),
        "primary_type": place.get("primaryType"),
    }


def _place_search_output(data: dict[str, Any]) -> PlaceSearchOutput:
    results = [PlaceSummary.model_validate(_place_fields(p)) for p in data.get("places") or []]
    return PlaceSearchOutput(results=results, status="OK" if results else "ZERO_RESULTS")


# --- geocode ---


class GeocodeInput(BaseModel):
    model_config = ConfigDict(strict=True)

    address: str = Field(
        description=(
            "The address or place to geocode. Accepts full street addresses, place names, or formatted "
            'queries (e.g., "1600 Amphitheatre Pkwy, Mountain View, CA" or "Eiffel Tower").'
        )
    )


class GeocodeResult(BaseModel):
    formatted_address: str
    place_id: str
    location: LatLng


class GeocodeOutput(BaseModel):
    results: list[GeocodeResult]
    status: str


async def geocode(ctx: RequestContext, args: GeocodeInput) -> GeocodeOutput:
    data = await _maps(ctx).geocode(args.address)
    results = [
        GeocodeResult.model_validate(
            {
                "formatted_address": r.get("formatted_address"),
                "place_id": r.get("place_id"),
                "location": ((r.get("geometry") or {}).get("location")),
            }
        )
        for r in data.get("results") or []
    ]
    return GeocodeOutput(results=results, status=data["status"])


# --- places_search_text ---


class PlacesSearchTextInput(BaseModel):
    model_config = ConfigDict(strict=True)

    query: str = Field(description='Free-text search query (e.g., "coffee near Paris", "bookstore 94103").')


async def places_search_text(ctx: RequestContext, args: PlacesSearchTextInput) -> PlaceSearchOutput:
    return _place_search_output(await _maps(ctx).search_text(args.query))


# --- places_search_nearby ---


class PlacesSearchNearbyInput(BaseModel):
    model_config = ConfigDict(strict=True)

    center_lat: float = Field(description="Center latitude in decimal degrees.")
    center_lng: float = Field(description="Center longitude in decimal degrees.")
    radius_meters: float = Field(gt=0, description="Search radius in meters.")
    included_primary_types: list[str] | None = Field(
        default=None, description="Optional list of primary place types to include."
    )
    max_result_count: int | None = Field(
        default=None,
        gt=0,
        strict=False,
        description="Optional maximum number of results to return. Integral floats such as 5.0 are accepted.",
    )


async def places_search_nearby(ctx: RequestContext, args: PlacesSearchNearbyInput) -> PlaceSearchOutput:
    data = await _maps(ctx).search_nearby(
        args.center_lat,
        args.center_lng,
        args.radius_meters,
        included_primary_types=args.included_primary_types,
        max_result_count=args.max_result_count,
    )
    return _place_search_output(data)


# --- places_autocomplete ---


class PlacesAutocompleteInput(BaseModel):
    model_config = ConfigDict(strict=True)

    input: str = Field(description="User input string to autocomplete.")
    bias_center_lat: float | None = Field(default=None, description="Optional bias center latitude.")
    bias_center_lng: float | None = Field(default=None, description="Optional bias center longitude.")
    bias_radius_meters: float | None = Field(default=None, gt=0, description="Optional bias radius in meters.")


class Suggestion(BaseModel):
    kind: Literal["place", "query"]
    text: str
    place_id: str | None = None
    distance_meters: int | None = None


class PlacesAutocompleteOutput(BaseModel):
    suggestions: list[Suggestion]


def _suggestion(raw: dict[str, Any]) -> Suggestion:
    place = raw.get("placePrediction")
    if place:
        return Suggestion(
            kind="place",
            text=(place.get("text") or {}).get("text") or "",
            place_id=place.get("placeId"),
            distance_meters=place.get("distanceMeters"),
        )
    query = raw.get("queryPrediction") or {}
    return Suggestion(kind="query", text=(query.get("text") or {}).get("text") or "")


async def places_autocomplete(ctx: RequestContext, args: PlacesAutocompleteInput) -> PlacesAutocompleteOutput:
    data = await _maps(ctx).autocomplete(
        args.input,
        bias_lat=args.bias_center_lat,
        bias_lng=args.bias_center_lng,
        bias_radius_meters=args.bias_radius_meters,
    )
    return PlacesAutocompleteOutput(suggestions=[_suggestion(s) for s in data.get("suggestions") or []])


# --- places_get_place ---


class PlacesGetPlaceInput(BaseModel):
    model_config = ConfigDict(strict=True)

    place_id: str = Field(description="The place_id to look up. Use results from search or autocomplete.")


class PlacesGetPlaceOutput(BaseModel):
    place: PlaceDetails


async def places_get_place(ctx: RequestContext, args: PlacesGetPlaceInput) -> PlacesGetPlaceOutput:
    data = await _maps(ctx).get_place(args.place_id)
    place = PlaceDetails.model_validate(
        {
            **_place_fields(data),
            "phone": data.get("internationalPhoneNumber"),
            "website_uri": data.get("websiteUri"),
        }
    )
    return PlacesGetPlaceOutput(place=place)


# --- directions ---


class DirectionsInput(BaseModel):
    model_config = ConfigDict(strict=True)

    origin: str = Field(
        description=(
            "Route origin as a human-readable address or place string "
            '(e.g., "San Francisco, CA" or "1600 Amphitheatre Pkwy, Mountain View, CA").'
        )
    )
    destination: str = Field(
        description=(
            "Route destination as a human-readable address or place string "
            '(e.g., "Los Angeles, CA" or "1 Infinite Loop, Cupertino, CA").'
        )
    )
    mode: Literal["driving", "walking", "bicycling", "transit"] = Field(
        default="driving",
        description='Transport mode. Defaults to "driving". Allowed values: driving, walking, bicycling, transit.',
    )


class RouteLeg(BaseModel):
    start_location: LatLng
    end_location: LatLng
    distance_meters: int | None = None
    duration_seconds: float | None = None


class Route(BaseModel):
    distance_meters: int | None = None
    duration_seconds: float | None = None
    legs: list[RouteLeg]


class DirectionsOutput(BaseModel):
    routes: list[Route]
    status: Literal["OK", "ZERO_RESULTS"]


def _leg_location(value: dict[str, Any] | None) -> dict[str, Any] | None:
    return _location((value or {}).get("latLng"))


async def directions(ctx: RequestContext, args: DirectionsInput) -> DirectionsOutput:
    data = await _maps(ctx).compute_routes(args.origin, args.destination, args.mode)
    routes = [
        Route.model_validate(
            {
                "distance_meters": route.get("distanceMeters"),
                "duration_seconds": duration_to_seconds(route.get("duration")),
                "legs": [
                    {
                        "start_location": _leg_location(leg.get("startLocation")),
                        "end_location": _leg_location(leg.get("endLocation")),
                        "distance_meters": leg.get("distanceMeters"),
                        "duration_seconds": duration_to_seconds(leg.get("duration")),
                    }
                    for leg in route.get("legs") or []
                ],
            }
        )
        for route in data.get("routes") or []
    ]
    return DirectionsOutput(routes=routes, status="OK" if routes else "ZERO_RESULTS")


MAPS_TOOLS: tuple[ToolSpec[Any, Any], ...] = (
    ToolSpec(
        name="geocode",
        title="Geocode",
        description="Geocode an address to latitude/longitude using Google Maps Geocoding API.",
        input_model=GeocodeInput,
        output_model=GeocodeOutput,
        handler=geocode,
    ),
    ToolSpec(
        name="places_search_text",
        title="Places Search (Text)",
        description="Search for places using a free-text query via Google Maps Places API (new).",
        input_model=PlacesSearchTextInput,
        output_model=PlaceSearchOutput,
        handler=places_search_text,
    ),
    ToolSpec(
        name="places_search_nearby",
        title="Places Search (Nearby)",
        description="Search for places near a location with radius and optional primary types.",
        input_model=PlacesSearchNearbyInput,
        output_model=PlaceSearchOutput,
        handler=places_search_nearby,
    ),
    ToolSpec(
        name="places_autocomplete",
        title="Places Autocomplete",
        description="Get place and query predictions for an input string with optional location bias.",
        input_model=PlacesAutocompleteInput,
        output_model=PlacesAutocompleteOutput,
        handler=places_autocomplete,
    ),
    ToolSpec(
        name="places_get_place",
        title="Places Get Place",
        description="Retrieve detailed place information for a given place_id.",
        input_model=PlacesGetPlaceInput,
        output_model=PlacesGetPlaceOutput,
        handler=places_get_place,
    ),
    ToolSpec(
        name="directions",
        title="Directions",
        description="Get directions between origin and destination using Google Maps Routes API.",
        input_model=DirectionsInput,
        output_model=DirectionsOutput,
        handler=directions,
    ),
)


def build_registry() -> ToolRegistry:
    return ToolRegistry(MAPS_TOOLS)
