"""Apple Maps backend.

Maps has a thin scripting dictionary: searches and guide operations open the
app on a ``maps://`` URL and report what the user should do next.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from apple_mcp.automation.osascript import run_jxa
from apple_mcp.backends import AutomationError, BackendId, BackendInitError
from apple_mcp.config import Settings

logger = logging.getLogger(__name__)

TRANSPORT_TYPES = ("driving", "walking", "transit")

_SEARCH_JXA = """
const app = Application.currentApplication();
app.includeStandardAdditions = true;
const Maps = Application('Maps');
Maps.activate();
app.openLocation(`maps://?q=${encodeURIComponent(args.query)}`);
delay(2);
const fallback = {name: args.query, address: "Search results - address details not available",
                  latitude: null, longitude: null, category: null};
try {
    const selected = Maps.selectedLocation();
    if (!selected) return [fallback];
    return [{
        name: selected.name() || args.query,
        address: selected.formattedAddress() || "Address not available",
        latitude: selected.latitude(),
        longitude: selected.longitude(),
        category: null
    }];
} catch (e) {
    return [fallback];
}
"""

_SAVE_JXA = """
const Maps = Application('Maps');
Maps.activate();
Maps.search(args.address);
delay(2);
const location = Maps.selectedLocation();
if (!location) return {success: false, message: `Could not find location for "${args.address}"`};
try {
    Maps.addToFavorites(location, {withProperties: {name: args.name}});
} catch (e) {
    return {success: false, message: `Location found but unable to automatically add to favorites. Please manually save "${args.name}" from the Maps app.`};
}
return {success: true, message: `Added "${args.name}" to favorites`,
        location: {name: args.name, address: location.formattedAddress() || args.address,
                   latitude: location.latitude(), longitude: location.longitude(), category: null}};
"""

_DIRECTIONS_JXA = """
const Maps = Application('Maps');
Maps.activate();
Maps.getDirections({from: args.fromAddress, to: args.toAddress, by: args.transportType});
delay(2);
return {success: true};
"""

_SHOW_ADDRESS_JXA = """
const Maps = Application('Maps');
Maps.activate();
Maps.search(args.address);
delay(2);
return {success: true};
"""

_OPEN_URL_JXA = """
const app = Application.currentApplication();
app.includeStandardAdditions = true;
Application('Maps').activate();
app.openLocation(args.url);
return {success: true};
"""


@dataclass
class MapLocation:
    name: str
    address: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    category: Optional[str] = None
    is_favorite: bool = False


@dataclass
class MapsResult:
    success: bool
    message: str
    locations: List[MapLocation] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)


def _to_location(raw: Dict[str, Any], is_favorite: bool = False) -> MapLocation:
    return MapLocation(
        name=str(raw.get("name") or ""),
        address=str(raw.get("address") or ""),
        latitude=raw.get("latitude"),
        longitude=raw.get("longitude"),
        category=raw.get("category"),
        is_favorite=is_favorite,
    )


class MapsBackend:
    """Location search, favorites, directions and guides"""

    async def check_access(self) -> None:
        try:
            await run_jxa("return Application('Maps').name();")
        except AutomationError as e:
            raise BackendInitError(
                BackendId.MAPS.value,
                "Cannot access Maps app. Please grant access in System Settings > "
                "Privacy & Security > Automation.",
            ) from e

    async def _open_url(self, url: str) -> None:
        await run_jxa(_OPEN_URL_JXA, {"url": url})

    async def search_locations(self, query: str, limit: int = 5) -> MapsResult:
        found = await run_jxa(_SEARCH_JXA, {"query": query}) or []
        locations = [_to_location(raw) for raw in found][:limit]
        if not locations:
            return MapsResult(success=False, message=f'No locations found for "{query}"')
        return MapsResult(
            success=True,
            message=f'Found {len(locations)} location(s) for "{query}"',
            locations=locations,
        )

    async def save_location(self, name: str, address: str) -> MapsResult:
        raw = await run_jxa(_SAVE_JXA, {"name": name, "address": address}) or {}
        locations = [_to_location(raw["location"], is_favorite=True)] if raw.get("location") else []
        return MapsResult(
            success=bool(raw.get("success")),
            message=str(raw.get("message") or f'Error saving location "{name}"'),
            locations=locations,
        )

    async def get_directions(
        self, from_address: str, to_address: str, transport_type: str = "driving"
    ) -> MapsResult:
        if transport_type not in TRANSPORT_TYPES:
            raise ValueError(f"Unsupported transport type: {transport_type}")
        await run_jxa(
            _DIRECTIONS_JXA,
            {"fromAddress": from_address, "toAddress": to_address, "transportType": transport_type},
        )
        return MapsResult(
            success=True,
            message=f'Displaying directions from "{from_address}" to "{to_address}" by {transport_type}',
            extra={
                "route": {
                    "distance": "See Maps app for details",
                    "duration": "See Maps app for details",
                    "startAddress": from_address,
                    "endAddress": to_address,
                }
            },
        )

    async def drop_pin(self, name: str, address: str) -> MapsResult:
        await run_jxa(_SHOW_ADDRESS_JXA, {"address": address})
        return MapsResult(
            success=True,
            message=(
                f'Showing "{address}" in Maps. You can now manually drop a pin by '
                'right-clicking and selecting "Drop Pin".'
            ),
        )

    async def list_guides(self) -> MapsResult:
        await self._open_url("maps://?show=guides")
        return MapsResult(success=True, message="Opened guides view in Maps", extra={"guides": []})

    async def add_to_guide(self, address: str, guide_name: str) -> MapsResult:
        await self._open_url(f"maps://?q={quote(address)}")
        return MapsResult(
            success=True,
            message=(
                f'Showing "{address}" in Maps. Add to "{guide_name}" guide by clicking '
                'location pin, "..." button, then "Add to Guide".'
            ),
            extra={"guideName": guide_name, "locationName": address},
        )

    async def create_guide(self, guide_name: str) -> MapsResult:
        await self._open_url("maps://?show=guides")
        return MapsResult(
            success=True,
            message=f'Opened guides view to create new guide "{guide_name}". Click "+" button and select "New Guide".',
            extra={"guideName": guide_name},
        )


async def create(settings: Optional[Settings] = None) -> MapsBackend:
    backend = MapsBackend()
    await backend.check_access()
    return backend
