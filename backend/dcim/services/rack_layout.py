"""
Rack unit layout.

A server anchored at ``position`` with height ``unit_height`` occupies
``position, position-1, ..., position-(unit_height-1)``. The layout walks
the rack from the top unit down to U1 and emits one slot per anchored
server plus one per empty unit; units covered by a taller server are
left out entirely so the anchor block can span them.

Placement overlaps are not detected here: the later server in the input
wins a shared anchor and hides the other's units. Writes are checked
with ``validate_placement`` instead.
"""
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional, Set, Tuple

from dcim.config import settings

logger = logging.getLogger(__name__)


class PlacementError(ValueError):
    def __init__(self, message: str, conflicts: Optional[List[Any]] = None):
        super().__init__(message)
        self.conflicts = conflicts or []


@dataclass
class RackSlot:
    unit: int
    server: Any = None
    is_empty: bool = False

    @property
    def height(self) -> int:
        if self.server is None:
            return 1
        return max(1, _attr(self.server, "unit_height") or 1)


@dataclass
class FreeSpace:
    start_unit: int   # top unit of the run
    end_unit: int     # bottom unit of the run
    size: int


@dataclass
class Availability:
    available: bool
    conflicting_servers: List[Any] = field(default_factory=list)
    free_spaces: List[FreeSpace] = field(default_factory=list)
    suggestion: Optional[Tuple[int, str]] = None


def _attr(server: Any, name: str) -> Any:
    if isinstance(server, Mapping):
        return server.get(name)
    return getattr(server, name, None)


def occupied_units(position: int, unit_height: int) -> range:
    return range(position, position - max(1, unit_height), -1)


def _placed(servers: Iterable[Any]) -> List[Any]:
    return [s for s in servers if _attr(s, "position") is not None]


def _occupied(servers: Iterable[Any]) -> Set[int]:
    units: Set[int] = set()
    for server in _placed(servers):
        units.update(occupied_units(_attr(server, "position"), _attr(server, "unit_height") or 1))
    return units


def build_rack_layout(servers: Iterable[Any], total_units: int = settings.RACK_UNITS) -> List[RackSlot]:
    servers = _placed(servers)
    occupied = _occupied(servers)
    anchors = {_attr(s, "position"): s for s in servers}

    slots: List[RackSlot] = []
    for unit in range(total_units, 0, -1):
        if unit in anchors:
            slots.append(RackSlot(unit=unit, server=anchors[unit]))
        elif unit in occupied:
            continue
        else:
            slots.append(RackSlot(unit=unit, is_empty=True))
    return slots


def rack_statistics(servers: Iterable[Any], total_units: int = settings.RACK_UNITS) -> dict:
    servers = list(servers)
    occupied = len({u for u in _occupied(servers) if 1 <= u <= total_units})
    by_status = Counter(_attr(s, "status") or "Unknown" for s in servers)
    return {
        "total_servers": len(servers),
        "occupied_units": occupied,
        "available_units": total_units - occupied,
        "utilization_percent": int(occupied * 100 / total_units + 0.5) if total_units else 0,
        "servers_by_status": dict(by_status),
    }


def find_free_spaces(servers: Iterable[Any], total_units: int = settings.RACK_UNITS) -> List[FreeSpace]:
    """Contiguous runs of free units, top of the rack first."""
    occupied = _occupied(servers)
    spaces: List[FreeSpace] = []
    start: Optional[int] = None
    for unit in range(total_units, 0, -1):
        if unit not in occupied:
            if start is None:
                start = unit
        elif start is not None:
            spaces.append(FreeSpace(start_unit=start, end_unit=unit + 1, size=start - unit))
            start = None
    if start is not None:
        spaces.append(FreeSpace(start_unit=start, end_unit=1, size=start))
    return spaces


def find_overlaps(servers: Iterable[Any]) -> List[Tuple[Any, Any]]:
    placed = _placed(servers)
    spans = [set(occupied_units(_attr(s, "position"), _attr(s, "unit_height") or 1)) for s in placed]
    overlaps = []
    for i in range(len(placed)):
        for j in range(i + 1, len(placed)):
            if spans[i] & spans[j]:
                overlaps.append((placed[i], placed[j]))
    return overlaps


def check_availability(
    servers: Iterable[Any],
    position: int,
    unit_height: int,
    total_units: int = settings.RACK_UNITS,
    exclude_id: Optional[Any] = None,
) -> Availability:
    others = [s for s in _placed(servers) if exclude_id is None or _attr(s, "id") != exclude_id]
    requested = set(occupied_units(position, unit_height))
    in_range = position <= total_units and position - unit_height + 1 >= 1

    conflicts = [
        s for s in others
        if requested & set(occupied_units(_attr(s, "position"), _attr(s, "unit_height") or 1))
    ]
    spaces = find_free_spaces(others, total_units)
    result = Availability(
        available=in_range and not conflicts,
        conflicting_servers=conflicts,
        free_spaces=spaces,
    )

    if not result.available:
        fitting = [s for s in spaces if s.size >= unit_height]
        if fitting:
            best = fitting[0]
            result.suggestion = (
                best.start_unit,
                f"Suggested position U{best.start_unit} in available {best.size}U space "
                f"(U{best.start_unit}-U{best.end_unit})",
            )
    return result


def validate_placement(
    servers: Iterable[Any],
    position: Optional[int],
    unit_height: int,
    total_units: int = settings.RACK_UNITS,
    exclude_id: Optional[Any] = None,
) -> None:
    """Raise PlacementError if the requested span leaves the rack or overlaps another server."""
    if position is None:
        return
    bottom = position - unit_height + 1
    if position > total_units or bottom < 1:
        raise PlacementError(
            f"A {unit_height}U device anchored at U{position} does not fit in a {total_units}U rack"
        )
    availability = check_availability(servers, position, unit_height, total_units, exclude_id)
    if availability.conflicting_servers:
        names = ", ".join(str(_attr(s, "hostname") or _attr(s, "id")) for s in availability.conflicting_servers)
        logger.info("Placement U%d-U%d rejected, overlaps %s", position, bottom, names)
        raise PlacementError(f"Units U{position}-U{bottom} overlap {names}", availability.conflicting_servers)
