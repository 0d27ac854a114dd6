"""
Tests for the rack unit layout engine (services/rack_layout.py).
"""
import pytest

from dcim.services.rack_layout import (
    PlacementError,
    build_rack_layout,
    check_availability,
    find_free_spaces,
    find_overlaps,
    occupied_units,
    rack_statistics,
    validate_placement,
)


def server(id, position, unit_height=1, status="Active", hostname=None):
    return {
        "id": id,
        "hostname": hostname or f"srv-{id}",
        "position": position,
        "unit_height": unit_height,
        "status": status,
    }


def covered(slots):
    return sum(slot.height for slot in slots)


class TestOccupancy:
    def test_counts_downward_from_anchor(self):
        assert list(occupied_units(10, 3)) == [10, 9, 8]

    def test_zero_height_counts_as_one(self):
        assert list(occupied_units(5, 0)) == [5]


class TestLayout:
    def test_empty_rack(self):
        slots = build_rack_layout([])
        assert len(slots) == 42
        assert all(s.is_empty for s in slots)
        assert [s.unit for s in slots] == list(range(42, 0, -1))

    def test_two_unit_server_at_position_ten(self):
        slots = build_rack_layout([server(1, 10, 2)])
        assert len(slots) == 41
        units = [s.unit for s in slots]
        assert 9 not in units

        anchor = next(s for s in slots if s.unit == 10)
        assert anchor.server["id"] == 1
        assert anchor.height == 2
        assert not anchor.is_empty

        # order is strictly descending and nothing is emitted for U9
        assert units == sorted(units, reverse=True)
        assert units.index(10) + 1 == units.index(8)

    def test_four_unit_server_at_position_twenty(self):
        slots = build_rack_layout([server(1, 20, 4)])
        units = [s.unit for s in slots]
        assert len(slots) == 39
        for covered_unit in (19, 18, 17):
            assert covered_unit not in units

        anchor = slots[units.index(20)]
        assert anchor.height == 4
        assert units[units.index(20) + 1] == 16
        assert next(s for s in slots if s.unit == 16).is_empty

    def test_heights_cover_rack(self):
        servers = [server(1, 42, 4), server(2, 30, 2), server(3, 1), server(4, 20, 10)]
        slots = build_rack_layout(servers)
        assert covered(slots) == 42
        anchors = [s for s in slots if not s.is_empty]
        assert len(anchors) == len(servers)
        assert len(slots) == len(servers) + (42 - (4 + 2 + 1 + 10))

    def test_unpositioned_servers_are_not_placed(self):
        slots = build_rack_layout([server(1, None), server(2, 5)])
        assert len(slots) == 42
        assert [s.server["id"] for s in slots if s.server] == [2]

    def test_shared_anchor_last_wins(self):
        slots = build_rack_layout([server(1, 5, 2), server(2, 5, 1)])
        anchor = next(s for s in slots if s.unit == 5)
        assert anchor.server["id"] == 2
        # U4 is still covered by the first server and is not emitted
        assert 4 not in [s.unit for s in slots]

    def test_overlap_renders_silently(self):
        slots = build_rack_layout([server(1, 10, 3), server(2, 9, 1)])
        # both anchors are drawn, the remaining covered unit is not
        assert [s.unit for s in slots if s.unit in (10, 9, 8)] == [10, 9]
        assert 8 not in [s.unit for s in slots]
        assert next(s for s in slots if s.unit == 9).server["id"] == 2

    def test_custom_rack_height(self):
        slots = build_rack_layout([server(1, 12, 2)], total_units=12)
        assert slots[0].unit == 12
        assert covered(slots) == 12

    def test_accepts_objects(self):
        class Row:
            def __init__(self, position, unit_height):
                self.id = 7
                self.position = position
                self.unit_height = unit_height

        slots = build_rack_layout([Row(3, 2)])
        assert next(s for s in slots if s.unit == 3).height == 2


class TestStatistics:
    def test_counts(self):
        stats = rack_statistics([
            server(1, 42, 2),
            server(2, 10, 1, status="Maintenance"),
            server(3, None, status="Maintenance"),
        ])
        assert stats["total_servers"] == 3
        assert stats["occupied_units"] == 3
        assert stats["available_units"] == 39
        assert stats["utilization_percent"] == 7
        assert stats["servers_by_status"] == {"Active": 1, "Maintenance": 2}

    def test_utilization_rounds_half_up(self):
        # 21 of 42 units
        stats = rack_statistics([server(1, 42, 21)])
        assert stats["utilization_percent"] == 50

    def test_empty(self):
        stats = rack_statistics([])
        assert stats["occupied_units"] == 0
        assert stats["utilization_percent"] == 0


class TestFreeSpaces:
    def test_empty_rack_is_one_run(self):
        spaces = find_free_spaces([])
        assert [(s.start_unit, s.end_unit, s.size) for s in spaces] == [(42, 1, 42)]

    def test_runs_top_down(self):
        spaces = find_free_spaces([server(1, 40, 2), server(2, 10, 5)])
        assert [(s.start_unit, s.end_unit, s.size) for s in spaces] == [
            (42, 41, 2),
            (38, 11, 28),
            (5, 1, 5),
        ]

    def test_full_rack(self):
        assert find_free_spaces([server(1, 42, 42)]) == []


class TestAvailability:
    def test_free_position(self):
        result = check_availability([server(1, 10, 2)], 20, 2)
        assert result.available
        assert result.conflicting_servers == []
        assert result.suggestion is None

    def test_conflict_and_suggestion(self):
        occupant = server(1, 42, 4, hostname="db-01")
        result = check_availability([occupant], 41, 2)
        assert not result.available
        assert [s["hostname"] for s in result.conflicting_servers] == ["db-01"]
        position, message = result.suggestion
        assert position == 38
        assert "U38" in message

    def test_exclude_self(self):
        me = server(1, 10, 2)
        assert check_availability([me], 10, 2, exclude_id=1).available
        assert not check_availability([me], 10, 2).available

    @pytest.mark.parametrize("position,height", [(1, 2), (43, 1), (42, 43)])
    def test_out_of_range(self, position, height):
        result = check_availability([], position, height)
        assert not result.available
        assert result.conflicting_servers == []

    def test_no_space_no_suggestion(self):
        result = check_availability([server(1, 42, 42)], 10, 1)
        assert not result.available
        assert result.suggestion is None


class TestPlacement:
    def test_overlaps(self):
        a, b, c = server(1, 10, 3), server(2, 8, 1), server(3, 20)
        assert find_overlaps([a, b, c]) == [(a, b)]

    def test_valid_placement(self):
        validate_placement([server(1, 10, 2)], 8, 2)
        validate_placement([server(1, 10, 2)], None, 2)

    def test_overlap_rejected(self):
        with pytest.raises(PlacementError) as exc:
            validate_placement([server(1, 10, 2, hostname="web-01")], 9, 1)
        assert [s["hostname"] for s in exc.value.conflicts] == ["web-01"]
        assert "web-01" in str(exc.value)

    def test_out_of_rack_rejected(self):
        with pytest.raises(PlacementError, match="does not fit"):
            validate_placement([], 2, 3)
