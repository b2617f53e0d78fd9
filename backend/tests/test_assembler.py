"""Option assembly and pricing tests"""

import pytest

from metro_commute.config import PlannerConfig
from metro_commute.models.types import CommuteOption, Leg, LegType, Point
from metro_commute.services.assembler import (
    annotate_leg,
    annotate_option,
    assemble,
    driving_option,
    ensure_minimum_options,
    estimate_duration,
    jeepney_option,
    rank_options,
    walking_option,
)
from metro_commute.services.candidates import find_candidates, split_candidates
from metro_commute.services.transfers import find_transfers


class TestOptionBuilders:

    def test_walking_option(self, source, dest):
        option = walking_option(source, dest)

        assert option.type == "walking"
        assert len(option.legs) == 1
        assert option.legs[0].name == "Walk to destination"
        assert option.legs[0].path == (source.to_coord(), dest.to_coord())
        assert option.total_distance == pytest.approx(5.56, abs=0.01)

    def test_driving_option(self, source, dest):
        option = driving_option(source, dest)

        assert option.type == "driving"
        assert option.legs[0].type == LegType.DRIVING
        assert option.legs[0].name == "Drive to destination"

    def test_jeepney_option_through_midpoint(self, source, dest):
        option = jeepney_option(source, dest)
        leg = option.legs[0]

        assert option.type == "jeepney"
        assert leg.type == LegType.TRANSIT
        assert leg.mode == "jeepney"
        assert leg.ref == "J1"
        assert leg.path == ((0.0, 0.0), (0.025, 0.0), (0.05, 0.0))


class TestEnsureMinimumOptions:
    """ensure_minimum_options"""

    def test_empty_list(self, source, dest, config):
        options = ensure_minimum_options([], source, dest, config)
        assert [o.type for o in options] == ["driving", "jeepney", "walking"]

    def test_walking_only(self, source, dest, config):
        options = ensure_minimum_options([walking_option(source, dest)], source, dest, config)
        assert [o.type for o in options] == ["walking", "driving", "jeepney"]

    def test_two_options_gets_driving_only(self, source, dest, config):
        existing = [walking_option(source, dest), jeepney_option(source, dest)]
        options = ensure_minimum_options(existing, source, dest, config)
        assert [o.type for o in options] == ["walking", "jeepney", "driving"]

    def test_enough_options_unchanged(self, source, dest, config):
        existing = [walking_option(source, dest)] * 3
        assert ensure_minimum_options(existing, source, dest, config) is existing


class TestAssemble:
    """assemble"""

    @pytest.mark.asyncio
    async def test_transfer_network(self, transfer_store, source, dest, config):
        async with transfer_store.session() as session:
            candidates = await find_candidates(session, source, dest, config)
            direct, source_side, dest_side = split_candidates(candidates, config)
            transfers = await find_transfers(session, source_side, dest_side, config)

        options = assemble(source, dest, direct, transfers, config)

        assert [o.type for o in options] == ["transfer", "walking", "driving"]
        transfer = options[0]
        assert [leg.name for leg in transfer.legs] == [
            "Ride Tricycle/Walk",
            "Taft Bus",
            "Transfer walk",
            "Divisoria Jeepney",
            "Ride Tricycle/Walk",
        ]
        assert [leg.mode for leg in transfer.legs] == ["walking", "bus", "walking", "jeepney", "walking"]
        assert transfer.legs[1].ref == "B1"

    @pytest.mark.asyncio
    async def test_direct_network(self, direct_store, source, dest, config):
        async with direct_store.session() as session:
            candidates = await find_candidates(session, source, dest, config)
        direct, _, _ = split_candidates(candidates, config)

        options = assemble(source, dest, direct, [], config)

        assert [o.type for o in options] == ["transit", "walking", "driving"]
        ride = options[0].legs[1]
        assert ride.name == "Espana Jeepney"
        assert ride.path[0] == pytest.approx((0.0, 0.001), abs=1e-6)
        assert ride.path[-1] == pytest.approx((0.05, 0.001), abs=1e-6)

    def test_no_routes(self, source, dest, config):
        options = assemble(source, dest, [], [], config)
        assert [o.type for o in options] == ["walking", "driving", "jeepney"]


class TestAnnotate:
    """annotate_leg / annotate_option"""

    def test_estimate_duration(self, config):
        assert estimate_duration("walking", 5.0, config) == pytest.approx(3600.0)
        assert estimate_duration("jeepney", 15.0, config) == pytest.approx(3600.0)
        assert estimate_duration("ferry", 10.0, config) == pytest.approx(3600.0)

    def test_walking_leg_free(self, config):
        leg = Leg(type=LegType.WALKING, mode="walking", name="w", path=((0.0, 0.0), (0.01, 0.0)), distance=1.0)
        annotated = annotate_leg(leg, True, config)

        assert annotated.fare == 0
        assert annotated.duration == pytest.approx(720.0)

    def test_driving_never_discounted(self, config):
        leg = Leg(type=LegType.DRIVING, mode="driving", name="d", path=((0.0, 0.0), (0.01, 0.0)), distance=2.0)
        assert annotate_leg(leg, True, config).fare == 30

    def test_transit_bus_type_from_name(self, config):
        path = ((0.0, 0.0), (0.01, 0.0))
        p2p = Leg(type=LegType.TRANSIT, mode="bus", name="P2P Makati", path=path, distance=3.0)
        ordinary = Leg(type=LegType.TRANSIT, mode="bus", name="Taft Bus", path=path, distance=3.0)

        assert annotate_leg(p2p, False, config).fare == 50
        assert annotate_leg(ordinary, False, config).fare == 15
        assert annotate_leg(ordinary, True, config).fare == 12

    def test_routed_duration_kept(self, config):
        leg = Leg(type=LegType.WALKING, mode="walking", name="w", path=((0.0, 0.0), (0.01, 0.0)), distance=1.0, duration=42.0)
        assert annotate_leg(leg, False, config).duration == 42.0

    def test_path_validated(self, config):
        leg = Leg(type=LegType.TRANSIT, mode="jeepney", name="J", path=((0.0, 0.0), (0.05, 0.0)), distance=5.56)
        annotated = annotate_leg(leg, False, config)
        assert len(annotated.path) > 2

    def test_option_totals(self, source, dest, config):
        option = jeepney_option(source, dest)
        annotated = annotate_option(option, False, config)

        # 5.56 km: 13 + 1 * 1.80
        assert annotated.total_fare == 15
        assert annotated.total_distance == pytest.approx(5.56, abs=0.01)
        assert annotated.duration == pytest.approx(5.56 / 15 * 3600, rel=0.01)


class TestRankOptions:

    def test_by_total_distance_stable(self):
        a = CommuteOption(type="a", legs=(), total_distance=2.0)
        b = CommuteOption(type="b", legs=(), total_distance=1.0)
        c = CommuteOption(type="c", legs=(), total_distance=2.0)

        assert [o.type for o in rank_options([a, b, c])] == ["b", "a", "c"]
