"""
Tests for the force-directed layout engine.
"""

import asyncio
import math

import pytest

from graphlens.layout import ALPHA_MIN, REHEAT_ALPHA, LayoutEngine, LayoutState
from graphlens.model import EdgeDescriptor, GraphSnapshot, NodeDescriptor


def make_snapshot(node_ids, links=()):
    return GraphSnapshot(
        [NodeDescriptor(nid) for nid in node_ids],
        [EdgeDescriptor(f'{s}-{t}', s, t) for s, t in links],
    )


def run_until_stopped(engine, limit=2000):
    ticks = 0
    while engine.tick():
        ticks += 1
        assert ticks < limit, "layout never settled"
    return ticks


@pytest.fixture
def engine():
    return LayoutEngine(800, 600)


@pytest.fixture
def chain():
    return make_snapshot(['a', 'b', 'c'], [('a', 'b'), ('b', 'c')])


class TestSync:

    def test_positions_for_every_node(self, engine, chain):
        engine.sync(chain)
        assert set(engine.positions) == {'a', 'b', 'c'}

    def test_ids_stable_across_ticks(self, engine, chain):
        engine.sync(chain)
        for _ in range(20):
            engine.tick()
            assert set(engine.positions) == {'a', 'b', 'c'}

    def test_seeds_are_used(self, engine):
        engine.sync(make_snapshot(['a']), seeds={'a': (150, 150)})
        pos = engine.position('a')
        assert (pos.x, pos.y) == (150, 150)

    def test_survivors_keep_position(self, engine, chain):
        engine.sync(chain)
        for _ in range(10):
            engine.tick()
        before = engine.position('a')
        engine.sync(make_snapshot(['a', 'b', 'c', 'd'], [('a', 'b')]))
        after = engine.position('a')
        assert (after.x, after.y) == (before.x, before.y)

    def test_removed_nodes_are_discarded(self, engine, chain):
        engine.sync(chain)
        engine.sync(make_snapshot(['a', 'c']))
        assert set(engine.positions) == {'a', 'c'}

    def test_all_new_nodes_start_hot(self, engine, chain):
        engine.sync(chain)
        assert engine.alpha == 1.0

    def test_partial_change_reheats(self, engine, chain):
        engine.sync(chain)
        run_until_stopped(engine)
        engine.sync(make_snapshot(['a', 'b', 'c', 'd'], [('a', 'b'), ('b', 'c')]))
        assert engine.alpha == pytest.approx(REHEAT_ALPHA)
        assert engine.state is LayoutState.RUNNING

    def test_self_loops_and_dangling_edges_are_not_springs(self, engine):
        snap = GraphSnapshot(
            [NodeDescriptor('a'), NodeDescriptor('b')],
            [
                EdgeDescriptor('aa', 'a', 'a'),
                EdgeDescriptor('ab', 'a', 'b'),
                EdgeDescriptor('ax', 'a', 'x'),
            ],
        )
        engine.sync(snap)
        assert engine.simulation.link_count == 1


class TestLifecycle:

    def test_state_transitions(self, engine, chain):
        assert engine.state is LayoutState.STOPPED
        engine.sync(chain)
        assert engine.state is LayoutState.RUNNING
        while engine.alpha >= 0.05:
            engine.tick()
        assert engine.state is LayoutState.COOLING
        run_until_stopped(engine)
        assert engine.state is LayoutState.STOPPED
        assert engine.alpha < ALPHA_MIN

    def test_zero_edges_stops_in_bounded_ticks(self, engine):
        engine.sync(make_snapshot([str(i) for i in range(8)]))
        ticks = run_until_stopped(engine, limit=400)
        assert ticks > 0

    def test_tick_when_stopped_is_noop(self, engine, chain):
        engine.sync(chain)
        engine.stop()
        before = engine.positions
        assert engine.tick() is False
        assert engine.positions == before

    def test_listener_receives_every_tick(self, engine, chain):
        received = []
        engine.add_listener(received.append)
        engine.sync(chain)
        engine.tick()
        engine.tick()
        assert len(received) == 2
        assert set(received[-1]) == {'a', 'b', 'c'}
        engine.remove_listener(received.append)
        engine.tick()
        assert len(received) == 2

    def test_autorun_settles_on_event_loop(self, chain):
        engine = LayoutEngine(800, 600, interval=0, autorun=True)

        async def scenario():
            engine.sync(chain)
            for _ in range(5000):
                if engine.state is LayoutState.STOPPED:
                    break
                await asyncio.sleep(0)
            return engine.state

        assert asyncio.run(scenario()) is LayoutState.STOPPED
        assert engine.tick_count > 0

    def test_sync_without_loop_does_not_tick(self, chain):
        engine = LayoutEngine(autorun=True)
        engine.sync(chain)
        assert engine.tick_count == 0
        assert engine.state is LayoutState.RUNNING

    def test_empty_snapshot_does_not_run(self, engine, chain):
        engine.sync(GraphSnapshot())
        assert engine.state is LayoutState.STOPPED
        engine.sync(chain)
        assert engine.state is LayoutState.RUNNING
        engine.sync(GraphSnapshot())
        assert engine.state is LayoutState.STOPPED
        assert engine.positions == {}
        assert engine.tick() is False


class TestPhysics:

    def test_singletons_spread_around_centre(self, engine):
        engine.sync(make_snapshot(['a', 'b', 'c', 'd', 'e']))
        run_until_stopped(engine)
        points = [(p.x, p.y) for p in engine.positions.values()]
        for i, (x1, y1) in enumerate(points):
            for x2, y2 in points[i + 1:]:
                assert math.hypot(x1 - x2, y1 - y2) > 20
        cx = sum(x for x, _ in points) / len(points)
        cy = sum(y for _, y in points) / len(points)
        assert cx == pytest.approx(400, abs=1e-3)
        assert cy == pytest.approx(300, abs=1e-3)

    def test_positions_are_finite(self, engine):
        # Coincident seeds must not produce NaN
        engine.sync(make_snapshot(['a', 'b'], [('a', 'b')]), seeds={'a': (100, 100), 'b': (100, 100)})
        for _ in range(50):
            engine.tick()
        for pos in engine.positions.values():
            assert math.isfinite(pos.x) and math.isfinite(pos.y)


class TestPinning:

    def test_pinned_node_follows_pointer_every_tick(self, engine, chain):
        engine.sync(chain)
        assert engine.pin('b', 50, 60)
        for i in range(10):
            engine.move_pin(50 + i, 60 + i)
            engine.tick()
            pos = engine.position('b')
            assert (pos.x, pos.y) == (50 + i, 60 + i)
            assert pos.pinned
            assert (pos.vx, pos.vy) == (0.0, 0.0)

    def test_pin_keeps_simulation_warm(self, engine, chain):
        engine.sync(chain)
        run_until_stopped(engine)
        engine.pin('a', 10, 10)
        for _ in range(500):
            assert engine.tick()
        assert engine.alpha > ALPHA_MIN

    def test_unpin_releases(self, engine, chain):
        engine.sync(chain)
        engine.pin('a', 10, 10)
        engine.tick()
        assert engine.unpin() == 'a'
        assert engine.pinned_id is None
        engine.tick()
        released = engine.position('a')
        assert not released.pinned
        # Forces act on the node again: its spring to b pulls it off the pin point
        assert (released.vx, released.vy) != (0.0, 0.0)
        for _ in range(5):
            engine.tick()
        moved = engine.position('a')
        assert math.hypot(moved.x - 10, moved.y - 10) > 1
        run_until_stopped(engine)

    def test_pin_unknown_node(self, engine, chain):
        engine.sync(chain)
        assert engine.pin('missing', 0, 0) is False
        assert engine.move_pin(1, 1) is False
        assert engine.unpin() is None

    def test_removing_pinned_node_releases_pin(self, engine, chain):
        engine.sync(chain)
        engine.pin('b', 10, 10)
        engine.sync(make_snapshot(['a', 'c']))
        assert engine.pinned_id is None
        run_until_stopped(engine)
