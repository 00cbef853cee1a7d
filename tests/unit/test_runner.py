"""
Tests for stepped and asyncio-driven layout runs.

Tests cover:
- Explicit step-at-a-time driving
- Stop/cancel semantics (no further steps, no rollback)
- Tick and completion callbacks
- Scheduling on a running asyncio loop
"""

import asyncio

import pytest

from gforce.graph.abstraction import Node
from gforce.layout.gforce import GForceLayout
from gforce.layout.runner import LayoutStatus


@pytest.fixture
def stepped_layout(cycle_graph) -> GForceLayout:
    """Animated layout over the 5-cycle; no data executed yet."""
    layout = GForceLayout(seed=5)
    layout.nodes = cycle_graph.nodes
    layout.edges = cycle_graph.edges
    return layout


def _positions(nodes):
    return [(node.x, node.y) for node in nodes]


# =============================================================================
# Explicit Stepping Tests
# =============================================================================

class TestStepping:
    """Tests for runs stepped by the caller."""

    def test_execute_without_loop_waits_for_steps(self, stepped_layout):
        run = stepped_layout.execute()

        assert run.status == LayoutStatus.INITIALIZING
        assert run.iteration == 0

        run.step()
        assert run.iteration == 1
        assert run.movement is not None and run.movement >= 0

    def test_steps_until_done(self, stepped_layout):
        run = stepped_layout.execute()
        while not run.done:
            run.step()

        assert run.status in (LayoutStatus.CONVERGED, LayoutStatus.EXHAUSTED)
        assert run.iteration <= stepped_layout.config.max_iteration

    def test_step_after_done_is_noop(self, stepped_layout):
        stepped_layout.update_config(max_iteration=2, min_movement=0)
        run = stepped_layout.execute()
        run.run_all()
        before = _positions(stepped_layout.nodes)

        assert run.step() == LayoutStatus.EXHAUSTED
        assert run.iteration == 2
        assert _positions(stepped_layout.nodes) == before

    def test_zero_iteration_cap(self, stepped_layout):
        stepped_layout.update_config(max_iteration=0)
        run = stepped_layout.execute()

        assert run.step() == LayoutStatus.EXHAUSTED
        assert run.iteration == 0

    def test_worker_enabled_runs_synchronously(self, stepped_layout):
        stepped_layout.update_config(worker_enabled=True)
        run = stepped_layout.execute()

        assert run.done


# =============================================================================
# Stop Tests
# =============================================================================

class TestStop:
    """Tests for cancellation."""

    def test_stop_prevents_further_steps(self, stepped_layout):
        ended = []
        stepped_layout.update_config(on_layout_end=lambda: ended.append(True))
        run = stepped_layout.execute()
        run.step()
        run.step()
        stepped_layout.stop()
        stopped_at = _positions(stepped_layout.nodes)

        assert run.status == LayoutStatus.STOPPED
        assert run.step() == LayoutStatus.STOPPED
        assert run.iteration == 2
        assert _positions(stepped_layout.nodes) == stopped_at
        assert ended == []

    def test_new_execute_stops_previous_run(self, stepped_layout):
        first = stepped_layout.execute()
        first.step()
        second = stepped_layout.execute()

        assert first.status == LayoutStatus.STOPPED
        assert second is stepped_layout.current_run
        assert not second.done

    def test_destroy_stops_run(self, stepped_layout):
        run = stepped_layout.execute()
        stepped_layout.destroy()

        assert run.status == LayoutStatus.STOPPED
        assert stepped_layout.nodes == []


# =============================================================================
# Callback Tests
# =============================================================================

class TestCallbacks:
    """Tests for tick and completion callbacks."""

    def test_tick_called_every_step(self, stepped_layout):
        ticks = []
        ended = []
        stepped_layout.update_config(
            max_iteration=3,
            min_movement=0,
            tick=lambda: ticks.append(True),
            on_layout_end=lambda: ended.append(True),
        )
        run = stepped_layout.execute()
        run.run_all()

        assert len(ticks) == 3
        assert ended == [True]

    def test_tick_disabled(self, stepped_layout):
        ticks = []
        stepped_layout.update_config(
            max_iteration=3,
            tick=lambda: ticks.append(True),
            enable_tick=False,
        )
        stepped_layout.execute().run_all()

        assert ticks == []

    def test_tick_can_stop_run(self, stepped_layout):
        def tick():
            if stepped_layout.current_run.iteration >= 4:
                stepped_layout.stop()

        stepped_layout.update_config(tick=tick)
        run = stepped_layout.execute()
        run.run_all()

        assert run.status == LayoutStatus.STOPPED
        assert run.iteration == 4


# =============================================================================
# asyncio Tests
# =============================================================================

class TestAsyncio:
    """Tests for runs scheduled on an event loop."""

    def test_run_async_completes(self, stepped_layout):
        ended = []
        stepped_layout.update_config(on_layout_end=lambda: ended.append(True))

        run = asyncio.run(stepped_layout.run_async())

        assert run.status in (LayoutStatus.CONVERGED, LayoutStatus.EXHAUSTED)
        assert ended == [True]

    def test_execute_inside_loop_schedules_task(self, stepped_layout):
        async def main():
            run = stepped_layout.execute()
            assert run.iteration == 0
            return await run.wait()

        status = asyncio.run(main())

        assert status in (LayoutStatus.CONVERGED, LayoutStatus.EXHAUSTED)

    def test_steps_interleave_with_other_tasks(self, stepped_layout):
        stepped_layout.update_config(max_iteration=20, min_movement=0)
        seen = []

        async def observer(run):
            while not run.done:
                seen.append(run.iteration)
                await asyncio.sleep(0)

        async def main():
            run = stepped_layout.execute()
            await asyncio.gather(run.wait(), observer(run))
            return run

        run = asyncio.run(main())

        assert run.iteration == 20
        assert len(seen) > 1
        assert seen == sorted(seen)

    def test_stop_cancels_scheduled_run(self, stepped_layout):
        async def main():
            run = stepped_layout.execute()
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            stepped_layout.stop()
            return run, await run.wait()

        run, status = asyncio.run(main())

        assert status == LayoutStatus.STOPPED
        assert run.iteration < stepped_layout.config.max_iteration

    def test_wait_timeout_leaves_run_going(self):
        nodes = [Node(id=str(i)) for i in range(60)]
        layout = GForceLayout(seed=2, max_iteration=10000, min_movement=0)
        layout.nodes = nodes

        async def main():
            run = layout.execute()
            with pytest.raises(asyncio.TimeoutError):
                await asyncio.wait_for(run.wait(), 0.05)
            still_running = not run.done
            layout.stop()
            return run, still_running, await run.wait()

        run, still_running, status = asyncio.run(main())

        assert still_running
        assert status == LayoutStatus.STOPPED
        assert 0 < run.iteration < 10000

    def test_cancelling_run_async_stops_run(self):
        nodes = [Node(id=str(i)) for i in range(60)]
        layout = GForceLayout(seed=2, max_iteration=10000, min_movement=0)
        layout.nodes = nodes

        async def main():
            task = asyncio.ensure_future(layout.run_async())
            await asyncio.sleep(0.02)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
            run = layout.current_run
            return run, await run.wait()

        run, status = asyncio.run(main())

        assert status == LayoutStatus.STOPPED
        assert run.iteration < 10000

    def test_wait_drives_unscheduled_run(self, stepped_layout):
        stepped_layout.update_config(max_iteration=5, min_movement=0)
        run = stepped_layout.execute()

        status = asyncio.run(run.wait())

        assert status == LayoutStatus.EXHAUSTED
        assert run.iteration == 5

    def test_single_node_async(self):
        node = Node(id="solo")
        layout = GForceLayout(center=(1, 2))
        layout.nodes = [node]

        run = asyncio.run(layout.run_async())

        assert run.done
        assert (node.x, node.y) == (1.0, 2.0)
