"""
Layout Run Handle

Drives a force layout from Initializing through Stepping to a terminal
state. A run can be stepped explicitly (one iteration per call, for any
external timer or idle loop), scheduled on the running asyncio loop, or
run to completion synchronously. stop() prevents any further step and
leaves node positions as they are.

Usage:
    run = layout.execute()          # animate=True
    while not run.done:
        run.step()
        redraw()

    # or, inside a coroutine
    run = layout.execute()          # scheduled on the running loop
    await run.wait()
"""

import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .gforce import GForceLayout

logger = logging.getLogger(__name__)

LOG_EVERY = 50


class LayoutStatus(Enum):
    """Lifecycle of a layout run."""
    INITIALIZING = "initializing"
    STEPPING = "stepping"
    CONVERGED = "converged"  # Mean movement fell below min_movement
    EXHAUSTED = "exhausted"  # Hit max_iteration first
    STOPPED = "stopped"  # Cancelled, or failed with an error

    @property
    def is_terminal(self) -> bool:
        return self in (LayoutStatus.CONVERGED, LayoutStatus.EXHAUSTED, LayoutStatus.STOPPED)


class LayoutRun:
    """One execution of a layout, from the first step to a terminal state."""

    def __init__(self, layout: "GForceLayout"):
        self.layout = layout
        self.status = LayoutStatus.INITIALIZING
        self.iteration = 0  # Steps completed
        self.movement: Optional[float] = None  # Mean displacement of the last step
        self._task: Optional[asyncio.Task] = None
        self._end_notified = False

    @property
    def done(self) -> bool:
        return self.status.is_terminal

    def __repr__(self) -> str:
        return (
            f"LayoutRun(status={self.status.value}, iteration={self.iteration}, "
            f"movement={self.movement})"
        )

    # =========================================================================
    # Stepping
    # =========================================================================

    def step(self) -> LayoutStatus:
        """Run a single iteration and return the resulting status.

        Does nothing once the run has reached a terminal state. An exception
        raised by the step stops the run and propagates.
        """
        if self.done:
            return self.status

        layout = self.layout
        config = layout.config
        if config.max_iteration <= self.iteration:
            self.finish(LayoutStatus.EXHAUSTED)
            return self.status

        self.status = LayoutStatus.STEPPING
        iteration = self.iteration
        try:
            previous = layout.run_one_step(iteration)
            self.iteration += 1
            self.movement = layout.mean_displacement(previous)
            if config.enable_tick and config.tick is not None:
                config.tick()
        except Exception:
            self.status = LayoutStatus.STOPPED
            raise

        if self.done:
            # tick() stopped the run
            return self.status

        if logger.isEnabledFor(logging.DEBUG) and iteration % LOG_EVERY == 0:
            logger.debug("Iteration %d: movement=%.4f", iteration, self.movement)

        if self.movement < config.min_movement:
            logger.debug(
                "Converged at iteration %d: movement=%.4f < %.4f",
                iteration, self.movement, config.min_movement,
            )
            self.finish(LayoutStatus.CONVERGED)
        elif self.iteration >= config.max_iteration:
            logger.warning(
                "Layout did not converge after %d iterations (movement=%.4f). "
                "Consider increasing max_iteration or min_movement.",
                self.iteration, self.movement,
            )
            self.finish(LayoutStatus.EXHAUSTED)

        return self.status

    def run_all(self) -> LayoutStatus:
        """Step back-to-back until the run ends."""
        while not self.done:
            self.step()
        return self.status

    def finish(self, status: LayoutStatus):
        """Enter a terminal state, firing on_layout_end once for completions."""
        self.status = status
        if status == LayoutStatus.STOPPED or self._end_notified:
            return
        self._end_notified = True
        on_layout_end = self.layout.config.on_layout_end
        if on_layout_end is not None:
            on_layout_end()

    def stop(self):
        """Prevent any further step. Positions are not rolled back.

        A scheduled task notices the terminal status on its next loop turn
        and exits normally.
        """
        if not self.done:
            logger.debug("Layout run stopped at iteration %d", self.iteration)
            self.status = LayoutStatus.STOPPED

    # =========================================================================
    # asyncio scheduling
    # =========================================================================

    def start(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> asyncio.Task:
        """Schedule the run on an event loop, one step per loop turn.

        Args:
            loop: Loop to schedule on; defaults to the running loop

        Returns:
            The task driving the run
        """
        if self._task is not None:
            return self._task
        if loop is None:
            loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._drive())
        return self._task

    def start_if_loop_running(self) -> Optional[asyncio.Task]:
        """Schedule on the running loop if there is one.

        Without a running loop the caller is expected to call step().
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; run must be stepped by the caller")
            return None
        return self.start()

    async def wait(self) -> LayoutStatus:
        """Wait for the run to reach a terminal state.

        Steps the run itself when it was never scheduled. Cancelling the
        waiter (e.g. a timeout) does not cancel a scheduled run.
        """
        if self._task is None:
            await self._drive()
        else:
            await asyncio.shield(self._task)
        return self.status

    async def _drive(self):
        try:
            while not self.done:
                self.step()
                await asyncio.sleep(0)
        except asyncio.CancelledError:
            if not self.done:
                self.status = LayoutStatus.STOPPED
            raise

