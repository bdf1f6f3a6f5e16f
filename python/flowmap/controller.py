"""Polling lifecycle that turns flow/matrix snapshots into view models."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum, unique
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Set, Tuple

from .config import DashboardConfig
from .errors import FlowMapError
from .graph import GraphBuilder
from .sequence import CycleSequence
from .layout import circular_layout
from .listeners import FlowSource, RenderListener
from .matrix import passthrough
from .records import FlowSnapshot
from .stats import summarize
from .viewmodel import ViewModel, ViewModelEmitter

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[Any]]


@unique
class RefreshPhase(Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    RENDERED = "rendered"
    ERRORED = "errored"


@dataclass
class RefreshState:
    selected_namespace: Optional[str] = None
    timer: Optional["asyncio.Task[None]"] = None
    phase: RefreshPhase = RefreshPhase.IDLE
    last_view: Optional[ViewModel] = None
    last_error: Optional[str] = None
    namespace_options: List[str] = field(default_factory=list)


class RefreshController:
    """Owns the refresh timer and runs fetch-aggregate-emit cycles.

    Each cycle is stamped with a sequence number. Only the most recently
    started cycle may publish results; anything older that settles later is
    dropped. Stopping or restarting cancels the timer but leaves in-flight
    fetches to finish on their own.
    """

    def __init__(
        self,
        source: FlowSource,
        listener: RenderListener,
        config: Optional[DashboardConfig] = None,
        *,
        emitter: Optional[ViewModelEmitter] = None,
        builder: Optional[GraphBuilder] = None,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        self.config = config or DashboardConfig()
        self._source = source
        self._listener = listener
        self._emitter = emitter or ViewModelEmitter()
        self._builder = builder or GraphBuilder()
        self._sleep = sleep
        self._sequence = CycleSequence()
        self._cycles: Set["asyncio.Task[Optional[ViewModel]]"] = set()
        self._state = RefreshState(selected_namespace=self.config.initial_namespace or None)

    # ------------------------------------------------------------------
    @property
    def phase(self) -> RefreshPhase:
        return self._state.phase

    @property
    def selected_namespace(self) -> Optional[str]:
        return self._state.selected_namespace

    @property
    def last_view(self) -> Optional[ViewModel]:
        return self._state.last_view

    @property
    def last_error(self) -> Optional[str]:
        return self._state.last_error

    @property
    def namespace_options(self) -> Tuple[str, ...]:
        return tuple(self._state.namespace_options)

    def is_running(self) -> bool:
        return self._state.timer is not None

    # ------------------------------------------------------------------
    def start(self) -> "asyncio.Task[None]":
        """Run a cycle now and every ``refresh_interval`` seconds after.

        Must be called from a running event loop. Any previous timer is
        cancelled first.
        """
        self._cancel_timer()
        timer = asyncio.get_running_loop().create_task(self._run_timer())
        self._state.timer = timer
        logger.info(
            "Auto refresh started (interval %.1fs, namespace=%s)",
            self.config.refresh_interval,
            self._state.selected_namespace or "all",
        )
        return timer

    def stop(self) -> None:
        """Cancel the timer and return to idle. Safe to call repeatedly."""
        was_running = self._cancel_timer()
        # Results of cycles still in flight must not render after a stop.
        self._sequence.invalidate()
        self._state.phase = RefreshPhase.IDLE
        if was_running:
            logger.info("Auto refresh stopped")

    def set_namespace_filter(self, namespace: Optional[str]) -> "asyncio.Task[Optional[ViewModel]]":
        """Change the namespace filter and refresh immediately, off the timer."""
        self._state.selected_namespace = namespace or None
        logger.info("Namespace filter set to %s", self._state.selected_namespace or "all")
        return self._spawn_cycle()

    def retry(self) -> "asyncio.Task[Optional[ViewModel]]":
        """Run one out-of-band cycle with the current filter."""
        return self._spawn_cycle()

    def export_url(self, fmt: str = "json") -> str:
        return self._source.export_url(fmt, self._state.selected_namespace)

    async def drain(self) -> None:
        """Wait for every cycle started so far to settle."""
        while self._cycles:
            await asyncio.gather(*list(self._cycles), return_exceptions=True)

    # ------------------------------------------------------------------
    async def refresh(self) -> Optional[ViewModel]:
        """Run one fetch-aggregate-emit cycle.

        Returns the published view model, or ``None`` when the cycle failed
        or was superseded by a newer one.
        """
        sequence = self._sequence.issue()
        self._state.phase = RefreshPhase.FETCHING
        namespace = self._state.selected_namespace
        logger.debug("Cycle %d fetching (namespace=%s)", sequence, namespace or "all")

        flows_task = asyncio.ensure_future(self._source.fetch_flows(namespace))
        matrix_task = asyncio.ensure_future(self._source.fetch_matrix(namespace))
        flows_payload, matrix_payload = await asyncio.gather(
            flows_task, matrix_task, return_exceptions=True
        )

        if not self._is_current(sequence):
            logger.debug("Discarding stale cycle %d (latest is %d)", sequence, self._sequence.latest)
            return None

        for outcome in (flows_payload, matrix_payload):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, BaseException):
                self._fail(sequence, outcome)
                return None

        try:
            view_model = self._build_view_model(sequence, namespace, flows_payload, matrix_payload)
        except Exception as exc:
            self._fail(sequence, exc)
            return None

        self._state.last_view = view_model
        self._state.last_error = None
        self._state.phase = RefreshPhase.RENDERED
        logger.debug(
            "Cycle %d rendered %d nodes, %d edges, %d matrix rows",
            sequence,
            len(view_model.graph.nodes),
            len(view_model.graph.edges),
            len(view_model.matrix),
        )
        self._notify_rendered(view_model)
        return view_model

    # ------------------------------------------------------------------
    def _build_view_model(
        self,
        sequence: int,
        namespace: Optional[str],
        flows_payload: Any,
        matrix_payload: Any,
    ) -> ViewModel:
        snapshot = FlowSnapshot.from_payload(flows_payload)

        graph = self._builder.build(snapshot.records)
        circular_layout(graph, self.config.width, self.config.height)
        stats = summarize(snapshot.records, snapshot.namespaces)
        matrix = passthrough(matrix_payload)
        self._populate_namespace_options(snapshot.namespaces)

        return self._emitter.emit(
            graph,
            matrix,
            stats,
            namespace_options=self._state.namespace_options,
            selected_namespace=namespace,
            records=snapshot.records,
            sequence=sequence,
        )

    def _populate_namespace_options(self, namespaces: Sequence[str]) -> None:
        # Options are filled once; a filtered response must not shrink the list.
        if self._state.namespace_options:
            return
        self._state.namespace_options.extend(sorted(namespaces))

    def _fail(self, sequence: int, exc: BaseException) -> None:
        if isinstance(exc, FlowMapError):
            message = str(exc)
            logger.error("Cycle %d failed: %s", sequence, message)
        else:
            message = f"Unexpected error: {exc}"
            logger.error("Cycle %d failed unexpectedly", sequence, exc_info=exc)

        self._state.last_error = message
        self._state.phase = RefreshPhase.ERRORED
        self._notify_error(message)

    def _is_current(self, sequence: int) -> bool:
        return self._sequence.is_current(sequence)

    def _spawn_cycle(self) -> "asyncio.Task[Optional[ViewModel]]":
        task = asyncio.get_running_loop().create_task(self.refresh())
        self._cycles.add(task)
        task.add_done_callback(self._cycles.discard)
        return task

    async def _run_timer(self) -> None:
        while True:
            self._spawn_cycle()
            await self._sleep(self.config.refresh_interval)

    def _cancel_timer(self) -> bool:
        timer = self._state.timer
        self._state.timer = None
        if timer is None:
            return False
        timer.cancel()
        return True

    # ------------------------------------------------------------------
    def _notify_rendered(self, view_model: ViewModel) -> None:
        try:
            self._listener.on_rendered(view_model)
        except Exception:
            logger.exception("Render listener raised an exception")

    def _notify_error(self, message: str) -> None:
        try:
            self._listener.on_error(message)
        except Exception:
            logger.exception("Error listener raised an exception")


__all__ = ["RefreshPhase", "RefreshState", "RefreshController"]
