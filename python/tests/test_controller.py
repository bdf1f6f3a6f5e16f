from __future__ import annotations

import asyncio
import json
from typing import Dict, List, Optional

import pytest

from flowmap import (
    DashboardConfig,
    RefreshController,
    RefreshPhase,
    ResponseError,
    StaticFlowSource,
    TransportError,
)
from flowmap.sources import DEMO_NAMESPACES


def _flow(src_ns: str, src_pod: str, dst_ns: str, dst_pod: str, verdict: str = "FORWARDED") -> Dict:
    return {
        "source_namespace": src_ns,
        "source_pod": src_pod,
        "destination_namespace": dst_ns,
        "destination_pod": dst_pod,
        "destination_port": 80,
        "protocol": "TCP",
        "verdict": verdict,
        "bytes_sent": 500,
        "bytes_received": 500,
    }


class FakeSource:
    """Flow source whose calls can be held open and made to fail."""

    def __init__(self, flows: Optional[List[Dict]] = None, namespaces: Optional[List[str]] = None) -> None:
        self.flows = flows if flows is not None else [_flow("ns-a", "pod1", "ns-b", "pod2")]
        self.namespaces = namespaces if namespaces is not None else ["ns-b", "ns-a"]
        self.matrix: List[Dict] = [{"source": "ns-a/pod1", "destination": "ns-b/pod2", "port": 80}]
        self.flow_calls: List[Optional[str]] = []
        self.matrix_calls: List[Optional[str]] = []
        self.flow_gates: Dict[int, asyncio.Event] = {}
        self.matrix_gates: Dict[int, asyncio.Event] = {}
        self.completed: List[str] = []
        self.flows_error: Optional[BaseException] = None
        self.matrix_error: Optional[BaseException] = None

    async def fetch_flows(self, namespace: Optional[str] = None):
        self.flow_calls.append(namespace)
        gate = self.flow_gates.get(len(self.flow_calls))
        if gate is not None:
            await gate.wait()
        self.completed.append("flows")
        if self.flows_error is not None:
            raise self.flows_error
        return {"total_flows": len(self.flows), "flows": list(self.flows), "namespaces": list(self.namespaces)}

    async def fetch_matrix(self, namespace: Optional[str] = None):
        self.matrix_calls.append(namespace)
        gate = self.matrix_gates.get(len(self.matrix_calls))
        if gate is not None:
            await gate.wait()
        self.completed.append("matrix")
        if self.matrix_error is not None:
            raise self.matrix_error
        return list(self.matrix)

    def export_url(self, fmt: str, namespace: Optional[str] = None) -> str:
        return f"/export?format={fmt}&namespace={namespace}"


class CapturingListener:
    def __init__(self) -> None:
        self.views = []
        self.errors: List[str] = []

    def on_rendered(self, view_model) -> None:
        self.views.append(view_model)

    def on_error(self, message: str) -> None:
        self.errors.append(message)


class ManualSleep:
    """Stand-in for ``asyncio.sleep`` that only wakes up on :meth:`tick`."""

    def __init__(self) -> None:
        self.waiters: List[asyncio.Future] = []

    async def __call__(self, delay: float) -> None:
        future = asyncio.get_running_loop().create_future()
        self.waiters.append(future)
        await future

    def live(self) -> List[asyncio.Future]:
        return [future for future in self.waiters if not future.done()]

    def tick(self) -> None:
        for future in self.live():
            future.set_result(None)


async def _settle(rounds: int = 20) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


def _controller(source, listener, sleep=None, **config) -> RefreshController:
    return RefreshController(
        source,
        listener,
        DashboardConfig(**config),
        sleep=sleep or ManualSleep(),
    )


def test_refresh_renders_demo_data():
    listener = CapturingListener()

    async def scenario():
        controller = _controller(StaticFlowSource(), listener)
        view = await controller.refresh()
        return controller, view

    controller, view = asyncio.run(scenario())

    assert controller.phase is RefreshPhase.RENDERED
    assert listener.views == [view]
    assert view.stats.total_flows == 5
    assert view.stats.total_bytes == 11904
    assert view.stats.forwarded_count == 5
    assert view.stats.namespace_count == 8
    assert len(view.graph.nodes) == 9
    assert len(view.graph.edges) == 5
    assert len(view.matrix) == 5
    assert all(node.position is not None for node in view.graph.nodes.values())
    assert view.namespace_options == tuple(sorted(DEMO_NAMESPACES))
    assert controller.namespace_options == view.namespace_options


def test_empty_snapshot_renders_empty_graph():
    listener = CapturingListener()
    source = FakeSource(flows=[], namespaces=[])

    view = asyncio.run(_controller(source, listener).refresh())

    assert view.graph.nodes == {}
    assert view.graph.edges == []
    assert (view.stats.total_flows, view.stats.total_bytes) == (0, 0)
    assert (view.stats.forwarded_count, view.stats.dropped_count) == (0, 0)


def test_both_fetches_are_issued_before_either_completes():
    listener = CapturingListener()
    source = FakeSource()

    async def scenario():
        flows_gate = asyncio.Event()
        matrix_gate = asyncio.Event()
        source.flow_gates[1] = flows_gate
        source.matrix_gates[1] = matrix_gate
        controller = _controller(source, listener)
        task = asyncio.ensure_future(controller.refresh())
        await _settle()
        issued = (len(source.flow_calls), len(source.matrix_calls), list(source.completed))
        phase = controller.phase
        flows_gate.set()
        await _settle()
        rendered_early = bool(listener.views)
        matrix_gate.set()
        await task
        return issued, phase, rendered_early

    issued, phase, rendered_early = asyncio.run(scenario())

    assert issued == (1, 1, [])
    assert phase is RefreshPhase.FETCHING
    assert rendered_early is False
    assert len(listener.views) == 1


def test_matrix_failure_fails_cycle_and_keeps_last_view():
    listener = CapturingListener()
    source = FakeSource()

    async def scenario():
        controller = _controller(source, listener)
        first = await controller.refresh()
        source.matrix_error = ResponseError("HTTP 503", status_code=503)
        second = await controller.refresh()
        return controller, first, second

    controller, first, second = asyncio.run(scenario())

    assert second is None
    assert controller.phase is RefreshPhase.ERRORED
    assert listener.views == [first]
    assert listener.errors == ["HTTP 503"]
    assert controller.last_view is first
    assert controller.last_error == "HTTP 503"


def test_unexpected_fetch_error_is_reported():
    listener = CapturingListener()
    source = FakeSource()
    source.flows_error = KeyError("boom")

    asyncio.run(_controller(source, listener).refresh())

    assert len(listener.errors) == 1
    assert listener.errors[0].startswith("Unexpected error:")


def test_stale_cycle_result_is_discarded():
    listener = CapturingListener()
    source = FakeSource()

    async def scenario():
        slow_gate = asyncio.Event()
        source.flow_gates[1] = slow_gate
        controller = _controller(source, listener)
        slow = asyncio.ensure_future(controller.refresh())
        await _settle()
        fast = await controller.refresh()
        slow_gate.set()
        stale = await slow
        return controller, fast, stale

    controller, fast, stale = asyncio.run(scenario())

    assert stale is None
    assert fast is not None
    assert listener.views == [fast]
    assert controller.last_view is fast
    assert controller.phase is RefreshPhase.RENDERED


def test_stale_failure_is_discarded_too():
    listener = CapturingListener()
    source = FakeSource()

    async def scenario():
        slow_gate = asyncio.Event()
        source.matrix_gates[1] = slow_gate
        controller = _controller(source, listener)
        slow = asyncio.ensure_future(controller.refresh())
        await _settle()
        await controller.refresh()
        source.matrix_error = TransportError("connection reset")
        slow_gate.set()
        await slow
        return controller

    controller = asyncio.run(scenario())

    assert listener.errors == []
    assert controller.phase is RefreshPhase.RENDERED


def test_start_twice_leaves_one_timer():
    listener = CapturingListener()
    source = FakeSource()
    sleep = ManualSleep()

    async def scenario():
        controller = _controller(source, listener, sleep=sleep)
        first_timer = controller.start()
        await _settle()
        second_timer = controller.start()
        await _settle()
        calls_after_start = len(source.flow_calls)
        live_timers = len(sleep.live())

        sleep.tick()
        await _settle()
        calls_after_tick = len(source.flow_calls)

        controller.stop()
        await _settle()
        await controller.drain()
        return controller, first_timer, second_timer, calls_after_start, live_timers, calls_after_tick

    controller, first, second, after_start, live, after_tick = asyncio.run(scenario())

    assert first.cancelled()
    assert second.cancelled()
    assert after_start == 2
    assert live == 1
    assert after_tick == 3
    assert controller.phase is RefreshPhase.IDLE
    assert not controller.is_running()


def test_stop_is_idempotent_and_discards_in_flight_cycle():
    listener = CapturingListener()
    source = FakeSource()

    async def scenario():
        gate = asyncio.Event()
        source.flow_gates[1] = gate
        controller = _controller(source, listener)
        controller.stop()
        controller.start()
        await _settle()
        controller.stop()
        controller.stop()
        gate.set()
        await controller.drain()
        return controller

    controller = asyncio.run(scenario())

    assert controller.phase is RefreshPhase.IDLE
    assert listener.views == []
    assert listener.errors == []


def test_failures_do_not_stop_polling():
    listener = CapturingListener()
    source = FakeSource()
    source.flows_error = TransportError("Failed to fetch /api/cilium/flows")
    sleep = ManualSleep()

    async def scenario():
        controller = _controller(source, listener, sleep=sleep)
        controller.start()
        await _settle()
        phase_after_failure = controller.phase
        source.flows_error = None
        sleep.tick()
        await _settle()
        running = controller.is_running()
        controller.stop()
        await controller.drain()
        return phase_after_failure, running

    phase_after_failure, running = asyncio.run(scenario())

    assert phase_after_failure is RefreshPhase.ERRORED
    assert running is True
    assert listener.errors == ["Failed to fetch /api/cilium/flows"]
    assert len(listener.views) == 1


def test_namespace_filter_triggers_out_of_band_cycle():
    listener = CapturingListener()
    source = FakeSource()
    sleep = ManualSleep()

    async def scenario():
        controller = _controller(source, listener, sleep=sleep)
        timer = controller.start()
        await _settle()
        waiters_before = len(sleep.waiters)
        view = await controller.set_namespace_filter("ns-a")
        cleared = await controller.set_namespace_filter("")
        state = (controller._state.timer is timer, len(sleep.waiters) == waiters_before)
        controller.stop()
        await controller.drain()
        return view, cleared, state, controller

    view, cleared, (same_timer, no_reschedule), controller = asyncio.run(scenario())

    assert source.flow_calls == [None, "ns-a", None]
    assert source.matrix_calls == [None, "ns-a", None]
    assert view.selected_namespace == "ns-a"
    assert cleared.selected_namespace is None
    assert controller.selected_namespace is None
    assert same_timer and no_reschedule


def test_namespace_options_populate_once():
    listener = CapturingListener()
    source = FakeSource(namespaces=["ns-b", "ns-a", "ns-c"])

    async def scenario():
        controller = _controller(source, listener)
        first = await controller.refresh()
        source.namespaces = ["ns-a"]
        second = await controller.set_namespace_filter("ns-a")
        return first, second

    first, second = asyncio.run(scenario())

    assert first.namespace_options == ("ns-a", "ns-b", "ns-c")
    assert second.namespace_options == ("ns-a", "ns-b", "ns-c")
    assert second.selected_namespace == "ns-a"
    assert second.stats.namespace_count == 1


def test_empty_namespace_list_allows_later_population():
    listener = CapturingListener()
    source = FakeSource(namespaces=[])

    async def scenario():
        controller = _controller(source, listener)
        await controller.refresh()
        source.namespaces = ["ns-z", "ns-y"]
        return await controller.retry()

    view = asyncio.run(scenario())

    assert view.namespace_options == ("ns-y", "ns-z")


def test_initial_namespace_comes_from_config():
    listener = CapturingListener()
    source = FakeSource()

    async def scenario():
        controller = _controller(source, listener, initial_namespace="ns-b")
        await controller.refresh()
        return controller

    controller = asyncio.run(scenario())

    assert source.flow_calls == ["ns-b"]
    assert controller.export_url("csv") == "/export?format=csv&namespace=ns-b"


def test_listener_errors_are_contained():
    class ExplodingListener(CapturingListener):
        def on_rendered(self, view_model) -> None:
            raise RuntimeError("renderer broke")

    listener = ExplodingListener()

    async def scenario():
        controller = _controller(FakeSource(), listener)
        view = await controller.refresh()
        return controller, view

    controller, view = asyncio.run(scenario())

    assert view is not None
    assert controller.phase is RefreshPhase.RENDERED


@pytest.mark.parametrize("verdict", ["AUDIT", "bogus"])
def test_other_verdicts_are_not_counted(verdict):
    listener = CapturingListener()
    source = FakeSource(
        flows=[
            _flow("a", "x", "b", "y"),
            _flow("a", "x", "b", "y", verdict="DROPPED"),
            _flow("a", "x", "b", "z", verdict=verdict),
        ]
    )

    view = asyncio.run(_controller(source, listener).refresh())

    assert view.stats.total_flows == 3
    assert view.stats.forwarded_count + view.stats.dropped_count == 2


def test_overflowing_counters_render_with_defaults():
    listener = CapturingListener()
    row = json.loads(
        '{"source_namespace": "ns-a", "source_pod": "pod1",'
        ' "destination_namespace": "ns-b", "destination_pod": "pod2",'
        ' "destination_port": 80, "bytes_sent": 1e999, "bytes_received": 500}'
    )
    source = FakeSource(flows=[row])
    source.matrix = json.loads('[{"source": "ns-a/pod1", "destination": "ns-b/pod2", "bytes_total": 1e999}]')

    async def scenario():
        controller = _controller(source, listener)
        view = await controller.refresh()
        return controller, view

    controller, view = asyncio.run(scenario())

    assert listener.errors == []
    assert controller.phase is RefreshPhase.RENDERED
    assert view.stats.total_bytes == 500
    assert view.matrix[0].bytes_total == 0


def test_out_of_band_cycles_need_a_running_loop():
    controller = _controller(FakeSource(), CapturingListener())

    with pytest.raises(RuntimeError):
        controller.retry()
    with pytest.raises(RuntimeError):
        controller.set_namespace_filter("ns-a")
