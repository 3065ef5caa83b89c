import pytest

from deskagent.core.cancellation import CancellationToken
from deskagent.core.errors import TaskCanceled
from deskagent.modules.actions.executor import ActionExecutor
from deskagent.modules.actions.types import ActionKind, ActionSpec


class _RecordingInjector:
    def __init__(self, fail_on=()):
        self.calls = []
        self.fail_on = set(fail_on)

    def _record(self, name, *args, **kwargs):
        self.calls.append((name, args, kwargs))
        if name in self.fail_on:
            raise RuntimeError(f"{name} failed")

    def move(self, x, y):
        self._record("move", x, y)

    def move_relative(self, dx, dy):
        self._record("move_relative", dx, dy)

    def click(self, button="left", double=False):
        self._record("click", button, double=double)

    def type_text(self, text, interval=0.0):
        self._record("type_text", text)

    def key_tap(self, key):
        self._record("key_tap", key)

    def key_down(self, key):
        self._record("key_down", key)

    def key_up(self, key):
        self._record("key_up", key)

    def drag_to(self, x, y):
        self._record("drag_to", x, y)

    def scroll(self, dx, dy):
        self._record("scroll", dx, dy)

    def position(self):
        return (0, 0)


def _action(seq, kind, **kwargs):
    return ActionSpec(sequence_id=seq, kind=kind.value if isinstance(kind, ActionKind) else kind, **kwargs)


def _executor(injector, **kwargs):
    return ActionExecutor(injector, action_delay=0, state_update_delay=0, **kwargs)


def _names(injector):
    return [c[0] for c in injector.calls]


@pytest.mark.asyncio
async def test_actions_run_in_sequence_order():
    injector = _RecordingInjector()
    seen = []
    executor = _executor(injector, on_action=lambda a: seen.append(a.sequence_id))

    result = await executor.execute_batch([
        _action(3, ActionKind.KEY_TAP, key_name="enter"),
        _action(1, ActionKind.MOUSE_MOVE, coordinates={"x": 5, "y": 6}),
        _action(2, ActionKind.PRINT_STRING, text="ls"),
    ], CancellationToken())

    assert _names(injector) == ["move", "type_text", "key_tap"]
    assert injector.calls[0][1] == (5, 6)
    assert seen == [1, 2, 3]
    assert result.halted_by is None


@pytest.mark.asyncio
async def test_stop_iteration_halts_batch():
    injector = _RecordingInjector()
    executor = _executor(injector)

    result = await executor.execute_batch([
        _action(1, ActionKind.MOUSE_CLICK_LEFT),
        _action(2, ActionKind.STOP_ITERATION),
        _action(3, ActionKind.MOUSE_CLICK_RIGHT),
    ], CancellationToken())

    assert injector.calls == [("click", ("left",), {"double": False})]
    assert result.halted_by == ActionKind.STOP_ITERATION
    assert [a.sequence_id for a in result.skipped] == [3]
    assert not result.state_update_requested


@pytest.mark.asyncio
async def test_state_update_requests_new_snapshot():
    executor = _executor(_RecordingInjector())
    result = await executor.execute_batch([_action(1, ActionKind.STATE_UPDATE)], CancellationToken())
    assert result.state_update_requested


@pytest.mark.asyncio
async def test_repeat_replays_executed_range():
    injector = _RecordingInjector()
    executor = _executor(injector)

    await executor.execute_batch([
        _action(1, ActionKind.KEY_TAP, key_name="down"),
        _action(2, ActionKind.KEY_TAP, key_name="tab"),
        _action(3, ActionKind.REPEAT, range=(1, 2), repeat_count=2),
        _action(4, ActionKind.REPEAT, range=(5, 9), repeat_count=3),
    ], CancellationToken())

    keys = [c[1][0] for c in injector.calls]
    assert keys == ["down", "tab", "down", "tab", "down", "tab"]


@pytest.mark.asyncio
async def test_unknown_kind_skipped_and_injection_errors_logged():
    injector = _RecordingInjector(fail_on={"move"})
    executor = _executor(injector)

    result = await executor.execute_batch([
        _action(1, "teleport"),
        _action(2, ActionKind.MOUSE_MOVE),
        _action(3, ActionKind.SCROLL_SMOOTH, coordinates={"x": 0, "y": -3}),
    ], CancellationToken())

    assert [a.kind for a in result.skipped] == ["teleport"]
    assert [a.sequence_id for a in result.executed] == [2, 3]
    assert _names(injector) == ["move", "scroll"]


@pytest.mark.asyncio
async def test_canceled_token_stops_before_first_action():
    injector = _RecordingInjector()
    token = CancellationToken()
    token.cancel()

    with pytest.raises(TaskCanceled):
        await _executor(injector).execute_batch([_action(1, ActionKind.MOUSE_CLICK_LEFT)], token)
    assert injector.calls == []
