import pytest

from joystick import JoystickHandler
from state import AxisVector, Channel, ZERO


class FakeLoop:
    def __init__(self):
        self.calls = []

    def call_soon_threadsafe(self, fn, *args):
        self.calls.append((fn, args))


class Controller:
    def on_move(self, channel, vector):
        pass

    def on_stop(self, channel):
        pass

    def stop_all(self):
        pass


class FakeJoystick:
    def __init__(self, axes):
        self.axes = axes

    def get_axis(self, i):
        return self.axes[i]


def make_handler(**cfg):
    handler = JoystickHandler(Controller(), cfg)
    loop = FakeLoop()
    handler.set_loop(loop)
    return handler, loop


def test_deadzone_rescales_outside_and_zeroes_inside():
    handler, _ = make_handler(deadzone=0.1)
    assert handler._apply_deadzone(0.05) == 0.0
    assert handler._apply_deadzone(-0.09) == 0.0
    assert handler._apply_deadzone(1.0) == pytest.approx(1.0)
    assert handler._apply_deadzone(-0.55) == pytest.approx(-0.5)


def test_read_channel_maps_axes_and_inverts_y():
    handler, _ = make_handler(deadzone=0.0)
    handler._joystick = FakeJoystick([0.25, -0.5, 0.0, 0.75, 1.0])
    assert handler._read_channel(Channel.LEFT) == AxisVector(0.25, 0.5)
    assert handler._read_channel(Channel.RIGHT) == AxisVector(0.75, -1.0)


def test_move_then_single_stop_on_release():
    handler, _ = make_handler()
    vec = AxisVector(0.5, 0.0)
    assert handler._diff(Channel.LEFT, vec) == ('move', Channel.LEFT, vec)
    assert handler._diff(Channel.LEFT, vec) is None
    assert handler._diff(Channel.LEFT, ZERO) == ('stop', Channel.LEFT, ZERO)
    assert handler._diff(Channel.LEFT, ZERO) is None


def test_channels_are_tracked_independently():
    handler, _ = make_handler()
    handler._diff(Channel.LEFT, AxisVector(0.1, 0.1))
    assert handler._diff(Channel.RIGHT, ZERO) is None
    assert handler._diff(Channel.RIGHT, AxisVector(0.0, 0.2))[0] == 'move'


def test_events_are_posted_to_the_loop():
    handler, loop = make_handler()
    ctl = handler.controller
    vec = AxisVector(0.3, 0.0)
    handler._post_event(('move', Channel.RIGHT, vec))
    handler._post_event(('stop', Channel.RIGHT, ZERO))
    handler._post_event(None)
    assert loop.calls == [
        (ctl.on_move, (Channel.RIGHT, vec)),
        (ctl.on_stop, (Channel.RIGHT,)),
    ]


def test_device_loss_stops_all_channels():
    handler, loop = make_handler()
    handler._diff(Channel.LEFT, AxisVector(0.4, 0.4))
    handler._on_disconnect()
    assert loop.calls == [(handler.controller.stop_all, ())]
    assert handler._diff(Channel.LEFT, ZERO) is None


def test_out_of_range_axes_are_disabled():
    handler, _ = make_handler(right_x=3, right_y=4)
    handler._validate_config(num_axes=4)
    assert handler.axes[Channel.LEFT] == [0, 1]
    assert handler.axes[Channel.RIGHT] == [3, None]

    handler._joystick = FakeJoystick([0.0, 0.0, 0.0, 0.6])
    assert handler._read_channel(Channel.RIGHT).y == 0.0
