"""
Joystick command encoder.

Every message is a full snapshot of both channels, never a delta:

  {"type": "joystick_data", "timestamp": <epoch ms>,
   "left":  {"x": <5 dp>, "y": <5 dp>},
   "right": {"x": <5 dp>, "y": <5 dp>}}

Components are rounded with the built-in round(), i.e. half-to-even on the
exact binary value. Non-finite or missing components are sent as 0.
"""
import json
import time
from typing import Callable

from state import AxisVector, normalize_axis

MESSAGE_TYPE = 'joystick_data'
PRECISION    = 5


def _round(value) -> float:
    return round(normalize_axis(value), PRECISION)


def _axis(vec: AxisVector) -> dict:
    return {'x': _round(vec.x), 'y': _round(vec.y)}


def encode(left: AxisVector, right: AxisVector,
           clock: Callable[[], float] = time.time) -> dict:
    return {
        'type':      MESSAGE_TYPE,
        'timestamp': int(clock() * 1000),
        'left':      _axis(left),
        'right':     _axis(right),
    }


def to_wire(message: dict) -> str:
    return json.dumps(message, separators=(',', ':'))
