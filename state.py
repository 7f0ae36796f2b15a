import asyncio
import json
import math
import time
import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class Channel(Enum):
    LEFT  = 'left'
    RIGHT = 'right'


class ConnectionState(Enum):
    CONNECTING   = 'connecting'
    CONNECTED    = 'connected'
    DISCONNECTED = 'disconnected'


def normalize_axis(value) -> float:
    """Coerce one axis component into a finite float in [-1, 1].

    Missing, non-numeric and non-finite values become 0.0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return max(-1.0, min(1.0, value))


@dataclass(frozen=True)
class AxisVector:
    x: float = 0.0
    y: float = 0.0

    @classmethod
    def from_event(cls, data) -> 'AxisVector':
        """Build a vector from a mapping or an object with optional x / y."""
        if isinstance(data, AxisVector):
            return cls(normalize_axis(data.x), normalize_axis(data.y))
        if isinstance(data, dict):
            x, y = data.get('x'), data.get('y')
        elif isinstance(data, (tuple, list)):
            x = data[0] if len(data) > 0 else None
            y = data[1] if len(data) > 1 else None
        else:
            x, y = getattr(data, 'x', None), getattr(data, 'y', None)
        return cls(normalize_axis(x), normalize_axis(y))


ZERO = AxisVector()


class TeleopState:
    """Last-known vector per channel plus the published link state.

    The pair of vectors is stored as a single tuple, so a reader always gets
    both channels from the same moment.
    """

    def __init__(self):
        self._axes: Tuple[AxisVector, AxisVector] = (ZERO, ZERO)
        self.connection: ConnectionState = ConnectionState.CONNECTING
        self.last_input: float = 0.0

        self._subscribers: list = []

    @property
    def left(self) -> AxisVector:
        return self._axes[0]

    @property
    def right(self) -> AxisVector:
        return self._axes[1]

    def snapshot(self) -> Tuple[AxisVector, AxisVector]:
        return self._axes

    def update(self, channel: Channel, vector) -> AxisVector:
        vec = AxisVector.from_event(vector)
        self._set(channel, vec)
        return vec

    def stop(self, channel: Channel) -> None:
        self._set(channel, ZERO)

    def _set(self, channel: Channel, vec: AxisVector):
        left, right = self._axes
        if channel is Channel.LEFT:
            self._axes = (vec, right)
        else:
            self._axes = (left, vec)
        self.last_input = time.monotonic()
        self._broadcast_sync()

    def set_connection(self, conn: ConnectionState):
        if conn is self.connection:
            return
        self.connection = conn
        self._broadcast_sync()

    # ── Observers ────────────────────────────────────────────────────────────

    def _broadcast_sync(self):
        data = self.to_json()
        for q in self._subscribers[:]:
            try:
                q.put_nowait(data)
            except asyncio.QueueFull:
                pass

    def add_subscriber(self, q):
        self._subscribers.append(q)

    def remove_subscriber(self, q):
        try:
            self._subscribers.remove(q)
        except ValueError:
            pass

    def to_dict(self) -> dict:
        return {
            'connection':  self.connection.value,
            'left':        dataclasses.asdict(self.left),
            'right':       dataclasses.asdict(self.right),
            'server_time': time.time(),
            'input_age':   (time.monotonic() - self.last_input)
                           if self.last_input > 0 else -1,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())
