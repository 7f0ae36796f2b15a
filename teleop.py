import logging
import time
from typing import Callable

from command import encode
from state import Channel, TeleopState

logger = logging.getLogger(__name__)


class TeleopController:
    """Input-event handlers: update one channel, then send both."""

    def __init__(self, state: TeleopState, link,
                 clock: Callable[[], float] = time.time):
        self.state = state
        self.link  = link
        self.clock = clock

    def on_move(self, channel: Channel, vector) -> bool:
        self.state.update(channel, vector)
        return self._send_snapshot()

    def on_stop(self, channel: Channel) -> bool:
        self.state.stop(channel)
        return self._send_snapshot()

    def stop_all(self) -> bool:
        self.state.stop(Channel.LEFT)
        self.state.stop(Channel.RIGHT)
        logger.info('All channels stopped')
        return self._send_snapshot()

    def _send_snapshot(self) -> bool:
        left, right = self.state.snapshot()
        return self.link.send(encode(left, right, self.clock))
