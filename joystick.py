"""
Joystick input handler.

일반적인 게임패드 기준 축 배치:
  axis 0 : 왼쪽 스틱 X   → left.x
  axis 1 : 왼쪽 스틱 Y   → left.y
  axis 3 : 오른쪽 스틱 X → right.x
  axis 4 : 오른쪽 스틱 Y → right.y

The polling thread never touches TeleopState. Each stick is turned into
on_move events while displaced and one on_stop when it returns to centre,
posted to the event loop with call_soon_threadsafe.

Config keys:
  left_x, left_y   : 왼쪽 스틱 축         (default 0, 1)
  right_x, right_y : 오른쪽 스틱 축       (default 3, 4)
  deadzone         : 축 데드존            (default 0.05)
  invert_y         : Y 축 반전 (위 = +)   (default True)
  rate_hz          : 폴링 주기            (default 50)
"""
import time
import threading
import logging
from typing import Optional

from state import AxisVector, Channel, ZERO

logger = logging.getLogger(__name__)

try:
    import pygame
    _HAS_PYGAME = True
except ImportError:
    _HAS_PYGAME = False
    logger.warning('pygame not installed, joystick disabled')


class JoystickHandler:
    def __init__(self, controller, cfg: dict):
        self.controller = controller
        self.axes = {
            Channel.LEFT:  [cfg.get('left_x', 0),  cfg.get('left_y', 1)],
            Channel.RIGHT: [cfg.get('right_x', 3), cfg.get('right_y', 4)],
        }
        self.deadzone = cfg.get('deadzone', 0.05)
        self.invert_y = cfg.get('invert_y', True)
        self.period   = 1.0 / cfg.get('rate_hz', 50.0)

        self._joystick: Optional[object] = None
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._loop = None
        self._last = {Channel.LEFT: ZERO, Channel.RIGHT: ZERO}

    def start(self):
        if not _HAS_PYGAME:
            return
        self._running = True
        self._thread = threading.Thread(target=self._run, name='joystick', daemon=True)
        self._thread.start()

    def stop(self):
        self._running = False
        if self._thread:
            self._thread.join(timeout=2.0)

    def set_loop(self, loop):
        self._loop = loop

    # ------------------------------------------------------------------

    def _run(self):
        pygame.init()
        pygame.joystick.init()

        while self._running:
            if self._joystick is None:
                self._try_connect()
                if self._joystick is None:
                    time.sleep(1.0)
                continue

            # event.pump() 실패 = 하드웨어 단절. 나머지 오류와 분리.
            try:
                pygame.event.pump()
            except pygame.error as e:
                logger.warning(f'Joystick disconnected: {e}')
                self._on_disconnect()
                continue

            if pygame.joystick.get_count() == 0:
                logger.warning('Joystick disconnected')
                self._on_disconnect()
                continue

            for channel in (Channel.LEFT, Channel.RIGHT):
                self._post_event(self._diff(channel, self._read_channel(channel)))

            time.sleep(self.period)

        pygame.quit()

    def _try_connect(self):
        pygame.joystick.quit()
        pygame.joystick.init()
        if pygame.joystick.get_count() == 0:
            return

        joy = pygame.joystick.Joystick(0)
        joy.init()
        self._joystick = joy
        logger.info(f'Joystick connected: {joy.get_name()}')

        self._validate_config(joy.get_numaxes())

    def _validate_config(self, num_axes: int):
        """접속 직후 한 번만 실행. 잘못된 axis 인덱스를 조기에 잡는다."""
        for channel, idx in self.axes.items():
            for i, (name, axis) in enumerate(zip('xy', idx)):
                if axis is not None and axis >= num_axes:
                    logger.error(
                        f'{channel.value}_{name}={axis} out of range '
                        f'(joystick has {num_axes} axes), axis disabled'
                    )
                    idx[i] = None

    def _read_channel(self, channel: Channel) -> AxisVector:
        ix, iy = self.axes[channel]
        x = self._apply_deadzone(self._joystick.get_axis(ix)) if ix is not None else 0.0
        y = self._apply_deadzone(self._joystick.get_axis(iy)) if iy is not None else 0.0
        if self.invert_y:
            y = -y
        return AxisVector(x, y)

    def _diff(self, channel: Channel, vec: AxisVector):
        """Event for one channel sample, or None when nothing changed."""
        last = self._last[channel]
        if vec == last:
            return None
        self._last[channel] = vec
        if vec == ZERO:
            return ('stop', channel, vec)
        return ('move', channel, vec)

    def _post_event(self, event):
        if event is None or self._loop is None:
            return
        kind, channel, vec = event
        if kind == 'stop':
            self._loop.call_soon_threadsafe(self.controller.on_stop, channel)
        else:
            self._loop.call_soon_threadsafe(self.controller.on_move, channel, vec)

    def _on_disconnect(self):
        self._joystick = None
        self._last = {Channel.LEFT: ZERO, Channel.RIGHT: ZERO}
        if self._loop is not None:
            self._loop.call_soon_threadsafe(self.controller.stop_all)

    def _apply_deadzone(self, value: float) -> float:
        if abs(value) < self.deadzone:
            return 0.0
        sign = 1 if value > 0 else -1
        return sign * (abs(value) - self.deadzone) / (1.0 - self.deadzone)
