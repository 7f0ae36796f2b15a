"""
Link manager: WebSocket client to the device.

State machine (no terminal state while running):

  CONNECTING ──open──▶ CONNECTED ──close/error──▶ DISCONNECTED
      ▲                                              │
      └──────────── retry after reconnect_delay ─────┘

A failure to open the socket is handled like a close. The retry interval is
constant and attempts are unlimited. Commands are perishable: send() only
transmits on an open socket and drops everything else.
"""
import asyncio
import logging
from typing import Callable, Optional

from websockets.asyncio.client import connect
from websockets.exceptions import ConnectionClosed
from websockets.protocol import State

from command import to_wire
from state import ConnectionState

logger = logging.getLogger(__name__)

DEFAULT_URL     = 'ws://192.168.1.50:8000/ws'
RECONNECT_DELAY = 3.0


class LinkManager:
    def __init__(self, url: str = DEFAULT_URL,
                 status_sink: Optional[Callable[[ConnectionState], None]] = None,
                 reconnect_delay: float = RECONNECT_DELAY,
                 connector=connect):
        self.url             = url
        self.reconnect_delay = reconnect_delay
        self.attempts        = 0

        self._status_sink = status_sink
        self._connector   = connector
        self._state       = ConnectionState.CONNECTING
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._ws = None
        self._task: Optional[asyncio.Task] = None
        self._retry: Optional[asyncio.TimerHandle] = None
        self._generation = 0
        self._stopped = False
        self._sends: set = set()

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def reconnect_pending(self) -> bool:
        return self._retry is not None

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def start(self) -> None:
        """Open the first socket. Must be called from the running loop."""
        if not self._stopped and (self._retry is not None or (
                self._task is not None and not self._task.done())):
            logger.debug('Link already started')
            return
        self._loop = asyncio.get_running_loop()
        self._stopped = False
        self._connect(announce=True)

    async def stop(self) -> None:
        self._stopped = True
        # Invalidate callbacks still in flight for the current socket
        self._generation += 1

        if self._retry is not None:
            self._retry.cancel()
            self._retry = None

        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        ws, self._ws = self._ws, None
        if ws is not None:
            try:
                await ws.close()
            except Exception as e:
                logger.warning(f'WebSocket close: {e!r}')

        self._set_state(ConnectionState.DISCONNECTED)
        logger.info('Link stopped')

    # ── State machine ─────────────────────────────────────────────────────────

    def _set_state(self, new: ConnectionState, announce: bool = False):
        if new is self._state and not announce:
            return
        logger.debug(f'Link {self._state.value} → {new.value}')
        self._state = new
        if self._status_sink is not None:
            self._status_sink(new)

    def _connect(self, announce: bool = False):
        self._retry = None
        if self._stopped:
            return
        self._generation += 1
        self.attempts += 1
        self._ws = None
        self._set_state(ConnectionState.CONNECTING, announce)
        logger.info(f'Connecting → {self.url} (attempt {self.attempts})')
        self._task = self._loop.create_task(self._run(self._generation))

    async def _run(self, gen: int):
        try:
            ws = await self._connector(self.url)
        except Exception as e:
            logger.warning(f'Failed to connect WebSocket: {e!r}')
            self._on_down(gen)
            return

        if gen != self._generation:
            # Superseded while opening
            await ws.close()
            return

        self._ws = ws
        self._set_state(ConnectionState.CONNECTED)
        logger.info('WebSocket connected')

        try:
            async for data in ws:
                logger.debug(f'Ignoring inbound frame ({len(data)} bytes)')
        except ConnectionClosed as e:
            logger.info(f'WebSocket disconnected: {e}')
        except Exception as e:
            logger.warning(f'WebSocket error: {e!r}')
        else:
            logger.info('WebSocket disconnected')

        self._on_down(gen)

    def _on_down(self, gen: int):
        if gen != self._generation:
            return
        self._ws = None
        self._set_state(ConnectionState.DISCONNECTED)
        if self._stopped or self._retry is not None:
            return
        logger.info(f'Reconnecting in {self.reconnect_delay:g}s')
        self._retry = self._loop.call_later(self.reconnect_delay, self._connect)

    # ── Transmission ──────────────────────────────────────────────────────────

    def send(self, message) -> bool:
        """Hand one command to the socket, or drop it if the link is not open."""
        ws = self._ws
        if (self._state is not ConnectionState.CONNECTED
                or ws is None or ws.state is not State.OPEN):
            logger.debug('Link not open, command dropped')
            return False

        text = message if isinstance(message, str) else to_wire(message)
        task = self._loop.create_task(self._send(ws, text))
        self._sends.add(task)
        task.add_done_callback(self._sends.discard)
        return True

    async def _send(self, ws, text: str):
        try:
            await ws.send(text)
        except Exception as e:
            logger.warning(f'WebSocket send: {e!r}')
