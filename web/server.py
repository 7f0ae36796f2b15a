"""
FastAPI observer surface for the teleop link.

Read-only: nothing received here reaches the control link.

Endpoints:
  GET  /api/state   → current state snapshot (JSON)
  WS   /ws          → real-time state push
"""
import asyncio
import logging

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)


def create_app(state):
    app = FastAPI(title='Teleop Link', docs_url=None, redoc_url=None)

    # ------------------------------------------------------------------
    # REST
    # ------------------------------------------------------------------

    @app.get('/api/state')
    async def get_state():
        return state.to_dict()

    # ------------------------------------------------------------------
    # WebSocket
    # ------------------------------------------------------------------

    @app.websocket('/ws')
    async def ws_endpoint(ws: WebSocket):
        await ws.accept()
        queue: asyncio.Queue = asyncio.Queue(maxsize=20)
        state.add_subscriber(queue)
        logger.info(f'WebSocket client connected: {ws.client}')

        try:
            # Immediately push current state
            await ws.send_text(state.to_json())

            while True:
                try:
                    data = await asyncio.wait_for(queue.get(), timeout=5.0)
                    await ws.send_text(data)
                except asyncio.TimeoutError:
                    # Keepalive: push current state
                    await ws.send_text(state.to_json())
        except WebSocketDisconnect:
            pass
        except Exception as exc:
            logger.warning(f'WebSocket push error: {exc!r}')
        finally:
            state.remove_subscriber(queue)
            logger.info(f'WebSocket client disconnected: {ws.client}')

    return app
