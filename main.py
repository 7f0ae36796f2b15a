#!/usr/bin/env python3
import argparse
import asyncio
import logging
from pathlib import Path

import yaml
import uvicorn

from state import TeleopState
from link import LinkManager, DEFAULT_URL, RECONNECT_DELAY
from teleop import TeleopController
from joystick import JoystickHandler
from web.server import create_app

logger = logging.getLogger('main')


def setup_logging(level: str = 'INFO'):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s  %(levelname)-7s  %(name)s: %(message)s',
        datefmt='%H:%M:%S',
    )


def load_config(path: str, overrides: dict) -> dict:
    cfg = {}
    p = Path(path)
    if p.exists():
        cfg = yaml.safe_load(p.read_text()) or {}
    cfg.update({k: v for k, v in overrides.items() if v is not None})
    return cfg


async def run(cfg: dict):
    url             = cfg.get('url',             DEFAULT_URL)
    reconnect_delay = cfg.get('reconnect_delay', RECONNECT_DELAY)
    web_host        = cfg.get('web_host',        '127.0.0.1')
    web_port        = cfg.get('web_port',        8080)

    state = TeleopState()
    link = LinkManager(url, status_sink=state.set_connection,
                       reconnect_delay=reconnect_delay)
    controller = TeleopController(state, link)

    loop = asyncio.get_running_loop()
    link.start()

    joystick = JoystickHandler(controller, cfg.get('joystick') or {})
    joystick.set_loop(loop)
    joystick.start()

    app = create_app(state)
    uv_cfg = uvicorn.Config(
        app,
        host=web_host,
        port=web_port,
        log_level='warning',
        loop='none',
    )
    server = uvicorn.Server(uv_cfg)
    logger.info(f'Web  http://{web_host}:{web_port}')

    try:
        await server.serve()
    finally:
        joystick.stop()
        await link.stop()
        logger.info('Shutdown complete')


def main():
    parser = argparse.ArgumentParser(description='Teleop link')
    parser.add_argument('--config',          default='config.yaml')
    parser.add_argument('--url',             default=None)
    parser.add_argument('--reconnect-delay', type=float, default=None)
    parser.add_argument('--web-port',        type=int, default=None)
    parser.add_argument('--log-level',       default='INFO')
    args = parser.parse_args()

    setup_logging(args.log_level)

    cfg = load_config(args.config, {
        'url':             args.url,
        'reconnect_delay': args.reconnect_delay,
        'web_port':        args.web_port,
    })

    try:
        asyncio.run(run(cfg))
    except KeyboardInterrupt:
        logger.info('Stopped by user')


if __name__ == '__main__':
    main()
