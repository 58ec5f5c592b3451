"""Application entrypoint wiring for the live spectrograph.

Builds the config and engine, then starts either the Qt window or the headless
FastAPI server. This module must not contain UI or transport logic beyond
orchestration.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

from live_spectrograph import __version__
from live_spectrograph.config import SpectrographConfig, parse_wavelengths
from live_spectrograph.engine import Engine
from live_spectrograph.transport.loopback import LoopbackTransport

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="live-spectrograph",
        description="Live bar chart of spectrometer readings received over MQTT",
    )
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    ap.add_argument("--broker", dest="broker_url", help="Broker URL, e.g. wss://public.cloud.shiftr.io")
    ap.add_argument("--topic", help="Topic carrying comma-separated readings")
    ap.add_argument("--username", help="Broker username")
    ap.add_argument("--password", help="Broker password")
    ap.add_argument("--client-id", dest="client_id", help="MQTT client id (default: random)")
    ap.add_argument(
        "--wavelengths",
        help="Comma-separated band wavelengths in frame order, tags allowed (e.g. 415,445,clear)",
    )
    ap.add_argument("--update-ms", dest="update_ms", type=int, help="Chart refresh period in ms")
    ap.add_argument(
        "--connect-timeout-ms",
        dest="connect_timeout_ms",
        type=int,
        help="Broker connect timeout in ms",
    )
    ap.add_argument(
        "--strict-frames",
        dest="strict_frames",
        action="store_true",
        default=None,
        help="Reject frames with more values than bands",
    )
    ap.add_argument("--headless", action="store_true", help="Serve status and chart over HTTP instead of a window")
    ap.add_argument("--host", dest="server_host", help="Headless server bind address")
    ap.add_argument("--port", dest="server_port", type=int, help="Headless server port")
    ap.add_argument("--demo", action="store_true", help="Use an in-process broker and publish synthetic frames")
    ap.add_argument("--log-level", dest="log_level", help="Logging level (DEBUG, INFO, WARNING)")
    return ap


def load_config(args: argparse.Namespace) -> SpectrographConfig:
    wavelengths = parse_wavelengths(args.wavelengths) if args.wavelengths else None
    cfg = SpectrographConfig.from_env().with_overrides(
        broker_url=args.broker_url,
        topic=args.topic,
        username=args.username,
        password=args.password,
        client_id=args.client_id,
        wavelengths=wavelengths,
        update_ms=args.update_ms,
        connect_timeout_ms=args.connect_timeout_ms,
        strict_frames=args.strict_frames,
        server_host=args.server_host,
        server_port=args.server_port,
        log_level=args.log_level,
    )
    cfg.validate()
    return cfg


def run_gui(engine: Engine, demo: bool) -> int:
    from pyqtgraph.Qt import QtWidgets

    from live_spectrograph.ui.main_window import SpectrographWindow

    app = QtWidgets.QApplication(sys.argv)
    window = SpectrographWindow(engine, demo=demo)
    window.show()
    return app.exec()


def run_headless(engine: Engine, demo: bool) -> int:
    import uvicorn

    from live_spectrograph.server.app import create_app

    app = create_app(engine)
    cfg = engine.cfg

    async def _serve() -> None:
        server = uvicorn.Server(
            uvicorn.Config(app=app, host=cfg.server_host, port=cfg.server_port, log_level=cfg.log_level.lower())
        )
        demo_task = asyncio.create_task(_publish_demo(engine)) if demo else None
        try:
            await server.serve()
        finally:
            if demo_task is not None:
                demo_task.cancel()

    asyncio.run(_serve())
    return 0


async def _publish_demo(engine: Engine) -> None:
    while True:
        engine.publish_frame(engine.demo_values())
        await asyncio.sleep(0.5)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        cfg = load_config(args)
    except ValueError as exc:
        print(f"live-spectrograph: {exc}", file=sys.stderr)
        return 2
    configure_logging(cfg.log_level)

    transport = LoopbackTransport() if args.demo else None
    engine = Engine(cfg, transport=transport)
    if args.headless:
        return run_headless(engine, demo=args.demo)
    return run_gui(engine, demo=args.demo)


if __name__ == "__main__":
    raise SystemExit(main())
