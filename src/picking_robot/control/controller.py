"""
Main controller - Coordinates all layers.

Wires together:
1. Remote store (route catalog, command channel, detection feed)
2. Serial link to the device
3. Execution engine, its timer, dispatcher and detection monitor
4. Optional web interface
"""

import asyncio
import logging
import signal
from typing import Optional

import aiohttp

from picking_robot.comm import SerialLink
from picking_robot.config import STATUS_LOG_INTERVAL
from picking_robot.control.detection import DetectionMonitor
from picking_robot.control.dispatcher import CommandDispatcher
from picking_robot.control.engine import ExecutionEngine
from picking_robot.control.state import ExecutionSnapshot
from picking_robot.control.timer import MoveTimer
from picking_robot.errors import InvalidPlayTarget, RemoteChannelError
from picking_robot.params import Parameters
from picking_robot.remote import DetectionFeed, FirebaseClient, RemoteChannel
from picking_robot.routes import RouteCatalog

logger = logging.getLogger(__name__)


class Controller:
    """
    Main route runner.

    Usage:
        controller = Controller()
        asyncio.run(controller.run(route_id="-NxAbc123"))
    """

    def __init__(self, params: Optional[Parameters] = None):
        # Runtime parameters (shared, tunable via web)
        self.params = params or Parameters.load()

        # Created in run(), they need the event loop
        self.session: Optional[aiohttp.ClientSession] = None
        self.client: Optional[FirebaseClient] = None
        self.channel: Optional[RemoteChannel] = None
        self.catalog: Optional[RouteCatalog] = None
        self.engine: Optional[ExecutionEngine] = None
        self.monitor: Optional[DetectionMonitor] = None

        self.serial = SerialLink(
            port=self.params.serial_port,
            baudrate=self.params.serial_baudrate,
        )

        self._running = False
        self._tasks: list[asyncio.Task] = []
        self._web_runner = None

    @property
    def snapshot(self) -> Optional[ExecutionSnapshot]:
        """Latest engine snapshot for web access."""
        return self.engine.snapshot if self.engine else None

    def build(self, session: aiohttp.ClientSession):
        """Create the remote-facing components and the engine."""
        p = self.params
        self.session = session
        self.client = FirebaseClient(
            session, p.database_url, p.auth_token, timeout=p.remote_timeout_seconds
        )
        self.channel = RemoteChannel(self.client, p.robot_node)
        self.catalog = RouteCatalog(self.client, p.routes_path, retry_delay=p.stream_retry_seconds)

        dispatcher = CommandDispatcher(
            self.channel, self.serial if p.serial_enabled else None
        )
        self.engine = ExecutionEngine(dispatcher, self.catalog, MoveTimer(p.tick_seconds))

        feed = DetectionFeed(self.client, p.detection_path, retry_delay=p.stream_retry_seconds)
        self.monitor = DetectionMonitor(feed, self.engine.on_detection)
        self.engine.add_listener(self.monitor.follow)

    async def run(self, route_id: Optional[str] = None, web: bool = False) -> int:
        """
        Run until a shutdown signal arrives.

        Returns:
            Process exit code
        """
        logger.info("Controller starting...")

        # Setup signal handlers for graceful shutdown
        loop = asyncio.get_event_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self._shutdown)

        async with aiohttp.ClientSession() as session:
            self.build(session)
            try:
                self._init_hardware()
                self.channel.start()

                try:
                    await self.catalog.refresh()
                except RemoteChannelError as e:
                    logger.error(f"Failed to load routes: {e}")
                self._tasks.append(asyncio.ensure_future(self.catalog.watch()))

                if web:
                    from picking_robot.web import run_server
                    self._web_runner = await run_server(
                        controller=self, host=self.params.web_host, port=self.params.web_port
                    )

                if route_id is not None:
                    try:
                        self.engine.play(route_id)
                    except InvalidPlayTarget as e:
                        logger.error(f"Cannot play: {e}")
                        return 1

                self._running = True
                logger.info("Entering main loop")
                await self._status_loop()
                return 0

            except Exception as e:
                logger.error(f"Controller error: {e}")
                raise
            finally:
                await self._cleanup()

    def _init_hardware(self):
        """Open the serial link. Playback works without it."""
        if not self.params.serial_enabled:
            logger.info("Serial link disabled")
            return
        if not self.serial.connect():
            logger.warning("Serial device unavailable, commands go to the remote node only")

    async def _cleanup(self):
        """Cleanup on shutdown."""
        logger.info("Cleaning up...")

        self._running = False

        # Stop the robot first
        if self.engine and self.engine.snapshot.is_active:
            self.engine.stop()

        if self.monitor:
            await self.monitor.close()

        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks.clear()

        if self._web_runner:
            await self._web_runner.cleanup()
            self._web_runner = None

        if self.channel:
            await self.channel.close()

        if self.serial.is_connected:
            self.serial.disconnect()

        logger.info("Cleanup complete")

    def _shutdown(self):
        """Handle shutdown signal."""
        logger.info("Shutdown requested")
        self._running = False

    async def _status_loop(self):
        """Idle loop that logs status periodically."""
        period = 0.2
        elapsed = 0.0
        while self._running:
            await asyncio.sleep(period)
            elapsed += period
            if elapsed >= STATUS_LOG_INTERVAL:
                elapsed = 0.0
                self._log_stats()

    def _log_stats(self):
        """Log periodic statistics."""
        snapshot = self.engine.snapshot
        logger.info(
            f"State={snapshot.status.name}, "
            f"Route={snapshot.route_name or '-'}, "
            f"Move={snapshot.move_index}, "
            f"Remaining={snapshot.remaining_seconds}s, "
            f"RemoteFailures={self.channel.failures}, "
            f"Detection={'on' if self.monitor.is_active else 'off'}"
        )
