"""
Web server - aiohttp application for playback control and status.
"""

import asyncio
import json
import logging

from aiohttp import web

from picking_robot.config import WEB_HOST, WEB_PORT
from picking_robot.errors import InvalidPlayTarget

logger = logging.getLogger(__name__)


def _route_summary(route) -> dict:
    return {"id": route.id, "name": route.name, "moves": len(route.moves)}


class WebServer:
    """
    Control interface server.

    Provides:
    - Status and route list (REST)
    - play / pause / resume / stop (REST and WebSocket)
    - Live status push over WebSocket
    - Parameter tuning
    """

    def __init__(self, controller=None):
        """
        Args:
            controller: Controller instance (engine, catalog, params)
        """
        self.controller = controller
        self.app = web.Application()
        self._setup_routes()

    def _setup_routes(self):
        """Configure routes."""
        # API
        self.app.router.add_get("/api/status", self.api_status)
        self.app.router.add_get("/api/routes", self.api_routes)

        # Playback control (REST)
        self.app.router.add_post("/api/play", self.api_play)
        self.app.router.add_post("/api/pause", self.api_pause)
        self.app.router.add_post("/api/resume", self.api_resume)
        self.app.router.add_post("/api/stop", self.api_stop)

        # Runtime parameters
        self.app.router.add_get("/api/params", self.api_params_get)
        self.app.router.add_post("/api/params", self.api_params_set)

        # WebSocket
        self.app.router.add_get("/ws/status", self.ws_status)

    def _get_engine(self):
        """Get engine instance if available."""
        if self.controller and getattr(self.controller, "engine", None):
            return self.controller.engine
        return None

    def _unavailable(self):
        return web.json_response({"error": "Engine not available"}, status=404)

    async def api_status(self, request):
        """Get current playback status."""
        engine = self._get_engine()
        if not engine:
            return self._unavailable()
        return web.json_response(engine.snapshot.to_dict())

    async def api_routes(self, request):
        """List cached routes."""
        catalog = getattr(self.controller, "catalog", None) if self.controller else None
        if catalog is None:
            return web.json_response({"error": "Routes not available"}, status=404)
        return web.json_response([_route_summary(r) for r in catalog.routes()])

    # --- Playback REST endpoints ---

    async def api_play(self, request):
        """POST /api/play - Start a route ({"route_id": ...}) or resume a user pause ({})."""
        engine = self._get_engine()
        if not engine:
            return self._unavailable()

        data = {}
        if request.can_read_body:
            try:
                data = await request.json()
            except json.JSONDecodeError:
                return web.json_response({"error": "Invalid JSON"}, status=400)

        try:
            engine.play(data.get("route_id") if isinstance(data, dict) else None)
        except InvalidPlayTarget as e:
            return web.json_response({"error": str(e)}, status=400)
        return web.json_response(engine.snapshot.to_dict())

    async def api_pause(self, request):
        """POST /api/pause - Pause playback."""
        engine = self._get_engine()
        if not engine:
            return self._unavailable()
        engine.pause()
        return web.json_response(engine.snapshot.to_dict())

    async def api_resume(self, request):
        """POST /api/resume - Resume a user pause."""
        engine = self._get_engine()
        if not engine:
            return self._unavailable()
        engine.resume()
        return web.json_response(engine.snapshot.to_dict())

    async def api_stop(self, request):
        """POST /api/stop - Stop playback."""
        engine = self._get_engine()
        if not engine:
            return self._unavailable()
        engine.stop()
        return web.json_response(engine.snapshot.to_dict())

    async def api_params_get(self, request):
        """Get current tunable parameters."""
        if self.controller and getattr(self.controller, "params", None):
            return web.json_response(self.controller.params.to_dict())
        return web.json_response({"error": "Parameters not available"}, status=404)

    async def api_params_set(self, request):
        """Update parameters. Include _save=true to persist to disk (applied on restart)."""
        if not self.controller or not getattr(self.controller, "params", None):
            return web.json_response({"error": "Parameters not available"}, status=404)

        try:
            data = await request.json()
        except json.JSONDecodeError:
            return web.json_response({"error": "Invalid JSON"}, status=400)
        if not isinstance(data, dict):
            return web.json_response({"error": "Expected a JSON object"}, status=400)

        save = data.pop("_save", False)
        self.controller.params.update(**data)

        if save:
            self.controller.params.save()

        return web.json_response(self.controller.params.to_dict())

    async def ws_status(self, request):
        """WebSocket: pushes every snapshot, accepts play/pause/resume/stop."""
        ws = web.WebSocketResponse()
        await ws.prepare(request)

        engine = self._get_engine()
        if not engine:
            await ws.send_json({"error": "Engine not available"})
            await ws.close()
            return ws

        logger.info("Status WebSocket connected")

        updates: asyncio.Queue = asyncio.Queue()
        engine.add_listener(updates.put_nowait)
        sender = asyncio.ensure_future(self._push_updates(ws, updates))

        try:
            await ws.send_json(engine.snapshot.to_dict())
            async for msg in ws:
                if msg.type == web.WSMsgType.TEXT:
                    try:
                        data = json.loads(msg.data)
                        cmd = data.get("cmd")

                        if cmd == "play":
                            engine.play(data.get("route_id"))
                        elif cmd == "pause":
                            engine.pause()
                        elif cmd == "resume":
                            engine.resume()
                        elif cmd == "stop":
                            engine.stop()
                        elif cmd == "status":
                            await ws.send_json(engine.snapshot.to_dict())
                        else:
                            await ws.send_json({"error": f"Unknown command: {cmd}"})

                    except InvalidPlayTarget as e:
                        await ws.send_json({"error": str(e)})
                    except (json.JSONDecodeError, AttributeError) as e:
                        await ws.send_json({"error": f"Bad message: {e}"})

        except Exception as e:
            logger.error(f"Status WebSocket error: {e}")
        finally:
            engine.remove_listener(updates.put_nowait)
            sender.cancel()
            logger.info("Status WebSocket disconnected")

        return ws

    async def _push_updates(self, ws, updates: asyncio.Queue):
        last = None
        while not ws.closed:
            snapshot = await updates.get()
            if snapshot == last:
                continue
            last = snapshot
            await ws.send_json(snapshot.to_dict())


def create_app(controller=None) -> web.Application:
    """Create the web application."""
    server = WebServer(controller)
    return server.app


async def run_server(controller=None, host=WEB_HOST, port=WEB_PORT):
    """Run the web server."""
    app = create_app(controller)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info(f"Web server running at http://{host}:{port}")
    return runner
