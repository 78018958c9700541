"""
Dashboard — Lightweight web server showing the slot tiles.
Uses aiohttp.web to serve a JSON API + HTML frontend with a slot-count slider.
"""

from __future__ import annotations
import os
import json
from datetime import datetime
from typing import Optional, TYPE_CHECKING
from aiohttp import web
import logging

from qrng.models import PoolInvariantError

if TYPE_CHECKING:
    from polling.scheduler import PollCycleScheduler
    from presentation.board import SlotBoard

logger = logging.getLogger(__name__)

STATIC_DIR = os.path.join(os.path.dirname(__file__), "static")


def json_response(data, status=200):
    return web.Response(
        text=json.dumps(data),
        content_type="application/json",
        status=status,
    )


class Dashboard:
    """Web dashboard server."""

    def __init__(
        self,
        scheduler: "PollCycleScheduler",
        board: "SlotBoard",
        host: str = "0.0.0.0",
        port: int = 8080,
        log_file: str = "",
        max_slots: int = 20,
    ):
        self.scheduler = scheduler
        self.board = board
        self.host = host
        self.port = port
        self.log_file = log_file
        self.max_slots = max_slots
        self.app = web.Application()
        self._runner: Optional[web.AppRunner] = None
        self._setup_routes()

    def _setup_routes(self):
        self.app.router.add_get("/", self._serve_html)
        self.app.router.add_get("/api/dashboard", self._api_dashboard)
        self.app.router.add_post("/api/slots", self._api_set_slots)
        self.app.router.add_get("/api/logs", self._api_logs)

    async def start(self):
        """Start the dashboard web server."""
        self._runner = web.AppRunner(self.app, access_log=None)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info(f"[DASHBOARD] Running on http://{self.host}:{self.port}")

    async def stop(self):
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None

    # ─── Routes ───

    async def _serve_html(self, request: web.Request) -> web.Response:
        """Serve the dashboard HTML."""
        html_path = os.path.join(STATIC_DIR, "dashboard.html")
        if os.path.exists(html_path):
            with open(html_path, "r") as f:
                return web.Response(text=f.read(), content_type="text/html")
        return web.Response(text="Dashboard HTML not found", status=404)

    async def _api_dashboard(self, request: web.Request) -> web.Response:
        """Scheduler status and every tile in one call."""
        try:
            pending = {s["index"]: s["pending"] for s in self.scheduler.pool.summary()}
            tiles = self.board.snapshot()
            for tile in tiles:
                tile["pending"] = pending.get(tile["index"], False)

            return json_response({
                "scheduler": self.scheduler.last_cycle_summary(),
                "slot_count": len(self.scheduler.pool),
                "slots": tiles,
                "timestamp": datetime.utcnow().isoformat(),
            })

        except Exception as e:
            logger.error(f"[DASHBOARD] API error: {e}", exc_info=True)
            return json_response({"error": str(e)}, status=500)

    async def _api_set_slots(self, request: web.Request) -> web.Response:
        """Slider input: {"count": n}."""
        try:
            body = await request.json()
        except ValueError:
            return json_response({"error": "Body must be JSON"}, status=400)

        count = body.get("count") if isinstance(body, dict) else None
        if isinstance(count, str) and count.strip().isdigit():
            count = int(count)

        if isinstance(count, int) and not isinstance(count, bool) and count > self.max_slots:
            logger.warning(f"[DASHBOARD] Rejected slot count {count}: above {self.max_slots}")
            return json_response({"error": f"Slot count must be <= {self.max_slots}"}, status=400)

        try:
            self.scheduler.set_slot_count(count)
        except PoolInvariantError as e:
            logger.warning(f"[DASHBOARD] Rejected slot count {count!r}: {e}")
            return json_response({"error": str(e)}, status=400)

        logger.info(f"[DASHBOARD] Slot count set to {count}")
        return json_response({"slot_count": len(self.scheduler.pool)})

    async def _api_logs(self, request: web.Request) -> web.Response:
        """Return last N lines from the log file."""
        try:
            n = int(request.query.get("n", 50))
            lines = []
            if self.log_file and os.path.exists(self.log_file):
                with open(self.log_file, "r") as f:
                    all_lines = f.readlines()
                    lines = [l.strip() for l in all_lines[-n:]] if n > 0 else []
            return json_response({"lines": lines, "total": len(lines)})
        except Exception as e:
            return json_response({"error": str(e)}, status=500)
