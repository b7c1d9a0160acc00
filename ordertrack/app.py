"""Application bootstrap for ordertrack.

Wires all components in dependency order and manages the asyncio lifecycle.
Startup order: config → logging → store → engine/projector → source/tracker
              → refresh loop → REST

Shutdown stops components in reverse startup order.  Each component's stop
error is caught and logged independently.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

from ordertrack.config import load_config
from ordertrack.models.config import OrderTrackConfig
from ordertrack.observability.logging import get_logger, setup_logging

if TYPE_CHECKING:
    import structlog

    from ordertrack.collector.tracker import OrderTracker
    from ordertrack.ledger.projector import HistoryProjector
    from ordertrack.ledger.reconcile import ReconciliationEngine
    from ordertrack.ledger.store import SnapshotStore

_SHUTDOWN_GRACE_SECONDS = 15


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class OrderTrackApp:
    """Application root.  Owns every component and coordinates their lifecycle.

    Calling ``stop()`` on an app that was never started (or already stopped)
    is safe.
    """

    def __init__(self, config: OrderTrackConfig | None = None) -> None:
        self.config: OrderTrackConfig | None = config

        self._store: SnapshotStore | None = None
        self._engine: ReconciliationEngine | None = None
        self._projector: HistoryProjector | None = None
        self._tracker: OrderTracker | None = None
        self._rest_server: object | None = None

        self._background_tasks: list[asyncio.Task[None]] = []

        self._running = False
        self._log: structlog.stdlib.BoundLogger | None = None

    @property
    def store(self) -> SnapshotStore | None:
        return self._store

    @property
    def engine(self) -> ReconciliationEngine | None:
        return self._engine

    @property
    def tracker(self) -> OrderTracker | None:
        return self._tracker

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self, serve_api: bool = True) -> None:
        """Start all components in dependency order.

        Raises _ComponentError if a mandatory component cannot start.
        """
        # --- 1. Configuration -------------------------------------------
        if self.config is None:
            self.config = load_config()

        # --- 2. Logging -------------------------------------------------
        setup_logging(self.config.log.level)
        self._log = get_logger("app")
        self._log.info("ordertrack starting", version=_ordertrack_version())

        # --- 3. Snapshot store ------------------------------------------
        self._start_store()

        # --- 4. Reconciliation engine and projector ---------------------
        self._start_ledger()

        # --- 5. Record source and tracker (optional) --------------------
        self._start_tracker()

        # --- 6. Periodic refresh ----------------------------------------
        self._start_refresh_loop()

        # --- 7. REST API ------------------------------------------------
        if serve_api:
            await self._start_rest()

        self._running = True
        self._log.info("ordertrack started", port=self.config.api.port)

    # ------------------------------------------------------------------
    # Component startup helpers
    # ------------------------------------------------------------------

    def _start_store(self) -> None:
        assert self._log is not None
        assert self.config is not None
        self._log.debug("starting snapshot store")
        try:
            from ordertrack.ledger.store import SnapshotStore, build_backend

            backend = build_backend(self.config.store.backend, self.config.store.path)
            self._store = SnapshotStore(backend, key_prefix=self.config.store.key_prefix)
            self._log.info(
                "snapshot store started",
                backend=self.config.store.backend,
                path=self.config.store.path,
            )
        except Exception as exc:
            raise _ComponentError("store", exc) from exc

    def _start_ledger(self) -> None:
        assert self._log is not None
        assert self._store is not None
        from ordertrack.ledger.projector import HistoryProjector
        from ordertrack.ledger.reconcile import ReconciliationEngine

        self._engine = ReconciliationEngine(self._store)
        self._projector = HistoryProjector()
        self._log.info("reconciliation engine started", interesting_fields=len(self._projector.interesting_paths))

    def _start_tracker(self) -> None:
        """Build the HTTP source and tracker when an access token is configured.

        Non-fatal: without a token the API still serves stored history and
        push-style reconciliation.
        """
        assert self._log is not None
        assert self.config is not None
        assert self._engine is not None
        source_cfg = self.config.source
        if not source_cfg.access_token:
            self._log.info("record source disabled; no access token configured")
            return
        try:
            from ordertrack.collector.source import HttpOrderSource
            from ordertrack.collector.tracker import OrderTracker

            source = HttpOrderSource(
                orders_url=source_cfg.orders_url,
                details_url_template=source_cfg.details_url_template,
                access_token=source_cfg.access_token,
                timeout=float(source_cfg.timeout_seconds),
            )
            self._tracker = OrderTracker(source, self._engine)
            self._log.info("order tracker started", orders_url=source_cfg.orders_url)
        except Exception as exc:
            self._log.warning("order tracker failed to start; refresh disabled", error=str(exc))
            self._tracker = None

    def _start_refresh_loop(self) -> None:
        assert self._log is not None
        assert self.config is not None
        if not self.config.refresh.enabled:
            return
        if self._tracker is None:
            self._log.warning("refresh enabled but no record source is configured")
            return
        task = asyncio.create_task(
            self._tracker.run_periodic(self.config.refresh.interval_seconds),
            name="refresh-loop",
        )
        self._background_tasks.append(task)
        self._log.info("refresh loop started", interval_seconds=self.config.refresh.interval_seconds)

    async def _start_rest(self) -> None:
        """Start the uvicorn REST server."""
        assert self._log is not None
        assert self.config is not None
        self._log.debug("starting rest api")
        try:
            import uvicorn

            from ordertrack.api import build_app

            fastapi_app = build_app(
                store=self._store,
                engine=self._engine,
                projector=self._projector,
                tracker=self._tracker,
                config=self.config,
            )
            uv_config = uvicorn.Config(
                app=fastapi_app,
                host="0.0.0.0",
                port=self.config.api.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            task = asyncio.create_task(server.serve(), name="rest-server")
            self._background_tasks.append(task)
            self._rest_server = server
            self._log.info("rest api started", port=self.config.api.port)
        except Exception as exc:
            raise _ComponentError("rest", exc) from exc

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Gracefully stop all components in reverse startup order."""
        if not self._running and self._log is None:
            return

        log = self._log or get_logger("app")
        log.info("ordertrack shutting down")

        self._running = False

        if self._rest_server is not None:
            # uvicorn exits its serve() loop on the next tick
            self._rest_server.should_exit = True  # type: ignore[attr-defined]

        for task in reversed(self._background_tasks):
            if task.get_name() == "rest-server":
                continue
            if not task.done():
                task.cancel()

        if self._background_tasks:
            try:
                await asyncio.wait_for(
                    asyncio.gather(*self._background_tasks, return_exceptions=True),
                    timeout=_SHUTDOWN_GRACE_SECONDS,
                )
            except TimeoutError:
                log.warning("background tasks did not stop in time", timeout=_SHUTDOWN_GRACE_SECONDS)
        self._background_tasks.clear()

        self._rest_server = None
        self._tracker = None
        self._engine = None
        self._projector = None
        self._store = None

        log.info("ordertrack stopped")


def _ordertrack_version() -> str:
    from ordertrack import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main(config: OrderTrackConfig | None = None) -> None:
    """Create the app, register OS signals, run until shutdown is requested."""
    app = OrderTrackApp(config)
    loop = asyncio.get_running_loop()

    shutdown_triggered = False

    def _request_shutdown() -> None:
        nonlocal shutdown_triggered
        if shutdown_triggered:
            return
        shutdown_triggered = True
        asyncio.create_task(app.stop(), name="shutdown")

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _request_shutdown)

    try:
        await app.start()
        while app._running:
            await asyncio.sleep(1)
    except _ComponentError as exc:
        log = get_logger("app")
        log.critical(
            "fatal startup error",
            component=exc.component,
            error=str(exc.cause),
        )
        await app.stop()
        raise SystemExit(1) from exc
    finally:
        if app._running:
            await app.stop()
