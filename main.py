# ============================================================================
# TCP PROBE - DAEMON APPLICATION
# ============================================================================
# STATUS: Core - FastAPI application entry point
# PURPOSE: Long-running probe daemon with /metrics, /targets and health routes
# CREATED: 15 SEP 2026
# ============================================================================
"""
TCP Probe Daemon

FastAPI application that:
1. Admits static targets (command line and config file) on startup
2. Runs workload discovery in the background when enabled
3. Serves Prometheus metrics, the target list and health probes
4. Withdraws every target on shutdown

Usage:
    uvicorn main:create_app --factory --host 0.0.0.0 --port 8081

    or through the command line: tcpprobe --prometheus --config targets.yml
"""

import asyncio
import os
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import List, Optional

from fastapi import FastAPI, Response
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry

from __version__ import BUILD_DATE, CODENAME, __version__
from core.config import (
    ConfigError,
    DiscoveryDefaults,
    ProbeFileConfig,
    ServerDefaults,
    get_defaults,
    load_config,
)
from core.contracts import TargetSource
from core.logging import configure_logging, get_logger
from core.models import ProbeConfig, TargetSpec
from discovery import DiscoveryReconciler, KubernetesInventory, WorkloadInventory
from health import health_router
from health.checks import bind_runtime, reset_runtime
from metrics import MetricsExporter
from orchestrator import AdmissionError, ProbeScheduler, TargetRegistry
from output import make_sink

logger = get_logger(__name__)


@dataclass
class DaemonSettings:
    """
    Everything the daemon needs to start.

    Attributes:
        base: ProbeConfig copied for every target
        targets: Target addresses given on the command line
        config_path: Optional YAML target file
        static_targets: Already-loaded target file records
        discovery: Discovery settings (``enabled`` turns it on)
        server: Listen address
        inventory: Workload inventory; Kubernetes when None
        metrics_registry: Prometheus registry; the global one when None
    """
    base: ProbeConfig = field(default_factory=ProbeConfig)
    targets: List[str] = field(default_factory=list)
    config_path: Optional[str] = None
    static_targets: List[TargetSpec] = field(default_factory=list)
    discovery: DiscoveryDefaults = field(default_factory=lambda: get_defaults().discovery)
    server: ServerDefaults = field(default_factory=lambda: get_defaults().server)
    inventory: Optional[WorkloadInventory] = None
    metrics_registry: Optional[CollectorRegistry] = None

    @classmethod
    def from_env(cls) -> "DaemonSettings":
        """Settings from TP_* variables (TP_CONFIG names the target file)."""
        defaults = get_defaults()
        return cls(
            base=ProbeConfig(
                interval=defaults.probe.interval,
                timeout=defaults.probe.timeout,
                count=defaults.probe.count,
                quiet=True,
            ),
            config_path=os.getenv("TP_CONFIG") or None,
            discovery=defaults.discovery,
            server=defaults.server,
        )


def admit_static_targets(registry: TargetRegistry, settings: DaemonSettings) -> int:
    """
    Admit command line and config file targets.

    A target named twice is admitted once; the duplicate is logged.

    Returns:
        Number of targets admitted
    """
    defaults = get_defaults()
    admitted = 0
    records = [
        (address, settings.base.for_target(address, source=TargetSource.CLI))
        for address in settings.targets
    ]
    records += [
        (
            spec.addr,
            settings.base.for_target(
                spec.addr,
                interval=spec.interval_seconds(defaults.probe.target_interval),
                labels=spec.labels,
                source=TargetSource.CONFIG,
            ),
        )
        for spec in settings.static_targets
    ]
    for address, config in records:
        try:
            registry.admit(address, config)
            admitted += 1
        except AdmissionError as e:
            logger.warning(f"Skipping target: {e}")
    return admitted


def create_app(settings: Optional[DaemonSettings] = None) -> FastAPI:
    """
    Build the daemon application.

    The target file is read here so a bad file fails before the server
    starts listening.

    Raises:
        ConfigError: The target file cannot be loaded
    """
    if settings is None:
        configure_logging(
            level=os.environ.get("TP_LOG_LEVEL", "INFO"),
            json_output=os.environ.get("TP_LOG_FORMAT", "").lower() == "json",
        )
        settings = DaemonSettings.from_env()

    if settings.config_path and not settings.static_targets:
        file_config: ProbeFileConfig = load_config(settings.config_path)
        settings.static_targets = list(file_config.targets)

    exporter = MetricsExporter(registry=settings.metrics_registry)
    scheduler = ProbeScheduler(exporter=exporter, sink=make_sink(settings.base))
    registry = TargetRegistry(runner=scheduler.run)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {CODENAME} v{__version__} (build {BUILD_DATE})")

        count = admit_static_targets(registry, settings)
        logger.info(f"Admitted {count} static targets")

        stop = asyncio.Event()
        reconciler = None
        discovery_task = None
        inventory = None
        if settings.discovery.enabled:
            inventory = settings.inventory or KubernetesInventory(settings.discovery.namespace)
            reconciler = DiscoveryReconciler(
                registry,
                inventory,
                settings.base,
                settings=settings.discovery,
            )
            discovery_task = asyncio.create_task(reconciler.run(stop), name="discovery")

        app.state.reconciler = reconciler
        bind_runtime(
            registry=registry,
            reconciler=reconciler,
            discovery_enabled=settings.discovery.enabled,
        )

        yield

        logger.info("Shutting down probe daemon...")
        stop.set()
        if discovery_task is not None:
            try:
                await asyncio.wait_for(discovery_task, timeout=settings.server.shutdown_timeout)
            except asyncio.TimeoutError:
                discovery_task.cancel()
        await registry.shutdown(timeout=settings.server.shutdown_timeout)
        if inventory is not None:
            await inventory.close()
        reset_runtime()
        logger.info("Probe daemon stopped")

    app = FastAPI(
        title="TCP Probe",
        description="Network health probing daemon",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.registry = registry
    app.state.exporter = exporter
    app.state.reconciler = None

    app.include_router(health_router)

    @app.get("/metrics")
    async def metrics():
        """Prometheus exposition."""
        return Response(content=exporter.render(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/targets")
    async def targets():
        """Active identities and every handle's latest state."""
        return {
            "active": sorted(registry.snapshot()),
            "targets": [h.to_dict() for h in registry.handles()],
        }

    @app.get("/")
    async def root():
        return {
            "service": CODENAME,
            "version": __version__,
            "build_date": BUILD_DATE,
            "status": "running",
            "targets": len(registry),
        }

    return app


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    try:
        application = create_app()
    except ConfigError as e:
        raise SystemExit(f"tcpprobe: {e}")

    server = get_defaults().server
    uvicorn.run(application, host=server.host, port=server.port, log_config=None)
