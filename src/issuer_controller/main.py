"""Horizon issuer controller - application entry point.

Serves liveness and readiness checks and a reconcile trigger endpoint, and runs the
controller manager in the background.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException, status

from pki_client import HorizonSessionFactory

from .manager import ControllerManager
from .models import EnqueueResponse, HealthResponse
from .settings import ControllerSettings, load_settings
from .store import InMemoryObjectStore, NamespacedName, ObjectStore

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def build_store(settings: ControllerSettings) -> ObjectStore:
    """Create the object store selected by the settings."""
    if settings.store == "memory":
        logger.warning("Using in-memory object store; state is lost on restart")
        return InMemoryObjectStore()

    from .kube_store import KubernetesObjectStore, load_kube_config

    load_kube_config(settings.in_cluster, settings.kubeconfig)
    return KubernetesObjectStore()


def build_manager(settings: ControllerSettings) -> ControllerManager:
    return ControllerManager(
        settings,
        build_store(settings),
        HorizonSessionFactory(timeout=settings.horizon_timeout_seconds),
    )


def create_app(manager: Optional[ControllerManager] = None, settings: Optional[ControllerSettings] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        manager: Controller manager to expose (built from settings on startup if None)
        settings: Settings used when the manager has to be built

    Returns:
        FastAPI application
    """
    app = FastAPI(
        title="Horizon Issuer Controller",
        description="Signs cert-manager CertificateRequests through Horizon",
        version="0.1.0",
    )
    app.state.manager = manager

    @app.on_event("startup")
    async def startup_event():
        """Start the controller manager."""
        try:
            if app.state.manager is None:
                app.state.manager = build_manager(settings or load_settings())
            app.state.manager.start()
        except Exception as e:
            logger.error(f"Failed to start controller manager: {e}")
            raise

    @app.on_event("shutdown")
    async def shutdown_event():
        """Stop the controller manager, cancelling in-flight reconciles."""
        if app.state.manager is not None:
            app.state.manager.stop()

    def get_manager() -> ControllerManager:
        if app.state.manager is None:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Controller manager not initialized"
            )
        return app.state.manager

    @app.get("/", response_model=dict)
    async def root():
        """Root endpoint."""
        return {
            "service": "Horizon Issuer Controller",
            "version": "0.1.0",
            "status": "operational"
        }

    @app.get("/healthz", response_model=HealthResponse)
    async def healthz():
        """Liveness check."""
        return HealthResponse(status="healthy", timestamp=datetime.now(timezone.utc))

    @app.get("/readyz", response_model=HealthResponse)
    async def readyz():
        """Readiness check - ready once the workers are running."""
        manager = get_manager()
        if not manager.running:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Controller manager not running"
            )
        return HealthResponse(
            status="ready",
            controllers={name: len(c.queue) for name, c in manager.controllers.items()},
            timestamp=datetime.now(timezone.utc),
        )

    def enqueue(controller: str, namespace: Optional[str], name: str) -> EnqueueResponse:
        manager = get_manager()
        try:
            manager.enqueue(controller, NamespacedName(namespace, name))
        except KeyError:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Unknown controller: {controller}"
            )
        logger.info(f"Queued {controller} {NamespacedName(namespace, name)}")
        return EnqueueResponse(controller=controller, namespace=namespace, name=name)

    @app.post("/reconcile/{controller}/{namespace}/{name}", response_model=EnqueueResponse,
              status_code=status.HTTP_202_ACCEPTED)
    async def reconcile_namespaced(controller: str, namespace: str, name: str):
        """Queue a namespaced object for reconciliation."""
        return enqueue(controller, namespace, name)

    @app.post("/reconcile/{controller}/{name}", response_model=EnqueueResponse,
              status_code=status.HTTP_202_ACCEPTED)
    async def reconcile_cluster(controller: str, name: str):
        """Queue a cluster scoped object for reconciliation."""
        return enqueue(controller, None, name)

    return app


def main() -> None:
    import uvicorn

    settings = load_settings()
    configure_logging(settings.log_level)
    uvicorn.run(
        create_app(settings=settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower()
    )


if __name__ == "__main__":
    main()
