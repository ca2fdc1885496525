import asyncio
import contextlib
import logging
from datetime import datetime, timezone
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from guide_server.api import download_router, payment_router
from guide_server.config import Settings
from guide_server.services.confirmation_service import PaymentConfirmationService
from guide_server.services.delivery_service import ArtifactDelivery
from guide_server.services.errors import PaymentError
from guide_server.services.gateway import RazorpayGateway
from guide_server.services.grant_store import GrantStore
from guide_server.services.order_ledger import OrderLedger
from guide_server.services.sweeper import run_sweeper


def create_app(
    settings: Optional[Settings] = None,
    gateway: Optional[RazorpayGateway] = None,
) -> FastAPI:
    """Build the application.

    Without explicit ``settings`` the environment is read, and missing gateway
    keys abort startup with ``RuntimeError``.
    """
    settings = settings or Settings.from_env()
    gateway = gateway or RazorpayGateway(settings.razorpay_key_id, settings.razorpay_key_secret)

    ledger = OrderLedger()
    grants = GrantStore(ttl=settings.token_ttl)

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI):
        if not settings.pdf_path.is_file():
            logging.warning("Make sure to place the PDF at %s", settings.pdf_path)
        sweeper = app.state.sweeper = asyncio.create_task(
            run_sweeper(grants, ledger, settings.sweep_interval_seconds)
        )
        try:
            yield
        finally:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper

    app = FastAPI(lifespan=lifespan)
    app.state.settings = settings
    app.state.ledger = ledger
    app.state.grants = grants
    app.state.confirmation = PaymentConfirmationService(gateway, ledger, grants, settings)
    app.state.delivery = ArtifactDelivery(grants, settings.pdf_path, settings.download_name)

    # Frontend is hosted separately
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(payment_router.router, prefix="/api")
    app.include_router(download_router.router, prefix="/api")

    @app.exception_handler(PaymentError)
    async def handle_payment_error(request: Request, exc: PaymentError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "status": exc.code, "message": exc.message},
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"success": False, "status": "bad_request", "message": "Malformed request"},
        )

    @app.get("/api/health")
    async def health():
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    return app


def run() -> None:
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.info("Server running on port %s", settings.port)
    uvicorn.run(
        "guide_server.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
