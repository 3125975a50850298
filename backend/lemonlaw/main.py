"""
Lemon Law Fee Suite - FastAPI Backend
Case Management & Fee Motion Platform for Lemon Law Attorneys
"""
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from lemonlaw.api import cases, billing, repair_orders, attorneys, fees, documents
from lemonlaw.core.config import settings, init_directories
from lemonlaw.db.database import create_engine, create_session_factory, create_tables
from lemonlaw.services.ai_service import ai_service


def configure_logging():
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(database_url: Optional[str] = None) -> FastAPI:
    """Build the application; the database engine lives for the app's lifespan"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging()
        init_directories()
        engine = create_engine(database_url)
        await create_tables(engine)
        app.state.session_factory = create_session_factory(engine)
        yield
        app.state.session_factory = None
        await engine.dispose()

    app = FastAPI(
        title=settings.APP_NAME,
        description="""
    Case management and fee motion generation for lemon law attorneys

    ## Features
    - Case, repair order, billing, cost and attorney roster management
    - AI extraction of repair orders, billing and cost records from uploads
    - Laffey Matrix fee reasonableness comparison
    - Court-formatted fee motions and exhibits (DOCX)
    """,
        version=settings.APP_VERSION,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # API routers
    app.include_router(cases.router, prefix="/api/cases", tags=["Cases"])
    app.include_router(billing.router, prefix="/api", tags=["Billing & Costs"])
    app.include_router(repair_orders.router, prefix="/api", tags=["Repair Orders"])
    app.include_router(attorneys.router, prefix="/api", tags=["Attorneys & Laffey Matrix"])
    app.include_router(fees.router, prefix="/api/fees", tags=["Fee Comparison"])
    app.include_router(documents.router, prefix="/api", tags=["Documents"])

    @app.get("/")
    async def root():
        return {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "status": "running",
            "modules": {
                "cases": "Lemon law case management",
                "billing": "Billing entries and litigation costs",
                "repair_orders": "Dealership repair history",
                "attorneys": "Attorney roster and Laffey Matrix periods",
                "fees": "Laffey Matrix fee reasonableness comparison",
                "documents": "Fee motion generation and record extraction",
            }
        }

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "components": {
                "database": "connected" if getattr(app.state, "session_factory", None) else "not initialised",
                "fee_calculator": "ready",
                "document_generator": "ready",
                "ai_extraction": "ready" if ai_service.is_available else "not configured",
            }
        }

    return app


app = create_app()
