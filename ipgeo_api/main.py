import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from .api.health import router as health_router
from .api.lookup import lookup
from .api.prometheus import router as prometheus_router
from .config import APP_NAME, APP_VERSION, GEOIP_DB_ASN, GEOIP_DB_CITY, GEOIP_LOCALE
from .services.geoip import GeoDatabases

logger = logging.getLogger("ipgeo")

@asynccontextmanager
async def lifespan(application: FastAPI):
    # Databases injected through create_app() are owned by the caller
    owned = application.state.databases is None
    if owned:
        try:
            application.state.databases = GeoDatabases.open(
                GEOIP_DB_CITY, GEOIP_DB_ASN, locale=GEOIP_LOCALE
            )
        except Exception as e:
            logger.critical("Unable to open City database, cannot continue", extra={
                "component": "api",
                "db_path": GEOIP_DB_CITY,
                "error": str(e)
            })
            raise

    logger.info("IP geolocation API ready", extra={
        "component": "api",
        "version": APP_VERSION,
        "locale": application.state.databases.locale,
        "asn_loaded": application.state.databases.asn_loaded
    })

    try:
        yield
    finally:
        if owned:
            application.state.databases.close()
            application.state.databases = None
        logger.info("IP geolocation API shutting down", extra={"component": "api"})

def create_app(databases: Optional[GeoDatabases] = None) -> FastAPI:
    """Build the application, optionally around already opened databases"""
    application = FastAPI(
        title=APP_NAME,
        version=APP_VERSION,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    application.state.databases = databases

    application.include_router(prometheus_router)
    application.include_router(health_router)
    # Catch-all for every method; must come last
    application.add_route("/{address:path}", lookup, include_in_schema=False)
    return application

app = create_app()
