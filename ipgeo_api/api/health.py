"""
Health check endpoint - no authentication required
"""

from fastapi import APIRouter, Depends

from .lookup import get_databases
from ..services.geoip import GeoDatabases

router = APIRouter()

@router.get("/healthz", include_in_schema=False)
def healthz(databases: GeoDatabases = Depends(get_databases)):
    return {"status": "ok", "asn_loaded": databases.asn_loaded}
