"""
FastAPI dependencies
"""

from core.database import get_session
from importer.service import ImportService, import_service

# Request-scoped database session
get_db = get_session


def get_import_service() -> ImportService:
    """Process-wide import service (tracks background runs started here)"""
    return import_service
