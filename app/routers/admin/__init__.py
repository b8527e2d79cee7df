"""
Admin router module
"""

from fastapi import APIRouter, Depends

from ...dependencies import admin_required, ensure_db
from .dashboard import router as dashboard_router

# Create main admin router
router = APIRouter(
    prefix="/api/admin",
    tags=["Admin"],
    dependencies=[Depends(ensure_db), Depends(admin_required)],
)

# Include all sub-routers
router.include_router(dashboard_router)
