from typing import Any, Dict

from fastapi import APIRouter, Depends, Response

from ..dependencies import ensure_db
from ..services.home_service import HomeService
from ..utils import format_response

router = APIRouter(prefix="/api/page", tags=["Pages"], dependencies=[Depends(ensure_db)])

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


async def _home_payload() -> Dict[str, Any]:
    feed = await HomeService.home_page()
    meta = feed.pop("meta")
    return format_response(data=feed, meta=meta)


@router.get("/home", response_model=Dict[str, Any], summary="Home page feed")
async def home_page():
    return await _home_payload()


@router.get("/home/fresh", response_model=Dict[str, Any], summary="Home page feed, uncached")
async def fresh_home_page(response: Response):
    response.headers.update(NO_CACHE_HEADERS)
    return await _home_payload()
