from fastapi import APIRouter, Depends, Request, Response

from ..config import settings
from ..dependencies import ensure_db
from ..services.sitemap_service import SitemapService

router = APIRouter(tags=["Sitemap"], dependencies=[Depends(ensure_db)])


@router.get("/sitemap.xml", include_in_schema=False)
async def sitemap(request: Request):
    base_url = settings.SITE_URL or str(request.base_url)
    xml = await SitemapService.build_sitemap(base_url)
    return Response(content=xml, media_type="application/xml")
