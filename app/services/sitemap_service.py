"""
sitemap.xml generation and publishing
"""

import asyncio
import ftplib
import logging
import xml.etree.ElementTree as ET
from datetime import datetime
from typing import Optional

from ..config import settings
from ..models.blog import Blog
from ..models.category import Category
from ..models.enums import BlogStatus
from ..utils import ensure_utc

logger = logging.getLogger(__name__)

SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"

STATIC_PAGES = [
    ("/", "1.0"),
    ("/blogs", "0.9"),
    ("/about-us", "0.9"),
    ("/contact-us", "0.9"),
]


def _add_url(
    urlset: ET.Element,
    loc: str,
    lastmod: Optional[datetime] = None,
    changefreq: Optional[str] = None,
    priority: Optional[str] = None,
):
    url = ET.SubElement(urlset, "url")
    ET.SubElement(url, "loc").text = loc
    if lastmod is not None:
        ET.SubElement(url, "lastmod").text = ensure_utc(lastmod).isoformat(timespec="seconds")
    if changefreq:
        ET.SubElement(url, "changefreq").text = changefreq
    if priority:
        ET.SubElement(url, "priority").text = priority


class SitemapService:
    @staticmethod
    async def build_sitemap(base_url: Optional[str] = None) -> str:
        """Static pages, enabled categories and every live published blog"""
        base_url = (base_url or settings.SITE_URL).rstrip("/")

        categories = await Category.find({"status": True}).sort("name").to_list()
        blogs = (
            await Blog.find({"status": BlogStatus.PUBLISHED.value, "is_deleted": False})
            .sort([("updated_at", -1)])
            .to_list()
        )

        urlset = ET.Element("urlset", xmlns=SITEMAP_NS)
        for path, priority in STATIC_PAGES:
            _add_url(urlset, f"{base_url}{path}", changefreq="weekly", priority=priority)

        for category in categories:
            _add_url(
                urlset,
                f"{base_url}/category/{category.slug}",
                lastmod=category.updated_at,
                changefreq="daily",
                priority="0.8",
            )

        for blog in blogs:
            _add_url(
                urlset,
                f"{base_url}/blogs/{blog.slug}",
                lastmod=blog.updated_at,
                changefreq="weekly",
                priority="0.8",
            )

        body = ET.tostring(urlset, encoding="unicode")
        return f'<?xml version="1.0" encoding="UTF-8"?>\n{body}'

    @staticmethod
    def _upload_blocking(local_path: str):
        with ftplib.FTP(settings.FTP_HOST, timeout=30) as ftp:
            ftp.login(settings.FTP_USER or "", settings.FTP_PASS or "")
            try:
                ftp.delete(settings.FTP_REMOTE_PATH)
            except ftplib.error_perm:
                logger.info("No existing remote sitemap, skipping delete")
            with open(local_path, "rb") as fh:
                ftp.storbinary(f"STOR {settings.FTP_REMOTE_PATH}", fh)

    @staticmethod
    async def regenerate_and_upload() -> bool:
        """
        Write sitemap.xml locally and push it over FTP when configured.

        Runs as a background task after a blog is published; failures are
        logged and reported through the return value only.
        """
        try:
            xml = await SitemapService.build_sitemap()
            await asyncio.to_thread(_write_file, settings.SITEMAP_PATH, xml)

            if not settings.FTP_HOST:
                logger.info(f"Sitemap written to {settings.SITEMAP_PATH} (FTP upload disabled)")
                return True

            await asyncio.to_thread(SitemapService._upload_blocking, settings.SITEMAP_PATH)
            logger.info("Sitemap uploaded successfully")
            return True
        except Exception as e:
            logger.error(f"Sitemap generation error: {e}", exc_info=True)
            return False


def _write_file(path: str, content: str):
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(content)


