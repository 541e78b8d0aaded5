"""Sitemap generation — adds ``/sitemap.xml`` as a dynamic item.

Runs at the RUN stage, after every page has been laid out, and lists the
html pages of the store.  Requires ``base_url`` to be configured; skips
generation (with an info message) when it is empty.  ``lastmod`` comes
from each page's ``date`` binding only, so rebuilding an unchanged site
produces the same bytes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from xml.etree.ElementTree import Element, SubElement, tostring

from ocelot.content.item import DynamicItem
from ocelot.content.types import HTML, XML
from ocelot.pipeline.stages import Stage

if TYPE_CHECKING:
    from ocelot.config import OcelotConfig
    from ocelot.content.item import ContentItem
    from ocelot.pipeline.context import BuildContext
    from ocelot.pipeline.registry import ProcessorRegistry

# XML namespace for sitemaps
_SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"

SITEMAP_URL = "/sitemap.xml"


def generate_sitemap(pages: list[ContentItem], base_url: str) -> str:
    """Sitemap XML for ``pages``, sorted by URL.

    Args:
        pages: Pages to list.
        base_url: Site base URL (e.g., ``"https://example.com"``).

    """
    base = base_url.rstrip("/")
    urlset = Element("urlset")
    urlset.set("xmlns", _SITEMAP_NS)

    for page in sorted(pages, key=lambda p: p.url):
        url_el = SubElement(urlset, "url")
        SubElement(url_el, "loc").text = base + page.url
        date = page.bindings.get("date")
        if isinstance(date, str) and date:
            SubElement(url_el, "lastmod").text = date[:10]

    xml_text = tostring(urlset, encoding="unicode", xml_declaration=False)
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + xml_text + "\n"


def sitemap_pages(ctx: BuildContext) -> list[ContentItem]:
    """Live html pages that did not opt out with ``sitemap: false``."""
    return [
        page
        for page in ctx.store.pages
        if page.content_type == HTML
        and page.source_path is not None
        and page.bindings.get("sitemap") is not False
    ]


class SitemapGenerator:
    """RUN stage processor adding the sitemap item."""

    name = "sitemap"

    def process(self, stage: Stage, ctx: BuildContext) -> None:
        base_url = ctx.config.base_url
        if not base_url:
            ctx.log.info("sitemap skipped: base_url is not configured")
            return
        pages = sitemap_pages(ctx)
        item = DynamicItem(SITEMAP_URL, XML, generate_sitemap(pages, base_url))
        ctx.store.add(item)
        for page in pages:
            ctx.depend_on_item(item, page)


class SitemapPlugin:
    name = "sitemap"

    def setup(self, registry: ProcessorRegistry, config: OcelotConfig) -> None:
        registry.add_stage_processor(SitemapGenerator(), Stage.RUN)
