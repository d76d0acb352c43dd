"""
RSS 2.0 订阅源生成
"""

import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Iterable

from app.models.article import Article


def _rfc822(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)


def build_rss(
    articles: Iterable[Article],
    title: str,
    description: str,
    base_url: str,
) -> str:
    """
    生成 RSS XML

    channel: title / description / link / language / lastBuildDate
    item: title / description / link / guid / pubDate / author
    """
    base_url = base_url.rstrip("/")
    rss = ET.Element("rss", version="2.0")
    channel = ET.SubElement(rss, "channel")
    ET.SubElement(channel, "title").text = title
    ET.SubElement(channel, "description").text = description
    ET.SubElement(channel, "link").text = base_url
    ET.SubElement(channel, "language").text = "en-us"
    ET.SubElement(channel, "lastBuildDate").text = _rfc822(datetime.now(timezone.utc))

    for article in articles:
        link = f"{base_url}{article.url}"
        item = ET.SubElement(channel, "item")
        ET.SubElement(item, "title").text = article.title
        ET.SubElement(item, "description").text = article.short_description
        ET.SubElement(item, "link").text = link
        ET.SubElement(item, "guid").text = link
        ET.SubElement(item, "pubDate").text = _rfc822(article.publish_date)
        ET.SubElement(item, "author").text = article.author_name or ""

    body = ET.tostring(rss, encoding="unicode")
    return f'<?xml version="1.0" encoding="UTF-8"?>\n{body}'
