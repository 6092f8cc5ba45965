"""
Front pages of a merged edition.

The site lists, for each post, the images and blurbs of the printed front
page. They become two kinds of picture pages in the merged book:

- cover pages (``<slug>-cover.xhtml``): cover title, cover image and cover
  summary, all grouped right after the table of contents;
- front pages (``<slug>-front.xhtml``): kicker (or title), featured image
  and excerpt, right before the article they introduce.
"""
from dataclasses import dataclass
from html import escape
from typing import Dict, Optional

from bs4 import BeautifulSoup
from ebooklib import epub
from PIL import UnidentifiedImageError

from .cover import CoverImageService
from ..edition.models import Article, Image
from ..logging import get_logger

logger = get_logger('clima.epub')

PAGE_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<html xmlns="http://www.w3.org/1999/xhtml">
<head><title>{title}</title></head>
<body>
<{heading}>{title}</{heading}>
<p><img src="{image}" alt=""/></p>
{summary}
</body>
</html>
"""


@dataclass
class PictureBlock:
    """What one picture page shows."""
    kind: str
    heading: str
    title: str
    image: Image
    summary: str

    @classmethod
    def cover(cls, article: Article) -> Optional['PictureBlock']:
        post = article.post
        if post is None or post.cover_image is None:
            return None
        return cls('cover', 'h1', post.cover_title, post.cover_image, post.cover_summary)

    @classmethod
    def front(cls, article: Article) -> Optional['PictureBlock']:
        post = article.post
        if post is None or post.featured_image is None:
            return None
        return cls('front', 'h4', post.kicker or post.title, post.featured_image, post.excerpt)


def plain_text(markup: str) -> str:
    """Text of an HTML snippet as served by the site."""
    return ' '.join(BeautifulSoup(markup, 'html.parser').get_text(' ').split())


class PicturePageBuilder:
    """
    Turns picture blocks into ePub items.

    Images are shrunk to the cover size and stored as JPEG.
    """

    def __init__(self, images: Dict[str, bytes], cover_service: CoverImageService):
        self._images = images
        self._cover_service = cover_service

    def build(self, article: Article, block: PictureBlock) -> Optional[Dict[str, epub.EpubItem]]:
        """
        Page and image items for ``block``.

        Returns:
            ``{'page': ..., 'image': ...}``, None when the image is missing
            or unreadable
        """
        source = self._images.get(block.image.src)
        if source is None:
            return None
        try:
            image = self._cover_service.generate(source)
        except (UnidentifiedImageError, OSError) as e:
            logger.warning(f"Skipping {block.kind} page of {article.identifier}: {e}")
            return None

        slug = article.post.slug
        uid = f"{block.kind}_art{article.ordering_index}"
        image_name = f"{slug}-{block.kind}.jpg"
        summary = plain_text(block.summary)
        page = epub.EpubItem(
            uid=uid,
            file_name=f"{slug}-{block.kind}.xhtml",
            media_type='application/xhtml+xml',
            content=PAGE_TEMPLATE.format(
                title=escape(block.title),
                heading=block.heading,
                image=escape(image_name),
                summary=f"<p>{escape(summary)}</p>" if summary else '',
            ).encode('utf-8'),
        )
        picture = epub.EpubItem(
            uid=f"{uid}_img",
            file_name=image_name,
            media_type=CoverImageService.MEDIA_TYPE,
            content=image,
        )
        return {'page': page, 'image': picture}
