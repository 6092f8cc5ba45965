"""
Decoding of single-article ePub fragments.

A fragment is a zip holding ``META-INF/container.xml``, one OPF package and
the resources it declares. EbookLib reads the package; only what the merge
needs is kept: manifest, spine, title and resource bytes.
"""
import io
import posixpath
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from urllib.parse import unquote

from ebooklib import epub
from lxml import etree

from ..exceptions import MalformedFragmentError
from ..logging import get_logger

logger = get_logger('clima.epub')

XHTML_MEDIA_TYPES = ('application/xhtml+xml', 'text/html')
CSS_MEDIA_TYPE = 'text/css'
NCX_MEDIA_TYPE = 'application/x-dtbncx+xml'

READ_OPTIONS = {'ignore_ncx': True}

# What EbookLib raises on a broken archive, package or navigation document
READ_ERRORS = (
    epub.EpubException,
    etree.LxmlError,
    KeyError,
    IndexError,
    AttributeError,
    TypeError,
    ValueError,
)


def normalize_href(href: str, base: str = '') -> str:
    """Resolve ``href`` against directory ``base``, posix style, URL-decoded."""
    path = unquote(href.split('#', 1)[0])
    if base:
        path = posixpath.join(base, path)
    return posixpath.normpath(path)


@dataclass
class ManifestItem:
    """One ``<item>`` of an OPF manifest; href relative to the OPF directory."""
    id: str
    href: str
    media_type: str
    properties: List[str] = field(default_factory=list)

    @property
    def is_nav(self) -> bool:
        return 'nav' in self.properties

    @property
    def is_ncx(self) -> bool:
        return self.media_type == NCX_MEDIA_TYPE

    @property
    def is_document(self) -> bool:
        return self.media_type in XHTML_MEDIA_TYPES

    @property
    def is_stylesheet(self) -> bool:
        return self.media_type == CSS_MEDIA_TYPE


@dataclass
class EpubContainer:
    """Manifest, spine and resources of an ePub."""
    manifest: List[ManifestItem] = field(default_factory=list)
    spine: List[str] = field(default_factory=list)
    resources: Dict[str, bytes] = field(default_factory=dict)
    title: str = ''

    def item(self, item_id: str) -> Optional[ManifestItem]:
        for item in self.manifest:
            if item.id == item_id:
                return item
        return None

    def content_items(self) -> List[ManifestItem]:
        """Manifest without the fragment's own navigation files."""
        return [item for item in self.manifest if not item.is_nav and not item.is_ncx]

    def reading_order(self) -> List[ManifestItem]:
        """Spine entries that point at content items."""
        items = []
        for idref in self.spine:
            item = self.item(idref)
            if item is None:
                logger.warning(f"Spine entry {idref!r} has no manifest item")
                continue
            if item.is_nav or item.is_ncx:
                continue
            items.append(item)
        return items

    @classmethod
    def from_bytes(cls, data: bytes, identifier: Optional[str] = None) -> 'EpubContainer':
        """
        Decode an ePub held in memory.

        Args:
            data: ePub file content
            identifier: Name used in error messages

        Returns:
            EpubContainer with every manifest resource loaded

        Raises:
            MalformedFragmentError: Not a zip, no container.xml, unreadable
                OPF or a manifest item without its file
        """
        name = identifier or '<fragment>'
        try:
            book = epub.read_epub(io.BytesIO(data), options=READ_OPTIONS)
        except READ_ERRORS as e:
            reason = e.msg if isinstance(e, epub.EpubException) else f"{type(e).__name__}: {e}"
            raise MalformedFragmentError(f"{name} is not a readable ePub ({reason})", identifier) from e

        container = cls(title=(book.title or '').strip())
        for entry in book.get_items():
            href = normalize_href(entry.file_name)
            container.manifest.append(ManifestItem(
                id=entry.id,
                href=href,
                media_type=entry.media_type or '',
                properties=cls._properties(entry),
            ))
            container.resources[href] = entry.content

        container.spine = [idref for idref, _ in book.spine if idref]
        return container

    @staticmethod
    def _properties(entry: epub.EpubItem) -> List[str]:
        """Manifest properties; EbookLib keeps nav and cover-image as item classes."""
        properties = list(getattr(entry, 'properties', None) or [])
        if isinstance(entry, epub.EpubNav) and 'nav' not in properties:
            properties.append('nav')
        if isinstance(entry, epub.EpubCover) and 'cover-image' not in properties:
            properties.append('cover-image')
        return properties
