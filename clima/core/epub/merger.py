"""
ePub merger.

Folds the per-article ePub fragments of an edition into one book:

1. a fixed skeleton (title, language, author, publisher, identifier);
2. every fragment re-keyed under an ``art{n}_`` prefix, n being the
   article's ordering_index, with its internal links rewritten;
3. the posts' cover pages after the table of contents, then each
   article preceded by its front page, in ordering_index order;
4. one table of contents entry per article.

Articles are merged one at a time: the prefix scheme and the spine depend on
visiting the articles in a fixed order.
"""
import io
import uuid
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from ebooklib import epub
from PIL import UnidentifiedImageError

from .container import EpubContainer, ManifestItem
from .cover import CoverImageService
from .pages import PictureBlock, PicturePageBuilder
from .rewriter import ReferenceRewriter
from ..edition.models import Article, ContentKind
from ..exceptions import CollisionDetectedError, MalformedFragmentError
from ..logging import get_logger

logger = get_logger('clima.epub')

# Manifest properties kept from the fragments; nav and cover-image belong to the merged book
KEPT_PROPERTIES = ('svg', 'scripted', 'mathml', 'remote-resources', 'switch')

NAV_ID = 'nav'
NCX_ID = 'ncx'
COVER_ID = 'cover-img'


@dataclass
class RekeyedArticle:
    """A fragment ready to be appended to the merged book."""
    items: List[epub.EpubItem] = field(default_factory=list)
    spine: List[str] = field(default_factory=list)
    first_href: str = ''


class EpubMerger:
    """
    Merges single-article ePub fragments into one edition.

    Example:
        >>> merger = EpubMerger("il manifesto del 19.10.2026")
        >>> data = merger.merge(articles, cover=cover_bytes)
    """

    def __init__(
        self,
        title: str,
        language: str = 'it',
        author: str = 'il Manifesto',
        publisher: str = 'il manifesto',
        identifier: Optional[str] = None,
        cover_service: Optional[CoverImageService] = None
    ):
        """
        Initialize the merger.

        Args:
            title: Book title, also used for the table of contents
            language: Book language
            author: Single author field
            publisher: Publisher field
            identifier: Book identifier (derived from the title if None, so
                the same edition always gets the same identifier)
            cover_service: Cover image producer
        """
        self.title = title
        self.language = language
        self.author = author
        self.publisher = publisher
        self.identifier = identifier or f"urn:uuid:{uuid.uuid5(uuid.NAMESPACE_URL, f'clima:{title}')}"
        self._cover_service = cover_service or CoverImageService()

    @staticmethod
    def prefix(article: Article) -> str:
        return f"art{article.ordering_index}_"

    def merge(
        self,
        articles: Iterable[Article],
        cover: Optional[bytes] = None,
        images: Optional[Dict[str, bytes]] = None
    ) -> bytes:
        """
        Merge article fragments into one ePub.

        Args:
            articles: ePub fragment articles, in any storage order
            cover: Optional edition cover image (any format Pillow reads)
            images: Post images keyed by source URL, for the cover and
                front pages; posts whose image is missing get no page

        Returns:
            The merged ePub file content

        Raises:
            MalformedFragmentError: A fragment is not a readable ePub
            CollisionDetectedError: Two merged entries got the same href or id
        """
        book = self._new_book()
        used_hrefs: Dict[str, str] = {}
        used_ids: Set[str] = {NAV_ID, NCX_ID, COVER_ID}
        cover_pages: List[str] = []
        spine: List[str] = []
        toc: List[epub.Link] = []

        ordered = sorted(articles, key=lambda a: a.ordering_index)
        pages = PicturePageBuilder(images or {}, self._cover_service)

        for article in ordered:
            built = self._picture_page(pages, article, PictureBlock.cover(article))
            if built:
                self._add_items(book, article, built.values(), used_hrefs, used_ids)
                cover_pages.append(built['page'].id)

        for article in ordered:
            rekeyed = self._rekey(article)
            if rekeyed is None:
                continue

            built = self._picture_page(pages, article, PictureBlock.front(article))
            if built:
                self._add_items(book, article, built.values(), used_hrefs, used_ids)
                spine.append(built['page'].id)

            self._add_items(book, article, rekeyed.items, used_hrefs, used_ids)
            spine.extend(rekeyed.spine)
            toc.append(epub.Link(rekeyed.first_href, article.title, f"toc_art{article.ordering_index}"))
            logger.debug(f"Merged {article.identifier} as {self.prefix(article)}*")

        if cover:
            self._add_cover(book, cover, used_hrefs)

        book.toc = toc
        book.add_item(epub.EpubNcx())
        book.add_item(epub.EpubNav())
        book.spine = [NAV_ID] + cover_pages + spine

        output = io.BytesIO()
        epub.write_epub(output, book, {'epub3_pages': False, 'raise_exceptions': True})
        logger.info(f"Merged {len(toc)} articles and {len(cover_pages)} cover pages into {self.title!r}")
        return output.getvalue()

    @staticmethod
    def _picture_page(
        pages: PicturePageBuilder,
        article: Article,
        block: Optional[PictureBlock]
    ) -> Optional[Dict[str, epub.EpubItem]]:
        if block is None:
            return None
        return pages.build(article, block)

    @staticmethod
    def _add_items(
        book: epub.EpubBook,
        article: Article,
        items: Iterable[epub.EpubItem],
        used_hrefs: Dict[str, str],
        used_ids: Set[str]
    ) -> None:
        for item in items:
            if item.file_name in used_hrefs:
                raise CollisionDetectedError(
                    f"{item.file_name} of {article.identifier} collides with "
                    f"{used_hrefs[item.file_name]}",
                    item.file_name,
                )
            if item.id in used_ids:
                raise CollisionDetectedError(
                    f"Manifest id {item.id} of {article.identifier} is already used", item.id
                )
            used_hrefs[item.file_name] = article.identifier
            used_ids.add(item.id)
            book.add_item(item)

    def _new_book(self) -> epub.EpubBook:
        book = epub.EpubBook()
        book.set_identifier(self.identifier)
        book.set_title(self.title)
        book.set_language(self.language)
        book.add_author(self.author)
        book.add_metadata('DC', 'publisher', self.publisher)
        return book

    def _add_cover(self, book: epub.EpubBook, cover: bytes, used_hrefs: Dict[str, str]) -> None:
        try:
            image = self._cover_service.generate(cover)
        except (UnidentifiedImageError, OSError) as e:
            logger.warning(f"Skipping unreadable cover image: {e}")
            return
        if CoverImageService.FILE_NAME in used_hrefs:
            raise CollisionDetectedError(
                f"{CoverImageService.FILE_NAME} is already used", CoverImageService.FILE_NAME
            )
        book.set_cover(CoverImageService.FILE_NAME, image, create_page=False)

    def _rekey(self, article: Article) -> Optional[RekeyedArticle]:
        """
        Decode a fragment and rename its ids, files and links.

        Returns:
            The re-keyed article, None when the fragment has no resources
        """
        if article.content_kind is not ContentKind.EPUB_FRAGMENT:
            raise MalformedFragmentError(
                f"{article.identifier} is a {article.content_kind.value}, not an ePub fragment",
                article.identifier,
            )

        container = EpubContainer.from_bytes(article.raw_content, article.identifier)
        items = container.content_items()
        if not items:
            logger.warning(f"Skipping {article.identifier}: fragment has no resources")
            return None

        reading = container.reading_order()
        if not reading:
            raise MalformedFragmentError(f"{article.identifier} has an empty spine", article.identifier)

        prefix = self.prefix(article)
        path_map = {item.href: prefix + item.href.replace('/', '_') for item in items}
        id_map = {item.id: prefix + item.id for item in items}
        if len(set(path_map.values())) != len(path_map):
            raise CollisionDetectedError(f"{article.identifier} flattens two files to the same name")

        rewriter = ReferenceRewriter(path_map)
        rekeyed = RekeyedArticle(
            spine=[id_map[item.id] for item in reading],
            first_href=path_map[reading[0].href],
        )
        for item in items:
            rekeyed.items.append(self._build_item(item, container, rewriter, path_map, id_map))
        return rekeyed

    @staticmethod
    def _build_item(
        item: ManifestItem,
        container: EpubContainer,
        rewriter: ReferenceRewriter,
        path_map: Dict[str, str],
        id_map: Dict[str, str]
    ) -> epub.EpubItem:
        content = container.resources[item.href]
        if item.is_document:
            content = rewriter.rewrite_document(item.href, content)
        elif item.is_stylesheet:
            content = rewriter.rewrite_stylesheet(item.href, content)

        merged = epub.EpubItem(
            uid=id_map[item.id],
            file_name=path_map[item.href],
            media_type=item.media_type,
            content=content,
        )
        properties = [p for p in item.properties if p in KEPT_PROPERTIES]
        if properties:
            merged.properties = properties
        return merged
