"""Edition, post and article models."""
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional
from urllib.parse import urlparse
import posixpath

# Posts without a front-page position come after the ones that have one
DEFAULT_COVER_POSITION = 99


class OutputMode(Enum):
    """What a run produces."""
    PDF = 'pdf'
    EPUB = 'epub'
    SINGLE_EPUB = 'single-epub'


class ContentKind(Enum):
    PDF = 'pdf'
    EPUB_FRAGMENT = 'epub'


@dataclass
class Image:
    src: str

    @property
    def file_name(self) -> str:
        """Last path segment of the image URL."""
        return posixpath.basename(urlparse(self.src).path)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional['Image']:
        if not data or not data.get('src'):
            return None
        return cls(src=data['src'])


@dataclass
class Edition:
    """One day's issue, as returned by ``wp/editions/latest``."""
    id: int
    slug: str
    pdf: str
    title: str
    featured_image: Optional[Image] = None

    @classmethod
    def from_dict(cls, data: dict) -> 'Edition':
        return cls(
            id=data['id'],
            slug=data['slug'],
            pdf=data['pdf'],
            title=data['title'],
            featured_image=Image.from_dict(data.get('featuredImage')),
        )


@dataclass
class Post:
    """One article of an edition listing."""
    slug: str
    title: str
    kicker: str = ''
    summary: str = ''
    excerpt: str = ''
    cover_position: Optional[int] = None
    cover_title: str = ''
    cover_summary: str = ''
    cover_image: Optional[Image] = None
    featured_image: Optional[Image] = None

    @property
    def sort_key(self) -> int:
        if self.cover_position is None:
            return DEFAULT_COVER_POSITION
        return self.cover_position

    @classmethod
    def from_dict(cls, data: dict) -> 'Post':
        return cls(
            slug=data['slug'],
            title=data['title'],
            kicker=data.get('kicker') or '',
            summary=data.get('summary') or '',
            excerpt=data.get('excerpt') or '',
            cover_position=data.get('coverPosition'),
            cover_title=data.get('coverTitle') or '',
            cover_summary=data.get('coverSummary') or '',
            cover_image=Image.from_dict(data.get('coverImage')),
            featured_image=Image.from_dict(data.get('featuredImage')),
        )


def reading_order(posts: List[Post]) -> List[Post]:
    """Stable sort by front-page position; listing order breaks ties."""
    return sorted(posts, key=lambda post: post.sort_key)


@dataclass
class Article:
    """
    Downloaded content of one article (or of the whole PDF edition).

    ``ordering_index`` is the reading position, 0..N-1 within an edition;
    ``post`` is the listing entry a fragment was downloaded for.
    """
    identifier: str
    title: str
    ordering_index: int
    raw_content: bytes
    content_kind: ContentKind
    post: Optional[Post] = None

    @property
    def file_name(self) -> str:
        extension = 'pdf' if self.content_kind is ContentKind.PDF else 'epub'
        return f"{self.identifier}.{extension}"

    def __repr__(self) -> str:
        return (
            f"Article({self.ordering_index}, {self.identifier!r}, "
            f"{self.content_kind.value}, {len(self.raw_content)} bytes)"
        )
