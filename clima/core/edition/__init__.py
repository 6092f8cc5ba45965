"""Edition listing and download."""
from .models import (
    Article,
    ContentKind,
    Edition,
    Image,
    OutputMode,
    Post,
    reading_order,
)
from .fetcher import EditionFetcher

__all__ = [
    'Article',
    'ContentKind',
    'Edition',
    'EditionFetcher',
    'Image',
    'OutputMode',
    'Post',
    'reading_order',
]
