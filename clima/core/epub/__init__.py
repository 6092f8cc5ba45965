"""ePub fragment decoding and merging."""
from .container import EpubContainer, ManifestItem
from .rewriter import ReferenceRewriter
from .cover import CoverImageService
from .pages import PictureBlock, PicturePageBuilder
from .merger import EpubMerger

__all__ = [
    'EpubContainer',
    'ManifestItem',
    'ReferenceRewriter',
    'CoverImageService',
    'PictureBlock',
    'PicturePageBuilder',
    'EpubMerger',
]
