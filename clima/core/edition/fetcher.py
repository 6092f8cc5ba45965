"""
Edition fetcher.

Enumerates the current edition and downloads its content with the
session's bearer token. Article downloads run concurrently, bounded by a
semaphore, and are put back in reading order before being returned.
"""
import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .models import Article, ContentKind, Edition, OutputMode, Post, reading_order
from ..api.async_client import AsyncAPIClient
from ..api.errors import APIError, NetworkError, ResponseFormatError
from ..exceptions import (
    ArticleUnavailableError,
    FetchUnexpectedResponseError,
    FetchUnreachableError,
    SessionExpiredError,
)
from ..logging import get_logger
from ..session.models import SessionData, SessionState


class EditionFetcher:
    """
    Retrieves the latest edition as an ordered list of articles.

    Example:
        >>> fetcher = EditionFetcher(client)
        >>> edition = await fetcher.latest_edition()
        >>> articles = await fetcher.fetch_edition(session, OutputMode.EPUB, edition)
    """

    LATEST_EDITION_PATH = 'wp/editions/latest'
    POSTS_PATH = 'wp/editions/{edition_id}/posts'
    PDF_PATH = 'wp/pdfs/slug/{pdf}/download'
    EPUB_PATH = 'wp/posts/{slug}/download/epub'

    def __init__(self, client: AsyncAPIClient, max_concurrency: Optional[int] = None):
        """
        Initialize the fetcher.

        Args:
            client: Async API client
            max_concurrency: Parallel article downloads (config default if None)
        """
        self._client = client
        self._max_concurrency = max(1, max_concurrency or client.config.max_concurrency)
        self._logger = get_logger('clima.edition')

    async def latest_edition(self) -> Edition:
        """
        Get the edition currently on sale. No authentication needed.

        Raises:
            FetchUnreachableError: The site cannot be reached
            FetchUnexpectedResponseError: The answer has an unknown shape
        """
        try:
            data = await self._client.get_json(self.LATEST_EDITION_PATH)
        except APIError as e:
            raise self._translate(e, 'latest edition') from e

        try:
            edition = Edition.from_dict(data)
        except (KeyError, TypeError) as e:
            raise FetchUnexpectedResponseError(f"Unexpected edition payload: {e!r}") from e

        self._logger.info(f"Latest edition: {edition.slug}")
        return edition

    async def list_posts(self, session: SessionData, edition: Edition) -> List[Post]:
        """Posts of an edition, in reading order."""
        path = self.POSTS_PATH.format(edition_id=edition.id)
        data = await self._authenticated(session, self._client.get_json, path, 'post listing')

        try:
            posts = [Post.from_dict(item) for item in data['data']]
        except (KeyError, TypeError) as e:
            raise FetchUnexpectedResponseError(f"Unexpected post listing payload: {e!r}") from e

        self._logger.info(f"Edition {edition.slug} lists {len(posts)} posts")
        return reading_order(posts)

    async def fetch_edition(
        self,
        session: SessionData,
        mode: OutputMode,
        edition: Optional[Edition] = None
    ) -> List[Article]:
        """
        Download the edition's content.

        Args:
            session: Session whose access token authenticates the calls
            mode: PDF yields one PDF article, the ePub modes one fragment per post
            edition: Edition to fetch (latest if not given)

        Returns:
            Articles sorted by ordering_index, indices 0..N-1

        Raises:
            SessionExpiredError: The site rejected the session token
            ArticleUnavailableError: An article could not be downloaded
            FetchUnreachableError: The site cannot be reached
            FetchUnexpectedResponseError: A listing has an unknown shape
        """
        edition = edition or await self.latest_edition()

        if mode is OutputMode.PDF:
            path = self.PDF_PATH.format(pdf=edition.pdf)
            content = await self._authenticated(
                session, self._client.get_bytes, path, 'PDF', slug=edition.pdf
            )
            return [Article(
                identifier=edition.slug,
                title=edition.title,
                ordering_index=0,
                raw_content=content,
                content_kind=ContentKind.PDF,
            )]

        posts = await self.list_posts(session, edition)
        return await self._download_fragments(session, posts)

    async def _download_fragments(self, session: SessionData, posts: List[Post]) -> List[Article]:
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def download(index: int, post: Post) -> Article:
            async with semaphore:
                self._logger.debug(f"Downloading article {index}: {post.slug}")
                content = await self._authenticated(
                    session,
                    self._client.get_bytes,
                    self.EPUB_PATH.format(slug=post.slug),
                    'article',
                    slug=post.slug,
                )
            return Article(
                identifier=post.slug,
                title=post.title,
                ordering_index=index,
                raw_content=content,
                content_kind=ContentKind.EPUB_FRAGMENT,
                post=post,
            )

        tasks = [asyncio.ensure_future(download(index, post)) for index, post in enumerate(posts)]
        try:
            articles = await asyncio.gather(*tasks)
        except BaseException:
            # One failure fails the edition; drop whatever is still in flight
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        articles = sorted(articles, key=lambda article: article.ordering_index)
        if [a.ordering_index for a in articles] != list(range(len(posts))):
            raise FetchUnexpectedResponseError('Article indices are not contiguous')

        self._logger.info(f"Downloaded {len(articles)} articles")
        return articles

    async def fetch_cover(self, edition: Edition) -> Optional[bytes]:
        """
        Download the edition's featured image.

        Returns:
            Image bytes, None when the edition has none or it cannot be fetched
        """
        if edition.featured_image is None:
            return None
        try:
            return await self._client.get_bytes(edition.featured_image.src)
        except APIError as e:
            self._logger.warning(f"Cannot download cover {edition.featured_image.src}: {e.message}")
            return None

    async def fetch_post_images(self, articles: List[Article]) -> Dict[str, bytes]:
        """
        Download the cover and featured images of the articles' posts.

        The images are public, so no token is sent. A failed download only
        drops that image.

        Returns:
            Image bytes keyed by source URL
        """
        sources: List[str] = []
        for article in articles:
            if article.post is None:
                continue
            for image in (article.post.cover_image, article.post.featured_image):
                if image is not None and image.src not in sources:
                    sources.append(image.src)

        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def download(src: str) -> Optional[bytes]:
            async with semaphore:
                try:
                    return await self._client.get_bytes(src)
                except APIError as e:
                    self._logger.warning(f"Cannot download image {src}: {e.message}")
                    return None

        results = await asyncio.gather(*(download(src) for src in sources))
        images = {src: data for src, data in zip(sources, results) if data}
        self._logger.info(f"Downloaded {len(images)} of {len(sources)} post images")
        return images

    async def _authenticated(
        self,
        session: SessionData,
        call: Callable[..., Awaitable[Any]],
        path: str,
        what: str,
        slug: Optional[str] = None
    ) -> Any:
        """Run an authenticated call and track the session state."""
        try:
            result = await call(path, token=session.access_token)
        except APIError as e:
            if e.is_auth_failure:
                session.mark_invalid()
                raise SessionExpiredError(
                    f"The site rejected the session while fetching the {what}", e.status
                ) from e
            raise self._translate(e, what, slug) from e

        if session.state is SessionState.FRESH:
            session.mark_verified()
        return result

    @staticmethod
    def _translate(error: APIError, what: str, slug: Optional[str] = None) -> Exception:
        if isinstance(error, NetworkError):
            return FetchUnreachableError(f"Cannot reach the site for the {what}: {error.message}")
        if isinstance(error, ResponseFormatError):
            return FetchUnexpectedResponseError(f"Unreadable {what}: {error.message}")
        if slug is not None:
            return ArticleUnavailableError(
                f"Cannot download {what} {slug} (HTTP {error.status})", slug, error.status
            )
        if error.status == 429 or (error.status is not None and error.status >= 500):
            return FetchUnreachableError(
                f"The site is failing for the {what} (HTTP {error.status})", error.status
            )
        return FetchUnexpectedResponseError(
            f"Unexpected HTTP {error.status} for the {what}", error.status
        )
