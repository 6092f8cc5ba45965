"""
ClimaClient - High-level async client for the il manifesto web edition.

Example:
    >>> async with ClimaClient("login.json", credentials=credentials) as clima:
    ...     paths = await clima.download(OutputMode.SINGLE_EPUB)
"""
import os
from pathlib import Path
from typing import List, Optional, Union

import aiofiles

from .core.api import APIConfig, AsyncAPIClient, AsyncAuthService
from .core.edition import Article, Edition, EditionFetcher, OutputMode
from .core.epub import EpubMerger
from .core.exceptions import InvalidCredentialsError, MissingCredentialsError, SessionExpiredError
from .core.logging import get_logger
from .core.session import Credentials, JSONSession, SessionData, SessionStorage

logger = get_logger('clima.client')


class ClimaClient:
    """
    High-level async client with a persistent session.

    The stored session is reused across runs; it is refreshed when its
    expiry hint has passed and replaced by a new login when the site
    rejects it. An edition fetch that hits an expired session is retried
    once after re-authenticating.

    Example:
        >>> async with ClimaClient("login.json") as clima:
        ...     await clima.download(OutputMode.PDF)
    """

    def __init__(
        self,
        session: Optional[Union[str, Path, SessionStorage]] = None,
        credentials: Optional[Credentials] = None,
        config: Optional[APIConfig] = None,
        output_dir: Optional[Union[str, Path]] = None,
        base_path: Optional[Path] = None,
        api: Optional[AsyncAPIClient] = None,
        auth: Optional[AsyncAuthService] = None,
        fetcher: Optional[EditionFetcher] = None
    ):
        """
        Initialize the client.

        Args:
            session: Session file path (default login.json) or custom storage
            credentials: Email/password used when no usable session is stored
            config: API configuration
            output_dir: Where downloaded files are written (cwd by default)
            base_path: Base directory for a relative session file
            api: Custom API client
            auth: Custom authentication service
            fetcher: Custom edition fetcher
        """
        if session is None or isinstance(session, (str, Path)):
            self._storage: SessionStorage = JSONSession(session, base_path)
        else:
            self._storage = session

        self._credentials = credentials
        self._config = config or APIConfig.default()
        self._api = api or AsyncAPIClient(self._config)
        self._auth = auth or AsyncAuthService(self._api)
        self._fetcher = fetcher or EditionFetcher(self._api, self._config.max_concurrency)
        self._output_dir = Path(output_dir) if output_dir else Path('.')
        self._session: Optional[SessionData] = None
        self._edition: Optional[Edition] = None

    @property
    def session(self) -> Optional[SessionData]:
        """Session in use this run."""
        return self._session

    @property
    def storage(self) -> SessionStorage:
        return self._storage

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    # =========================================================================
    # Context manager
    # =========================================================================

    async def __aenter__(self) -> 'ClimaClient':
        """Enter async context - restores or creates the session."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Close the client and release resources."""
        await self._api.close()
        self._storage.close()

    # =========================================================================
    # Authentication
    # =========================================================================

    async def start(self) -> SessionData:
        """
        Restore the stored session or log in.

        Returns:
            The session used for this run

        Raises:
            MissingCredentialsError: No usable session and no credentials
            AuthError: Login or refresh failed
        """
        stored = self._storage.load()

        if stored is not None and stored.is_usable():
            if not stored.is_expired():
                logger.info("Using stored session")
                self._session = stored
                return stored

            logger.info("Stored session expired, refreshing it")
            try:
                session = await self._auth.refresh(stored)
            except InvalidCredentialsError:
                logger.warning("The site rejected the refresh token, logging in again")
                session = await self._login("The stored session is no longer valid")
        else:
            session = await self._login("No stored session")

        return self._use(session)

    async def reauthenticate(self) -> SessionData:
        """
        Replace a session the site rejected.

        Logs in again when credentials are available, otherwise tries the
        refresh token.
        """
        if self._credentials is not None and self._credentials.is_complete():
            return self._use(await self._auth.login(self._credentials))

        current = self._session
        if current is None or not current.is_usable():
            raise MissingCredentialsError(
                "The session was rejected and no credentials are available"
            )
        try:
            session = await self._auth.refresh(current)
        except InvalidCredentialsError as e:
            raise MissingCredentialsError(
                "The session was rejected and no credentials are available"
            ) from e
        return self._use(session)

    async def _login(self, reason: str) -> SessionData:
        if self._credentials is None or not self._credentials.is_complete():
            raise MissingCredentialsError(f"{reason} and no credentials were given")
        return await self._auth.login(self._credentials)

    def _use(self, session: SessionData) -> SessionData:
        self._storage.save(session)
        self._session = session
        return session

    # =========================================================================
    # Edition
    # =========================================================================

    async def latest_edition(self, refresh: bool = False) -> Edition:
        """Latest edition, cached for the client's lifetime."""
        if self._edition is None or refresh:
            self._edition = await self._fetcher.latest_edition()
        return self._edition

    async def fetch(self, mode: OutputMode, edition: Optional[Edition] = None) -> List[Article]:
        """
        Download the edition's articles.

        A rejected session triggers one re-authentication and one more
        attempt; a second rejection propagates.

        Raises:
            SessionExpiredError: The site rejected the renewed session too
            FetchError: Download failed
        """
        if self._session is None:
            await self.start()
        edition = edition or await self.latest_edition()

        try:
            return await self._fetcher.fetch_edition(self._session, mode, edition)
        except SessionExpiredError:
            logger.warning("The site rejected the session, authenticating again")

        await self.reauthenticate()
        return await self._fetcher.fetch_edition(self._session, mode, edition)

    async def download(self, mode: OutputMode, keep_files: bool = False) -> List[Path]:
        """
        Download the edition and write it to the output directory.

        Args:
            mode: PDF, one ePub per article, or a single merged ePub
            keep_files: With SINGLE_EPUB, also keep the per-article files

        Returns:
            Paths of the written files
        """
        edition = await self.latest_edition()
        articles = await self.fetch(mode, edition)
        written: List[Path] = []

        if mode is OutputMode.PDF:
            path = self._output_dir / f"{edition.slug}.pdf"
            await self._write(path, articles[0].raw_content)
            return [path]

        if mode is OutputMode.EPUB:
            for article in articles:
                path = self._output_dir / article.file_name
                await self._write(path, article.raw_content)
                written.append(path)
            return written

        cover = await self._fetcher.fetch_cover(edition)
        images = await self._fetcher.fetch_post_images(articles)
        merged = EpubMerger(edition.title).merge(articles, cover=cover, images=images)
        path = self._output_dir / f"{edition.slug}.epub"
        await self._write(path, merged)
        written.append(path)

        if keep_files:
            for article in articles:
                fragment = self._output_dir / edition.slug / article.file_name
                await self._write(fragment, article.raw_content)
                written.append(fragment)

        return written

    async def _write(self, path: Path, data: bytes) -> None:
        """Write a file in one go; readers never see a partial file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        partial = path.with_name(f".{path.name}.part")
        try:
            async with aiofiles.open(partial, 'wb') as handle:
                await handle.write(data)
            os.replace(partial, path)
        except BaseException:
            if partial.exists():
                partial.unlink()
            raise
        logger.info(f"Wrote {path} ({len(data)} bytes)")
