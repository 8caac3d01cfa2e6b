"""
Handles the low-level downloading of artifacts over HTTP: manual redirect
following, filename resolution, streamed writes with polled progress, and
signature verification of the result.
"""

import asyncio
import contextlib
import logging
import tempfile
import webbrowser
from collections.abc import AsyncIterator
from pathlib import Path
from urllib.parse import urljoin

import aiofiles
import aiohttp
from aiohttp import hdrs

from bootkit.exceptions import DownloadFailed, TooManyRedirects
from bootkit.models.fetch import FetchedPayload, FetchRequest
from bootkit.models.progress import ProgressState
from bootkit.verification import Verifier, verify_signatures

from .filename import is_web_page, resolve_filename
from .reporting import LogProgressReporter, ProgressReporter

log = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 65536  # 64 KB


class Fetcher:
    """
    Downloads a single URL to disk.

    The body is written by one worker task. The calling coroutine waits on that
    task with a timeout of `poll_interval`, and after every wait hands the
    latest progress snapshot to the reporter.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        verifier: Verifier | None = None,
        reporter: ProgressReporter | None = None,
        poll_interval: float = 1.0,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        open_html_in_browser: bool = True,
        timeout: aiohttp.ClientTimeout | None = None,
    ):
        self._session = session
        self._owns_session = session is None
        self.verifier = verifier or Verifier()
        self.reporter = reporter or LogProgressReporter()
        self.poll_interval = poll_interval
        self.chunk_size = chunk_size
        self.open_html_in_browser = open_html_in_browser
        self.timeout = timeout or aiohttp.ClientTimeout(
            total=None, sock_connect=15, sock_read=90
        )

    async def _get_session(self) -> aiohttp.ClientSession:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=4,
                ttl_dns_cache=300,
                enable_cleanup_closed=True,
            )
            self._session = aiohttp.ClientSession(
                connector=connector, timeout=self.timeout
            )
            self._owns_session = True
            log.debug("Created download session.")
        return self._session

    async def close(self) -> None:
        """Closes the session if this fetcher created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
            log.debug("Download session closed.")

    async def __aenter__(self) -> "Fetcher":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def fetch(self, request: FetchRequest, dest_dir: Path) -> FetchedPayload:
        """
        Downloads `request.url` into `dest_dir` and verifies it.

        Raises:
            TooManyRedirects: If more than `request.redirect_limit` hops occur.
            DownloadFailed: On non-success statuses, web pages, empty or
                truncated bodies, and transport errors.
            UnsupportedContentType: If no filename can be derived.
            SignatureMismatch: If any signature entry fails.
        """
        session = await self._get_session()
        dest_dir = Path(dest_dir)
        url = request.url
        remaining = request.redirect_limit
        log.info(f"Requesting [cyan]{url}[/cyan]")

        while True:
            try:
                async with session.get(
                    url, headers=request.headers, allow_redirects=False
                ) as response:
                    location = response.headers.get(hdrs.LOCATION)
                    if 300 <= response.status < 400 and location:
                        if remaining == 0:
                            raise TooManyRedirects(
                                request.url, request.redirect_limit
                            )
                        remaining -= 1
                        url = urljoin(url, location.replace(" ", "%20"))
                        log.warning(f"  --> redirected to {url}")
                        continue

                    if not 200 <= response.status < 300:
                        raise DownloadFailed(
                            url, response.reason or "unexpected status", response.status
                        )

                    if is_web_page(url):
                        self._open_for_manual_download(url)
                    filename = resolve_filename(
                        url,
                        response.headers.get(hdrs.CONTENT_TYPE),
                        response.headers.get(hdrs.CONTENT_DISPOSITION),
                    )
                    target = dest_dir / filename
                    size = await self._stream_to_file(response, target, url)
            except aiohttp.ClientError as e:
                raise DownloadFailed(url, str(e) or type(e).__name__) from e
            break

        try:
            await verify_signatures(
                request.signatures,
                target,
                self.verifier,
                resolve_pgp=lambda ref: self._resolve_pgp_signature(ref, target),
            )
        except BaseException:
            with contextlib.suppress(OSError):
                target.unlink()
            raise

        return FetchedPayload(path=target, filename=filename, source_url=url, size=size)

    @contextlib.asynccontextmanager
    async def fetch_to_tempdir(
        self, request: FetchRequest
    ) -> AsyncIterator[FetchedPayload]:
        """
        Downloads into a fresh temporary directory that is removed when the
        `async with` block exits, whatever the outcome.
        """
        with tempfile.TemporaryDirectory(prefix="bootkit-") as tmp:
            yield await self.fetch(request, Path(tmp))

    async def _stream_to_file(
        self, response: aiohttp.ClientResponse, target: Path, url: str
    ) -> int:
        """Writes the body in a worker task while this coroutine polls progress."""
        total = response.content_length
        if total == 0:
            raise DownloadFailed(url, "no content")

        state = ProgressState(target.name, total)
        self.reporter.start(state.snapshot)
        worker = asyncio.create_task(self._write_body(response, target, state, url))
        success = False
        try:
            while True:
                done, _ = await asyncio.wait({worker}, timeout=self.poll_interval)
                self.reporter.update(state.snapshot)
                if done:
                    break
            received = worker.result()
            success = True
            return received
        finally:
            if not worker.done():
                worker.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await worker
            if not success:
                with contextlib.suppress(OSError):
                    target.unlink()
            self.reporter.finish(state.snapshot, success)

    async def _write_body(
        self,
        response: aiohttp.ClientResponse,
        target: Path,
        state: ProgressState,
        url: str,
    ) -> int:
        """The only writer of `state`."""
        try:
            async with aiofiles.open(target, "wb") as f:
                async for chunk in response.content.iter_chunked(self.chunk_size):
                    await f.write(chunk)
                    state.advance(len(chunk))
        except (aiohttp.ClientError, asyncio.TimeoutError, ConnectionError) as e:
            reason = str(e) or type(e).__name__
            raise DownloadFailed(url, f"transfer interrupted: {reason}") from e
        finally:
            state.finish()

        received = state.snapshot.bytes_received
        if state.total_bytes is not None and received < state.total_bytes:
            raise DownloadFailed(
                url,
                f"connection closed after {received} of {state.total_bytes} bytes",
            )
        return received

    async def _resolve_pgp_signature(self, ref: str, target: Path) -> Path:
        """Returns a local detached signature, downloading it when `ref` is a URL."""
        if not ref.startswith(("http://", "https://")):
            return Path(ref).expanduser()

        sig_path = target.with_name(f"{target.name}.sig")
        session = await self._get_session()
        log.debug(f"Fetching detached signature {ref}")
        try:
            async with session.get(ref) as response:
                if response.status != 200:
                    raise DownloadFailed(
                        ref, response.reason or "unexpected status", response.status
                    )
                async with aiofiles.open(sig_path, "wb") as f:
                    async for chunk in response.content.iter_chunked(self.chunk_size):
                        await f.write(chunk)
        except aiohttp.ClientError as e:
            raise DownloadFailed(ref, str(e) or type(e).__name__) from e
        return sig_path

    def _open_for_manual_download(self, url: str) -> None:
        """Best-effort: hand a web page to the desktop browser for a human to follow."""
        if not self.open_html_in_browser:
            return
        log.warning(
            f"[yellow]{url} is a web page; opening it for manual download.[/yellow]"
        )
        try:
            webbrowser.open(url)
        except webbrowser.Error as e:
            log.debug(f"Could not open browser for {url}: {e}")
