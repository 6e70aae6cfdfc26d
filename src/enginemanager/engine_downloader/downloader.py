"""
Streaming artifact downloads.
"""

import asyncio
import logging
from typing import BinaryIO, Callable, Optional

import aiohttp

from enginemanager.cancellation import CancellationToken
from enginemanager.enginemanager_config import DEFAULT_DOWNLOAD_CHUNK_SIZE
from enginemanager.enginemanager_exceptions import ArtifactDownloadError, FilesystemError
from enginemanager.enginemanager_logger import EngineManagerLogger

# Called with (bytes downloaded so far, total bytes or None when the server does not say).
ProgressCallback = Callable[[int, Optional[int]], None]


class ArtifactDownloader:
    """
    Streams artifacts from a URL into a writable binary stream, reporting
    progress and checking for cancellation between chunks.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        logger: EngineManagerLogger,
        chunk_size: int = DEFAULT_DOWNLOAD_CHUNK_SIZE,
    ):
        self.session = session
        self.logger = logger
        self.chunk_size = chunk_size

    async def download_to_stream(
        self,
        url: str,
        stream: BinaryIO,
        progress: Optional[ProgressCallback] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> int:
        """
        Download `url` into `stream`.

        Args:
            url: Artifact URL
            stream: Destination, written sequentially from its current position
            progress: Optional progress callback
            cancel: Optional cancellation token, checked before the request and after every chunk

        Returns:
            Number of bytes written

        Raises:
            ArtifactDownloadError: On transport failures or non-2xx responses
            FilesystemError: If writing to `stream` fails
            asyncio.CancelledError: If the token is cancelled
        """
        CancellationToken.check(cancel)
        self.logger.log(f"Downloading {url}", logging.DEBUG)

        downloaded = 0
        try:
            async with self.session.get(url) as response:
                response.raise_for_status()
                total = response.content_length

                if progress is not None:
                    progress(0, total)

                async for chunk in response.content.iter_chunked(self.chunk_size):
                    CancellationToken.check(cancel)
                    # Blocking write on the loop, bounded by chunk_size.
                    stream.write(chunk)
                    downloaded += len(chunk)
                    if progress is not None:
                        progress(downloaded, total)
        except aiohttp.ClientError as e:
            raise ArtifactDownloadError(f"Failed to download {url}: {e}") from e
        except asyncio.TimeoutError as e:
            raise ArtifactDownloadError(f"Timed out downloading {url}") from e
        except OSError as e:
            raise FilesystemError(f"Failed to write download of {url}: {e}") from e

        CancellationToken.check(cancel)
        stream.flush()

        self.logger.log(f"Downloaded {downloaded} bytes from {url}", logging.DEBUG)
        return downloaded
