"""Background footage sources."""

import logging
import random
from pathlib import Path

import httpx

from ..config import BackgroundConfig, Orientation
from ..exceptions import MediaFetchError

logger = logging.getLogger(__name__)

VIDEO_SUFFIXES = {".mp4", ".mov", ".mkv", ".webm", ".avi"}


class PexelsVideoFetcher:
    """Downloads a random matching stock video from Pexels."""

    BASE_URL = "https://api.pexels.com"

    def __init__(
        self,
        config: BackgroundConfig | None = None,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or BackgroundConfig()
        self.api_key = api_key or self.config.api_key
        self.transport = transport
        if not self.api_key:
            raise MediaFetchError(
                "Pexels API key required. Set PEXELS_API_KEY environment variable "
                "or backgrounds.api_key in config.yaml."
            )

    def _get_headers(self) -> dict[str, str]:
        return {"Authorization": self.api_key}

    async def search(self, client: httpx.AsyncClient, query: str, orientation: Orientation) -> list[dict]:
        """Return the ``videos`` array for a search query."""
        response = await client.get(
            f"{self.BASE_URL}/videos/search",
            params={
                "query": query,
                "per_page": self.config.per_page,
                "orientation": Orientation(orientation).value,
            },
            headers=self._get_headers(),
        )
        if response.status_code != 200:
            raise MediaFetchError(
                f"Pexels video search failed with status {response.status_code}: {response.text}"
            )
        return response.json().get("videos", [])

    async def fetch(
        self,
        query: str,
        output_path: Path,
        orientation: Orientation = Orientation.LANDSCAPE,
    ) -> Path:
        output_path = Path(output_path)
        try:
            async with httpx.AsyncClient(
                timeout=60.0, follow_redirects=True, transport=self.transport
            ) as client:
                videos = await self.search(client, query, orientation)
                if not videos:
                    raise MediaFetchError(f"No videos found for query '{query}'")

                video = random.choice(videos)
                files = video.get("video_files") or []
                link = files[0].get("link") if files else None
                if not link:
                    raise MediaFetchError("Pexels result has no downloadable video link")

                output_path.parent.mkdir(parents=True, exist_ok=True)
                async with client.stream("GET", link) as response:
                    response.raise_for_status()
                    with open(output_path, "wb") as f:
                        async for chunk in response.aiter_bytes():
                            f.write(chunk)
        except httpx.HTTPError as e:
            raise MediaFetchError(f"Pexels download failed for query '{query}': {e}") from e

        logger.info("Pexels video saved to %s", output_path)
        return output_path


class LocalMediaFetcher:
    """Copies a random video from a local directory.

    A subdirectory named after the query is preferred when it exists.
    """

    def __init__(self, directory: Path | str):
        self.directory = Path(directory)

    def candidates(self, query: str) -> list[Path]:
        for folder in (self.directory / query, self.directory):
            if folder.is_dir():
                files = sorted(
                    p for p in folder.iterdir() if p.is_file() and p.suffix.lower() in VIDEO_SUFFIXES
                )
                if files:
                    return files
        return []

    async def fetch(
        self,
        query: str,
        output_path: Path,
        orientation: Orientation = Orientation.LANDSCAPE,
    ) -> Path:
        output_path = Path(output_path)
        files = self.candidates(query)
        if not files:
            raise MediaFetchError(f"No background videos in {self.directory} for '{query}'")

        source = random.choice(files)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            output_path.write_bytes(source.read_bytes())
        except OSError as e:
            raise MediaFetchError(f"Cannot copy background {source}: {e}") from e
        logger.info("Using local background %s", source)
        return output_path
