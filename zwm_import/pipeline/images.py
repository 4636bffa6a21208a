"""Relocation of shop images from the legacy origin into the staging directory."""

from __future__ import annotations

import asyncio
from pathlib import Path
from urllib.parse import urlparse

from zwm_import.common.errors import ImageFetchError, StageError
from zwm_import.common.fs import write_bytes_atomic
from zwm_import.common.http import HttpClient, TimeoutConfig
from zwm_import.common.ids import generate_image_id
from zwm_import.common.models import ImageReference


class ImageRelocator:
    """Fetches an image by path from ``origin`` and stores it under a fresh UUID.

    The identifier is only handed out once the bytes are on disk, so every
    returned reference has a backing file in ``staging_dir``.
    """

    def __init__(
        self,
        http_client: HttpClient,
        *,
        origin: str,
        public_base_url: str,
        staging_dir: Path,
        timeout: TimeoutConfig | None = None,
    ) -> None:
        self.http_client = http_client
        self.origin = origin.rstrip("/")
        self.public_base_url = public_base_url
        self.staging_dir = staging_dir
        self.timeout = timeout

    def source_url(self, src: str) -> str:
        path = urlparse(src).path or "/"
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{self.origin}{path}"

    def relocate(self, src: str | None) -> ImageReference | None:
        if src is None or not src.strip():
            return None

        url = self.source_url(src.strip())
        try:
            payload = self.http_client.get_bytes(url, timeout=self.timeout)
        except StageError as exc:
            raise ImageFetchError(f"Could not fetch image {url}: {exc}") from exc

        image_id = generate_image_id()
        try:
            write_bytes_atomic(self.staging_dir / image_id, payload)
        except OSError as exc:
            raise ImageFetchError(f"Could not store image {url} as {image_id}: {exc}") from exc

        return ImageReference(src=f"{self.public_base_url}{image_id}", uuid=image_id)

    async def relocate_async(self, src: str | None) -> ImageReference | None:
        return await asyncio.to_thread(self.relocate, src)

    def discard(self, image: ImageReference) -> None:
        """Remove the staged file behind ``image``."""
        (self.staging_dir / image.uuid).unlink(missing_ok=True)
