"""Downloading and unpacking pack archives into a per-pack cache directory."""

from __future__ import annotations

import logging
import shutil
import zipfile
from pathlib import Path
from typing import Optional

import requests

from ..config import CACHE_DIR, DOWNLOAD_TIMEOUT_SECONDS
from ..utils import file_tools
from .errors import FetchError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


class PackFetcher:
    """Fetch a pack's archive once and reuse the extracted tree afterwards."""

    def __init__(
        self,
        cache_dir: Path = CACHE_DIR,
        session: Optional[requests.Session] = None,
        timeout: float = DOWNLOAD_TIMEOUT_SECONDS,
    ) -> None:
        self.cache_dir = cache_dir
        self.session = session or requests.Session()
        self.timeout = timeout

    def pack_dir(self, pack_id: str) -> Path:
        return self.cache_dir / pack_id

    def is_cached(self, pack_id: str) -> bool:
        target = self.pack_dir(pack_id)
        return target.is_dir() and any(target.iterdir())

    def fetch(self, pack_id: str, download_url: str) -> Path:
        """Return the extracted directory for a pack, downloading it if needed."""

        if not pack_id:
            raise FetchError("Pack id is required")
        target = self.pack_dir(pack_id)
        if self.is_cached(pack_id):
            logger.info("Using cached pack: %s", target)
            return target
        if not download_url:
            raise FetchError(f"Pack {pack_id} has no download URL")

        file_tools.ensure_directory(self.cache_dir)
        zip_path = self.cache_dir / f"{pack_id}.zip"
        try:
            self._download(download_url, zip_path)
            self._extract(zip_path, target)
        except FetchError:
            shutil.rmtree(target, ignore_errors=True)
            raise
        finally:
            zip_path.unlink(missing_ok=True)
        logger.info("Extracted %s to %s", pack_id, target)
        return target

    def _download(self, url: str, destination: Path) -> None:
        logger.info("Downloading %s", url)
        try:
            with self.session.get(url, stream=True, timeout=self.timeout) as response:
                response.raise_for_status()
                with destination.open("wb") as handle:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            handle.write(chunk)
        except requests.RequestException as exc:
            raise FetchError(f"Download failed for {url}: {exc}") from exc
        except OSError as exc:
            raise FetchError(f"Could not write {destination}: {exc}") from exc

    def _extract(self, zip_path: Path, target: Path) -> None:
        file_tools.ensure_directory(target)
        try:
            with zipfile.ZipFile(zip_path) as archive:
                for member in archive.namelist():
                    if not file_tools.is_within(target / member, target):
                        raise FetchError(f"Archive member escapes pack directory: {member}")
                archive.extractall(target)
        except zipfile.BadZipFile as exc:
            raise FetchError(f"Not a zip archive: {exc}") from exc
        except OSError as exc:
            raise FetchError(f"Extraction failed: {exc}") from exc
