"""Entry point for the sprite catalog web relay."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import uvicorn

from . import config
from .core.catalog import load_catalog
from .core.image_backend import resolve_backend
from .core.pack_fetcher import PackFetcher
from .core.transport import ResultTransport, StdoutTransport
from .web.server import create_app

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def serve(
    catalog_path: Path = config.CATALOG_PATH,
    cache_dir: Path = config.CACHE_DIR,
    host: str = config.HOST,
    port: int = config.PORT,
    pack_id: Optional[str] = None,
    transport: Optional[ResultTransport] = None,
) -> int:
    """Serve the catalog until a selection is handed off (or Ctrl+C)."""

    packs = load_catalog(catalog_path)
    fetcher = PackFetcher(cache_dir)
    if pack_id is not None:
        pack = next((p for p in packs if p.id == pack_id), None)
        if pack is None:
            logger.error('Pack "%s" not found in catalog', pack_id)
            return 1
        fetcher.fetch(pack.id, pack.download_url)

    server: Optional[uvicorn.Server] = None

    def stop() -> None:
        if server is not None:
            server.should_exit = True

    app = create_app(
        packs,
        cache_dir,
        transport or StdoutTransport(),
        fetcher=fetcher,
        image_backend=resolve_backend(),
        on_done=stop,
    )
    server = uvicorn.Server(uvicorn.Config(app, host=host, port=port, log_level="warning"))
    logger.info("Sprite catalog running at http://%s:%s", host, port)
    server.run()
    return 0


def run() -> int:
    configure_logging()
    return serve()


if __name__ == "__main__":
    sys.exit(run())
