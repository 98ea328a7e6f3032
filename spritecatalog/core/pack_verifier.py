"""Verification of pack definitions against their real sprite sheets.

The verifier never raises for problems in the pack data. Everything it finds
lands in a VerificationReport:

* structural problems (missing id/name/downloadUrl/sprites) end the run;
* a failed download or an unresolvable primary sheet ends the image checks;
* out-of-bounds frames are collected exhaustively;
* image backend failures become warnings and skip only the affected item.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Any, Callable, Optional

from .. import config
from ..utils import file_tools
from . import AnimatedSprite, SpritePack, VerificationReport
from .errors import FetchError, ImageProcessingError, PackFormatError
from .grid import is_within_bounds
from .image_backend import ImageBackend
from .pack_fetcher import PackFetcher
from .pack_loader import load_pack_definition, structural_errors
from .sprites import effective_rect, frame_at, iter_frames

logger = logging.getLogger(__name__)

BACKEND_UNAVAILABLE_WARNING = "Image processing unavailable, skipping coordinate checks and preview"


class PackVerifier:
    """Check a pack's sprites against its primary sheet and render a preview."""

    def __init__(
        self,
        fetcher: Optional[PackFetcher] = None,
        image_backend: Optional[ImageBackend] = None,
        preview_dir: Optional[Path] = None,
    ) -> None:
        self.fetcher = fetcher
        self.image_backend = image_backend
        self.preview_dir = preview_dir

    def verify(self, pack: SpritePack, pack_dir: Optional[Path] = None) -> VerificationReport:
        report = VerificationReport()

        report.errors.extend(structural_errors(pack))
        if report.errors:
            report.valid = False
            return report

        report.sprite_count = len(pack.sprites)
        logger.info("Pack: %s (%s sprites)", pack.name, report.sprite_count)

        if pack_dir is None:
            if self.fetcher is None:
                raise ValueError("PackVerifier needs a pack_dir or a fetcher")
            try:
                pack_dir = self.fetcher.fetch(pack.id, pack.download_url)
            except FetchError as exc:
                report.errors.append(f"Download failed: {exc}")
                report.valid = False
                return report

        if not pack.primary_sheet:
            report.warnings.append("No primarySheet defined, skipping image verification")
            return self._finish(report)

        sheet_path = file_tools.find_file(pack_dir, pack.primary_sheet)
        if sheet_path is None:
            report.errors.append(f"Primary sheet not found: {pack.primary_sheet}")
            return self._finish(report)
        logger.info("Sheet: %s", sheet_path)

        backend = self.image_backend
        if backend is None:
            report.warnings.append(BACKEND_UNAVAILABLE_WARNING)
            return self._finish(report)

        try:
            sheet = backend.open(sheet_path)
            sheet_w, sheet_h = backend.size(sheet)
        except ImageProcessingError as exc:
            report.warnings.append(f"Image verification failed: {exc}")
            return self._finish(report)

        tile_size = pack.tile_size or config.DEFAULT_TILE_SIZE
        logger.info("Sheet size: %sx%s, tileSize: %s", sheet_w, sheet_h, tile_size)

        report.errors.extend(check_bounds(pack, sheet_w, sheet_h, tile_size))
        self._build_preview(pack, sheet, backend, tile_size, report)
        return self._finish(report)

    def _finish(self, report: VerificationReport) -> VerificationReport:
        report.valid = not report.errors
        return report

    def _build_preview(
        self,
        pack: SpritePack,
        sheet: Any,
        backend: ImageBackend,
        tile_size: int,
        report: VerificationReport,
    ) -> None:
        names = list(pack.sprites)[: config.PREVIEW_LIMIT]
        cell = config.PREVIEW_CELL_SIZE
        inset = config.PREVIEW_INSET
        columns = config.PREVIEW_COLUMNS
        rows = math.ceil(len(names) / columns)
        inner = cell - 2 * inset

        placements = []
        for idx, name in enumerate(names):
            frame = effective_rect(frame_at(pack.sprites[name], 0), tile_size)
            col = idx % columns
            row = idx // columns
            try:
                cropped = backend.crop(sheet, frame)
                fitted = backend.fit(cropped, inner, inner)
            except ImageProcessingError as exc:
                logger.warning("Failed to extract %s: %s", name, exc)
                report.warnings.append(f"Failed to extract {name}: {exc}")
                continue
            placements.append((fitted, col * cell + inset, row * cell + inset))

        try:
            canvas = backend.compose((columns * cell, rows * cell), config.PREVIEW_BACKGROUND, placements)
            if self.preview_dir is not None:
                preview_path = file_tools.preview_path_for(self.preview_dir, pack.id)
                report.preview_path = backend.save(canvas, preview_path)
                logger.info("Preview: %s", report.preview_path)
        except ImageProcessingError as exc:
            logger.warning("Preview generation failed for %s: %s", pack.id, exc)
            report.warnings.append(f"Preview generation failed: {exc}")


def check_bounds(pack: SpritePack, sheet_width: int, sheet_height: int, tile_size: int) -> list[str]:
    """Describe every frame that falls outside the sheet."""

    errors = []
    for name, sprite in pack.sprites.items():
        animated = isinstance(sprite, AnimatedSprite)
        for idx, frame in enumerate(iter_frames(sprite)):
            rect = effective_rect(frame, tile_size)
            if is_within_bounds(rect, sheet_width, sheet_height):
                continue
            label = f"{name} frame {idx}" if animated else name
            errors.append(f"{label}: out of bounds ({rect.x},{rect.y} {rect.w}x{rect.h})")
    return errors


def verify_definition_file(path: Path, verifier: PackVerifier, pack_dir: Optional[Path] = None) -> VerificationReport:
    """Load a definition file and verify it; parse failures become structural errors."""

    logger.info("Verifying: %s", path)
    try:
        pack = load_pack_definition(path)
    except PackFormatError as exc:
        return VerificationReport(valid=False, errors=[exc.reason])
    return verifier.verify(pack, pack_dir)


def verify_many(
    paths: list[Path],
    verifier_factory: Callable[[Path], PackVerifier],
) -> dict[Path, VerificationReport]:
    """Verify definitions one after another, each with its own verifier."""

    reports: dict[Path, VerificationReport] = {}
    for path in paths:
        reports[path] = verify_definition_file(path, verifier_factory(path))
    return reports
