"""FastAPI relay between a sheet view in the browser and the selector session."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Literal, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from pydantic import BaseModel, ConfigDict, Field, model_validator
from starlette.concurrency import run_in_threadpool

from .. import config
from ..core import SpriteRect
from ..core.catalog import CatalogPack, find_pack_images, relative_sheet_paths
from ..core.errors import FetchError, ImageProcessingError, SessionClosedError, ValidationError
from ..core.image_backend import ImageBackend
from ..core.pack_fetcher import PackFetcher
from ..core.selector import PackIdentity, SelectorSession, SheetRef, Viewport
from ..core.transport import ResultTransport

logger = logging.getLogger(__name__)

ALLOWED_ORIGINS = [f"http://localhost:{config.PORT}", f"http://127.0.0.1:{config.PORT}"]


class GridOffset(BaseModel):
    x: int = Field(0, ge=0)
    y: int = Field(0, ge=0)


class SpriteBox(BaseModel):
    x: int
    y: int
    w: int = Field(..., ge=1)
    h: int = Field(..., ge=1)


class SelectionResult(BaseModel):
    """The hand-off payload produced when a user finishes selecting."""

    model_config = ConfigDict(populate_by_name=True)

    pack_id: str = Field(..., alias="packId", min_length=1)
    pack_name: str = Field("", alias="packName")
    source: str = ""
    sheet_path: str = Field(..., alias="sheetPath")
    sheet_width: int = Field(..., alias="sheetWidth", ge=1)
    sheet_height: int = Field(..., alias="sheetHeight", ge=1)
    tile_size: int = Field(..., alias="tileSize", ge=1)
    spacing: int = Field(0, ge=0)
    grid_offset: GridOffset = Field(default_factory=GridOffset, alias="gridOffset")
    sprites: dict[str, SpriteBox] = Field(default_factory=dict)
    cache_path: str = Field("", alias="cachePath")


class SessionRequest(BaseModel):
    pack_id: str = Field(..., min_length=1)
    sheet_index: int = Field(0, ge=0)
    viewport_width: int = Field(800, ge=1)
    viewport_height: int = Field(600, ge=1)
    zoom: Optional[int] = Field(None, ge=config.MIN_ZOOM, le=config.MAX_ZOOM)


class PointerEvent(BaseModel):
    event: Literal["down", "move", "up", "leave"]
    x: float = 0.0
    y: float = 0.0
    modifier: bool = False


class ZoomRequest(BaseModel):
    zoom: Optional[int] = None
    step: Optional[int] = None

    @model_validator(mode="after")
    def _one_of(self):
        if (self.zoom is None) == (self.step is None):
            raise ValueError("Provide exactly one of zoom or step")
        return self


class GridUpdate(BaseModel):
    tile_size: Optional[int] = Field(None, ge=1)
    spacing: Optional[int] = Field(None, ge=0)
    offset_x: Optional[int] = Field(None, ge=0)
    offset_y: Optional[int] = Field(None, ge=0)


class SheetSwitch(BaseModel):
    sheet_index: int = Field(..., ge=0)


class RenameRequest(BaseModel):
    name: str = Field(..., min_length=1)


def _rect_payload(rect: Optional[SpriteRect]) -> Optional[dict[str, int]]:
    return None if rect is None else {"x": rect.x, "y": rect.y, "w": rect.w, "h": rect.h}


def session_payload(session: SelectorSession, sheet_index: int) -> dict[str, Any]:
    xs, ys = session.guide_lines()
    return {
        "state": session.state.value,
        "zoom": session.zoom,
        "sheet": {
            "index": sheet_index,
            "path": session.sheet.path,
            "width": session.sheet.width,
            "height": session.sheet.height,
        },
        "tileSize": session.grid.tile_size,
        "spacing": session.grid.spacing,
        "gridOffset": {"x": session.grid.offset_x, "y": session.grid.offset_y},
        "viewport": {
            "width": session.viewport.width,
            "height": session.viewport.height,
            "scrollX": session.viewport.scroll_x,
            "scrollY": session.viewport.scroll_y,
        },
        "hover": _rect_payload(session.hover),
        "selection": [
            {"name": e.name, "x": e.x, "y": e.y, "w": e.w, "h": e.h} for e in session.selection
        ],
        "guideLines": {"x": xs, "y": ys},
    }


class _ActiveSession:
    def __init__(self, session: SelectorSession, pack: CatalogPack, sheets: list[Path], sheet_index: int) -> None:
        self.session = session
        self.pack = pack
        self.sheets = sheets
        self.sheet_index = sheet_index


def create_app(
    packs: list[CatalogPack],
    cache_dir: Path,
    transport: ResultTransport,
    fetcher: Optional[PackFetcher] = None,
    image_backend: Optional[ImageBackend] = None,
    on_done: Optional[Callable[[], None]] = None,
) -> FastAPI:
    app = FastAPI(title="Sprite Catalog", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    catalog = {pack.id: pack for pack in packs}
    pack_fetcher = fetcher or PackFetcher(cache_dir)
    active: dict[str, _ActiveSession] = {}

    def _pack_or_404(pack_id: str) -> CatalogPack:
        pack = catalog.get(pack_id)
        if pack is None:
            raise HTTPException(status_code=404, detail="Pack not found in catalog")
        return pack

    def _sheet_or_404(pack_id: str, index: int) -> tuple[list[Path], Path]:
        sheets = find_pack_images(cache_dir, pack_id)
        if not sheets:
            raise HTTPException(status_code=404, detail="Pack not found or not downloaded")
        if index < 0 or index >= len(sheets):
            raise HTTPException(status_code=404, detail=f"No sheet at index {index}")
        return sheets, sheets[index]

    def _sheet_ref(pack_id: str, path: Path) -> SheetRef:
        if image_backend is None:
            raise HTTPException(status_code=503, detail="Image processing unavailable")
        try:
            width, height = image_backend.size(image_backend.open(path))
        except ImageProcessingError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        relative = path.relative_to(cache_dir / pack_id).as_posix()
        return SheetRef(path=relative, width=width, height=height)

    def _current() -> _ActiveSession:
        current = active.get("session")
        if current is None:
            raise HTTPException(status_code=404, detail="No active session")
        if current.session.closed:
            raise HTTPException(status_code=409, detail="Session already closed")
        return current

    def _finish() -> None:
        active.pop("session", None)
        if on_done is not None:
            on_done()

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/packs")
    async def list_packs() -> dict[str, list[dict[str, Any]]]:
        entries = []
        for pack in packs:
            images = find_pack_images(cache_dir, pack.id)
            entries.append(
                {
                    **pack.to_dict(),
                    "downloaded": bool(images),
                    "sheets": relative_sheet_paths(cache_dir, pack.id, images),
                }
            )
        return {"packs": entries}

    @app.post("/download/{pack_id}")
    async def download_pack(pack_id: str) -> dict[str, Any]:
        pack = catalog.get(pack_id)
        if pack is None:
            return {"success": False, "error": "Pack not found in catalog"}
        try:
            await run_in_threadpool(pack_fetcher.fetch, pack.id, pack.download_url)
        except FetchError as exc:
            logger.warning("Download of %s failed: %s", pack_id, exc)
            return {"success": False, "error": str(exc)}
        return {"success": True}

    @app.get("/api/packs/{pack_id}/sheets/{index}")
    async def sheet_image(pack_id: str, index: int) -> FileResponse:
        _pack_or_404(pack_id)
        _, path = _sheet_or_404(pack_id, index)
        return FileResponse(path, media_type="image/png")

    @app.post("/api/session")
    async def open_session(request: SessionRequest) -> dict[str, Any]:
        pack = _pack_or_404(request.pack_id)
        sheets, path = _sheet_or_404(pack.id, request.sheet_index)
        sheet = await run_in_threadpool(_sheet_ref, pack.id, path)
        identity = PackIdentity(
            id=pack.id,
            name=pack.name,
            source=pack.source,
            cache_path=str((cache_dir / pack.id).resolve()),
        )
        try:
            session = SelectorSession(
                identity,
                sheet,
                pack.grid(),
                Viewport(request.viewport_width, request.viewport_height),
                zoom=request.zoom,
            )
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        active["session"] = _ActiveSession(session, pack, sheets, request.sheet_index)
        logger.info("Opened session for %s, sheet %s", pack.id, sheet.path)
        return session_payload(session, request.sheet_index)

    @app.get("/api/session")
    async def get_session() -> dict[str, Any]:
        current = _current()
        return session_payload(current.session, current.sheet_index)

    @app.post("/api/session/pointer")
    async def pointer(event: PointerEvent) -> dict[str, Any]:
        current = _current()
        session = current.session
        try:
            if event.event == "down":
                session.pointer_down(event.x, event.y, modifier=event.modifier)
            elif event.event == "move":
                session.pointer_move(event.x, event.y)
            elif event.event == "up":
                session.pointer_up(event.x, event.y)
            else:
                session.pointer_leave()
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return session_payload(session, current.sheet_index)

    @app.post("/api/session/zoom")
    async def zoom(request: ZoomRequest) -> dict[str, Any]:
        current = _current()
        target = request.zoom if request.zoom is not None else current.session.zoom + request.step
        current.session.zoom_to(target)
        return session_payload(current.session, current.sheet_index)

    @app.patch("/api/session/grid")
    async def update_grid(update: GridUpdate) -> dict[str, Any]:
        current = _current()
        session = current.session
        try:
            if update.tile_size is not None:
                session.set_tile_size(update.tile_size)
            if update.spacing is not None:
                session.set_spacing(update.spacing)
            if update.offset_x is not None or update.offset_y is not None:
                session.set_offset(
                    update.offset_x if update.offset_x is not None else session.grid.offset_x,
                    update.offset_y if update.offset_y is not None else session.grid.offset_y,
                )
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return session_payload(session, current.sheet_index)

    @app.post("/api/session/sheet")
    async def switch_sheet(request: SheetSwitch) -> dict[str, Any]:
        current = _current()
        sheets, path = _sheet_or_404(current.pack.id, request.sheet_index)
        sheet = await run_in_threadpool(_sheet_ref, current.pack.id, path)
        current.session.load_sheet(sheet)
        current.sheets = sheets
        current.sheet_index = request.sheet_index
        return session_payload(current.session, current.sheet_index)

    @app.patch("/api/session/selection/{index}")
    async def rename_selection(index: int, request: RenameRequest) -> dict[str, Any]:
        current = _current()
        try:
            current.session.selection.rename(index, request.name)
        except IndexError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return session_payload(current.session, current.sheet_index)

    @app.delete("/api/session/selection/{index}")
    async def remove_selection(index: int) -> dict[str, Any]:
        current = _current()
        try:
            current.session.selection.remove(index)
        except IndexError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return session_payload(current.session, current.sheet_index)

    @app.delete("/api/session/selection")
    async def clear_selection() -> dict[str, Any]:
        current = _current()
        current.session.selection.clear()
        return session_payload(current.session, current.sheet_index)

    @app.post("/api/session/done")
    async def session_done() -> dict[str, Any]:
        current = _current()
        try:
            result = current.session.copy_and_close(transport)
        except SessionClosedError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        _finish()
        return {"ok": True, "result": result}

    @app.post("/done")
    async def done(result: SelectionResult) -> dict[str, bool]:
        transport(result.model_dump(by_alias=True))
        logger.info("Received selection of %s sprites for %s", len(result.sprites), result.pack_id)
        _finish()
        return {"ok": True}

    return app
