"""
FastAPI Web Application for the Prompt Mix Library

Endpoints:
  GET    /api/mixes                 - Search/sort mixes (?search=&sort=)
  GET    /api/mixes/{id}            - One mix
  POST   /api/mixes                 - Create a mix
  PUT    /api/mixes/{id}            - Edit a mix (id and createdAt are kept)
  DELETE /api/mixes/{id}            - Delete a mix (no error when absent)
  GET    /api/gallery               - Display-ready list for a view mode
  GET    /api/library               - Library name, theme, mix count
  PUT    /api/library/name          - Rename the library
  POST   /api/library/theme/toggle  - Switch light/dark
  GET    /api/export                - Download the library as JSON
  POST   /api/import                - Merge a JSON document (raw request body)
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional
from urllib.parse import quote

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from loguru import logger

from .config import Settings
from .errors import ImportValidationError
from .models import MixFormData, SortOption, ViewMode
from .query import process_mixes
from .storage import LocalStorage
from .store import MixStore
from .transfer import export_library, import_library
from .viewer import layout_class, resolve_image_url


class RenameRequest(BaseModel):
    name: str


def get_store(request: Request) -> MixStore:
    return request.app.state.store


def create_app(store: Optional[MixStore] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the web app around ``store``.

    Without a store, one is opened on the slot file named by ``settings``
    (or the environment) when the app starts.
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app_instance: FastAPI):
        if app_instance.state.store is None:
            opened = MixStore(LocalStorage(settings.storage_path))
            opened.initialize()
            app_instance.state.store = opened
        logger.info(f"Prompt Mix Library ready. {len(app_instance.state.store)} mixes loaded.")
        yield

    app = FastAPI(title="Prompt Mix Library", lifespan=lifespan)
    app.state.store = store
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -----------------------------------------------------------------------
    # Mixes
    # -----------------------------------------------------------------------

    @app.get("/api/mixes")
    def list_mixes(
        search: Optional[str] = None,
        sort: str = SortOption.NEWEST.value,
        store: MixStore = Depends(get_store),
    ):
        """Filtered, sorted mixes."""
        mixes = process_mixes(store.mixes, query=search or "", sort=sort)
        return JSONResponse([m.to_json_dict() for m in mixes])

    @app.get("/api/mixes/{mix_id}")
    def get_mix(mix_id: str, store: MixStore = Depends(get_store)):
        mix = store.get(mix_id)
        if not mix:
            raise HTTPException(status_code=404, detail="Mix not found")
        return JSONResponse(mix.to_json_dict())

    @app.post("/api/mixes")
    def create_mix(body: MixFormData, store: MixStore = Depends(get_store)):
        mix = store.add(body)
        return JSONResponse(mix.to_json_dict(), status_code=201)

    @app.put("/api/mixes/{mix_id}")
    def update_mix(mix_id: str, body: MixFormData, store: MixStore = Depends(get_store)):
        mix = store.update(mix_id, body)
        if not mix:
            raise HTTPException(status_code=404, detail="Mix not found")
        return JSONResponse(mix.to_json_dict())

    @app.delete("/api/mixes/{mix_id}")
    def delete_mix(mix_id: str, store: MixStore = Depends(get_store)):
        return {"deleted": store.delete(mix_id)}

    @app.get("/api/gallery")
    def gallery(
        view: str = ViewMode.GRID.value,
        search: Optional[str] = None,
        sort: str = SortOption.NEWEST.value,
        store: MixStore = Depends(get_store),
    ):
        """Mixes ready for rendering in the chosen layout."""
        mixes = process_mixes(store.mixes, query=search or "", sort=sort)
        items = []
        for position, mix in enumerate(mixes):
            item = mix.to_json_dict()
            item["imageUrl"] = resolve_image_url(mix.url)
            item["lightboxIndex"] = position
            items.append(item)
        return JSONResponse({
            "layout": layout_class(view),
            "empty": not items,
            "searching": bool((search or "").strip()),
            "mixes": items,
        })

    # -----------------------------------------------------------------------
    # Library metadata
    # -----------------------------------------------------------------------

    @app.get("/api/library")
    def library(store: MixStore = Depends(get_store)):
        return {
            "name": store.library_name,
            "theme": store.theme.value,
            "count": len(store),
        }

    @app.put("/api/library/name")
    def rename_library(body: RenameRequest, store: MixStore = Depends(get_store)):
        store.set_library_name(body.name)
        return {"name": store.library_name}

    @app.post("/api/library/theme/toggle")
    def toggle_theme(store: MixStore = Depends(get_store)):
        return {"theme": store.toggle_theme().value}

    # -----------------------------------------------------------------------
    # Import / export
    # -----------------------------------------------------------------------

    @app.get("/api/export")
    def export(store: MixStore = Depends(get_store)):
        result = export_library(store)
        return Response(
            content=result.content,
            media_type="application/json",
            headers={
                "Content-Disposition": f"attachment; filename*=UTF-8''{quote(result.filename)}",
            },
        )

    @app.post("/api/import")
    async def import_document(request: Request, store: MixStore = Depends(get_store)):
        raw = await request.body()
        try:
            # Parsing and the slot file write block; keep them off the event loop
            summary = await asyncio.get_event_loop().run_in_executor(
                None, import_library, store, raw
            )
        except ImportValidationError as e:
            logger.warning(f"Import rejected: {e}")
            raise HTTPException(status_code=400, detail=e.to_dict())
        result = summary.model_dump()
        result["message"] = summary.message
        return JSONResponse(result)

    return app


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    settings = Settings.from_env()
    logger.info(f"Starting Prompt Mix Library on {settings.host}:{settings.port}")
    uvicorn.run(
        create_app(settings=settings),
        host=settings.host,
        port=settings.port,
        reload=False,
    )


if __name__ == "__main__":
    main()
