"""FastAPI relay: caches one FEN string and runs the engine on request."""

import logging
import threading
from typing import Literal, Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, field_validator

from interface.fen import pieces_from_fen
from tempo import __version__
from tempo.config import CONFIG
from tempo.core.errors import InvalidPositionError
from tempo.main import Engine

logger = logging.getLogger(__name__)

app = FastAPI(title=CONFIG.api.engine_name, version=__version__)

# The board scraper posts from a browser tab on another origin.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


class FenCache:
    """Last FEN posted by the board-state collaborator."""

    def __init__(self):
        self._fen: Optional[str] = None
        self._lock = threading.Lock()

    def get(self) -> Optional[str]:
        with self._lock:
            return self._fen

    def set(self, fen: str):
        with self._lock:
            self._fen = fen

    def clear(self):
        with self._lock:
            self._fen = None


cache = FenCache()


class FenRequest(BaseModel):
    fen: str


class ThinkRequest(BaseModel):
    fen: Optional[str] = None  # falls back to the cached FEN
    depth: Optional[int] = None
    side: Literal["white", "black", "both"] = "both"
    time_limit_ms: Optional[int] = None

    @field_validator("depth")
    @classmethod
    def clamp_depth(cls, v: Optional[int]) -> Optional[int]:
        if v is None:
            return v
        return max(1, min(v, 12))

    @field_validator("time_limit_ms")
    @classmethod
    def clamp_time_limit(cls, v: Optional[int]) -> Optional[int]:
        if v is None:
            return v
        return max(50, min(v, 30_000))


@app.post("/fen")
def post_fen(req: FenRequest):
    fen = req.fen.strip()
    if not fen:
        raise HTTPException(status_code=400, detail="Missing or invalid FEN")
    try:
        pieces_from_fen(fen)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid FEN: {e}")
    cache.set(fen)
    return {"success": True}


@app.get("/fen")
def get_fen():
    fen = cache.get()
    if fen is None:
        raise HTTPException(status_code=404, detail="No FEN cached")
    return {"fen": fen}


@app.post("/reset")
def reset():
    cache.clear()
    return {"success": True}


@app.post("/think")
def think(req: ThinkRequest):
    fen = req.fen or cache.get()
    if fen is None:
        raise HTTPException(status_code=404, detail="No FEN supplied or cached")
    try:
        pieces = pieces_from_fen(fen)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid FEN: {e}")

    # A fresh engine per request; no search state is shared between calls.
    engine = Engine()
    limit = req.time_limit_ms if req.time_limit_ms is not None else CONFIG.search.time_limit_ms
    try:
        response = engine.think(pieces, max_depth=req.depth, side=req.side, time_limit_ms=limit)
    except InvalidPositionError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info("think side=%s depth=%s fen=%s", req.side, req.depth, fen[:40])
    return {"fen": fen, **response.to_dict()}


if __name__ == "__main__":
    logging.basicConfig(level=CONFIG.log_level)
    uvicorn.run(app, host=CONFIG.api.api_host, port=CONFIG.api.api_port)
