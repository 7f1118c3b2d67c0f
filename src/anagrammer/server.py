import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from anagrammer.application.orchestrator import AnagramOrchestrator
from anagrammer.consts import VERSION
from anagrammer.domain.errors import ConfigurationError, SourceUnavailable
from anagrammer.domain.models import AcquisitionMode

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("anagrammer.server")

_orchestrator: AnagramOrchestrator | None = None


def get_orchestrator() -> AnagramOrchestrator:
    """Lazily build the orchestrator from resolved config."""
    global _orchestrator
    if _orchestrator is None:
        from anagrammer.application.config import resolve_config
        from anagrammer.application.factory import build_orchestrator

        _orchestrator = build_orchestrator(resolve_config())
    return _orchestrator


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"Anagrammer Server v{VERSION} starting up...")
    yield
    # Shutdown
    logger.info("Anagrammer Server shutting down...")
    if _orchestrator is not None:
        await _orchestrator.close()


app = FastAPI(
    title="Anagrammer Server",
    description="Serves anagram puzzles from cache, word source and curated pool.",
    version=VERSION,
    lifespan=lifespan,
)


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class AnagramResponse(BaseModel):
    id: str
    scrambled: str
    solution: str
    category: str
    hint: str
    first_letter: str
    difficulty_level: int
    origin: str


class CheckRequest(BaseModel):
    id: str
    answer: str


class CheckResponse(BaseModel):
    id: str
    correct: bool


class CacheStatsResponse(BaseModel):
    size: int
    hits: int
    misses: int
    hit_rate: float
    evictions: int


start_time = time.time()


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


@app.get("/anagram", response_model=AnagramResponse)
async def get_anagram(
    level: int = Query(ge=1, le=5),
    mode: AcquisitionMode | None = None,
    category: str | None = None,
):
    """
    Acquire one anagram. Returns 503 with `offline: true` when the word
    source is down in unlimited-only mode.
    """
    orchestrator = get_orchestrator()
    try:
        record = await orchestrator.acquire(level, mode=mode, category=category)
    except SourceUnavailable as e:
        logger.warning(f"Anagram request failed: {e}")
        return JSONResponse(
            status_code=503, content={"detail": "source unavailable", "offline": True}
        )
    except ConfigurationError as e:
        logger.error(f"Curated pool misconfigured: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e)) from e

    return AnagramResponse(
        id=record.id,
        scrambled=record.scrambled,
        solution=record.solution,
        category=record.category,
        hint=record.hint,
        first_letter=record.first_letter,
        difficulty_level=record.difficulty_level,
        origin=record.origin.value,
    )


@app.get("/categories")
async def get_categories(level: int = Query(ge=1, le=5)):
    """Curated categories accepted by `/anagram?category=`."""
    try:
        names = get_orchestrator().get_available_categories(level)
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e
    return {"level": level, "categories": names}


@app.post("/anagram/check", response_model=CheckResponse)
async def check_answer(req: CheckRequest):
    correct = get_orchestrator().validate_solution(req.id, req.answer)
    return CheckResponse(id=req.id, correct=correct)


@app.get("/cache/stats", response_model=CacheStatsResponse)
async def cache_stats():
    stats = get_orchestrator().cache.get_stats()
    return CacheStatsResponse(
        size=stats.size,
        hits=stats.hits,
        misses=stats.misses,
        hit_rate=stats.hit_rate,
        evictions=stats.evictions,
    )


@app.delete("/cache")
async def clear_cache(level: int | None = Query(default=None, ge=1, le=5)):
    """Clear the whole cache, or only one difficulty level."""
    cache = get_orchestrator().cache
    if level is None:
        cache.clear()
        return {"cleared": "all"}
    removed = cache.clear_difficulty(level)
    return {"cleared": level, "removed": removed}
