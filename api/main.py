"""FastAPI REST API for LineWeaver."""

from __future__ import annotations

import hashlib
import json
import os
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import redis.asyncio as aioredis
import structlog
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from lineweaver import (
    PRESETS,
    Outcome,
    ProcessingConfig,
    ProcessingContext,
    ProcessingResult,
    Severity,
    ValidationIssue,
    __version__,
    aprocess,
    classify,
    get_stats,
    validate,
)
from lineweaver.logging_config import setup_logging
from lineweaver.strategies import Mode

setup_logging(
    level=os.getenv("LOG_LEVEL", "INFO"),
    json_logs=os.getenv("LOG_JSON", "false").lower() in {"1", "true", "yes"},
)
logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Redis Cache
# ---------------------------------------------------------------------------

redis_client: aioredis.Redis | None = None

# Cache TTL in seconds (default: 1 hour)
CACHE_TTL = int(os.getenv("CACHE_TTL", "3600"))

# Redis connection URL
REDIS_URL = os.getenv("REDIS_URL", "redis://redis:6379")

_CACHE_PREFIXES = ("process", "classify")


def _generate_cache_key(prefix: str, data: dict) -> str:
    """Generate a cache key from request data."""
    sorted_data = json.dumps(data, sort_keys=True)
    hash_value = hashlib.sha256(sorted_data.encode()).hexdigest()[:16]
    return f"{prefix}:{hash_value}"


async def _cache_get(key: str) -> str | None:
    if redis_client is None:
        return None
    try:
        return await redis_client.get(key)
    except aioredis.RedisError as e:
        logger.warning("cache_read_failed", key=key, error=str(e))
        return None


async def _cache_set(key: str, value: str) -> None:
    if redis_client is None:
        return
    try:
        await redis_client.setex(key, CACHE_TTL, value)
    except aioredis.RedisError as e:
        logger.warning("cache_write_failed", key=key, error=str(e))


# ---------------------------------------------------------------------------
# Request / Response models
# ---------------------------------------------------------------------------


class ProcessRequest(BaseModel):
    """Request body for the /process endpoint."""

    text: str = Field(..., description="Text to reformat")
    mode: str = Field(default="simple", description="simple, smart, terminal or custom")
    preset: str | None = Field(default=None, description=f"One of {sorted(PRESETS)}")
    options: dict[str, Any] = Field(
        default_factory=dict,
        description="Processing options by name (snake_case or camelCase)",
    )

    model_config = {"json_schema_extra": {
        "examples": [
            {
                "text": "Title\n\nPara one.\n\n- item1\n- item2",
                "mode": "custom",
                "options": {"paragraph_separator": "[P]", "list_separator": "[L]"},
            }
        ]
    }}


class IssueResponse(BaseModel):
    """A diagnostic attached to a result."""

    severity: str
    code: str
    message: str
    suggestion: str | None = None


class ContextResponse(BaseModel):
    """Classification of the input text."""

    type: str
    confidence: float
    features: list[str]
    scores: dict[str, float]
    shell_intent: bool


class StatsResponse(BaseModel):
    """Character, word, line and paragraph counts."""

    characters: int
    characters_no_spaces: int
    words: int
    lines: int
    paragraphs: int


class ProcessResponse(BaseModel):
    """Response body for the /process endpoint."""

    text: str | None = Field(..., description="Transformed text; null when rejected or cancelled")
    mode: str
    outcome: str = Field(..., description="success, failed, rejected or cancelled")
    is_valid: bool
    original_length: int
    processed_length: int
    compression_ratio: float = Field(..., description="Percentage of characters removed")
    chunked: bool = False
    issues: list[IssueResponse] = Field(default_factory=list)
    context: ContextResponse | None = None
    original_stats: StatsResponse
    processed_stats: StatsResponse


class BatchItem(BaseModel):
    """A single item in a batch request."""

    id: str = Field(..., description="Unique identifier for this item")
    text: str = Field(..., description="Text to reformat")


class BatchRequest(BaseModel):
    """Request body for batch processing; every item shares the settings."""

    items: list[BatchItem] = Field(..., description="List of texts to reformat")
    mode: str = Field(default="simple")
    preset: str | None = Field(default=None)
    options: dict[str, Any] = Field(default_factory=dict)


class BatchItemResponse(BaseModel):
    """A single result in a batch response."""

    id: str
    result: ProcessResponse


class BatchResponse(BaseModel):
    """Response body for batch processing."""

    items: list[BatchItemResponse]
    succeeded: int
    failed: int
    total_original_length: int
    total_processed_length: int
    overall_compression_ratio: float


class TextRequest(BaseModel):
    """Request body carrying only text."""

    text: str = Field(..., description="Input text")


class ValidateRequest(BaseModel):
    """Request body for the /validate endpoint."""

    text: str = Field(..., description="Already transformed text to check")
    original: str | None = Field(
        default=None, description="Input the text was produced from; classified instead of text"
    )
    options: dict[str, Any] = Field(default_factory=dict)


class ValidateResponse(BaseModel):
    """Response body for the /validate endpoint."""

    is_valid: bool
    issues: list[IssueResponse]


class HealthResponse(BaseModel):
    """Response body for health check."""

    status: str = "ok"
    version: str
    modes: list[str]
    cache_enabled: bool = False
    redis_connected: bool = False


class CacheStatsResponse(BaseModel):
    """Response body for cache statistics."""

    enabled: bool
    connected: bool
    ttl_seconds: int
    redis_url: str
    keys_count: int | None = None
    memory_used: str | None = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _build_options(req: ProcessRequest | BatchRequest) -> dict[str, Any]:
    """Merge the preset (if any) with the explicit options."""
    if req.preset is None:
        return dict(req.options)
    if req.preset not in PRESETS:
        raise HTTPException(
            status_code=422,
            detail=f"Unknown preset '{req.preset}', expected one of {sorted(PRESETS)}",
        )
    return {**PRESETS[req.preset], **req.options}


def _issue_response(issue: ValidationIssue) -> IssueResponse:
    return IssueResponse(
        severity=issue.severity.value,
        code=issue.code,
        message=issue.message,
        suggestion=issue.suggestion,
    )


def _context_response(context: ProcessingContext) -> ContextResponse:
    return ContextResponse(
        type=context.type.value,
        confidence=context.confidence,
        features=list(context.features),
        scores=context.scores,
        shell_intent=context.shell_intent,
    )


def _result_to_response(result: ProcessingResult) -> ProcessResponse:
    """Convert a ProcessingResult to the API response model."""
    data = result.to_dict()
    return ProcessResponse(
        text=result.text,
        mode=data["mode"],
        outcome=data["outcome"],
        is_valid=data["is_valid"],
        original_length=result.original_length,
        processed_length=result.processed_length,
        compression_ratio=result.compression_ratio,
        chunked=result.chunked,
        issues=[_issue_response(issue) for issue in result.issues],
        context=_context_response(result.context) if result.context else None,
        original_stats=StatsResponse(**data["original_stats"]),
        processed_stats=StatsResponse(**data["processed_stats"]),
    )


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan - setup Redis connection."""
    global redis_client
    try:
        redis_client = await aioredis.from_url(
            REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
        )
        await redis_client.ping()
        logger.info("redis_connected", url=REDIS_URL.split("@")[-1])
    except (aioredis.RedisError, OSError) as e:
        logger.warning("redis_unavailable", error=str(e), caching=False)
        redis_client = None

    yield

    if redis_client:
        await redis_client.aclose()


app = FastAPI(
    title="LineWeaver API",
    description=(
        "REST API for reformatting multi-line text into a single line for chat "
        "boxes and shells. Code blocks, inline code and URLs survive verbatim; "
        "structure can be kept with separator tokens and shell metacharacters "
        "can be escaped for PowerShell or POSIX shells."
    ),
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """Check API health, version, and cache status."""
    redis_connected = False
    if redis_client:
        try:
            await redis_client.ping()
            redis_connected = True
        except aioredis.RedisError as e:
            logger.warning("redis_ping_failed", error=str(e))

    return HealthResponse(
        status="ok",
        version=__version__,
        modes=[m.value for m in Mode],
        cache_enabled=redis_client is not None,
        redis_connected=redis_connected,
    )


@app.get("/cache/stats", response_model=CacheStatsResponse, tags=["Cache"])
async def cache_stats() -> CacheStatsResponse:
    """Get cache statistics and Redis connection info."""
    keys_count = None
    memory_used = None
    connected = False

    if redis_client:
        try:
            await redis_client.ping()
            connected = True
            keys_count = 0
            for prefix in _CACHE_PREFIXES:
                keys_count += len(await redis_client.keys(f"{prefix}:*"))

            info = await redis_client.info("memory")
            memory_used = info.get("used_memory_human", "unknown")
        except aioredis.RedisError as e:
            logger.warning("cache_stats_failed", error=str(e))

    return CacheStatsResponse(
        enabled=redis_client is not None,
        connected=connected,
        ttl_seconds=CACHE_TTL,
        redis_url=REDIS_URL.split("@")[-1] if "@" in REDIS_URL else REDIS_URL,
        keys_count=keys_count,
        memory_used=memory_used,
    )


@app.post("/process", response_model=ProcessResponse, tags=["Processing"])
async def process_text(req: ProcessRequest) -> ProcessResponse:
    """Reformat text with the selected mode.

    Rejected input, configuration warnings and transform failures are
    reported in ``issues`` and ``outcome``; they never produce an HTTP
    error. Successful results are cached in Redis.
    """
    options = _build_options(req)
    cache_key = _generate_cache_key("process", req.model_dump())

    cached = await _cache_get(cache_key)
    if cached:
        logger.debug("cache_hit", key=cache_key)
        return ProcessResponse.model_validate_json(cached)

    result = await aprocess(req.text, req.mode, options)
    response = _result_to_response(result)

    if result.outcome is Outcome.SUCCESS:
        await _cache_set(cache_key, response.model_dump_json())

    return response


@app.post("/process/batch", response_model=BatchResponse, tags=["Processing"])
async def process_batch(req: BatchRequest) -> BatchResponse:
    """Reformat multiple texts in a single request.

    Each item is processed independently with the same settings; a
    rejected item does not affect the others.
    """
    options = _build_options(req)
    items: list[BatchItemResponse] = []
    total_orig = 0
    total_proc = 0
    succeeded = 0

    for item in req.items:
        result = await aprocess(item.text, req.mode, options)
        items.append(BatchItemResponse(id=item.id, result=_result_to_response(result)))
        total_orig += result.original_length
        total_proc += result.processed_length
        if result.outcome is Outcome.SUCCESS:
            succeeded += 1

    overall = (total_orig - total_proc) / total_orig * 100 if total_orig > 0 else 0.0
    return BatchResponse(
        items=items,
        succeeded=succeeded,
        failed=len(items) - succeeded,
        total_original_length=total_orig,
        total_processed_length=total_proc,
        overall_compression_ratio=overall,
    )


@app.post("/classify", response_model=ContextResponse, tags=["Analysis"])
async def classify_text(req: TextRequest) -> ContextResponse:
    """Detect whether text looks like plain prose, code, markdown, a list or shell input."""
    cache_key = _generate_cache_key("classify", req.model_dump())
    cached = await _cache_get(cache_key)
    if cached:
        return ContextResponse.model_validate_json(cached)

    response = _context_response(classify(req.text))
    await _cache_set(cache_key, response.model_dump_json())
    return response


@app.post("/validate", response_model=ValidateResponse, tags=["Analysis"])
async def validate_text(req: ValidateRequest) -> ValidateResponse:
    """Run the advisory output checks against already transformed text."""
    config, warnings = ProcessingConfig.from_options(req.options)
    context = classify(req.original if req.original is not None else req.text)
    issues = [ValidationIssue.from_error(w, Severity.WARNING) for w in warnings]
    issues.extend(validate(req.text, config, context))
    return ValidateResponse(
        is_valid=all(issue.severity is not Severity.ERROR for issue in issues),
        issues=[_issue_response(issue) for issue in issues],
    )


@app.post("/stats", response_model=StatsResponse, tags=["Analysis"])
async def text_stats(req: TextRequest) -> StatsResponse:
    """Count characters, words, lines and paragraphs."""
    stats = get_stats(req.text)
    return StatsResponse(
        characters=stats.characters,
        characters_no_spaces=stats.characters_no_spaces,
        words=stats.words,
        lines=stats.lines,
        paragraphs=stats.paragraphs,
    )
