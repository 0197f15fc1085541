"""
CEPI - Community Event Impact Predictor
Run with: uvicorn main:app --reload --port 8000

Supports two modes:
- LITE MODE: No LLM or weather keys - every agent answers with local fallback analysis
- FULL MODE: With LLM + OpenWeatherMap keys - live forecasts and AI analysis
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Optional

from dotenv import load_dotenv
load_dotenv()  # Must be before importing config

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from cepi import __version__
from cepi.agents import AgentDispatcher, EventAnalysisOrchestrator, InputParser
from cepi.config import Config
from cepi.errors import ParseError, UpstreamError, ValidationError
from cepi.health import HealthChecker
from cepi.llm import BaseLLMClient, create_llm_client_from_config
from cepi.logging_setup import setup_logging
from cepi.models import AgentKind, EventRequest
from cepi.store import SupabaseStore

cfg = Config()  # Fresh instance after dotenv loaded
setup_logging(cfg.log_level)
logger = logging.getLogger(__name__)

# Globals
_http: httpx.AsyncClient = None
_llm: BaseLLMClient = None
_parser_llm: BaseLLMClient = None
_health_llm: BaseLLMClient = None
_store: SupabaseStore = None
_dispatcher: AgentDispatcher = None
_orchestrator: EventAnalysisOrchestrator = None
_parser: InputParser = None
_health: HealthChecker = None


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error(status_code: int, error: str, message: Optional[str] = None, **extra: Any) -> JSONResponse:
    content: dict[str, Any] = {"error": error}
    if message:
        content["message"] = message
    content.update(extra)
    content["timestamp"] = _timestamp()
    return JSONResponse(status_code=status_code, content=content)


def _method_not_allowed(message: str) -> JSONResponse:
    return _error(405, "Method not allowed", message)


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _http, _llm, _parser_llm, _health_llm, _store
    global _dispatcher, _orchestrator, _parser, _health

    print("\n" + "="*50)
    print("  CEPI Startup")
    print("="*50 + "\n")

    _http = httpx.AsyncClient()
    _llm = create_llm_client_from_config(cfg, http_client=_http)
    _parser_llm = create_llm_client_from_config(
        cfg, http_client=_http, temperature=0.1, timeout_ms=10000, max_attempts=3
    )
    _health_llm = create_llm_client_from_config(
        cfg, http_client=_http, max_attempts=1, timeout_ms=cfg.health_timeout_ms
    )
    _store = SupabaseStore(cfg)
    _dispatcher = AgentDispatcher(cfg, llm=_llm, http_client=_http, store=_store)
    _orchestrator = EventAnalysisOrchestrator(_dispatcher)
    _parser = InputParser(_parser_llm)
    _health = HealthChecker(cfg, http_client=_http, llm=_health_llm)

    if _llm.available:
        print(f"  LLM: {_llm.provider} ({_llm.config.model})")
    else:
        print("  LLM: disabled (fallback analysis for AI agents)")
    print(f"  Weather: {'OpenWeatherMap' if cfg.is_weather_available() else 'estimated (no WEATHER_API_KEY)'}")
    print(f"  Maps: {'enabled' if cfg.is_maps_available() else 'disabled'}")
    print(f"  Persistence: {'Supabase' if _store.available else 'disabled'}")

    mode = cfg.get_mode()
    print("\n" + "="*50)
    print(f"  CEPI Running in {mode} MODE")
    print("="*50)
    if mode == "LITE":
        print("  (Add GEMINI_API_KEY or OPENAI_API_KEY and WEATHER_API_KEY to .env for live analysis)")
    print(f"\n  API: http://localhost:8000")
    print(f"  Docs: http://localhost:8000/docs\n")

    yield

    # Shutdown
    await _http.aclose()


app = FastAPI(title="CEPI", version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cfg.get_cors_origins(),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError):
    return _error(400, "Validation error", **{k: v for k, v in exc.to_dict().items() if k != "error"})


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    fields = [str(err["loc"][-1]) for err in exc.errors() if err.get("loc")]
    return _error(400, "Validation error", "Request body is invalid", fields=fields)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Sanitized global exception handler - never exposes internal details."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return _error(500, "Internal server error", "An unexpected error occurred. Please try again later.")


# ==================== Agents ====================

class AgentRequest(BaseModel):
    agent: Optional[str] = None
    payload: Optional[Any] = None
    eventId: Optional[str] = None
    userId: Optional[str] = None


@app.post("/api/agent")
async def run_agent(req: AgentRequest):
    """Dispatch one agent. Upstream failures come back as fallback analysis, not errors."""
    if not req.agent or req.payload is None:
        return _error(400, "Missing required fields: agent and payload")

    report = await _dispatcher.dispatch(req.agent, req.payload, req.eventId, req.userId)
    return {
        "success": True,
        "agent": report.kind.value,
        "result": report.result,
        "timestamp": _timestamp(),
    }


@app.api_route("/api/agent", methods=["GET", "PUT", "DELETE", "PATCH"], include_in_schema=False)
async def run_agent_wrong_method():
    return _method_not_allowed("Method not allowed. Use POST to execute agents.")


class AnalyzeRequest(BaseModel):
    event: dict[str, Any] = Field(..., description="Event details (eventType, location, date, ...)")
    eventId: Optional[str] = None
    userId: Optional[str] = None


@app.post("/api/analyze")
async def analyze(req: AnalyzeRequest):
    """Weather, current events and history in parallel, then readiness scoring."""
    analysis = await _orchestrator.analyze(req.event, req.eventId, req.userId)
    return {"success": True, "data": analysis.to_dict(), "timestamp": _timestamp()}


class ParseRequest(BaseModel):
    userInput: str = Field(..., max_length=5000)


@app.post("/api/parse")
async def parse_input(req: ParseRequest):
    if not _parser.available:
        return _error(503, "Input parsing unavailable", "No LLM API key configured")
    try:
        fields = await _parser.parse(req.userInput)
    except ParseError as e:
        return _error(502, "Unable to parse user input", str(e))
    except UpstreamError as e:
        logger.warning(f"Input parsing failed: {e}")
        return _error(502, "Unable to parse user input", f"{e.service} request failed")
    return {"success": True, "data": fields, "timestamp": _timestamp()}


# ==================== Health ====================

@app.get("/api/health")
async def health(agent: Optional[str] = None):
    if agent:
        data = await _health.check_agent(AgentKind.parse(agent))
    else:
        data = await _health.system_health()
    data["mode"] = cfg.get_mode()
    return {"success": True, "data": data, "timestamp": _timestamp()}


@app.api_route("/api/health", methods=["POST", "PUT", "DELETE", "PATCH"], include_in_schema=False)
async def health_wrong_method():
    return _method_not_allowed("Method not allowed. Use GET for health checks.")


# ==================== Events (optional persistence) ====================

class EventCreateRequest(BaseModel):
    userId: str = Field(..., min_length=1)
    event: dict[str, Any]


class ActualsRequest(BaseModel):
    attendance: Optional[int] = Field(None, ge=0)
    cost: Optional[float] = Field(None, ge=0)
    revenue: Optional[float] = Field(None, ge=0)
    weather: Optional[str] = None
    issues: list[str] = Field(default_factory=list)
    notes: Optional[str] = None


@app.post("/api/events")
async def create_event(req: EventCreateRequest):
    event = EventRequest.from_dict(req.event)
    event.validate_complete()
    if not _store.available:
        return _error(503, "Persistence unavailable", "SUPABASE_URL and SUPABASE_KEY are not configured")
    try:
        event_id = await _store.create_event(req.userId, event.to_dict())
    except UpstreamError as e:
        logger.error(f"Storing event failed: {e}")
        return _error(502, "Unable to store event", f"{e.service} request failed")
    return {"success": True, "eventId": event_id, "timestamp": _timestamp()}


@app.post("/api/events/{event_id}/actuals")
async def record_actuals(event_id: str, req: ActualsRequest):
    if not _store.available:
        return _error(503, "Persistence unavailable", "SUPABASE_URL and SUPABASE_KEY are not configured")
    try:
        updated = await _store.record_actuals(event_id, req.model_dump(exclude_none=True))
    except UpstreamError as e:
        logger.error(f"Recording actuals for {event_id} failed: {e}")
        return _error(502, "Unable to record actuals", f"{e.service} request failed")
    if not updated:
        return _error(404, "Event not found", f"No event with id {event_id}")
    return {"success": True, "eventId": event_id, "timestamp": _timestamp()}
