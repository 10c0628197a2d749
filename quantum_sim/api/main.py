# quantum_sim/api/main.py

"""
FastAPI Application: REST API for the Quantum Scenario Simulator

Endpoints:
  GET  /                   → System info
  GET  /health             → Configuration status (?deep=true pings BigQuery)
  POST /api/scenarios      → Generate business scenarios
  GET  /api/scenarios      → Same, streamed as server-sent events
  POST /api/forecast       → Month-by-month forecasts for scenario variations
  POST /api/vector-search  → Similar historical cases
  GET  /api/vector-search  → Same, from query parameters

Every /api response, including errors, is wrapped in the envelope
{success, data, error, timestamp, processingTime}.

Run locally:
  uvicorn quantum_sim.api.main:app --host 0.0.0.0 --port 8000 --reload
"""

import json
import time
import logging
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exception_handlers import (
    http_exception_handler, request_validation_exception_handler
)
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from quantum_sim.config import Settings, load_settings, validate_environment
from quantum_sim.bigquery.client import (
    BigQueryAI, check_connection, get_bigquery_ai, get_dataset_info
)
from quantum_sim.bigquery.errors import BigQueryAIError
from quantum_sim.engine.forecast import ForecastService
from quantum_sim.engine.scenario_engine import ScenarioEngine
from quantum_sim.engine.similar_cases import SimilarCaseSearch
from quantum_sim.api.schemas import (
    APIResponse, BusinessScenario,
    ScenarioRequest, ScenarioOptions, ScenariosResponse,
    ForecastRequest, ForecastResponse,
    VectorSearchRequest, VectorSearchResponse,
    HealthResponse
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"

STREAM_STAGES = [
    {'stage': 'analyzing', 'progress': 20, 'message': 'Analyzing historical patterns...'},
    {'stage': 'generating', 'progress': 40, 'message': 'Generating parallel realities...'},
    {'stage': 'computing', 'progress': 60, 'message': 'Computing probability matrices...'},
    {'stage': 'summarizing', 'progress': 80, 'message': 'Creating executive summaries...'},
    {'stage': 'finalizing', 'progress': 95, 'message': 'Finalizing scenarios...'},
]


# ===================================================================
# CREATE APP
# ===================================================================
app = FastAPI(
    title="Quantum Scenario Simulator API",
    description=(
        "REST API for AI-generated business scenarios.\n\n"
        "**Features:**\n"
        "- Scenario generation with BigQuery ML.GENERATE_TEXT\n"
        "- Timelines and projections with AI.GENERATE_TABLE\n"
        "- Similar-case search with ML.GENERATE_EMBEDDING\n"
        "- Synthetic fallbacks whenever BigQuery AI is unavailable"
    ),
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


@app.middleware("http")
async def track_processing_time(request: Request, call_next):
    request.state.start_time = time.perf_counter()
    return await call_next(request)


# ===================================================================
# APPLICATION STATE
# ===================================================================
class AppState:
    """Holds settings and engines. Initialized on startup."""

    def __init__(self):
        self.settings: Optional[Settings] = None
        self.ai: Optional[BigQueryAI] = None
        self.scenario_engine: Optional[ScenarioEngine] = None
        self.forecast_service: Optional[ForecastService] = None
        self.similar_cases: Optional[SimilarCaseSearch] = None
        self.configuration_errors: List[str] = []
        self.is_loaded = False

    def load_all(self, settings: Optional[Settings] = None, ai: Optional[BigQueryAI] = None):
        """Read configuration and build the engines."""
        self.settings = settings or load_settings()

        is_valid, self.configuration_errors = validate_environment(self.settings)
        if is_valid:
            logger.info(
                f"✅ BigQuery AI configured | Project: {self.settings.project_id}")
        else:
            logger.warning(
                f"BigQuery AI not configured, fallbacks will be used: "
                f"{self.configuration_errors}")

        self.ai = ai or get_bigquery_ai(self.settings)
        self.scenario_engine = ScenarioEngine(self.ai)
        self.forecast_service = ForecastService(self.ai)
        self.similar_cases = SimilarCaseSearch(self.ai)
        self.is_loaded = True


state = AppState()


# ===================================================================
# STARTUP
# ===================================================================
@app.on_event("startup")
async def startup():
    """Build engines when server starts."""
    logger.info("Starting API server...")
    if not state.is_loaded:
        state.load_all()


# ===================================================================
# ENVELOPE
# ===================================================================
def _timing(request: Request) -> Dict[str, Any]:
    start = getattr(request.state, 'start_time', None) or time.perf_counter()
    return {
        'timestamp': datetime.now(),
        'processing_time': int((time.perf_counter() - start) * 1000),
    }


def _error_response(request: Request, status_code: int, message: str) -> JSONResponse:
    body = APIResponse(success=False, error=message, **_timing(request))
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body.model_dump(by_alias=True)),
    )


def _bigquery_http_error(error: BigQueryAIError) -> HTTPException:
    status_code = 429 if error.code == 'RATE_LIMIT_EXCEEDED' else 500
    return HTTPException(status_code=status_code, detail=error.message)


@app.exception_handler(StarletteHTTPException)
async def envelope_http_errors(request: Request, exc: StarletteHTTPException):
    if not request.url.path.startswith('/api'):
        return await http_exception_handler(request, exc)
    return _error_response(request, exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def envelope_validation_errors(request: Request, exc: RequestValidationError):
    if not request.url.path.startswith('/api'):
        return await request_validation_exception_handler(request, exc)

    errors = exc.errors()
    if errors:
        first = errors[0]
        location = '.'.join(str(part) for part in first.get('loc', ()) if part != 'body')
        message = f"Invalid request: {location + ': ' if location else ''}{first.get('msg')}"
    else:
        message = 'Invalid request'
    return _error_response(request, 400, message)


# ===================================================================
# ENDPOINTS
# ===================================================================

# ---------- Root ----------
@app.get("/", tags=["System"])
async def root():
    """API root: system information."""
    return {
        "name": "Quantum Scenario Simulator API",
        "version": VERSION,
        "status": "running" if state.is_loaded else "loading",
        "documentation": "/docs",
        "endpoints": {
            "GET /health": "Configuration status",
            "POST /api/scenarios": "Generate business scenarios",
            "GET /api/scenarios": "Stream scenario generation (SSE)",
            "POST /api/forecast": "Forecast scenario variations",
            "POST /api/vector-search": "Find similar historical cases"
        }
    }


# ---------- Health ----------
@app.get("/health", response_model=HealthResponse, tags=["System"])
def health_check(deep: bool = False):
    """Check configuration; with deep=true also query BigQuery."""
    settings = state.settings
    configured = bool(settings and settings.is_bigquery_configured)

    connection_ok = None
    dataset = None
    if deep and configured:
        connection_ok = check_connection(state.ai)
        try:
            dataset = get_dataset_info(
                state.ai, f"{settings.project_id}.{settings.dataset_id}")
        except BigQueryAIError as e:
            logger.warning(f"Dataset lookup failed: {e}")

    healthy = configured and connection_ok is not False
    return HealthResponse(
        status="healthy" if healthy else "degraded",
        version=VERSION,
        bigquery_configured=configured,
        configuration_errors=state.configuration_errors,
        connection_ok=connection_ok,
        dataset=dataset,
        last_updated=datetime.now().isoformat()
    )


# ---------- Scenarios ----------
@app.post("/api/scenarios", response_model=ScenariosResponse, tags=["Scenarios"])
def create_scenarios(body: ScenarioRequest, request: Request):
    """
    Generate business scenarios for a strategic question.

    Missing context fields and options get defaults; each scenario
    falls back to synthetic data wherever BigQuery AI fails.
    """
    is_valid, errors = validate_environment(state.settings)
    if not is_valid:
        raise HTTPException(
            status_code=500,
            detail=f"Environment configuration error: {', '.join(errors)}"
        )

    if not body.query or body.context is None:
        raise HTTPException(
            status_code=400, detail="Query and context are required")

    context = body.context.with_defaults()
    options = body.options or ScenarioOptions()

    try:
        scenarios = state.scenario_engine.generate_scenarios(
            body.query, context.model_dump(), options.model_dump())
        return ScenariosResponse(success=True, data=scenarios, **_timing(request))
    except BigQueryAIError as e:
        logger.error(f"Scenarios API error: {e}")
        raise _bigquery_http_error(e)
    except Exception as e:
        logger.error(f"Scenarios API error: {e}")
        raise HTTPException(
            status_code=500,
            detail="Internal server error occurred while generating scenarios"
        )


def _sse(payload: Dict[str, Any]) -> str:
    return f"data: {json.dumps(jsonable_encoder(payload))}\n\n"


def _scenario_stream(query: str, context: Dict[str, Any]) -> Iterator[str]:
    yield _sse({
        'status': 'processing',
        'stage': 'analyzing',
        'progress': 0,
        'message': 'Analyzing historical patterns...'
    })

    for stage in STREAM_STAGES:
        time.sleep(state.settings.stream_stage_delay)
        yield _sse({'status': 'processing', **stage})

    try:
        scenarios = state.scenario_engine.generate_scenarios(
            query, context,
            {'scenario_count': 3, 'include_risk_analysis': True,
             'include_similar_cases': True})
        data = [
            BusinessScenario.model_validate(s).model_dump(by_alias=True)
            for s in scenarios
        ]
        yield _sse({
            'status': 'complete',
            'progress': 100,
            'message': 'Analysis complete!',
            'data': data
        })
    except Exception as e:
        logger.error(f"Streaming scenarios error: {e}")
        yield _sse({'status': 'error', 'error': str(e) or 'Unknown error occurred'})


@app.get("/api/scenarios", tags=["Scenarios"])
def stream_scenarios(
    query: Optional[str] = None,
    industry: str = 'technology',
    company_size: str = Query('startup', alias='companySize')
):
    """Stream progress stages, then the scenarios, as server-sent events."""
    if not query:
        raise HTTPException(
            status_code=400, detail="Query parameter is required")

    context = {
        'industry': industry,
        'company_size': company_size,
        'timeframe': '2020-2024',
        'region': 'North America',
        'business_model': 'B2B SaaS',
    }
    return StreamingResponse(
        _scenario_stream(query, context),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"}
    )


# ---------- Forecast ----------
@app.post("/api/forecast", response_model=ForecastResponse, tags=["Forecasting"])
def forecast_variations(body: ForecastRequest, request: Request):
    """Forecast each variation of a base scenario over the time horizon."""
    if body.base_scenario is None or not body.variations:
        raise HTTPException(
            status_code=400, detail="Base scenario and variations are required")

    try:
        result = state.forecast_service.forecast(
            body.base_scenario.model_dump(),
            [v.model_dump() for v in body.variations],
            body.time_horizon
        )
    except Exception as e:
        logger.error(f"❌ Forecast API error: {e}")
        raise HTTPException(
            status_code=500,
            detail="Internal server error occurred during forecasting"
        )

    return ForecastResponse(success=True, data=result, **_timing(request))


# ---------- Vector search ----------
def _vector_search(request: Request, search: VectorSearchRequest) -> VectorSearchResponse:
    if not search.situation or not search.industry:
        raise HTTPException(
            status_code=400, detail="Situation and industry are required")

    try:
        cases = state.similar_cases.search(
            search.situation, search.industry, search.context, search.limit)
    except BigQueryAIError as e:
        logger.error(f"Vector search API error: {e}")
        raise _bigquery_http_error(e)
    except Exception as e:
        logger.error(f"Vector search API error: {e}")
        raise HTTPException(
            status_code=500,
            detail="Internal server error occurred during vector search"
        )

    return VectorSearchResponse(success=True, data=cases, **_timing(request))


@app.post("/api/vector-search", response_model=VectorSearchResponse, tags=["Similar Cases"])
def vector_search(body: VectorSearchRequest, request: Request):
    """Find historical cases similar to a business situation."""
    return _vector_search(request, body)


@app.get("/api/vector-search", response_model=VectorSearchResponse, tags=["Similar Cases"])
def vector_search_get(
    request: Request,
    situation: Optional[str] = None,
    industry: Optional[str] = None,
    context: str = '',
    limit: int = Query(5, ge=1, le=20)
):
    """Query-string version of POST /api/vector-search."""
    return _vector_search(
        request,
        VectorSearchRequest(
            situation=situation, industry=industry, context=context, limit=limit)
    )
