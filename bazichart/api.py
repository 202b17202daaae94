"""
FastAPI application for the BaZi chart service.

Endpoints:
- POST /api/submit-birth-chart  compute a chart and open an analysis session
- GET  /api/get-analysis?id=    chart, distributions and patterns for a session
- POST /api/chat                answer a question about a chart with Gemini
- GET  /api/health

Run with:
    uvicorn bazichart.api:create_app --factory
"""

import logging
from contextlib import asynccontextmanager
from typing import Literal, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from bazichart.analysis import analyze_chart, display_pillars
from bazichart.astro_calendar import configure_ephemeris
from bazichart.config import Settings, load_settings
from bazichart.create_chart import ChartService
from bazichart.errors import BaziError, ValidationError
from bazichart.generate_context import build_chat_context
from bazichart.llm import ChatAdvisor
from bazichart.sessions import BirthInfo, InMemorySessionStore, SessionStore
from bazichart.timezones import TimezoneResolver

logger = logging.getLogger(__name__)


# --- Pydantic Models for Request ---

class SubmitBirthChartRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    nickname: Optional[str] = None
    gender: Literal["male", "female"]
    birth_date: str = Field(..., alias="birthDate", min_length=1,
                            description="ISO datetime, read as wall clock at the birthplace")
    birth_place: str = Field(..., alias="birthPlace", min_length=1)


class ChatTurn(BaseModel):
    role: str
    content: str = ""


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    message: str = Field(..., min_length=1)
    bazi_data: Optional[dict] = Field(None, alias="baziData")
    history: list[ChatTurn] = Field(default_factory=list)
    analysis_id: Optional[str] = Field(None, alias="analysisId")


# --- Dependencies ---

def get_store(request: Request) -> SessionStore:
    return request.app.state.store


def get_chart_service(request: Request) -> ChartService:
    return request.app.state.chart_service


def get_advisor(request: Request) -> ChatAdvisor:
    return request.app.state.advisor


# --- Error handlers ---

async def handle_bazi_error(request: Request, exc: BaziError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


async def handle_validation_error(request: Request, exc: RequestValidationError):
    fields = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query")]
        name = ".".join(loc) or "body"
        if name not in fields:
            fields.append(name)
    return JSONResponse({"error": f"Missing or invalid fields: {', '.join(fields)}"},
                        status_code=400)


async def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse({"error": "Internal server error"}, status_code=500)


# --- Application factory ---

def create_app(settings: Optional[Settings] = None, *,
               store: Optional[SessionStore] = None,
               chart_service: Optional[ChartService] = None,
               advisor: Optional[ChatAdvisor] = None) -> FastAPI:
    """
    Build the app with every collaborator constructed up front.

    Tests pass their own store, chart service or advisor; anything left
    out is built from settings.
    """
    settings = settings or load_settings()
    configure_ephemeris(settings.sweph_path)

    if chart_service is None:
        if settings.geocoder_enabled:
            resolver = TimezoneResolver.with_nominatim(settings.geocoder_user_agent)
        else:
            resolver = TimezoneResolver()
        chart_service = ChartService(resolver, timeout=settings.chart_timeout_seconds,
                                     true_solar_time=settings.true_solar_time)
    if store is None:
        store = InMemorySessionStore(ttl_seconds=settings.session_ttl_seconds,
                                     max_entries=settings.session_max_entries)
    if advisor is None:
        advisor = ChatAdvisor(settings.google_ai_api_key, settings.gemini_model,
                              timeout=settings.ai_timeout_seconds)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        chart_service.close()

    app = FastAPI(
        title="BaZi Chart API",
        description="Four Pillars chart calculation, analysis sessions and chart chat",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.chart_service = chart_service
    app.state.advisor = advisor

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(BaziError, handle_bazi_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    register_routes(app)
    return app


def register_routes(app: FastAPI) -> None:

    @app.post("/api/submit-birth-chart")
    def submit_birth_chart(body: SubmitBirthChartRequest,
                           service: ChartService = Depends(get_chart_service),
                           store: SessionStore = Depends(get_store)):
        chart = service.calculate(body.birth_date, body.birth_place, body.gender)
        birth_info = BirthInfo(
            gender=body.gender,
            birth_date=body.birth_date,
            birth_place=body.birth_place,
            nickname=body.nickname,
        )
        session_id = store.create(birth_info, chart)
        return {
            "id": session_id,
            "success": True,
            "preview": {
                "eightCharacters": chart.eight_characters,
                "zodiac": chart.zodiac,
                "dayMaster": chart.day_master.chinese,
            },
        }

    @app.get("/api/get-analysis")
    def get_analysis(analysis_id: Optional[str] = Query(None, alias="id"),
                     store: SessionStore = Depends(get_store)):
        if not analysis_id:
            raise ValidationError("Analysis ID is required")
        session = store.get(analysis_id)
        chart = session.chart
        return {
            "userInfo": session.birth_info.to_dict(),
            "mcpData": chart.to_dict(),
            "fourPillars": display_pillars(chart),
            **analyze_chart(chart),
        }

    @app.post("/api/chat")
    def chat(body: ChatRequest,
             store: SessionStore = Depends(get_store),
             advisor: ChatAdvisor = Depends(get_advisor)):
        chart_data = None
        if body.bazi_data:
            chart_data = body.bazi_data.get("mcpData")
            if chart_data is None and "fourPillars" in body.bazi_data:
                chart_data = body.bazi_data
        if chart_data is None and body.analysis_id:
            chart_data = store.get(body.analysis_id).chart.to_dict()
        if chart_data is None:
            raise ValidationError(
                "No precise BaZi data available. Chart data is required for accurate analysis.")

        try:
            context = build_chat_context(chart_data, body.message)
        except ValueError as e:
            raise ValidationError(f"Invalid BaZi data: {e}") from e

        history = [turn.model_dump() for turn in body.history]
        return {"response": advisor.reply(context, history)}

    @app.get("/api/health")
    def health(store: SessionStore = Depends(get_store)):
        try:
            sessions = len(store)
        except TypeError:
            sessions = None
        return {"status": "ok", "sessions": sessions}
