"""HTTP transport for the generation tasks: one POST endpoint dispatching on ``action``."""

import logging
from functools import lru_cache
from typing import Any, Awaitable, Callable, Dict, Tuple, Type, Union

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from cinegenius import __version__
from cinegenius.config import Config
from cinegenius.core.ai_client import GenAIClient
from cinegenius.core.errors import GenerationError, InvalidInput
from cinegenius.core.models import Attachment, Language, Scene, ScriptAnalysis, Shot, WireModel
from cinegenius.core.orchestrator import ScriptOrchestrator
from cinegenius.core.schemas import TaskKind

logger = logging.getLogger(__name__)

app = FastAPI(
    title="CineGenius API",
    description="Structured film-script analysis backed by Gemini",
    version=__version__,
)


class ProxyRequest(BaseModel):
    action: str
    payload: Dict[str, Any] = Field(default_factory=dict)


class LanguagePayload(WireModel):
    language: Language = Field(default_factory=lambda: Config.DEFAULT_LANGUAGE)


class ParseScriptPayload(LanguagePayload):
    content: Union[Attachment, str]


class AnalysisPayload(LanguagePayload):
    analysis: ScriptAnalysis


class ScenePayload(LanguagePayload):
    scene: Scene


class ShotPayload(LanguagePayload):
    shot: Shot
    scene: Scene


class QuestionPayload(AnalysisPayload):
    question: str


Handler = Callable[[ScriptOrchestrator, Any], Awaitable[Any]]

ACTIONS: Dict[TaskKind, Tuple[Type[BaseModel], Handler]] = {
    TaskKind.PARSE_SCRIPT: (
        ParseScriptPayload, lambda o, p: o.parse_script(p.content, p.language)),
    TaskKind.GENERATE_SCHEDULE: (
        AnalysisPayload, lambda o, p: o.generate_schedule(p.analysis, p.language)),
    TaskKind.GENERATE_SHOT_LIST: (
        ScenePayload, lambda o, p: o.generate_shot_list(p.scene, p.language)),
    TaskKind.GENERATE_IMAGE: (
        ShotPayload, lambda o, p: o.generate_image_for_shot(p.shot, p.scene)),
    TaskKind.GENERATE_PRODUCTION_GUIDE: (
        ScenePayload, lambda o, p: o.generate_scene_production_guide(p.scene, p.language)),
    TaskKind.GENERATE_CONTINUITY_REPORT: (
        AnalysisPayload, lambda o, p: o.generate_continuity_report(p.analysis, p.language)),
    TaskKind.ASK_QUESTION: (
        QuestionPayload, lambda o, p: o.ask_script_question(p.analysis, p.question, p.language)),
}


@lru_cache(maxsize=1)
def build_orchestrator() -> ScriptOrchestrator:
    Config.validate()
    return ScriptOrchestrator(GenAIClient())


def get_orchestrator() -> Callable[[], ScriptOrchestrator]:
    """Hands the endpoint a provider so configuration is only checked once a request is known to be valid."""
    return build_orchestrator


def _message(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


def _to_wire(result: Any) -> Any:
    if isinstance(result, list):
        return [_to_wire(item) for item in result]
    if isinstance(result, WireModel):
        return result.to_wire()
    return result


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _message(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return _message(400, "Request body must be a JSON object with 'action' and 'payload'.")


@app.post("/api/proxy")
async def proxy(
    request: ProxyRequest,
    provide_orchestrator: Callable[[], ScriptOrchestrator] = Depends(get_orchestrator),
):
    try:
        kind = TaskKind(request.action)
    except ValueError:
        return _message(400, f"Invalid action: {request.action}")

    payload_model, handler = ACTIONS[kind]
    try:
        payload = payload_model.model_validate(request.payload)
    except ValidationError as e:
        return _message(400, f"Invalid payload for {kind.value}: {e.error_count()} validation error(s).")

    try:
        orchestrator = provide_orchestrator()
    except ValueError as e:
        logger.error(f"Cannot serve {kind.value}: {e}")
        return _message(500, str(e))

    try:
        result = await handler(orchestrator, payload)
    except InvalidInput as e:
        return _message(400, str(e))
    except GenerationError as e:
        logger.error(f"Error in action: {kind.value}: {e}")
        return _message(500, str(e) or "An internal server error occurred")

    return JSONResponse(status_code=200, content=_to_wire(result))


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


def start_server(host: str = Config.API_HOST, port: int = Config.API_PORT, reload: bool = False):
    """Start the FastAPI server."""
    uvicorn.run(
        "cinegenius.api:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )
