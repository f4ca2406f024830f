import logging
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .errors import InvalidArgument, RelayWriterError, UpstreamFailure
from .generators import build_default_registry
from .orchestrator import TurnOrchestrator
from .schemas import ChatRequest, ErrorResponse, ResetResponse, SessionSnapshot, TurnResponse
from .services.session_store import build_session_store
from .settings import get_settings


def setup_server_logging() -> logging.Logger:
    """Configure and return the server logger."""
    logs_dir = Path("logs")
    logs_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger("relaywriter")
    if logger.handlers:
        return logger

    logger.setLevel(get_settings().log_level)
    fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s")

    ch = logging.StreamHandler()
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    fh = RotatingFileHandler(logs_dir / "server.log", maxBytes=5_000_000, backupCount=3)
    fh.setFormatter(fmt)
    logger.addHandler(fh)

    return logger


def _cors_origins_list(origins: str) -> list[str]:
    """Parse CORS_ORIGINS into a list."""
    if not origins or origins.strip() == "*":
        return ["*"]
    return [o.strip() for o in origins.split(",") if o.strip()]


def _error(status_code: int, message: str, contributor_id: str = "unknown") -> JSONResponse:
    body = ErrorResponse(error=message, contributor_id=contributor_id)
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True))


LOGGER = setup_server_logging()
settings = get_settings()


def create_app(orchestrator: TurnOrchestrator | None = None) -> FastAPI:
    """Build the HTTP app. Pass ``orchestrator`` to skip building stores and adapters."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if orchestrator is not None:
            app.state.orchestrator = orchestrator
            yield
            return

        store = await build_session_store()
        registry = build_default_registry(settings)
        app.state.orchestrator = TurnOrchestrator(
            store,
            registry,
            max_output_budget=settings.max_output_budget,
        )
        LOGGER.info("Session store ready: %s", type(store).__name__)

        yield

        LOGGER.info("Shutting down...")
        await registry.aclose()
        await store.close()

    app = FastAPI(
        title="RelayWriter",
        version="0.1.0",
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins_list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        LOGGER.warning("Invalid request on %s: %s", request.url.path, exc.errors())
        return _error(400, f"Invalid request: {exc.errors()}")

    @app.get("/health")
    async def health() -> dict[str, Any]:
        """Health check for load balancers and monitoring."""
        return {"status": "ok"}

    @app.post("/chat", response_model=None)
    async def chat(body: ChatRequest, request: Request) -> Any:
        """Advance a session by exactly one turn, or reset it.

        Request (JSON):
            {
                "sessionId": str,
                "reset": bool - when true every other field is ignored,
                "contributors": [{"contributorId", "displayName", "adapterKind",
                                  "modelName", "credentialRef"}, ...],
                "prompt": str - only used when the session is new,
                "outputBudget": int > 0
            }

        Response:
            reset   -> {"success": true, "message": str}
            advance -> {"cleanedText", "contributorId", "turnIndex", ...}
            failure -> {"error": str, "contributorId": str | "unknown"}
        """
        orch: TurnOrchestrator = request.app.state.orchestrator

        LOGGER.info(
            "Received request session_id=%s reset=%s",
            body.session_id,
            body.reset,
        )

        try:
            if body.reset:
                await orch.reset(body.session_id)
                return ResetResponse().model_dump(by_alias=True)

            contributors, prompt, output_budget = body.turn_arguments()
            LOGGER.info(
                "Advancing session_id=%s contributors=%d budget=%d prompt_length=%d",
                body.session_id,
                len(contributors),
                output_budget,
                len(prompt or ""),
            )
            result = await orch.advance_turn(body.session_id, contributors, prompt, output_budget)
            return TurnResponse.from_result(result).model_dump(by_alias=True)

        except InvalidArgument as e:
            LOGGER.warning("Rejected request for session_id=%s: %s", body.session_id, e)
            return _error(400, str(e))
        except UpstreamFailure as e:
            LOGGER.warning(
                "Upstream failure for session_id=%s contributor=%s: %s",
                body.session_id,
                e.contributor_id,
                e.cause,
            )
            return _error(502, str(e), e.contributor_id)
        except RelayWriterError as e:
            LOGGER.exception("Server error for session_id=%s: %s", body.session_id, e)
            return _error(500, str(e))
        except Exception as e:
            LOGGER.exception("Unexpected error for session_id=%s", body.session_id)
            return _error(500, f"Unknown error occurred: {e}")

    @app.get("/sessions/{session_id}", response_model=None)
    async def get_session(session_id: str, request: Request) -> Any:
        """Return the accumulated document and turn history of a session."""
        orch: TurnOrchestrator = request.app.state.orchestrator
        session = await orch.get_session(session_id)
        if session is None:
            return _error(404, f"Session {session_id} not found")
        return SessionSnapshot.from_session(session).model_dump(by_alias=True)

    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
