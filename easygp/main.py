"""
EasyGP Diagnosis Engine - FastAPI Application

Thin HTTP adapter around the diagnosis engine:
- Health check
- Differential diagnosis for one patient observation
"""
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from typing import Optional
from datetime import datetime
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from easygp.config import Settings, get_settings
from easygp.core.inference.engine import DiagnosisEngine
from easygp.core.validation.errors import InvalidObservation
from easygp.models.diagnosis import DiagnoseRequest, DiagnoseResponse, ErrorResponse, HealthResponse
from easygp.services.diagnosis import DiagnosisService
from easygp.utils import configure_logging, get_logger

logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application.

    The likelihood model is built here, before any request is served; a
    ModelConfigurationError propagates and aborts startup.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    engine = DiagnosisEngine.from_settings(settings)
    service = DiagnosisService(engine, top_k=settings.explanation_top_k)

    app = FastAPI(
        title=settings.app_name,
        description="Differential diagnosis for sore throat and upper respiratory presentations",
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.service = service

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check():
        """Health check endpoint."""
        return HealthResponse(
            status="healthy",
            version=settings.app_version,
            timestamp=datetime.now().isoformat(),
            components={
                "api": "healthy",
                "inference": "ready",
                "calibration": engine.model.version,
            }
        )

    @app.post(
        f"{settings.api_prefix}/diagnose",
        response_model=DiagnoseResponse,
        responses={422: {"model": ErrorResponse}},
        tags=["Diagnosis"],
    )
    def diagnose(payload: DiagnoseRequest, request: Request):
        """
        Score one patient observation.

        Returns condition probabilities, log-odds, a recommendation and its rationale.
        """
        svc: DiagnosisService = request.app.state.service
        try:
            return svc.diagnose(payload)
        except InvalidObservation as e:
            raise HTTPException(status_code=422, detail=e.to_dict())
        except ValueError as e:
            raise HTTPException(
                status_code=422,
                detail={"error": "unknown_name", "reason": None, "feature": None, "message": str(e)},
            )

    logger.info(f"{settings.app_name} ready (calibration v{engine.model.version})")
    return app


# ---- Run with uvicorn ----
if __name__ == "__main__":
    import uvicorn
    _settings = get_settings()
    uvicorn.run(create_app(_settings), host=_settings.api_host, port=_settings.api_port)
