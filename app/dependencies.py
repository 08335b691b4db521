from fastapi import Header, HTTPException, Request

from app.config import settings
from app.models.report import OverflowPolicy
from app.services.analysis_client import AnalysisClient, create_analysis_client
from app.services.report_exporter import ReportExporter
from app.services.session_state import SessionStore, session_store


async def verify_api_key(x_api_key: str = Header(default="")) -> None:
    if not settings.api_key:
        return
    if x_api_key != settings.api_key:
        raise HTTPException(status_code=403, detail="Invalid or missing API key")


def get_session_store() -> SessionStore:
    return session_store


def get_analysis_client(request: Request) -> AnalysisClient:
    """Return the app's analysis client, building it on first use.

    Raises ConfigurationError when OPENAI_API_KEY is missing, before any
    network call is attempted.
    """
    client = getattr(request.app.state, "analysis_client", None)
    if client is None:
        client = create_analysis_client(settings)
        request.app.state.analysis_client = client
    return client


def get_report_exporter() -> ReportExporter:
    return ReportExporter(
        overflow=OverflowPolicy(settings.report_overflow),
        filename=settings.report_filename,
    )
