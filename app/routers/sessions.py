import logging

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import Response

from app.dependencies import get_analysis_client, get_report_exporter, get_session_store
from app.schemas.session import SessionResponse
from app.services import file_ingestor
from app.services.analysis_client import AnalysisClient
from app.services.report_exporter import ReportExporter
from app.services.session_state import SessionStore, run_analysis
from app.utils.exceptions import FileReadError, ValidationError
from app.utils.response import success_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("", status_code=201)
async def create_session(store: SessionStore = Depends(get_session_store)):
    session = store.create()
    logger.info("Created analysis session %s", session.id)
    return success_response(data=SessionResponse.from_session(session).model_dump(mode="json"))


@router.get("/{session_id}")
async def get_session(session_id: str, store: SessionStore = Depends(get_session_store)):
    session = store.get(session_id)
    return success_response(data=SessionResponse.from_session(session).model_dump(mode="json"))


@router.post("/{session_id}/image")
async def upload_image(
    session_id: str,
    file: UploadFile = File(...),
    store: SessionStore = Depends(get_session_store),
):
    session = store.get(session_id)

    try:
        content = await file.read()
    except OSError as e:
        logger.warning("Failed to read upload for session %s: %s", session_id, e)
        raise FileReadError() from e

    try:
        asset = file_ingestor.validate(file.filename, file.content_type, content)
    except ValidationError as e:
        session.reject_file(e.message)
        raise

    session.select_file(asset)
    logger.info("Session %s: selected %s (%s, %d bytes)", session_id, asset.filename, asset.content_type, asset.size)
    return success_response(data=SessionResponse.from_session(session).model_dump(mode="json"))


@router.post("/{session_id}/analyze")
async def analyze_image(
    session_id: str,
    store: SessionStore = Depends(get_session_store),
    client: AnalysisClient = Depends(get_analysis_client),
):
    session = store.get(session_id)
    await run_analysis(session, client)
    return success_response(data=SessionResponse.from_session(session).model_dump(mode="json"))


@router.get("/{session_id}/report")
async def download_report(
    session_id: str,
    store: SessionStore = Depends(get_session_store),
    exporter: ReportExporter = Depends(get_report_exporter),
):
    session = store.get(session_id)
    report = await exporter.export(session)
    return Response(
        content=report.content,
        media_type=report.media_type,
        headers={"Content-Disposition": f'attachment; filename="{report.filename}"'},
    )
