from pydantic import BaseModel

from app.models.session import SessionPhase
from app.services import markdown_renderer
from app.services.session_state import AnalysisSession


class ImageInfo(BaseModel):
    filename: str
    content_type: str
    size: int


class AnalysisResultResponse(BaseModel):
    markdown: str
    html: str
    model: str


class SessionResponse(BaseModel):
    id: str
    phase: SessionPhase
    error: str | None = None
    image: ImageInfo | None = None
    result: AnalysisResultResponse | None = None
    export_enabled: bool = False

    @classmethod
    def from_session(cls, session: AnalysisSession) -> "SessionResponse":
        image = None
        if session.asset is not None:
            image = ImageInfo(
                filename=session.asset.filename,
                content_type=session.asset.content_type,
                size=session.asset.size,
            )
        result = None
        if session.result is not None:
            result = AnalysisResultResponse(
                markdown=session.result.markdown,
                html=markdown_renderer.to_html(session.result.markdown),
                model=session.result.model,
            )
        return cls(
            id=session.id,
            phase=session.phase,
            error=session.error,
            image=image,
            result=result,
            export_enabled=session.export_enabled,
        )
