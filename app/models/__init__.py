from app.models.image import ImageAsset, EncodedPayload
from app.models.analysis import AnalysisRequest, AnalysisResult
from app.models.session import SessionPhase
from app.models.report import OverflowPolicy, PageGeometry, ReportDocument, SavedReport

__all__ = [
    "ImageAsset",
    "EncodedPayload",
    "AnalysisRequest",
    "AnalysisResult",
    "SessionPhase",
    "OverflowPolicy",
    "PageGeometry",
    "ReportDocument",
    "SavedReport",
]
