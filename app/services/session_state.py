"""Per-view analysis session: state machine and analysis orchestration.

Phases: idle -> ready -> requesting -> (success | failed). Every new file
selection and every new request bumps a generation counter; results and
failures tagged with an older generation are discarded, so a late response
can never overwrite a newer session.
"""
import logging
import time
import uuid

from cachetools import TTLCache

from app.config import settings
from app.models.analysis import AnalysisResult
from app.models.image import ImageAsset
from app.models.session import SessionPhase
from app.services import file_ingestor
from app.services.analysis_client import AnalysisClient
from app.utils.exceptions import (
    ANALYSIS_FAILURE_MESSAGE,
    AnalysisError,
    AnalysisInProgressError,
    FileReadError,
    NoImageSelectedError,
    SessionNotFoundError,
)

logger = logging.getLogger(__name__)


class AnalysisSession:
    def __init__(self, session_id: str | None = None):
        self.id = session_id or str(uuid.uuid4())
        self.phase = SessionPhase.IDLE
        self.asset: ImageAsset | None = None
        self.result: AnalysisResult | None = None
        self.error: str | None = None
        self.error_detail: str | None = None
        self.generation = 0
        self.history: list[SessionPhase] = [SessionPhase.IDLE]

    @property
    def export_enabled(self) -> bool:
        return self.phase is SessionPhase.SUCCESS and self.result is not None

    def _transition(self, phase: SessionPhase) -> None:
        logger.debug("Session %s: %s -> %s", self.id, self.phase.value, phase.value)
        self.phase = phase
        self.history.append(phase)

    def select_file(self, asset: ImageAsset) -> None:
        self.generation += 1
        self.asset = asset
        self.result = None
        self.error = None
        self.error_detail = None
        self._transition(SessionPhase.READY)

    def reject_file(self, message: str) -> None:
        self.generation += 1
        self.asset = None
        self.result = None
        self.error = message
        self.error_detail = None
        self._transition(SessionPhase.IDLE)

    def begin_request(self) -> int:
        """Enter `requesting` and return the generation tag for the call."""
        if self.phase is SessionPhase.REQUESTING:
            raise AnalysisInProgressError()
        if self.asset is None:
            self.error = NoImageSelectedError().message
            raise NoImageSelectedError()

        self.generation += 1
        self.result = None
        self.error = None
        self.error_detail = None
        self._transition(SessionPhase.REQUESTING)
        return self.generation

    def _is_current(self, generation: int) -> bool:
        return generation == self.generation and self.phase is SessionPhase.REQUESTING

    def complete(self, result: AnalysisResult) -> bool:
        if not self._is_current(result.generation):
            logger.info(
                "Session %s: discarding stale result (generation %d, current %d)",
                self.id, result.generation, self.generation,
            )
            return False
        self.result = result
        self._transition(SessionPhase.SUCCESS)
        return True

    def fail(self, generation: int, message: str, detail: str | None = None) -> bool:
        if not self._is_current(generation):
            logger.info(
                "Session %s: discarding stale failure (generation %d, current %d)",
                self.id, generation, self.generation,
            )
            return False
        self.result = None
        self.error = message
        self.error_detail = detail
        self._transition(SessionPhase.FAILED)
        return True


async def run_analysis(session: AnalysisSession, client: AnalysisClient) -> AnalysisSession:
    """Encode the session image, call the model once and record the outcome."""
    generation = session.begin_request()
    asset = session.asset

    try:
        payload = await file_ingestor.encode(asset)
    except FileReadError as e:
        session.fail(generation, e.message, detail=repr(e.__cause__ or e))
        return session

    request = client.build_request(payload, generation=generation)

    try:
        result = await client.analyze(request)
    except AnalysisError as e:
        logger.warning(
            "Analysis failed for session %s (%s): %s", session.id, type(e).__name__, e.detail
        )
        session.fail(generation, e.message, detail=f"{type(e).__name__}: {e.detail}")
        return session
    except Exception as e:
        logger.exception("Unexpected analysis failure for session %s", session.id)
        session.fail(generation, ANALYSIS_FAILURE_MESSAGE, detail=repr(e))
        return session

    if session.complete(result):
        logger.info("Analysis completed for session %s (%d chars)", session.id, len(result.markdown))
    return session


class SessionStore:
    """In-memory registry of analysis sessions, one per open view.

    Bounded: a session idle for longer than `ttl` seconds is dropped, and
    when `maxsize` sessions are held the least recently used one is evicted.
    Reading a session renews its lifetime.
    """

    def __init__(
        self,
        maxsize: int = settings.max_sessions,
        ttl: float = settings.session_ttl_seconds,
        timer=time.monotonic,
    ):
        self._sessions: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)

    def create(self) -> AnalysisSession:
        session = AnalysisSession()
        self._sessions[session.id] = session
        logger.debug("Holding %d analysis sessions", len(self._sessions))
        return session

    def get(self, session_id: str) -> AnalysisSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError()
        self._sessions[session_id] = session
        return session

    def clear(self) -> None:
        self._sessions.clear()

    def __len__(self) -> int:
        self._sessions.expire()
        return len(self._sessions)


session_store = SessionStore()
