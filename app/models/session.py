import enum


class SessionPhase(str, enum.Enum):
    IDLE = "idle"
    READY = "ready"
    REQUESTING = "requesting"
    SUCCESS = "success"
    FAILED = "failed"
