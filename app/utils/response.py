from typing import Any, Literal, TypedDict


class Envelope(TypedDict):
    status: Literal["success", "error"]
    data: Any
    message: str | None


def success_response(data: Any = None, message: str | None = None) -> Envelope:
    return {"status": "success", "data": data, "message": message}


def error_response(message: str, data: Any = None) -> Envelope:
    return {"status": "error", "data": data, "message": message}
