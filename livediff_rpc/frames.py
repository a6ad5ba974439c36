from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict

EVENT_MESSAGE = "message"
EVENT_RESULT = "result"
EVENT_DONE = "done"
EVENT_ERROR = "error"

FRAME_PAYLOAD_KEY = "json"


class RpcRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    input: Any = None


def message_frame(item: Any) -> Dict[str, Any]:
    return {"event": EVENT_MESSAGE, FRAME_PAYLOAD_KEY: item}


def result_frame(value: Any) -> Dict[str, Any]:
    return {"event": EVENT_RESULT, FRAME_PAYLOAD_KEY: value}


def done_frame() -> Dict[str, Any]:
    return {"event": EVENT_DONE}


def error_frame(message: str) -> Dict[str, Any]:
    return {"event": EVENT_ERROR, "message": str(message)}


def frame_event(frame: Any) -> str:
    if not isinstance(frame, dict):
        return ""
    return str(frame.get("event", "")).strip().lower()
