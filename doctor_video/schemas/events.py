from typing import Literal, Union

from pydantic import BaseModel, Field


class ProgressEvent(BaseModel):
    percent: int = Field(ge=0, le=100)
    status: str


class CompleteEvent(BaseModel):
    url: str
    name: str


class ErrorEvent(BaseModel):
    error: str


EventName = Literal["progress", "complete", "error"]
JobEvent = Union[ProgressEvent, CompleteEvent, ErrorEvent]

EVENT_NAMES: dict[type, str] = {
    ProgressEvent: "progress",
    CompleteEvent: "complete",
    ErrorEvent: "error",
}


def format_sse(event: JobEvent) -> str:
    """Encode an event as one server-sent events frame."""
    return f"event: {EVENT_NAMES[type(event)]}\ndata: {event.model_dump_json()}\n\n"
