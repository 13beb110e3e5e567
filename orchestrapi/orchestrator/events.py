"""Stream events, the per-run event channel and NDJSON framing.

A run writes typed events onto an EventChannel from its worker thread;
the HTTP layer drains the channel through ndjson_stream, which turns each
event into one line of JSON. The pipeline never sees bytes.

Wire format, one object per line:

    {"type":"status","message":"..."}
    {"type":"trace","trace":{"step":"...","data":...}}
    {"type":"content","text":"..."}
    {"type":"error","message":"..."}
    {"type":"done"}
"""

import logging
import queue
import threading
from typing import Annotated, Any, Iterator, Literal, Union

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL_SIZE = 256


class StatusEvent(BaseModel):
    type: Literal["status"] = "status"
    message: str


class TraceData(BaseModel):
    step: str
    data: Any


class TraceEvent(BaseModel):
    type: Literal["trace"] = "trace"
    trace: TraceData


class ContentEvent(BaseModel):
    type: Literal["content"] = "content"
    text: str


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    message: str


class DoneEvent(BaseModel):
    type: Literal["done"] = "done"


StreamEvent = Annotated[
    Union[StatusEvent, TraceEvent, ContentEvent, ErrorEvent, DoneEvent],
    Field(discriminator="type"),
]


def trace_event(step: str, data: Any) -> TraceEvent:
    return TraceEvent(trace=TraceData(step=step, data=data))


def encode_frame(event: BaseModel) -> bytes:
    """Serialize one event as a compact JSON line."""
    return (event.model_dump_json(exclude_none=True) + "\n").encode("utf-8")


_CLOSED = object()


class EventChannel:
    """Bounded single-producer, single-consumer channel of stream events.

    The producer blocks when the channel is full. When the consumer goes
    away it cancels the channel, and the producer's next emit raises
    InterruptedError.
    """

    def __init__(self, maxsize: int = DEFAULT_CHANNEL_SIZE, poll_interval: float = 0.5):
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._cancelled = threading.Event()
        self._closed = False
        self._poll_interval = poll_interval

    def _put(self, item: Any) -> None:
        while True:
            if self._cancelled.is_set():
                raise InterruptedError("Stream consumer disconnected")
            try:
                self._queue.put(item, timeout=self._poll_interval)
                return
            except queue.Full:
                continue

    def emit(self, event: BaseModel) -> None:
        if self._closed:
            raise RuntimeError("Cannot emit on a closed channel")
        self._put(event)

    def close(self) -> None:
        """Mark the end of the stream. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if self._cancelled.is_set():
            return
        try:
            self._put(_CLOSED)
        except InterruptedError:
            logger.debug("Channel cancelled while closing")

    def cancel(self) -> None:
        self._cancelled.set()

    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def closed(self) -> bool:
        return self._closed

    def __iter__(self) -> Iterator[BaseModel]:
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                return
            yield item


def ndjson_stream(channel: EventChannel) -> Iterator[bytes]:
    """Transport adapter: channel events to NDJSON lines.

    Cancels the channel when the consumer stops iterating early.
    """
    try:
        for event in channel:
            yield encode_frame(event)
    finally:
        channel.cancel()
