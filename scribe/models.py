"""Data models for work units and processing jobs."""

import base64
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Union

from scribe.key_pool import KeyPool

STATE_IDLE = "idle"
STATE_RUNNING = "running"
STATE_COMPLETED = "completed"
STATE_PAUSED = "paused"
STATE_FAILED = "failed"

KIND_OCR = "ocr"
KIND_FORMAT = "format"
KIND_TRANSLATE = "translate"


@dataclass
class MediaPayload:
    """One image or single-page PDF sent as inline data."""

    data: bytes
    mime_type: str
    name: str = ""

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")


@dataclass
class MediaUnit:
    """A group of payloads sent together in one multimodal request."""

    index: int
    payloads: List[MediaPayload]


@dataclass
class TextUnit:
    """A span of a longer text sent in one request."""

    index: int
    text: str


WorkUnit = Union[MediaUnit, TextUnit]


@dataclass
class TextPart:
    text: str


@dataclass
class BlobPart:
    mime_type: str
    data: bytes


Part = Union[TextPart, BlobPart]

# (unit, total_units) -> ordered prompt parts for that unit
RequestTemplate = Callable[[WorkUnit, int], List[Part]]


@dataclass
class ExhaustionState:
    """Snapshot of a job paused because every credential failed."""

    index: int
    remaining_units: List[WorkUnit]
    results: List[str]


@dataclass
class ProcessingJob:
    """An ordered sequence of work units and the results collected so far."""

    kind: str
    units: List[WorkUnit]
    template: RequestTemplate
    pool: KeyPool
    job_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    index: int = 0
    results: List[str] = field(default_factory=list)
    state: str = STATE_IDLE
    error: Optional[Exception] = None
    exhaustion: Optional[ExhaustionState] = None
    cancelled: bool = False
    output: str = ""
    language: str = "ar"
    finished_at: Optional[float] = None
    total: int = field(init=False)

    def __post_init__(self):
        self.total = len(self.units)

    @property
    def finished(self) -> bool:
        return self.state in (STATE_COMPLETED, STATE_FAILED)

    def release(self) -> None:
        """Drop the inputs and partials of a finished job, keeping ``output``."""
        self.units = []
        self.results = []
        self.exhaustion = None

    @property
    def remaining_units(self) -> List[WorkUnit]:
        return self.units[self.index :]

    def snapshot(self) -> ExhaustionState:
        return ExhaustionState(
            index=self.index,
            remaining_units=list(self.remaining_units),
            results=list(self.results),
        )

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {
            "job_id": self.job_id,
            "kind": self.kind,
            "state": self.state,
            "completed": self.index,
            "total": self.total,
            "keys": len(self.pool),
        }
        if self.error is not None:
            data["error"] = str(self.error)
        if self.exhaustion is not None:
            data["resume_from"] = self.exhaustion.index
            data["remaining"] = len(self.exhaustion.remaining_units)
        return data
