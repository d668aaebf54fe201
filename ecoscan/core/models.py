from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple
from pydantic import BaseModel, Field, StrictBool, field_validator

from ecoscan.core.constants import BIN_STYLES, DEFAULT_BIN_STYLE


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class PipelineStatus(str, Enum):
    IDLE = "Idle"
    CAPTURING = "Capturing"
    AWAITING_RESULT = "AwaitingResult"


# --- Classifier Models ---

class DisposalBin(BaseModel):
    name: str
    color: str = DEFAULT_BIN_STYLE[0]
    icon: str = DEFAULT_BIN_STYLE[1]

    model_config = {
        "frozen": True
    }

    @classmethod
    def from_name(cls, name: str) -> "DisposalBin":
        color, icon = BIN_STYLES.get(name, DEFAULT_BIN_STYLE)
        return cls(name=name, color=color, icon=icon)


class ClassificationResult(BaseModel):
    """Parsed body of a successful classifier response."""
    waste_type: str
    category: str
    bin: DisposalBin
    tip: str
    recyclable: StrictBool
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)
    severity: Optional[Severity] = None

    @field_validator('bin', mode='before')
    @classmethod
    def _bin_from_name(cls, value: Any) -> Any:
        # Older classifier builds send the bin as a bare name
        if isinstance(value, str):
            return DisposalBin.from_name(value)
        return value


# --- Pipeline Models ---

class ScanOutcome(BaseModel):
    """Reconciled result of classifying one frame. Immutable once built."""
    id: int
    label: str
    category: str
    bin: DisposalBin
    guidance: str
    reward_points: int = Field(ge=0)
    icon: str
    severity: Severity
    confidence: Optional[float] = None
    captured_at: datetime

    model_config = {
        "frozen": True
    }


class PipelineSnapshot(BaseModel):
    """Read-only view of the pipeline handed to the UI."""
    status: PipelineStatus = PipelineStatus.IDLE
    live: bool = False
    current: Optional[ScanOutcome] = None
    history: Tuple[ScanOutcome, ...] = ()
    last_error: Optional[str] = None

    model_config = {
        "frozen": True
    }


class ScanEvent(BaseModel):
    type: str  # 'status_update', 'scan_finished', 'scan_failed'
    data: Dict[str, Any] = {}
    snapshot: PipelineSnapshot
