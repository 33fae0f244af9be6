from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict, Any
from datetime import datetime

from domain.enums import Capability, ResolutionStatus, AttemptOutcome


class SourceAttempt(BaseModel):
    """One step of a failover chain"""

    source: str
    outcome: AttemptOutcome
    elapsed_ms: float = 0.0
    error: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class Resolution(BaseModel):
    """
    Answer of the source orchestrator for one (capability, query) pair.

    ``status`` tells resolved (a source answered), fallback (synthesized
    locally) and unresolved (nothing known) apart; ``data`` is the adapter's
    normalized output without the confidence field.
    """

    capability: Capability
    query: str
    status: ResolutionStatus
    source: Optional[str] = None
    confidence: float = 0.0
    data: Optional[Dict[str, Any]] = None
    attempts: List[SourceAttempt] = Field(default_factory=list)
    from_cache: bool = False
    resolved_at: datetime = Field(default_factory=datetime.utcnow)

    model_config = ConfigDict(frozen=True)

    @property
    def has_data(self) -> bool:
        return self.status != ResolutionStatus.UNRESOLVED and self.data is not None


class IngredientIntelligence(BaseModel):
    """Merged multi-source knowledge about a single ingredient"""

    name: str
    category: str
    basic_info: Optional[Resolution] = None
    safety_data: Optional[Resolution] = None
    expert_analysis: Optional[Resolution] = None
    research: List[Dict[str, Any]] = Field(default_factory=list)
    alternatives: List[Dict[str, Any]] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=datetime.utcnow)

    model_config = ConfigDict(frozen=True)


class SourceHealth(BaseModel):
    """Failure bookkeeping of one capability source"""

    source: str
    capability: Capability
    priority: int
    failures: int = 0
    last_failure: Optional[datetime] = None
    last_error: Optional[str] = None
    calls_in_window: int = 0
