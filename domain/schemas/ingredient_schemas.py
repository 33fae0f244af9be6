from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict, Any

from domain.enums import HazardLevel, ProductCategory


class RegulatoryStatus(BaseModel):
    """Approval state of an additive in one jurisdiction"""

    approved: bool
    restrictions: str = "None"

    model_config = ConfigDict(frozen=True)


class KnowledgeEntry(BaseModel):
    """Regulated substance from the bundled knowledge base"""

    code: str = Field(..., description="Canonical identifier, e.g. the E-number")
    name: str
    aliases: List[str] = Field(default_factory=list)
    category: str
    function: str = ""
    sources: List[str] = Field(default_factory=list)
    safety_score: int = Field(..., ge=0, le=100)
    regulatory_status: Dict[str, RegulatoryStatus]
    health_concerns: List[str] = Field(default_factory=list)
    controversies: List[str] = Field(default_factory=list)
    allergen_info: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    def approved_in(self, jurisdiction: str) -> bool:
        status = self.regulatory_status.get(jurisdiction)
        return bool(status and status.approved)

    @property
    def banned_everywhere(self) -> bool:
        return not any(s.approved for s in self.regulatory_status.values())

    @property
    def has_regulatory_difference(self) -> bool:
        approvals = {s.approved for s in self.regulatory_status.values()}
        return len(approvals) > 1

    @property
    def is_controversial(self) -> bool:
        return len(self.controversies) > 0


class ReferenceIngredient(BaseModel):
    """Common base ingredient bundled with the knowledge base"""

    id: str
    name: str
    category: str
    safety_score: int = Field(..., ge=0, le=100)
    hazard_level: HazardLevel
    description: Optional[str] = None
    synonyms: List[str] = Field(default_factory=list)
    product_categories: Optional[List[ProductCategory]] = None

    model_config = ConfigDict(frozen=True)


class RegulatoryChange(BaseModel):
    """Dated regulatory event affecting one or more additives"""

    date: str
    change: str
    description: str
    affected_additives: List[str] = Field(default_factory=list)
    impact: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class EnrichmentSummary(BaseModel):
    """What the source orchestrator contributed to an ingredient"""

    status: str
    source: Optional[str] = None
    confidence: float = 0.0
    risk_level: Optional[str] = None
    fields: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)


class Ingredient(BaseModel):
    """
    Candidate ingredient produced by the parser.

    Instances are immutable; enrichment produces updated copies.
    """

    id: str
    name: str
    normalized_name: str
    category: str = "unknown"
    is_known: bool = False
    safety_score: Optional[float] = Field(50, ge=0, le=100)
    hazard_level: Optional[HazardLevel] = None
    synonyms: List[str] = Field(default_factory=list)
    raw_text: str = ""
    description: Optional[str] = None
    is_additive: bool = False
    knowledge: Optional[KnowledgeEntry] = None
    enrichment: Optional[EnrichmentSummary] = None

    model_config = ConfigDict(frozen=True, from_attributes=True)
