"""
Local fallback analysis used when no remote source answers a capability.

Everything here is deterministic: the same ingredient always yields the same
analysis, built from the knowledge base and keyword heuristics.
"""

from typing import Any, Dict, List, Optional, Tuple
import logging

from domain.enums import Capability, RiskLevel
from domain.schemas.ingredient_schemas import Ingredient
from services.knowledge_base import KnowledgeBase

logger = logging.getLogger("labeliq.fallback")

HIGH_RISK_KEYWORDS = ("sulfate", "paraben", "phthalate", "formaldehyde", "benzene")
MODERATE_RISK_KEYWORDS = ("alcohol", "acid", "peroxide", "chloride")

MECHANISMS = {
    "preservative": "Prevents microbial growth by disrupting bacterial cell walls and metabolic processes",
    "surfactant": "Reduces surface tension between liquids, enabling mixing and cleaning action",
    "emulsifier": "Allows oil and water to mix by reducing interfacial tension",
    "antioxidant": "Prevents oxidative damage by neutralizing free radicals",
    "colorant": "Provides color through light absorption and reflection properties",
    "coloring": "Provides color through light absorption and reflection properties",
    "fragrance": "Interacts with olfactory receptors to produce scent perception",
    "sweetener": "Binds sweet taste receptors at a fraction of the caloric load of sugar",
    "solvent": "Dissolves grease and residues so they can be rinsed away",
    "bleach": "Oxidizes stains and microorganisms",
}

ALTERNATIVES = {
    "sodium lauryl sulfate": ["Cocamidopropyl betaine", "Sodium cocoyl isethionate"],
    "paraben": ["Phenoxyethanol", "Benzyl alcohol", "Natural preservatives"],
    "fragrance": ["Essential oils", "Natural fragrance", "Fragrance-free options"],
    "artificial color": ["Natural colorants", "Plant-based dyes", "Color-free formulations"],
}
ALTERNATIVE_SAFETY_SCORE = 85

SENSITIVE_POPULATIONS = [
    "Individuals with sensitive skin",
    "Those with known allergies to similar compounds",
    "Pregnant and breastfeeding women (precautionary)",
    "Children under 3 years old",
]
USAGE_GUIDELINES = [
    "Patch test new products containing this ingredient",
    "Follow product usage instructions carefully",
    "Discontinue use if irritation occurs",
    "Consult healthcare provider for persistent reactions",
]

BASICS_CONFIDENCE = 0.6
SAFETY_CONFIDENCE = 0.5
EXPERT_CONFIDENCE = 0.7
ALTERNATIVES_CONFIDENCE = 0.5


def assess_risk(name: str, safety_score: Optional[float] = None) -> Tuple[RiskLevel, List[str]]:
    """Coarse risk from name fragments, overridden by a known safety score"""
    level = RiskLevel.LOW
    factors: List[str] = []
    lowered = (name or "").lower()

    if any(k in lowered for k in HIGH_RISK_KEYWORDS):
        level = RiskLevel.HIGH
        factors.append("Contains potentially hazardous chemical compound")
    elif any(k in lowered for k in MODERATE_RISK_KEYWORDS):
        level = RiskLevel.MODERATE
        factors.append("May cause irritation in sensitive individuals")

    if safety_score is not None:
        if safety_score < 40:
            level = RiskLevel.HIGH
            factors.append("Low safety score indicates potential concerns")
        elif safety_score < 70:
            level = RiskLevel.MODERATE
            factors.append("Moderate safety concerns noted")

    return level, factors


def explain_mechanism(category: str) -> str:
    return MECHANISMS.get(category, f"Functions as a {category} through specific molecular interactions")


def suggest_alternatives(name: str) -> List[Dict[str, Any]]:
    lowered = (name or "").lower()
    for key, alternatives in ALTERNATIVES.items():
        if key in lowered:
            return [{"name": alt, "safety_score": ALTERNATIVE_SAFETY_SCORE} for alt in alternatives]
    return []


def safety_profile(name: str, category: str, risk: RiskLevel) -> Dict[str, Any]:
    immediate = []
    if risk == RiskLevel.HIGH:
        immediate += ["Possible skin or eye irritation", "May cause allergic reactions in sensitive individuals"]
    elif risk == RiskLevel.MODERATE:
        immediate.append("Mild irritation possible with direct contact")
    if category == "fragrance":
        immediate.append("May trigger headaches or respiratory sensitivity")

    long_term = []
    if risk == RiskLevel.HIGH:
        long_term += [
            "Potential for bioaccumulation with repeated exposure",
            "May contribute to sensitization over time",
        ]
    if "paraben" in (name or "").lower():
        long_term.append("Potential endocrine disruption with chronic exposure")

    return {
        "risk_level": risk.value,
        "immediate_effects": immediate or ["Generally well tolerated"],
        "long_term_concerns": long_term,
        "sensitive_populations": list(SENSITIVE_POPULATIONS),
        "usage_guidelines": list(USAGE_GUIDELINES),
    }


def recommendations_for(risk: RiskLevel) -> List[str]:
    if risk == RiskLevel.HIGH:
        return [
            "Consider safer alternatives when available",
            "Limit frequency of use",
            "Use only as directed on product labels",
        ]
    return ["Generally safe for intended use", "Monitor for any unexpected reactions"]


class LocalAnalysis:
    """Capability fallbacks built on the knowledge base"""

    def __init__(self, knowledge_base: KnowledgeBase):
        self.kb = knowledge_base
        self._handlers = {
            Capability.INGREDIENT_BASICS: self.basics,
            Capability.SAFETY_DATA: self.safety_data,
            Capability.EXPERT_ANALYSIS: self.expert_analysis,
            Capability.RESEARCH: self.research,
            Capability.ALTERNATIVES: self.alternatives,
        }
        missing = set(Capability) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No local fallback for capabilities: {sorted(c.value for c in missing)}")

    def fallback(self, capability: Capability, query: str, options: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """Synthesize a result for a capability, or None when nothing is known"""
        return self._handlers[capability](query, options or {})

    def _known(self, query: str) -> Optional[Ingredient]:
        return self.kb.find_ingredient(query)

    def basics(self, query: str, options: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        ingredient = self._known(query)
        if ingredient is None:
            return None
        return {
            "source": "Local Knowledge Base",
            "name": ingredient.name,
            "category": ingredient.category,
            "description": ingredient.description,
            "safety_score": ingredient.safety_score,
            "hazard_level": ingredient.hazard_level.value if ingredient.hazard_level else None,
            "synonyms": ingredient.synonyms,
            "confidence": BASICS_CONFIDENCE,
        }

    def safety_data(self, query: str, options: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        entry = self.kb.lookup(query)
        if entry is not None:
            return {
                "source": "Local Knowledge Base",
                "regulatory_status": {j: s.model_dump() for j, s in entry.regulatory_status.items()},
                "health_concerns": list(entry.health_concerns),
                "controversies": list(entry.controversies),
                "allergen_info": entry.allergen_info,
                "effective_score": self.kb.effective_score(entry),
                "confidence": SAFETY_CONFIDENCE,
            }
        ingredient = self._known(query)
        if ingredient is None:
            return None
        return {
            "source": "Local Knowledge Base",
            "hazard_level": ingredient.hazard_level.value if ingredient.hazard_level else None,
            "safety_score": ingredient.safety_score,
            "health_concerns": [],
            "confidence": SAFETY_CONFIDENCE,
        }

    def expert_analysis(self, query: str, options: Dict[str, Any]) -> Dict[str, Any]:
        ingredient = self._known(query)
        category = ingredient.category if ingredient else options.get("category", "unknown")
        score = ingredient.safety_score if ingredient else None
        risk, factors = assess_risk(query, score)
        return {
            "source": "Local Analysis",
            "risk_level": risk.value,
            "risk_factors": factors,
            "analysis": {
                "mechanism": explain_mechanism(category),
                "safety_profile": safety_profile(query, category, risk),
                "recommendations": recommendations_for(risk),
                "alternatives": suggest_alternatives(query),
            },
            "confidence": EXPERT_CONFIDENCE,
        }

    def research(self, query: str, options: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        # No bundled literature
        return None

    def alternatives(self, query: str, options: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        alternatives = suggest_alternatives(query)
        if not alternatives:
            return None
        return {"source": "Local Analysis", "alternatives": alternatives, "confidence": ALTERNATIVES_CONFIDENCE}
