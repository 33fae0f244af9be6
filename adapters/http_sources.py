"""
HTTP capability sources: ingredient databases, regulatory APIs, LLM experts
and research indexes.
"""

from typing import Any, Dict, List, Optional
from urllib.parse import quote
import json
import logging
import re

import httpx

from app.config import Settings
from app.exceptions import SourceUnavailable
from domain.enums import Capability, RiskLevel
from adapters.base import SourceAdapter, RateLimit

logger = logging.getLogger("labeliq.sources")

PER_MINUTE_MS = 60_000
RESEARCH_LIMIT = 5

EXPERT_PROMPT = """As a biochemist and toxicologist, analyze the ingredient "{name}" used in {category} products.

Respond with a single JSON object with these keys:
- "mechanism": how the ingredient works
- "risk_level": one of "low", "moderate", "high"
- "safety_profile": immediate effects and long-term concerns
- "health_concerns": list of known health concerns
- "alternatives": list of safer alternatives, if any
- "summary": one paragraph suitable for consumer education"""

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


def parse_expert_text(text: str) -> Dict[str, Any]:
    """Extract the structured answer of an LLM expert, keeping the raw text"""
    result: Dict[str, Any] = {"analysis": text}
    match = _JSON_OBJECT.search(text or "")
    if not match:
        return result
    try:
        parsed = json.loads(match.group(0))
    except ValueError:
        return result
    if isinstance(parsed, dict):
        result["structured"] = parsed
        risk = str(parsed.get("risk_level", "")).lower()
        if risk in {level.value for level in RiskLevel}:
            result["risk_level"] = risk
    return result


# ============================================================================
# INGREDIENT BASICS
# ============================================================================


class CosmeticIngredientAdapter(SourceAdapter):
    """Cosmetic ingredient database behind a configurable URL and API key"""

    name = "cosmetic_ingredient_db"
    capability = Capability.INGREDIENT_BASICS

    def __init__(self, base_url: Optional[str], api_key: Optional[str], **kwargs):
        super().__init__(**kwargs)
        self.base_url = base_url.rstrip("/") if base_url else None
        self.api_key = api_key

    def is_configured(self) -> bool:
        return super().is_configured() and bool(self.base_url and self.api_key)

    async def fetch(self, query: str, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if not self.is_configured():
            raise SourceUnavailable(self.name, "Cosmetic ingredient database not configured")

        data = await self._request_json(
            "GET",
            f"{self.base_url}/ingredients",
            params={"name": query},
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        items = data.get("results") if isinstance(data, dict) else data
        if not items:
            raise SourceUnavailable(self.name, f"No cosmetic ingredient named '{query}'")

        item = items[0]
        return {
            "source": "Cosmetic Ingredient Database",
            "name": item.get("name", query),
            "function": item.get("function"),
            "description": item.get("description"),
            "safety_rating": item.get("safety_rating"),
            "confidence": 0.85,
        }


class PubChemAdapter(SourceAdapter):
    """PubChem PUG REST compound properties"""

    name = "pubchem"
    capability = Capability.INGREDIENT_BASICS

    def __init__(self, base_url: str, **kwargs):
        super().__init__(**kwargs)
        self.base_url = base_url.rstrip("/")

    async def fetch(self, query: str, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = (
            f"{self.base_url}/name/{quote(query)}"
            "/property/MolecularFormula,MolecularWeight,IUPACName/JSON"
        )
        data = await self._request_json("GET", url)
        try:
            props = data["PropertyTable"]["Properties"][0]
        except (KeyError, IndexError, TypeError) as e:
            raise SourceUnavailable(self.name, f"Unexpected PubChem response for '{query}'") from e

        return {
            "source": "PubChem",
            "name": query,
            "cid": props.get("CID"),
            "molecular_formula": props.get("MolecularFormula"),
            "molecular_weight": props.get("MolecularWeight"),
            "iupac_name": props.get("IUPACName"),
            "confidence": 0.95,
        }


class EPACompToxAdapter(SourceAdapter):
    """EPA CompTox chemical search"""

    name = "epa_comptox"
    capability = Capability.INGREDIENT_BASICS

    def __init__(self, base_url: str, **kwargs):
        super().__init__(**kwargs)
        self.base_url = base_url.rstrip("/")

    async def fetch(self, query: str, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        data = await self._request_json("GET", f"{self.base_url}/chemical/search/equal/{quote(query)}")
        hits = data if isinstance(data, list) else (data or {}).get("results", [])
        if not hits:
            raise SourceUnavailable(self.name, f"No CompTox record for '{query}'")

        hit = hits[0]
        return {
            "source": "EPA CompTox",
            "name": hit.get("preferredName", query),
            "dtxsid": hit.get("dtxsid"),
            "casrn": hit.get("casrn"),
            "confidence": 0.8,
        }


# ============================================================================
# SAFETY DATA
# ============================================================================


class OpenFDAAdapter(SourceAdapter):
    """openFDA food enforcement reports (recalls) mentioning the ingredient"""

    name = "openfda"
    capability = Capability.SAFETY_DATA

    def __init__(self, base_url: str, **kwargs):
        super().__init__(**kwargs)
        self.base_url = base_url.rstrip("/")

    async def fetch(self, query: str, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            data = await self._request_json(
                "GET",
                f"{self.base_url}/food/enforcement.json",
                params={"search": f'reason_for_recall:"{query}"', "limit": RESEARCH_LIMIT},
            )
        except SourceUnavailable as e:
            # openFDA answers 404 when nothing matches the search
            if e.details and e.details.get("status") == 404:
                return {"source": "openFDA", "recall_count": 0, "recalls": [], "confidence": 0.6}
            raise

        results = data.get("results", []) if isinstance(data, dict) else []
        total = (data.get("meta") or {}).get("results", {}).get("total", len(results))
        return {
            "source": "openFDA",
            "recall_count": total,
            "recalls": [
                {
                    "reason": r.get("reason_for_recall"),
                    "classification": r.get("classification"),
                    "date": r.get("recall_initiation_date"),
                }
                for r in results
            ],
            "confidence": 0.75,
        }


# ============================================================================
# EXPERT ANALYSIS
# ============================================================================


class AnthropicAdapter(SourceAdapter):
    """Anthropic Messages API as an expert toxicologist"""

    name = "anthropic"
    capability = Capability.EXPERT_ANALYSIS

    def __init__(self, url: str, api_key: Optional[str], model: str, **kwargs):
        super().__init__(**kwargs)
        self.url = url
        self.api_key = api_key
        self.model = model

    def is_configured(self) -> bool:
        return super().is_configured() and bool(self.api_key)

    async def fetch(self, query: str, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if not self.is_configured():
            raise SourceUnavailable(self.name, "Anthropic API key not configured")

        category = (options or {}).get("category", "consumer")
        data = await self._request_json(
            "POST",
            self.url,
            headers={
                "x-api-key": self.api_key,
                "anthropic-version": "2023-06-01",
                "content-type": "application/json",
            },
            json={
                "model": self.model,
                "max_tokens": 1500,
                "messages": [{"role": "user", "content": EXPERT_PROMPT.format(name=query, category=category)}],
            },
        )
        try:
            text = data["content"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise SourceUnavailable(self.name, "Unexpected Anthropic response") from e

        return {"source": "Anthropic Claude", "model": self.model, **parse_expert_text(text), "confidence": 0.9}


class OpenAIAdapter(SourceAdapter):
    """OpenAI chat completions as an expert toxicologist"""

    name = "openai"
    capability = Capability.EXPERT_ANALYSIS

    def __init__(self, url: str, api_key: Optional[str], model: str, **kwargs):
        super().__init__(**kwargs)
        self.url = url
        self.api_key = api_key
        self.model = model

    def is_configured(self) -> bool:
        return super().is_configured() and bool(self.api_key)

    async def fetch(self, query: str, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if not self.is_configured():
            raise SourceUnavailable(self.name, "OpenAI API key not configured")

        category = (options or {}).get("category", "consumer")
        data = await self._request_json(
            "POST",
            self.url,
            headers={"Authorization": f"Bearer {self.api_key}"},
            json={
                "model": self.model,
                "max_tokens": 1500,
                "messages": [
                    {"role": "system", "content": "You are a biochemist and toxicologist."},
                    {"role": "user", "content": EXPERT_PROMPT.format(name=query, category=category)},
                ],
            },
        )
        try:
            text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise SourceUnavailable(self.name, "Unexpected OpenAI response") from e

        return {"source": "OpenAI", "model": self.model, **parse_expert_text(text), "confidence": 0.85}


# ============================================================================
# RESEARCH
# ============================================================================


class PubMedAdapter(SourceAdapter):
    """PubMed E-utilities: esearch for ids, esummary for article details"""

    name = "pubmed"
    capability = Capability.RESEARCH

    def __init__(self, base_url: str, **kwargs):
        super().__init__(**kwargs)
        self.base_url = base_url.rstrip("/")

    async def fetch(self, query: str, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        search = await self._request_json(
            "GET",
            f"{self.base_url}/esearch.fcgi",
            params={
                "db": "pubmed",
                "term": f"{query} safety toxicity health effects",
                "retmax": RESEARCH_LIMIT,
                "retmode": "json",
                "sort": "date",
            },
        )
        ids: List[str] = (search.get("esearchresult") or {}).get("idlist", [])
        if not ids:
            return {"source": "PubMed", "articles": [], "confidence": 0.5}

        details = await self._request_json(
            "GET",
            f"{self.base_url}/esummary.fcgi",
            params={"db": "pubmed", "id": ",".join(ids), "retmode": "json"},
        )
        result = details.get("result") or {}
        articles = []
        for uid in ids:
            article = result.get(uid)
            if not isinstance(article, dict):
                continue
            articles.append(
                {
                    "title": article.get("title"),
                    "authors": ", ".join(a.get("name", "") for a in (article.get("authors") or [])[:3]),
                    "journal": article.get("source"),
                    "date": article.get("pubdate"),
                    "pmid": uid,
                    "url": f"https://pubmed.ncbi.nlm.nih.gov/{uid}/",
                }
            )
        return {"source": "PubMed", "articles": articles, "confidence": 0.9}


class ClinicalTrialsAdapter(SourceAdapter):
    """ClinicalTrials.gov v2 study search"""

    name = "clinical_trials"
    capability = Capability.RESEARCH

    def __init__(self, base_url: str, **kwargs):
        super().__init__(**kwargs)
        self.base_url = base_url.rstrip("/")

    async def fetch(self, query: str, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        data = await self._request_json(
            "GET",
            f"{self.base_url}/studies",
            params={"query.term": query, "pageSize": RESEARCH_LIMIT},
        )
        articles = []
        for study in data.get("studies", []):
            ident = (study.get("protocolSection") or {}).get("identificationModule") or {}
            nct_id = ident.get("nctId")
            articles.append(
                {
                    "title": ident.get("briefTitle"),
                    "nct_id": nct_id,
                    "url": f"https://clinicaltrials.gov/study/{nct_id}" if nct_id else None,
                }
            )
        return {"source": "ClinicalTrials.gov", "articles": articles, "confidence": 0.8}


def build_default_adapters(settings: Settings, client: httpx.AsyncClient) -> List[SourceAdapter]:
    """Instantiate every remote source with its priority, timeout and rate limit"""
    return [
        CosmeticIngredientAdapter(
            settings.cosmetic_api_url, settings.cosmetic_api_key, client=client, priority=1, timeout_ms=3000
        ),
        PubChemAdapter(
            settings.pubchem_url,
            client=client,
            priority=2,
            timeout_ms=5000,
            rate_limit=RateLimit(max_per_window=5, window_ms=PER_MINUTE_MS),
        ),
        EPACompToxAdapter(settings.epa_url, client=client, priority=3, timeout_ms=4000),
        OpenFDAAdapter(settings.openfda_url, client=client, priority=1, timeout_ms=4000),
        AnthropicAdapter(
            settings.anthropic_url, settings.anthropic_api_key, settings.anthropic_model,
            client=client, priority=1, timeout_ms=10000,
        ),
        OpenAIAdapter(
            settings.openai_url, settings.openai_api_key, settings.openai_model,
            client=client, priority=2, timeout_ms=8000,
        ),
        PubMedAdapter(
            settings.pubmed_url,
            client=client,
            priority=1,
            timeout_ms=5000,
            rate_limit=RateLimit(max_per_window=10, window_ms=PER_MINUTE_MS),
        ),
        ClinicalTrialsAdapter(settings.clinical_trials_url, client=client, priority=2, timeout_ms=4000),
    ]
