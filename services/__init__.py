"""Services package - Business logic layer"""

from services.knowledge_base import KnowledgeBase
from services.parser_service import IngredientParser
from services.additive_service import AdditiveAnalysisService
from services.scoring_service import ScoreEngine
from services.local_analysis import LocalAnalysis
from services.orchestrator import SourceOrchestrator
from services.connectivity import ConnectivityMonitor
from services.sync_transport import HttpSyncTransport
from services.store_service import PersistentStore
from services.analysis_service import IngredientAnalysisService

__all__ = [
    "KnowledgeBase",
    "IngredientParser",
    "AdditiveAnalysisService",
    "ScoreEngine",
    "LocalAnalysis",
    "SourceOrchestrator",
    "ConnectivityMonitor",
    "HttpSyncTransport",
    "PersistentStore",
    "IngredientAnalysisService",
]
