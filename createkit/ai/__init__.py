"""createkit ai -- optional AI-assisted project setup.

Key classes:
    AIAvailability        - Which providers have usable API keys
    LLMClient             - Provider-agnostic completion client (``create_llm_client``)
    ProjectAnalyzer       - Description -> ProjectAnalysis, with keyword fallback
    PackageExistenceCache - Process-scoped npm-registry lookups
"""

from createkit.ai.analyzer import ProjectAnalysis, ProjectAnalyzer, keyword_analysis
from createkit.ai.availability import AIAvailability, check_provider, get_ai_availability
from createkit.ai.client import LLMClient, create_llm_client
from createkit.ai.providers import AnthropicAdapter, LLMResponse, OpenAIAdapter
from createkit.ai.registry_cache import DependencyRecommender, PackageExistenceCache

__all__ = [
    "AIAvailability",
    "AnthropicAdapter",
    "DependencyRecommender",
    "LLMClient",
    "LLMResponse",
    "OpenAIAdapter",
    "PackageExistenceCache",
    "ProjectAnalysis",
    "ProjectAnalyzer",
    "check_provider",
    "create_llm_client",
    "get_ai_availability",
    "keyword_analysis",
]
