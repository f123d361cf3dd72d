"""Semantic analyzer adapters and provider selection"""

from analysis.semantic.gemini_analyzer import GeminiSemanticAnalyzer
from analysis.semantic.local_analyzer import LocalSemanticAnalyzer
from config import SEMANTIC_PROVIDERS, get_logger
from deliberation.protocols import NullSemanticAnalyzer, SemanticAnalyzer
from exceptions import ConfigurationError

logger = get_logger(__name__).bind(component="semantic")


def create_semantic_analyzer(config) -> SemanticAnalyzer:
    """Build the analyzer selected by config.SEMANTIC_PROVIDER

    gemini without an API key degrades to the never-ready analyzer.
    """
    provider = config.SEMANTIC_PROVIDER

    if provider == "gemini":
        api_key = config.get_api_key()
        if not api_key:
            logger.warning("gemini selected without api key, semantic enhancement disabled")
            return NullSemanticAnalyzer()
        return GeminiSemanticAnalyzer(api_key=api_key, model_name=config.GEMINI_MODEL)

    if provider == "local":
        return LocalSemanticAnalyzer()

    if provider == "none":
        return NullSemanticAnalyzer()

    raise ConfigurationError(
        f"Unknown semantic provider '{provider}', expected one of {', '.join(SEMANTIC_PROVIDERS)}",
        config_key="DELIB_SEMANTIC_PROVIDER",
    )


__all__ = ["GeminiSemanticAnalyzer", "LocalSemanticAnalyzer", "create_semantic_analyzer"]
