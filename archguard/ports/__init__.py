"""Port interfaces - boundary contracts of the analysis core.

    LLMProvider  - embeddings + chat completions
    ContentPort  - files, content and diffs under analysis
    ResultCachePort - fingerprint -> verdict cache
"""

from archguard.ports.cache_port import ResultCachePort
from archguard.ports.content_port import ContentPort
from archguard.ports.llm_call_port import LLMProvider

__all__ = [
    "ContentPort",
    "LLMProvider",
    "ResultCachePort",
]
