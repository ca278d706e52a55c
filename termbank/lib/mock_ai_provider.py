"""
Mock AI Provider for testing.

Provides deterministic, scripted similarity judgements without requiring
API keys. Useful for unit tests, integration tests, and development without
live LLM calls.
"""

import json
import re
import threading
import time
from typing import Dict, Iterable, List, Optional, Tuple

from .ai_providers import AIProvider

_TERM_A = re.compile(r"词汇A：「(.*?)」")
_TERM_B = re.compile(r"词汇B：「(.*?)」")


class MockAIProvider(AIProvider):
    """
    Mock AI provider that answers similarity prompts from a script.

    Features:
    - No API keys required
    - Per-pair similarity scores (order of the pair does not matter)
    - Identical strings score 1.0, everything else ``default_similarity``
    - Scripted failures and delays per existing term (oracle fail-open tests)
    - Records every pair it was asked about

    Usage:
        provider = MockAIProvider(similarities={("伏击", "埋伏"): 0.82})
        provider = MockAIProvider(fail_on={"追逐"})       # raises for that pair
        provider = MockAIProvider(delays={"追逐": 0.5})   # sleeps before answering
    """

    def __init__(
        self,
        similarities: Optional[Dict[Tuple[str, str], float]] = None,
        default_similarity: float = 0.0,
        fail_on: Optional[Iterable[str]] = None,
        delays: Optional[Dict[str, float]] = None,
        raw_responses: Optional[Dict[str, str]] = None,
        extraction_model: str = "mock-similarity",
    ):
        self.similarities: Dict[Tuple[str, str], float] = dict(similarities or {})
        self.default_similarity = default_similarity
        self.fail_on = set(fail_on or ())
        self.delays = dict(delays or {})
        self.raw_responses = dict(raw_responses or {})
        self.extraction_model = extraction_model
        self.calls: List[Tuple[str, str]] = []
        self._lock = threading.Lock()

    def set_similarity(self, a: str, b: str, value: float) -> None:
        self.similarities[(a, b)] = value

    def score(self, a: str, b: str) -> float:
        if (a, b) in self.similarities:
            return self.similarities[(a, b)]
        if (b, a) in self.similarities:
            return self.similarities[(b, a)]
        return 1.0 if a == b else self.default_similarity

    def complete(self, prompt: str, system_msg: str = "") -> str:
        """Answer a similarity prompt with the scripted JSON verdict."""
        match_a = _TERM_A.search(prompt)
        match_b = _TERM_B.search(prompt)
        if not match_a or not match_b:
            return json.dumps({"isSynonym": False, "similarity": 0, "reason": "mock: no terms in prompt"})

        a, b = match_a.group(1), match_b.group(1)
        with self._lock:
            self.calls.append((a, b))

        if b in self.delays:
            time.sleep(self.delays[b])
        if b in self.fail_on:
            raise RuntimeError(f"mock provider failure for {b}")
        if b in self.raw_responses:
            return self.raw_responses[b]

        similarity = self.score(a, b)
        return json.dumps({
            "isSynonym": similarity >= 0.8,
            "similarity": similarity,
            "reason": f"mock score for {a}/{b}",
        }, ensure_ascii=False)

    def get_provider_name(self) -> str:
        return "mock"
