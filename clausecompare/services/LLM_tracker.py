"""
LLM Usage Tracker
Tracks token usage, estimated cost and call counts for clause extraction calls
Kept in memory per comparison request; nothing is persisted
"""

import logging
import time
from typing import Any, Dict, Optional

from clausecompare.config.config import Config

logger = logging.getLogger(__name__)

# Gemini API Pricing - Update these based on current pricing
GEMINI_PRICING: Dict[str, Dict[str, float]] = {
    "gemini-2.0-flash": {"input_per_million": 0.10, "output_per_million": 0.40},
    "gemini-2.5-flash": {"input_per_million": 0.30, "output_per_million": 2.50},
    "gemini-2.5-pro": {"input_per_million": 1.25, "output_per_million": 10.00},
    "gemini-1.5-flash": {"input_per_million": 0.075, "output_per_million": 0.30},
    "gemini-1.5-pro": {"input_per_million": 1.25, "output_per_million": 5.00},
}
FALLBACK_PRICING_MODEL = "gemini-2.5-flash"


class LLMUsageTracker:
    """Tracks LLM usage for one labelled source (e.g. one uploaded document)"""

    def __init__(self, label: str, model_name: str = Config.GEMINI_MODEL):
        self.label = label
        self.model_name = model_name

        self.input_tokens = 0
        self.output_tokens = 0
        self.llm_calls = 0
        self.cost_in_usd = 0.0
        self.elapsed_seconds = 0.0

        self._current_request_start: Optional[float] = None
        self._current_request_prompt: Optional[str] = None

    def start_request(self, prompt: str):
        """Mark the start of an LLM request"""
        self._current_request_start = time.time()
        self._current_request_prompt = prompt

    def end_request(self, response: Any):
        """
        Mark the end of an LLM request and extract token usage

        Args:
            response: Gemini API response object
        """
        if self._current_request_start is None:
            logger.warning(f"end_request called without start_request for {self.label}")
            return

        elapsed = time.time() - self._current_request_start
        self.elapsed_seconds += elapsed

        try:
            usage_metadata = response.usage_metadata
            input_tok = usage_metadata.prompt_token_count
            output_tok = usage_metadata.candidates_token_count
        except AttributeError as e:
            # Rough approximation: 1 token ≈ 4 chars
            logger.warning(f"Could not extract token usage: {e}")
            input_tok = len(self._current_request_prompt or "") // 4
            output_tok = len(getattr(response, "text", "") or "") // 4

        try:
            self.input_tokens += input_tok
            self.output_tokens += output_tok
            self.llm_calls += 1

            cost_usd = self._calculate_cost(input_tok, output_tok)
            self.cost_in_usd += cost_usd

            logger.info(
                f"[{self.label}] Call #{self.llm_calls}: input {input_tok} tokens | "
                f"output {output_tok} tokens | ${cost_usd:.4f} ({elapsed:.2f}s)"
            )
        finally:
            self._current_request_start = None
            self._current_request_prompt = None

    def _calculate_cost(self, input_tokens: int, output_tokens: int) -> float:
        pricing = get_gemini_pricing(self.model_name)
        input_cost = (input_tokens / 1_000_000) * pricing["input_per_million"]
        output_cost = (output_tokens / 1_000_000) * pricing["output_per_million"]
        return input_cost + output_cost

    def get_stats(self) -> Dict[str, Any]:
        """Get current statistics for this tracker"""
        return {
            "label": self.label,
            "model": self.model_name,
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "cost_in_usd": round(self.cost_in_usd, 6),
            "llm_calls": self.llm_calls,
            "elapsed_seconds": round(self.elapsed_seconds, 2)
        }


def get_gemini_pricing(model_name: str) -> Dict[str, float]:
    if model_name not in GEMINI_PRICING:
        logger.warning(f"Unknown model '{model_name}', falling back to '{FALLBACK_PRICING_MODEL}' pricing")
        return GEMINI_PRICING[FALLBACK_PRICING_MODEL]
    return GEMINI_PRICING[model_name]


class LLMUsageManager:
    """Holds the trackers of one comparison request"""

    def __init__(self):
        self.trackers: Dict[str, LLMUsageTracker] = {}

    def get_tracker(self, label: str, model_name: str = Config.GEMINI_MODEL) -> LLMUsageTracker:
        if label not in self.trackers:
            self.trackers[label] = LLMUsageTracker(label=label, model_name=model_name)
        return self.trackers[label]

    def get_overall_stats(self) -> Dict[str, Any]:
        """Get aggregated stats across all trackers"""
        total_input = 0
        total_output = 0
        total_cost = 0.0
        total_calls = 0

        for tracker in self.trackers.values():
            stats = tracker.get_stats()
            total_input += stats['input_tokens']
            total_output += stats['output_tokens']
            total_cost += stats['cost_in_usd']
            total_calls += stats['llm_calls']

        return {
            "total_input_tokens": total_input,
            "total_output_tokens": total_output,
            "total_cost_in_usd": round(total_cost, 6),
            "total_llm_calls": total_calls,
            "by_source": {label: tracker.get_stats() for label, tracker in self.trackers.items()}
        }
