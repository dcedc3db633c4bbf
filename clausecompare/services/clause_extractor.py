import asyncio
import json
import logging
import time
from typing import Any, Dict, List, Optional

import google.generativeai as genai
from pydantic import BaseModel, Field

from clausecompare.config.config import Config
from clausecompare.services.errors import ClauseExtractionError
from clausecompare.services.LLM_tracker import LLMUsageTracker
from clausecompare.services.taxonomy import Taxonomy

logger = logging.getLogger(__name__)

QUOTA_KEYWORDS = ('quota', 'rate limit', 'resource exhausted', '429')


class ClauseExtraction(BaseModel):
    """Categorized clauses the LLM found in one document"""
    taxonomy: str
    categories: Dict[str, List[str]] = Field(default_factory=dict)
    summary: str = ""

    @property
    def clause_count(self) -> int:
        return sum(len(clauses) for clauses in self.categories.values())


class MalformedExtractionError(ValueError):
    """LLM answered, but not with the expected JSON shape"""


class ClauseExtractor:
    """Extracts categorized clauses from document text using Gemini"""

    def __init__(
        self,
        model: Any = None,
        api_key: Optional[str] = Config.GEMINI_API_KEY,
        model_name: str = Config.GEMINI_MODEL,
        request_delay: float = Config.GEMINI_REQUEST_DELAY,
        max_retries: int = Config.MAX_RETRIES,
        retry_delay: float = Config.RETRY_DELAY,
        exponential_backoff: bool = Config.EXPONENTIAL_BACKOFF
    ):
        if model is None:
            if not api_key:
                raise ClauseExtractionError("GEMINI_API_KEY environment variable not set")
            genai.configure(api_key=api_key)
            model = genai.GenerativeModel(model_name)

        self.model = model
        self.model_name = model_name
        self.request_delay = request_delay
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.exponential_backoff = exponential_backoff

        logger.info(
            f"ClauseExtractor initialized (model={model_name}, delay={request_delay}s, "
            f"max_retries={self.max_retries}, retry_delay={retry_delay}s)"
        )

    async def extract(
        self,
        text: str,
        taxonomy: Taxonomy,
        instructions: Optional[str] = None,
        document_name: str = "document",
        usage_tracker: Optional[LLMUsageTracker] = None
    ) -> ClauseExtraction:
        """
        Extract clauses per taxonomy category from one document

        Args:
            text: Plain text of the document
            taxonomy: Category set the clauses must be sorted into
            instructions: Optional user guidance, e.g. "Focus on liability clauses"
            document_name: Name used in logs
            usage_tracker: Token/cost tracker for this document (optional)

        Returns:
            ClauseExtraction with one (possibly empty) list per category

        Raises:
            ClauseExtractionError: no valid answer after all retries
        """
        prompt = self._create_prompt(text, taxonomy, instructions)

        if self.request_delay:
            await asyncio.sleep(self.request_delay)

        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_retries + 1):
            try:
                logger.info(f"[{document_name}] Attempt {attempt}/{self.max_retries} - sending request to Gemini")
                start_time = time.time()

                if usage_tracker:
                    usage_tracker.start_request(prompt)
                response = await asyncio.to_thread(self.model.generate_content, prompt)
                if usage_tracker:
                    usage_tracker.end_request(response)

                logger.info(f"[{document_name}] ✓ Response received in {time.time() - start_time:.2f}s")

                extraction = self.parse_response(response.text, taxonomy)
                logger.info(
                    f"[{document_name}] ✓ Extracted {extraction.clause_count} clauses across "
                    f"{len(taxonomy.categories)} categories"
                )
                return extraction

            except (json.JSONDecodeError, MalformedExtractionError) as e:
                last_error = e
                logger.error(f"[{document_name}] ✗ Malformed LLM output (attempt {attempt}): {e}")
                is_quota_error = False

            except Exception as e:
                last_error = e
                error_msg = str(e)
                logger.error(f"[{document_name}] ✗ {type(e).__name__} (attempt {attempt}): {error_msg}")
                is_quota_error = any(keyword in error_msg.lower() for keyword in QUOTA_KEYWORDS)
                if is_quota_error:
                    logger.warning("⚠ QUOTA/RATE LIMIT ERROR DETECTED")

            if attempt < self.max_retries:
                retry_wait = self._calculate_retry_delay(attempt, is_quota_error=is_quota_error)
                logger.warning(f"[{document_name}] Retrying in {retry_wait}s...")
                await asyncio.sleep(retry_wait)

        logger.error(f"[{document_name}] ✗ Max retries reached")
        raise ClauseExtractionError(
            f"Clause extraction failed for {document_name} after {self.max_retries} attempts: {last_error}"
        )

    def _calculate_retry_delay(self, attempt: int, is_quota_error: bool = False) -> float:
        """Calculate retry delay with exponential backoff"""
        base_delay = self.retry_delay * 2 if is_quota_error else self.retry_delay

        if self.exponential_backoff:
            delay = base_delay * (2 ** (attempt - 1))
        else:
            delay = base_delay

        return min(delay, 600)  # Cap at 10 minutes

    @staticmethod
    def _strip_code_fences(result_text: str) -> str:
        result_text = result_text.strip()
        if result_text.startswith("```json"):
            result_text = result_text[7:]
        if result_text.startswith("```"):
            result_text = result_text[3:]
        if result_text.endswith("```"):
            result_text = result_text[:-3]
        return result_text.strip()

    @classmethod
    def parse_response(cls, result_text: str, taxonomy: Taxonomy) -> ClauseExtraction:
        """Parse and normalize the model's JSON answer"""
        data = json.loads(cls._strip_code_fences(result_text or ""))
        if not isinstance(data, dict):
            raise MalformedExtractionError(f"expected a JSON object, got {type(data).__name__}")

        raw_categories = data.get("categories", data)
        if not isinstance(raw_categories, dict):
            raise MalformedExtractionError("'categories' must be a JSON object")

        categories = {}
        for key in taxonomy.categories:
            raw_clauses = raw_categories.get(key)
            if raw_clauses is None:
                categories[key] = []
                continue
            if not isinstance(raw_clauses, list):
                raise MalformedExtractionError(f"category '{key}' must be an array")
            for idx, clause in enumerate(raw_clauses):
                if not isinstance(clause, str):
                    raise MalformedExtractionError(
                        f"category '{key}' item {idx} must be a string, got {type(clause).__name__}"
                    )
            categories[key] = [clause.strip() for clause in raw_clauses if clause.strip()]

        summary = data.get("summary")
        return ClauseExtraction(
            taxonomy=taxonomy.name,
            categories=categories,
            summary=summary.strip() if isinstance(summary, str) else ""
        )

    @staticmethod
    def _create_prompt(text: str, taxonomy: Taxonomy, instructions: Optional[str] = None) -> str:
        """Create the extraction prompt for one document"""
        category_lines = "\n".join(
            f'- "{key}": {taxonomy.title(key)}' for key in taxonomy.categories
        )
        empty_shape = ",\n    ".join(f'"{key}": []' for key in taxonomy.categories)
        guidance = f"\n**USER INSTRUCTIONS:** {instructions.strip()}\n" if instructions and instructions.strip() else ""

        return f"""You are an expert legal analyst helping a non-lawyer compare contracts.

Extract every clause, obligation, right, risk or term from the document below and sort each one
into exactly one of these categories:
{category_lines}

Rules:
1. Quote each clause as one short, self-contained sentence from the document.
2. Do not invent clauses. If a category has no findings, return an empty array for it.
3. Do not repeat the same clause in more than one category.
{guidance}
**DOCUMENT:**
{text}

Return ONLY a valid JSON object (no markdown, no explanations) of this shape:
{{
  "categories": {{
    {empty_shape}
  }},
  "summary": "two sentence plain-English overview of the document"
}}"""
