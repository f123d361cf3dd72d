"""
Gemini Semantic Analyzer - hosted LLM behind the SemanticAnalyzer protocol

Responsibilities:
- Load prompts from prompts.json
- Cluster nuanced explanations (model answers with 1-based member indices)
- Identify values underlying opposed positions
- Write mediator-style clarifications
- Retry on 429 rate limits, parse and validate JSON payloads

The google-genai client is synchronous; calls run in a worker thread.
"""

import asyncio
import json
import os
import re
import time
from importlib.resources import files
from json import JSONDecodeError
from typing import Any, List, Optional

from google import genai
from google.genai import types

from config import get_logger
from deliberation.protocols.semantic import InterpretationSummary, TextCluster
from exceptions import SemanticAnalysisError, SemanticResponseError

logger = get_logger(__name__).bind(component="semantic")

DEFAULT_MODEL = "gemini-2.5-flash-lite"

_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")


def _numbered(texts: List[str]) -> str:
    return "\n".join(f"{i + 1}. {text}" for i, text in enumerate(texts))


class GeminiSemanticAnalyzer:
    """Semantic analysis via Gemini

    Without an API key (and no injected client) the analyzer reports not-ready
    and the engine stays on pattern analysis.
    """

    name = "gemini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: str = DEFAULT_MODEL,
        client: Optional[Any] = None,
        prompts_path: Optional[str] = None,
        max_retries: int = 3,
    ):
        """Initialize analyzer

        Args:
            api_key: Gemini API key (defaults to env vars)
            model_name: Gemini model used for every capability
            client: Pre-built client (tests inject a fake here)
            prompts_path: Path to prompts.json (defaults to package resource)
            max_retries: Attempts per call when rate limited
        """
        self.api_key = api_key or os.getenv("GEMINI_API_KEY") or os.getenv("LLM_API_KEY")
        self.model_name = model_name
        self.max_retries = max_retries

        if client is not None:
            self.client = client
        elif self.api_key:
            self.client = genai.Client(api_key=self.api_key)
        else:
            self.client = None
            logger.warning("no gemini api key configured, semantic analyzer disabled")

        if prompts_path is None:
            prompts_text = files("analysis.semantic").joinpath("prompts.json").read_text()
            self.prompts = json.loads(prompts_text)
        else:
            with open(prompts_path, "r") as f:
                self.prompts = json.load(f)

        logger.info("prompts loaded", prompt_categories=len(self.prompts), model=self.model_name)

    async def is_ready(self) -> bool:
        return self.client is not None

    async def cluster_texts(self, texts: List[str], max_clusters: int = 3) -> List[TextCluster]:
        if self.client is None or not texts:
            return []

        prompt = self._get_prompt(
            "cluster_texts",
            count=len(texts),
            max_clusters=max_clusters,
            text_list=_numbered(texts),
        )
        raw = await self._generate("cluster_texts", prompt, temperature=0.2, max_output_tokens=1024)
        payload = self._parse_json_array(raw, "cluster_texts")

        clusters: List[TextCluster] = []
        for entry in payload:
            if not isinstance(entry, dict):
                continue
            theme = str(entry.get("theme") or "").strip()
            members = [
                texts[index - 1]
                for index in entry.get("members") or []
                if isinstance(index, int) and not isinstance(index, bool) and 1 <= index <= len(texts)
            ]
            if theme and members:
                clusters.append({"theme": theme, "members": members})

        logger.debug("clustered texts", texts=len(texts), clusters=len(clusters))
        return clusters[:max_clusters]

    async def identify_values(self, texts: List[str]) -> List[str]:
        if self.client is None or not texts:
            return []

        prompt = self._get_prompt("identify_values", text_list=_numbered(texts))
        raw = await self._generate("identify_values", prompt, temperature=0.2, max_output_tokens=512)
        payload = self._parse_json_array(raw, "identify_values")

        return [str(value).strip() for value in payload if isinstance(value, str) and value.strip()]

    async def generate_clarification(
        self,
        topic: str,
        interpretations: List[InterpretationSummary],
    ) -> str:
        if self.client is None:
            return ""

        interpretation_list = "\n".join(
            f"- {i['label']} ({i['participant_count']} participants)" for i in interpretations
        )
        prompt = self._get_prompt("generate_clarification", topic=topic, interpretation_list=interpretation_list)
        raw = await self._generate(
            "generate_clarification",
            prompt,
            temperature=0.3,
            max_output_tokens=256,
            json_output=False,
        )
        return raw.strip()

    async def _generate(
        self,
        capability: str,
        prompt: str,
        temperature: float,
        max_output_tokens: int,
        json_output: bool = True,
    ) -> str:
        config = types.GenerateContentConfig(
            system_instruction=self.prompts["semantic"][capability]["system"],
            temperature=temperature,
            max_output_tokens=max_output_tokens,
            response_mime_type="application/json" if json_output else None,
        )

        start_time = time.time()
        try:
            response = await asyncio.to_thread(self._call_with_retry, prompt, config, capability)
        except SemanticAnalysisError:
            raise
        except Exception as e:
            logger.error(
                "gemini call failed",
                capability=capability,
                duration_seconds=round(time.time() - start_time, 1),
                error=str(e),
                error_type=type(e).__name__,
            )
            raise SemanticAnalysisError(
                f"Gemini {capability} call failed",
                capability=capability,
                provider=self.name,
                original_error=e,
            ) from e

        text = response.text or self._extract_text_from_response(response)
        if not text:
            raise SemanticResponseError("Gemini returned no text in response", capability=capability, provider=self.name)

        logger.debug("gemini call completed", capability=capability, duration_seconds=round(time.time() - start_time, 1))
        return text

    def _call_with_retry(self, prompt: str, config, capability: str):
        """Call Gemini with automatic retry on 429 rate limits.

        Gemini returns retryDelay in 429 responses - we parse and respect it.

        Raises:
            SemanticAnalysisError: If max retries exceeded
            Exception: Non-rate-limit errors propagate unchanged
        """
        last_error = None

        for attempt in range(self.max_retries):
            try:
                return self.client.models.generate_content(
                    model=self.model_name, contents=prompt, config=config
                )

            except Exception as e:
                last_error = e
                error_str = str(e)

                if "429" in error_str or "RESOURCE_EXHAUSTED" in error_str:
                    retry_match = re.search(r'"retryDelay":\s*"(\d+)s"', error_str)
                    if retry_match:
                        delay = int(retry_match.group(1)) + 1
                    else:
                        delay = 5 * (attempt + 1)

                    logger.warning(
                        "rate limited by gemini, waiting for retry",
                        capability=capability,
                        attempt=attempt + 1,
                        max_retries=self.max_retries,
                        delay_seconds=delay,
                    )
                    time.sleep(delay)
                    continue

                raise

        raise SemanticAnalysisError(
            f"Max retries ({self.max_retries}) exceeded due to rate limiting",
            capability=capability,
            provider=self.name,
            original_error=last_error,
        )

    def _extract_text_from_response(self, response) -> Optional[str]:
        """Text of the first non-empty candidate part, skipping thinking blocks"""
        candidates = getattr(response, "candidates", None)
        if not candidates:
            return None

        content = getattr(candidates[0], "content", None)
        parts = getattr(content, "parts", None) if content else None
        if not parts:
            return None

        for part in parts:
            if getattr(part, "text", None):
                return part.text
        return None

    def _parse_json_array(self, raw: str, capability: str) -> List[Any]:
        match = _JSON_ARRAY.search(raw)
        if not match:
            raise SemanticResponseError("No JSON array in model response", capability=capability, provider=self.name)

        try:
            payload = json.loads(match.group(0))
        except JSONDecodeError as e:
            raise SemanticResponseError(
                "Malformed JSON array in model response",
                capability=capability,
                provider=self.name,
                original_error=e,
            ) from e

        if not isinstance(payload, list):
            raise SemanticResponseError("Model response is not a JSON array", capability=capability, provider=self.name)
        return payload

    def _get_prompt(self, prompt_type: str, **variables) -> str:
        """Get prompt from JSON and format with variables"""
        try:
            template = self.prompts["semantic"][prompt_type]["template"]
        except KeyError as e:
            raise ValueError(f"Prompt not found: semantic.{prompt_type}") from e

        try:
            return template.format(**variables)
        except KeyError as e:
            raise ValueError(f"Missing variable for prompt semantic.{prompt_type}: {e}") from e
