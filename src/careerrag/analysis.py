"""
Resume analysis: role classification, categorized retrieval, one generation
call with a single fallback model, and strict validation of the JSON result.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from typing import Tuple

from pydantic import ValidationError

from .config import GenerationSettings
from .errors import GenerationError, MalformedAnalysisOutputError, MissingInputError
from .llm import BaseLLM
from .prompts import build_analysis_prompt
from .retrieval import Retriever
from .roles import classify_role
from .schemas import AnalysisMetadata, AnalysisResponse, AnalysisResult

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text).strip()


def parse_analysis(raw: str) -> AnalysisResult:
    """Fenced or bare JSON -> validated AnalysisResult. Never coerces to defaults."""
    try:
        data = json.loads(strip_code_fences(raw))
    except json.JSONDecodeError as e:
        logger.error("Model response is not JSON: %s", e)
        raise MalformedAnalysisOutputError(f"Failed to parse analysis response: {e}", raw_text=raw) from e

    if not isinstance(data, dict):
        raise MalformedAnalysisOutputError("Analysis response is not a JSON object", raw_text=raw)

    try:
        return AnalysisResult.model_validate(data)
    except ValidationError as e:
        logger.error("Model response failed schema validation: %d errors", e.error_count())
        raise MalformedAnalysisOutputError(
            "Analysis response does not match the expected schema", raw_text=raw
        ) from e


class ResumeAnalyzer:
    def __init__(self, retriever: Retriever, llm: BaseLLM, cfg: GenerationSettings):
        self._retriever = retriever
        self._llm = llm
        self._cfg = cfg

    def _call(self, model: str, prompt: str) -> str:
        return self._llm.generate(
            model=model, prompt=prompt, temperature=self._cfg.temperature, max_tokens=self._cfg.max_tokens
        )

    def generate(self, prompt: str) -> Tuple[str, str]:
        """Primary model, then exactly one fallback attempt. Returns (text, model used)."""
        primary, fallback = self._cfg.primary_model, self._cfg.fallback_model
        try:
            return self._call(primary, prompt), primary
        except Exception as e:
            logger.warning("%s failed, falling back to %s: %s", primary, fallback, e)

        try:
            return self._call(fallback, prompt), fallback
        except Exception as e:
            logger.error("Fallback model %s failed: %s", fallback, e)
            raise GenerationError(
                f"Both {primary} and {fallback} failed: {e}", models=[primary, fallback]
            ) from e

    def analyze(self, resume_text: str, job_description: str) -> AnalysisResponse:
        if not (resume_text or "").strip():
            raise MissingInputError("Resume text or file must be provided", details={"field": "resumeText"})
        job_description = job_description or ""

        role = classify_role(job_description)
        logger.info("Analyzing resume (%d chars) for role %s", len(resume_text), role or "general")

        context = self._retriever.retrieve_context(f"{job_description}\n\n{resume_text}".strip(), role)
        prompt = build_analysis_prompt(resume_text, job_description, context)

        raw, model = self.generate(prompt)
        analysis = parse_analysis(raw)

        return AnalysisResponse(
            analysis=analysis,
            metadata=AnalysisMetadata(
                rag_enabled=bool(context.all_matches),
                context_sources=len(context.all_matches),
                job_role=role or "general",
                model=model,
                timestamp=datetime.now(timezone.utc),
            ),
        )
