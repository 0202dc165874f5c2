from __future__ import annotations

from .schemas import RetrievalContext

ANALYSIS_SYSTEM = """You are an expert resume analyzer and career coach.
Evaluate how well the candidate's resume fits the job description.

RULES:
- Ground your assessment in the RESUME and JOB DESCRIPTION below.
- Use the CAREER KNOWLEDGE sections (when present) as expert guidance on what
  makes a strong resume for this kind of role.
- Do not invent experience the resume does not state."""


ANALYSIS_SCHEMA = """Return ONLY valid JSON (no markdown, no extra text) with this structure:
{
  "match_score": number (0-100),
  "strengths": ["string", ...],
  "weaknesses": ["string", ...],
  "missing_keywords": ["string", ...],
  "verdict": "string"
}"""


def build_analysis_prompt(resume_text: str, job_description: str, context: RetrievalContext) -> str:
    parts = [ANALYSIS_SYSTEM]

    sections = context.sections()
    if sections:
        knowledge = "\n\n".join(f"### {heading}\n{text}" for heading, text in sections)
        parts.append(f"CAREER KNOWLEDGE:\n{knowledge}")

    parts.append(f"RESUME:\n{resume_text}")
    parts.append(f"JOB DESCRIPTION:\n{job_description}")
    parts.append(ANALYSIS_SCHEMA)
    return "\n\n".join(parts)
