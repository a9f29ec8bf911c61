import json
import logging
import re
from functools import lru_cache
from typing import Any

import boto3
from botocore.config import Config

from applymate.config import settings

logger = logging.getLogger(__name__)

EMPTY_MATCH_ANALYSIS = {
    "matchScore": 0,
    "missingItems": [],
    "skillsMatched": [],
    "suggestedBullets": [],
    "improvedSummary": "",
    "relevantExperience": [],
    "improvements": [],
}


class LLMDisabledError(RuntimeError):
    """Raised when an AI feature is called while Bedrock is switched off."""


@lru_cache(maxsize=4)
def _get_bedrock_client(read_timeout: int):
    return boto3.client(
        "bedrock-runtime",
        region_name=settings.aws_region,
        config=Config(read_timeout=read_timeout, connect_timeout=10),
    )


def is_llm_enabled() -> bool:
    """Whether Bedrock LLM is enabled."""
    return bool(settings.bedrock_llm_enabled and settings.bedrock_llm_model_id and settings.aws_region)


def _call_bedrock_llm(prompt: str, timeout: float = 60.0, max_tokens: int = 1200) -> str:
    """Call Bedrock LLM via converse API and return response text."""
    if not is_llm_enabled():
        raise LLMDisabledError("Bedrock LLM is disabled")
    try:
        response = _get_bedrock_client(int(timeout)).converse(
            modelId=settings.bedrock_llm_model_id,
            messages=[
                {
                    "role": "user",
                    "content": [{"text": prompt}],
                }
            ],
            inferenceConfig={
                "maxTokens": max_tokens,
                "temperature": 0.2,
            },
        )
        blocks = (response.get("output") or {}).get("message", {}).get("content", [])
        text = "".join(b.get("text", "") for b in blocks if isinstance(b, dict)).strip()
        logger.debug("Bedrock LLM response length=%d", len(text))
        return text
    except Exception as e:
        logger.warning("Bedrock LLM call failed: %s", e)
        raise


def _extract_json(text: str) -> dict[str, Any]:
    clean = re.sub(r"^```(?:json)?\s*", "", text.strip(), flags=re.IGNORECASE).strip()
    clean = re.sub(r"\s*```$", "", clean).strip()
    try:
        obj = json.loads(clean)
    except json.JSONDecodeError:
        m = re.search(r"\{[\s\S]*\}", clean)
        if not m:
            raise ValueError("No JSON object in LLM response")
        obj = json.loads(m.group(0))
    if not isinstance(obj, dict):
        raise ValueError("LLM response JSON is not an object")
    return obj


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if v is not None and str(v).strip()]


def _score(value: Any) -> int:
    """Clamp a 0-100 score. Non-integer values below 1 are read as fractions (0.85 -> 85)."""
    try:
        score = float(value)
    except (TypeError, ValueError):
        return 0
    if 0 < score < 1:
        score *= 100
    return int(round(max(0.0, min(100.0, score))))


def grade_for_score(score: int) -> str:
    if score >= 90:
        return "A"
    if score >= 80:
        return "B"
    if score >= 70:
        return "C"
    if score >= 60:
        return "D"
    return "F"


def analyze_resume_against_job(resume_text: str, job_description: str) -> dict[str, Any]:
    """
    Score a resume against a job description.
    Returns camelCase analysis keys; an unparseable reply yields an empty analysis.
    """
    prompt = f"""You are an expert ATS evaluator. Compare the resume with the job description.
Use ONLY facts stated in the resume. Do not invent experience.

Return ONLY this JSON:
{{
  "matchScore": number (0-100),
  "missingItems": string[] (skills, tools or qualifications the job asks for that the resume lacks),
  "skillsMatched": string[] (job keywords the resume already covers),
  "suggestedBullets": string[] (new resume bullet points tailored to this job),
  "improvedSummary": string (a rewritten professional summary for this job),
  "relevantExperience": string[] (resume experience most relevant to this job),
  "improvements": [{{"section": string, "suggestion": string}}]
}}

Resume:
{resume_text}

Job Description:
{job_description}
"""
    text = _call_bedrock_llm(prompt, timeout=90.0, max_tokens=2000)
    try:
        obj = _extract_json(text)
    except (json.JSONDecodeError, ValueError) as e:
        logger.warning("Match analysis JSON parse failed: %s", e)
        return dict(EMPTY_MATCH_ANALYSIS)

    improvements = []
    for item in obj.get("improvements") or []:
        if isinstance(item, dict):
            improvements.append(
                {"section": str(item.get("section") or "General"), "suggestion": str(item.get("suggestion") or "")}
            )
        elif item:
            improvements.append({"section": "General", "suggestion": str(item)})

    return {
        "matchScore": _score(obj.get("matchScore")),
        "missingItems": _str_list(obj.get("missingItems")),
        "skillsMatched": _str_list(obj.get("skillsMatched")),
        "suggestedBullets": _str_list(obj.get("suggestedBullets")),
        "improvedSummary": str(obj.get("improvedSummary") or ""),
        "relevantExperience": _str_list(obj.get("relevantExperience")),
        "improvements": improvements,
    }


def analyze_resume_ats(resume_text: str) -> dict[str, Any]:
    """ATS readiness of a resume on its own: score, letter grade and concrete actions."""
    prompt = f"""You are an applicant tracking system (ATS) reviewer.
Evaluate how well this resume would be parsed and ranked by an ATS: structure, section headings,
keyword density, quantified achievements, formatting issues.

Return ONLY JSON:
{{"atsScore": number (0-100), "grade": "A" | "B" | "C" | "D" | "F", "improvementActions": string[]}}

Each improvement action must be one short, specific instruction.

Resume:
{resume_text}
"""
    text = _call_bedrock_llm(prompt)
    obj = _extract_json(text)
    score = _score(obj.get("atsScore"))
    grade = str(obj.get("grade") or "").strip().upper()[:1]
    if grade not in {"A", "B", "C", "D", "F"}:
        grade = grade_for_score(score)
    return {
        "atsScore": score,
        "grade": grade,
        "improvementActions": _str_list(obj.get("improvementActions")),
    }


def parse_job_posting(page_text: str, url: str) -> dict[str, str]:
    """Extract structured job fields from the visible text of a posting page."""
    prompt = f"""Extract the job posting from this web page text. The page was fetched from: {url}

Return ONLY JSON with these keys (use "" when a value is not present):
{{"jobTitle": string, "company": string, "location": string, "jobDescription": string,
"responsibilities": string, "requirements": string}}

Page text:
{page_text}
"""
    text = _call_bedrock_llm(prompt, timeout=90.0, max_tokens=3000)
    obj = _extract_json(text)
    fields = ("jobTitle", "company", "location", "jobDescription", "responsibilities", "requirements")
    job = {}
    for key in fields:
        value = obj.get(key)
        if isinstance(value, list):
            value = "\n".join(f"- {v}" for v in _str_list(value))
        job[key] = str(value or "").strip()
    if not job["jobTitle"] and not job["jobDescription"]:
        raise ValueError("LLM could not find a job posting in the page")
    return job


def generate_reply(prompt: str) -> str:
    """Free-text completion for the chat assistants."""
    text = _call_bedrock_llm(prompt, max_tokens=1500)
    if not text:
        raise ValueError("Empty reply from LLM")
    return text
