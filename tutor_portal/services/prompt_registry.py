"""Prompt templates and inventory helpers for the lesson-note analysis."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List


PROMPT_REGISTRY_VERSION = "2025-09-01"


PROMPT_ANALYSIS_SYSTEM = """You are an expert at analyzing educational documents and extracting metadata. Always return valid JSON."""

PROMPT_DOCUMENT_METADATA = """Analyze this document and extract metadata. Return a JSON object with:
- subject: The main subject/vak from this list: Wiskunde A, Wiskunde B, Wiskunde C, Wiskunde D, Natuurkunde, Scheikunde, Informatica, Programmeren, Python, Rekenen, Statistiek, Data-analyse
- topic: The specific topic/onderwerp (e.g., "Algebra", "Functies", "Differentiëren", "Integreren", "Mechanica", "Elektriciteit", "Organische chemie", "Python basics", "Statistiek")
- level: Educational level (e.g., "VO", "WO", "HBO")
- schoolYear: School year in format "YY/YY" (e.g., "24/25", "23/24", "22/23")
- keywords: Array of 3-5 relevant keywords
- summary: Brief 1-sentence summary
- summaryEn: Brief 1-sentence summary in English
- topicEn: The specific topic in English
- keywordsEn: Array of 3-5 relevant keywords in English

Document name: "{file_name}"

Return only valid JSON, no other text."""


@dataclass(frozen=True)
class PromptRecord:
    prompt_id: str
    name: str
    template: str


PROMPT_RECORDS: List[PromptRecord] = [
    PromptRecord("analysis_system", "Analysis system instruction", PROMPT_ANALYSIS_SYSTEM),
    PromptRecord("document_metadata", "Document metadata extraction", PROMPT_DOCUMENT_METADATA),
]


def get_prompt_inventory() -> List[Dict[str, str]]:
    return [
        {
            "id": record.prompt_id,
            "name": record.name,
            "version": PROMPT_REGISTRY_VERSION,
            "template": record.template,
        }
        for record in PROMPT_RECORDS
    ]


def get_prompt_template(prompt_id: str) -> str:
    safe_id = str(prompt_id or "").strip()
    for record in PROMPT_RECORDS:
        if record.prompt_id == safe_id:
            return record.template
    raise KeyError(f"Unknown prompt id: {safe_id}")


def build_document_metadata_prompt(file_name: str) -> str:
    safe_name = str(file_name or "").replace('"', "'").strip()[:200]
    return PROMPT_DOCUMENT_METADATA.format(file_name=safe_name)
