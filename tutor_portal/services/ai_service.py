"""AI metadata for lesson PDFs, with a filename heuristic as fallback."""

import json
import re

from google.genai import types

from tutor_portal.services import prompt_registry
from tutor_portal.services.drive_service import extract_date_from_filename
from tutor_portal.services.school_year import short_school_year

ANALYSIS_FIELDS = ('subject', 'topic', 'level', 'schoolYear', 'summary', 'summaryEn', 'topicEn')
ANALYSIS_LIST_FIELDS = ('keywords', 'keywordsEn')
MAX_KEYWORDS = 8

_SUBJECT_RULES = [
    (('wiskunde', 'math'), {
        'subject': 'Wiskunde',
        'topic': 'Wiskunde',
        'topicEn': 'Mathematics',
        'keywords': ['wiskunde', 'rekenen', 'algebra'],
        'keywordsEn': ['mathematics', 'calculations', 'algebra'],
    }),
    (('nederlands', 'dutch'), {
        'subject': 'Nederlands',
        'topic': 'Taal',
        'topicEn': 'Language',
        'keywords': ['nederlands', 'taal', 'grammatica'],
        'keywordsEn': ['dutch', 'language', 'grammar'],
    }),
    (('biologie', 'biology'), {
        'subject': 'Biologie',
        'topic': 'Natuurwetenschappen',
        'topicEn': 'Natural Sciences',
        'keywords': ['biologie', 'natuur', 'cellen'],
        'keywordsEn': ['biology', 'nature', 'cells'],
    }),
    (('scheikunde', 'chemistry'), {
        'subject': 'Scheikunde',
        'topic': 'Natuurwetenschappen',
        'topicEn': 'Natural Sciences',
        'keywords': ['scheikunde', 'chemie', 'moleculen'],
        'keywordsEn': ['chemistry', 'molecules', 'reactions'],
    }),
    (('fysica', 'physics'), {
        'subject': 'Fysica',
        'topic': 'Natuurwetenschappen',
        'topicEn': 'Natural Sciences',
        'keywords': ['fysica', 'natuurkunde', 'mechanica'],
        'keywordsEn': ['physics', 'mechanics', 'forces'],
    }),
]

_YEAR_RE = re.compile(r'(?<!\d)(\d{4})(?!\d)')
_EXPLICIT_SCHOOL_YEAR_RE = re.compile(r'(?<!\d)(\d{2})[_-](\d{2})(?!\d)')
_WO_RE = re.compile(r'(?<![a-z])wo(?![a-z])')


def default_analysis():
    return {
        'subject': 'Onbekend',
        'topic': 'Algemeen',
        'level': 'VO',
        'schoolYear': '24/25',
        'keywords': ['lesmateriaal'],
        'summary': 'Lesmateriaal document',
        'topicEn': 'General',
        'keywordsEn': ['study material'],
        'summaryEn': 'Study material document',
    }


def basic_analysis(file_name):
    """Derive metadata from the filename alone."""
    analysis = default_analysis()
    lower_name = str(file_name or '').lower()

    for needles, fields in _SUBJECT_RULES:
        if any(needle in lower_name for needle in needles):
            analysis.update({key: list(value) if isinstance(value, list) else value for key, value in fields.items()})
            break

    lesson_date = extract_date_from_filename(file_name or '')
    if lesson_date:
        analysis['schoolYear'] = short_school_year(lesson_date)
    else:
        year_match = _YEAR_RE.search(lower_name)
        if year_match:
            year = int(year_match.group(1))
            if 2020 <= year <= 2030:
                analysis['schoolYear'] = f"{str(year)[-2:]}/{str(year + 1)[-2:]}"

    # "wiskunde_24-25" style tags win over dates, but only for consecutive years
    for first, second in _EXPLICIT_SCHOOL_YEAR_RE.findall(lower_name):
        if int(second) == (int(first) + 1) % 100:
            analysis['schoolYear'] = f"{first}/{second}"
            break

    if _WO_RE.search(lower_name) or 'universiteit' in lower_name:
        analysis['level'] = 'WO'
    elif 'hbo' in lower_name:
        analysis['level'] = 'HBO'

    return analysis


def extract_json_payload(raw_text):
    if not raw_text:
        return None
    text = raw_text.strip()
    if text.startswith('```'):
        lines = text.splitlines()
        if len(lines) >= 3 and lines[0].startswith('```') and lines[-1].strip() == '```':
            text = '\n'.join(lines[1:-1]).strip()
    start = text.find('{')
    if start == -1:
        return None
    decoder = json.JSONDecoder()
    try:
        parsed, _ = decoder.raw_decode(text[start:])
        return parsed
    except json.JSONDecodeError:
        end = text.rfind('}')
        if end == -1 or end <= start:
            return None
        try:
            return json.loads(text[start:end + 1])
        except json.JSONDecodeError:
            return None


def normalize_analysis(payload, fallback):
    """Keep well-typed model fields, fill the rest from ``fallback``."""
    result = dict(fallback)
    if not isinstance(payload, dict):
        return result
    for field in ANALYSIS_FIELDS:
        value = payload.get(field)
        if isinstance(value, str) and value.strip():
            result[field] = value.strip()[:300]
    for field in ANALYSIS_LIST_FIELDS:
        value = payload.get(field)
        if isinstance(value, list):
            cleaned = [str(item).strip()[:60] for item in value if str(item or '').strip()]
            if cleaned:
                result[field] = cleaned[:MAX_KEYWORDS]
    return result


def _remember(cache, cache_lock, cache_key, analysis):
    with cache_lock:
        cache[cache_key] = dict(analysis)
    return analysis


def analyze_document(file_name, *, client, model, cache, cache_lock, logger, file_id=None, force=False):
    """Return the metadata dict for one file, cached per file id (or name)."""
    cache_key = file_id or str(file_name or '')[:50]
    if not force:
        with cache_lock:
            cached = cache.get(cache_key)
        if cached is not None:
            return dict(cached)

    fallback = basic_analysis(file_name)
    if client is None:
        return _remember(cache, cache_lock, cache_key, fallback)

    try:
        response = client.models.generate_content(
            model=model,
            contents=prompt_registry.build_document_metadata_prompt(file_name),
            config=types.GenerateContentConfig(
                system_instruction=prompt_registry.PROMPT_ANALYSIS_SYSTEM,
                response_mime_type='application/json',
                temperature=0.3,
                max_output_tokens=1024,
            ),
        )
        payload = extract_json_payload(getattr(response, 'text', '') or '')
        if payload is None:
            logger.warning(f"AI analysis returned no JSON for {file_name}; using filename heuristics")
            return _remember(cache, cache_lock, cache_key, fallback)
        analysis = normalize_analysis(payload, fallback)
    except Exception as e:
        logger.error(f"AI analysis failed for {file_name}: {e}")
        return _remember(cache, cache_lock, cache_key, fallback)

    return _remember(cache, cache_lock, cache_key, analysis)


def clear_analysis_cache(cache, cache_lock):
    with cache_lock:
        cleared = len(cache)
        cache.clear()
    return cleared
