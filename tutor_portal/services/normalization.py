"""Canonical subject/level/topic values used for note tags and filters."""

import re
import unicodedata

SUBJECT_MAP = {
    'wiskunde': 'wiskunde',
    'wiskunde a': 'wiskunde-a',
    'wiskunde b': 'wiskunde-b',
    'wiskunde c': 'wiskunde-c',
    'wiskunde d': 'wiskunde-d',
    'wis': 'wiskunde',
    'math': 'wiskunde',
    'statistiek': 'statistiek',
    'natuurkunde': 'natuurkunde',
    'scheikunde': 'scheikunde',
    'biologie': 'biologie',
    'nederlands': 'nederlands',
    'engels': 'engels',
    'duits': 'duits',
    'frans': 'frans',
    'spaans': 'spaans',
    'geschiedenis': 'geschiedenis',
    'aardrijkskunde': 'aardrijkskunde',
    'economie': 'economie',
    'bedrijfseconomie': 'bedrijfseconomie',
    'maatschappijleer': 'maatschappijleer',
    'filosofie': 'filosofie',
    'informatica': 'informatica',
    'programmeren': 'programmeren',
    'rekenen': 'rekenen',
}

LEVEL_MAP = {}
for _school in ('havo', 'vwo', 'vmbo'):
    for _year in range(1, 7):
        _canonical = f"{_school}-{_year}"
        LEVEL_MAP[f"{_year} {_school}"] = _canonical
        LEVEL_MAP[f"{_school} {_year}"] = _canonical
        LEVEL_MAP[f"{_school}{_year}"] = _canonical
for _track in ('bk', 'tl', 'gl', 'kader', 'basis'):
    for _year in (3, 4):
        _canonical = f"vmbo-{_track}-{_year}"
        LEVEL_MAP[f"vmbo {_track} {_year}"] = _canonical
        LEVEL_MAP[f"vmbo {_track}{_year}"] = _canonical
for _level in ('vo', 'mbo', 'hbo', 'wo'):
    LEVEL_MAP[_level] = _level

TOPIC_MAP = {
    'breuken': 'breuken',
    'overbreuken': 'breuken',
    'logaritme': 'logaritmen',
    'logaritmen': 'logaritmen',
    'wispunten': 'wispunten',
    'wis punten': 'wispunten',
    'afgeleide': 'afgeleiden',
    'afgeleiden': 'afgeleiden',
    'differentieren': 'afgeleiden',
    'integraal': 'integralen',
    'integralen': 'integralen',
    'integreren': 'integralen',
    'goniometrie': 'goniometrie',
    'sinus': 'goniometrie',
    'cosinus': 'goniometrie',
    'tangens': 'goniometrie',
    'trigonometry': 'goniometrie',
    'vector': 'vectoren',
    'vectoren': 'vectoren',
    'lineaire algebra': 'lineaire-algebra',
    'matrix': 'matrices',
    'matrices': 'matrices',
    'kans': 'kansrekening',
    'kansrekening': 'kansrekening',
    'statistiek': 'statistiek',
    'gemiddelde': 'statistiek',
    'standaarddeviatie': 'statistiek',
    'normale verdeling': 'normale-verdeling',
    'binomiale verdeling': 'binomiale-verdeling',
    'hypothesetoetsing': 'hypothesetoetsing',
    'hypothese toetsing': 'hypothesetoetsing',
    't toets': 't-toets',
    'chi kwadraat': 'chi-kwadraat',
    'regressie': 'regressie',
    'correlatie': 'correlatie',
    'functie': 'functies',
    'functies': 'functies',
    'lineaire functie': 'lineaire-functie',
    'kwadratische functie': 'kwadratische-functie',
    'exponentiele functie': 'exponentiele-functie',
    'logaritmische functie': 'logaritmische-functie',
    'goniometrische functie': 'goniometrische-functie',
    'vergelijking': 'vergelijkingen',
    'vergelijkingen': 'vergelijkingen',
    'lineaire vergelijking': 'lineaire-vergelijking',
    'kwadratische vergelijking': 'kwadratische-vergelijking',
    'stelsel': 'stelsel-vergelijkingen',
    'stelsel vergelijkingen': 'stelsel-vergelijkingen',
    'ongelijkheid': 'ongelijkheden',
    'ongelijkheden': 'ongelijkheden',
    'lineaire ongelijkheid': 'lineaire-ongelijkheid',
    'kwadratische ongelijkheid': 'kwadratische-ongelijkheid',
}

_SCHOOL_TYPES = {'havo', 'vwo', 'vmbo'}


def _fold(value):
    text = unicodedata.normalize('NFKD', str(value or '').lower())
    return ''.join(ch for ch in text if not unicodedata.combining(ch))


def slugify(value):
    text = _fold(value)
    text = re.sub(r'[^\w\s-]', '', text)
    text = re.sub(r'\s+', '-', text.strip())
    return re.sub(r'-+', '-', text).strip('-')


def _lookup_key(value):
    # "Wiskunde-A", "wiskunde a" and "wiskunde_a" share one key
    text = re.sub(r'[-_\s]+', ' ', _fold(value))
    return re.sub(r'[^\w\s]', '', text).strip()


def _canon(value, mapping):
    key = _lookup_key(value)
    if key in mapping:
        return mapping[key]
    return slugify(value)


def canon_subject(value):
    return _canon(value, SUBJECT_MAP)


def canon_level(value):
    return _canon(value, LEVEL_MAP)


def canon_topic(value):
    return _canon(value, TOPIC_MAP)


def parse_natural_language(text):
    """Pull level, subject and topic out of free text such as "wispunten 3 havo breuken"."""
    words = _lookup_key(text).split()
    result = {}

    for index, word in enumerate(words):
        if word.isdigit() and index + 1 < len(words) and words[index + 1] in _SCHOOL_TYPES:
            result['level'] = canon_level(f"{word} {words[index + 1]}")
            del words[index:index + 2]
            break
        if word in _SCHOOL_TYPES and index + 1 < len(words) and words[index + 1].isdigit():
            result['level'] = canon_level(f"{word} {words[index + 1]}")
            del words[index:index + 2]
            break

    for word in words:
        if word in SUBJECT_MAP:
            result['subject'] = SUBJECT_MAP[word]
            break

    for word in words:
        if word in TOPIC_MAP:
            result['topic'] = TOPIC_MAP[word]
            break

    return result


def generate_tags(subject, level, topic):
    tags = []
    if subject:
        tags.append({'key': 'subject', 'value': canon_subject(subject)})
    if level:
        tags.append({'key': 'level', 'value': canon_level(level)})
    if topic:
        tags.append({'key': 'topic', 'value': canon_topic(topic)})
    return tags
