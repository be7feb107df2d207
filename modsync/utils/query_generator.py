"""Turn an installed content file name into catalog search queries.

All of the lossy filename cleaning lives here so the acceptance policy in
``match_scorer`` can be tuned without touching these regexes.
"""
import re
import unicodedata
from typing import List

MIN_QUERY_LENGTH = 3
MIN_FIRST_TOKEN_LENGTH = 4

_DISABLED = re.compile(r"\.disabled$", re.IGNORECASE)
_EXTENSION = re.compile(r"\.(jar|zip|mrpack)$", re.IGNORECASE)

# Separator-delimited tokens that never belong to a project name
_LOADER_TOKEN = re.compile(r"[_+.-](fabric|forge|neoforge|quilt)(?=[_+.-]|$)", re.IGNORECASE)
_BUILD_TOKEN = re.compile(r"[_+.-](client|server|universal|all)(?=[_+.-]|$)", re.IGNORECASE)
# mc1.20.1, mc-1.20, MC_1.19.2-... eats to the end of the run
_MC_VERSION = re.compile(r"[_+.-]?mc[_+.-]?\d[\w.+-]*", re.IGNORECASE)
# trailing 1.2 / v1.2.3.4 / 0.5.3-beta.2+build
_TRAILING_VERSION = re.compile(r"[_+.-]?v?\d+(?:\.\d+){1,4}(?:[_+.]?[a-z0-9-])*$", re.IGNORECASE)

_SEPARATORS = re.compile(r"[_+.-]")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def normalize_key(value: str) -> str:
    """Lowercase, strip diacritics, collapse non-alphanumerics to single hyphens"""
    value = unicodedata.normalize("NFD", value.lower())
    value = "".join(c for c in value if not unicodedata.combining(c))
    return _NON_ALNUM.sub("-", value).strip("-")


def compact_key(value: str) -> str:
    return normalize_key(value).replace("-", "")


def strip_file_name(file_name: str) -> str:
    """JourneyMap-5.9.9.jar.disabled -> JourneyMap-5.9.9"""
    return _EXTENSION.sub("", _DISABLED.sub("", file_name))


def clean_file_name(base: str) -> str:
    """Drop loader/build tokens and version noise from a stripped file name"""
    cleaned = base.lower()
    cleaned = _LOADER_TOKEN.sub("-", cleaned)
    cleaned = _BUILD_TOKEN.sub("-", cleaned)
    cleaned = _MC_VERSION.sub("", cleaned)
    cleaned = _TRAILING_VERSION.sub("", cleaned)
    return cleaned


def generate_queries(file_name: str) -> List[str]:
    """Ordered, de-duplicated search queries for a content file.

    Order is always: full base name, cleaned name, first token of the
    cleaned name (when it is long enough to be meaningful).
    """
    queries = []

    def add(value):
        query = normalize_key(value)
        if len(query) >= MIN_QUERY_LENGTH and query not in queries:
            queries.append(query)

    base = strip_file_name(file_name)
    add(base)

    cleaned = clean_file_name(base)
    add(cleaned)

    tokens = [t for t in _SEPARATORS.split(cleaned) if t]
    if tokens and len(tokens[0]) >= MIN_FIRST_TOKEN_LENGTH:
        add(tokens[0])

    return queries
