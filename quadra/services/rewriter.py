"""Write translations back into the tree and absolutise asset URLs."""

from typing import List, Optional, Sequence
from urllib.parse import urljoin

from bs4 import BeautifulSoup, NavigableString
from bs4.dammit import EntitySubstitution
from bs4.formatter import HTMLFormatter

from quadra.services.extractor import TextUnit
from quadra.services.translator import TranslationResult

URL_ATTRIBUTES = ("src", "href")

# HTML5 void elements (<img>, <br>, …) without "/>" and non-ASCII text kept
# verbatim, so translated output is not turned into named entities.
_OUTPUT_FORMATTER = HTMLFormatter(
    entity_substitution=EntitySubstitution.substitute_xml,
    void_element_close_prefix=None,
)


def apply_translations(
    units: List[TextUnit],
    results: Sequence[Optional[TranslationResult]],
) -> int:
    """Replace each unit's node text with its translation.

    *results* is aligned with *units*; a ``None`` entry leaves the unit's
    original text in place.  Returns the number of units rewritten.
    """
    applied = 0
    for unit, result in zip(units, results):
        if result is None:
            continue
        replacement = NavigableString(result.translated_text)
        unit.node.replace_with(replacement)
        unit.node = replacement
        applied += 1
    return applied


def _absolute_url(base_url: str, value: str) -> str:
    return urljoin(base_url, value.strip())


def resolve_asset_urls(soup: BeautifulSoup, base_url: str) -> int:
    """Rewrite every ``src``/``href`` attribute in *soup* to an absolute URL.

    Resolution follows :func:`urllib.parse.urljoin` (relative paths,
    protocol-relative ``//host`` references, query and fragment kept).
    Already-absolute URLs are left unchanged, so the operation is idempotent.
    Returns the number of attributes visited.
    """
    visited = 0
    for tag in soup.find_all(True):
        for attr in URL_ATTRIBUTES:
            value = tag.get(attr)
            if value is None:
                continue
            tag[attr] = _absolute_url(base_url, str(value))
            visited += 1
    return visited


def render(soup: BeautifulSoup) -> str:
    """Serialise the document's ``<body>`` (or the whole tree when there is none)."""
    root = soup.body or soup
    return root.decode(formatter=_OUTPUT_FORMATTER)
