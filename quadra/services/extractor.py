"""DOM extraction: parse page HTML, drop scripts, and collect translatable text nodes."""

from dataclasses import dataclass
from typing import List, Tuple

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString, Script, Stylesheet, TemplateString

# String subclasses that are not document text: comments, CDATA, doctype,
# declarations, processing instructions (all PreformattedString), plus the
# raw contents of <style>, <script> and <template>.
_NON_TEXT_STRINGS = (PreformattedString, Script, Stylesheet, TemplateString)


@dataclass
class TextUnit:
    """One text node of the document plus its trimmed content."""

    index: int
    node: NavigableString
    text: str


def parse(html: str) -> BeautifulSoup:
    """Parse *html* permissively; malformed markup is recovered, never rejected."""
    return BeautifulSoup(html, "lxml")


def strip_scripts(soup: BeautifulSoup) -> int:
    """Remove every ``<script>`` element from *soup* and return how many were removed."""
    scripts = soup.find_all("script")
    for tag in scripts:
        tag.decompose()
    return len(scripts)


def _is_text_node(node) -> bool:
    return isinstance(node, NavigableString) and not isinstance(node, _NON_TEXT_STRINGS)


def collect_text_units(root: Tag) -> List[TextUnit]:
    """Return the non-blank text nodes under *root* in pre-order (document) order.

    Duplicate strings are kept; each unit points at its own node.
    """
    units: List[TextUnit] = []
    for node in root.descendants:
        if not _is_text_node(node):
            continue
        text = str(node).strip()
        if text:
            units.append(TextUnit(index=len(units), node=node, text=text))
    return units


def extract(html: str) -> Tuple[BeautifulSoup, List[TextUnit]]:
    """Parse *html*, strip scripts, and enumerate the body's text units.

    Returns:
        (tree, units) where *units* follow document order.
    """
    soup = parse(html)
    strip_scripts(soup)

    body = soup.body
    if body is None:
        return soup, []
    return soup, collect_text_units(body)
