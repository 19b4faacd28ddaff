from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import Iterable, Iterator

from bs4 import BeautifulSoup, Tag, XMLParsedAsHTMLWarning

logger = logging.getLogger(__name__)

SENTENCE_ATTR = "data-sentence-id"
TRANSLATED_CLASS = "translated-sentence"
APPROVED_CLASS = "approved-sentence"
ACTIVE_CLASS = "active-sentence"


@dataclass(frozen=True, slots=True)
class SentenceLocation:
    page_index: int
    position: int
    original_text: str
    occurrences: int = 1


def parse_fragment(html: str) -> BeautifulSoup:
    # Pages are body fragments; html.parser keeps them unwrapped.
    with warnings.catch_warnings():
        warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)
        return BeautifulSoup(html or "", "html.parser")


def render_fragment(soup: BeautifulSoup) -> str:
    return soup.decode(formatter="minimal")


def _sentence_id_of(element: Tag) -> str | None:
    value = element.get(SENTENCE_ATTR)
    if isinstance(value, list):
        value = " ".join(value)
    if not isinstance(value, str) or not value:
        return None
    return value


def iter_sentence_elements(soup: BeautifulSoup) -> Iterator[tuple[str, Tag]]:
    for element in soup.find_all(attrs={SENTENCE_ATTR: True}):
        if not isinstance(element, Tag):
            continue
        sentence_id = _sentence_id_of(element)
        if sentence_id is None:
            continue
        yield sentence_id, element


def iter_sentence_ids(soup: BeautifulSoup) -> Iterator[str]:
    seen: set[str] = set()
    for sentence_id, _ in iter_sentence_elements(soup):
        if sentence_id in seen:
            continue
        seen.add(sentence_id)
        yield sentence_id


def add_class(element: Tag, name: str) -> None:
    classes = element.get("class")
    if isinstance(classes, str):
        classes = classes.split()
    current = list(classes or [])
    if name not in current:
        current.append(name)
    element["class"] = current


def build_sentence_index(pages: Iterable[str]) -> dict[str, SentenceLocation]:
    """
    Map every sentence id to the page it lives on.

    Built once per loaded document so that lookups never have to scan the
    rendered markup. Positions count distinct ids in order of first
    appearance on their page.
    """
    index: dict[str, SentenceLocation] = {}
    for page_index, html in enumerate(pages):
        soup = parse_fragment(html)
        elements: dict[str, list[Tag]] = {}
        for sentence_id, element in iter_sentence_elements(soup):
            elements.setdefault(sentence_id, []).append(element)
        for position, (sentence_id, found) in enumerate(elements.items()):
            if sentence_id in index:
                logger.debug(
                    "Sentence %s appears again on page %d; keeping page %d",
                    sentence_id,
                    page_index,
                    index[sentence_id].page_index,
                )
                continue
            index[sentence_id] = SentenceLocation(
                page_index=page_index,
                position=position,
                original_text=found[0].get_text(),
                occurrences=len(found),
            )
    return index


__all__ = [
    "ACTIVE_CLASS",
    "APPROVED_CLASS",
    "SENTENCE_ATTR",
    "SentenceLocation",
    "TRANSLATED_CLASS",
    "add_class",
    "build_sentence_index",
    "iter_sentence_elements",
    "iter_sentence_ids",
    "parse_fragment",
    "render_fragment",
]
