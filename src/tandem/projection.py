from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from .markup import (
    ACTIVE_CLASS,
    APPROVED_CLASS,
    TRANSLATED_CLASS,
    add_class,
    iter_sentence_elements,
    parse_fragment,
    render_fragment,
)
from .store import TranslationStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ProjectedPage:
    page_index: int
    original: str
    translated: str
    missing: list[str] = field(default_factory=list)

    def to_payload(self) -> dict[str, object]:
        return {
            "page_index": self.page_index,
            "original": self.original,
            "translated": self.translated,
            "missing": list(self.missing),
        }


def _annotate(
    html: str,
    translations: dict[str, str],
    approved: set[str],
    active: set[str],
    *,
    replace_text: bool,
) -> tuple[str, set[str]]:
    soup = parse_fragment(html)
    seen: set[str] = set()
    for sentence_id, element in iter_sentence_elements(soup):
        first = sentence_id not in seen
        seen.add(sentence_id)
        if sentence_id in translations:
            if replace_text:
                # A sentence split over several fragments shows its text once.
                element.string = translations[sentence_id] if first else ""
            add_class(element, TRANSLATED_CLASS)
            if sentence_id in approved:
                add_class(element, APPROVED_CLASS)
        if sentence_id in active:
            add_class(element, ACTIVE_CLASS)
    return render_fragment(soup), seen


def project_page(
    page_html: str,
    page_index: int,
    store: TranslationStore,
    *,
    active_ids: Iterable[str] = (),
) -> ProjectedPage:
    """
    Derive the original and translated panes of a page from its base markup.

    Nothing is cached or mutated: both panes are rebuilt from ``page_html``
    on every call. Translations recorded for the page whose sentence has no
    fragment in the markup are skipped and listed in ``missing``.
    """
    translations = store.for_page(page_index)
    approved = {sentence_id for sentence_id in translations if store.is_approved(sentence_id)}
    active = set(active_ids)
    original, present = _annotate(
        page_html, translations, approved, active, replace_text=False
    )
    translated, _ = _annotate(
        page_html, translations, approved, active, replace_text=True
    )
    missing = sorted(sentence_id for sentence_id in translations if sentence_id not in present)
    if missing:
        logger.warning(
            "Page %d: no markup fragment for %d translated sentence(s): %s",
            page_index + 1,
            len(missing),
            ", ".join(missing),
        )
    return ProjectedPage(
        page_index=page_index,
        original=original,
        translated=translated,
        missing=missing,
    )


def project_document(
    pages: Sequence[str],
    store: TranslationStore,
    *,
    active_ids: Iterable[str] = (),
) -> list[ProjectedPage]:
    active = set(active_ids)
    return [
        project_page(html, page_index, store, active_ids=active)
        for page_index, html in enumerate(pages)
    ]


__all__ = ["ProjectedPage", "project_document", "project_page"]
