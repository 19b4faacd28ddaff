from tandem.markup import (
    add_class,
    build_sentence_index,
    iter_sentence_elements,
    iter_sentence_ids,
    parse_fragment,
    render_fragment,
)

from conftest import PAGE_ONE, PAGE_TWO


def test_index_maps_sentences_to_pages() -> None:
    index = build_sentence_index([PAGE_ONE, PAGE_TWO])

    assert set(index) == {"s1", "s2", "s3"}
    assert index["s1"].page_index == 0
    assert index["s1"].position == 0
    assert index["s2"].position == 1
    assert index["s2"].original_text == "It was happy."
    assert index["s3"].page_index == 1
    assert index["s3"].original_text == "Dogs bark."


def test_split_sentence_counts_occurrences() -> None:
    page = (
        '<p><span data-sentence-id="a">First half,</span></p>'
        '<p><span data-sentence-id="a">second half.</span></p>'
    )
    location = build_sentence_index([page])["a"]
    assert location.occurrences == 2
    assert location.original_text == "First half,"


def test_first_page_wins_for_duplicate_ids() -> None:
    index = build_sentence_index(
        ['<span data-sentence-id="x">one</span>', '<span data-sentence-id="x">two</span>']
    )
    assert index["x"].page_index == 0
    assert index["x"].original_text == "one"


def test_elements_without_ids_are_ignored() -> None:
    soup = parse_fragment('<span data-sentence-id="">empty</span><span>plain</span>')
    assert list(iter_sentence_ids(soup)) == []


def test_add_class_is_idempotent() -> None:
    soup = parse_fragment(PAGE_TWO)
    ((sentence_id, element),) = iter_sentence_elements(soup)
    assert sentence_id == "s3"
    add_class(element, "translated-sentence")
    add_class(element, "translated-sentence")
    assert element["class"] == ["sentence", "translated-sentence"]
    assert 'class="sentence translated-sentence"' in render_fragment(soup)
