import pytest

from tandem.diffing import (
    ADDED,
    REMOVED,
    UNCHANGED,
    DiffPart,
    diff_tokens,
    diff_words,
    has_changes,
    new_text_of,
    old_text_of,
    tokenize,
)


def test_tokenize_keeps_whitespace_runs() -> None:
    assert tokenize("Мысық  отырды.\n") == ["Мысық", "  ", "отырды.", "\n"]
    assert tokenize("") == []
    assert "".join(tokenize(" a b ")) == " a b "


def test_identical_texts_are_all_unchanged() -> None:
    parts = diff_words("The cat sat on the mat.", "The cat sat on the mat.")
    assert parts
    assert all(part.kind == UNCHANGED for part in parts)
    assert not has_changes(parts)


def test_substitution_marks_removed_then_added() -> None:
    parts = diff_words("Мысық отырды.", "Мысық жатты.")
    assert parts == [
        DiffPart(UNCHANGED, "Мысық"),
        DiffPart(UNCHANGED, " "),
        DiffPart(REMOVED, "отырды."),
        DiffPart(ADDED, "жатты."),
    ]


def test_insertion_inside_lookahead_window() -> None:
    parts = diff_words("a c", "a b c")
    assert [(part.kind, part.token) for part in parts] == [
        (UNCHANGED, "a"),
        (UNCHANGED, " "),
        (ADDED, "b"),
        (ADDED, " "),
        (UNCHANGED, "c"),
    ]


def test_deletion_inside_lookahead_window() -> None:
    parts = diff_words("a b c", "a c")
    assert [part.kind for part in parts if part.token == "b"] == [REMOVED]
    assert old_text_of(parts) == "a b c"
    assert new_text_of(parts) == "a c"


def test_trailing_tokens_are_flushed() -> None:
    added = diff_words("one", "one two three")
    assert [part.token for part in added if part.kind == ADDED] == [" ", "two", " ", "three"]
    removed = diff_words("one two", "")
    assert all(part.kind == REMOVED for part in removed)
    assert old_text_of(removed) == "one two"


def test_small_lookahead_falls_back_to_substitution() -> None:
    parts = diff_tokens(["a", "c"], ["a", "b", "c"], lookahead=1)
    assert parts == [
        DiffPart(UNCHANGED, "a"),
        DiffPart(REMOVED, "c"),
        DiffPart(ADDED, "b"),
        DiffPart(ADDED, "c"),
    ]


def test_lookahead_must_be_positive() -> None:
    with pytest.raises(ValueError):
        diff_tokens(["a"], ["b"], lookahead=0)


@pytest.mark.parametrize(
    ("old", "new"),
    [
        ("", ""),
        ("", "Жаңа мәтін"),
        ("The quick brown fox", "A quick red fox jumps"),
        ("a b c d e f g h", "h g f e d c b a"),
        ("x  y\tz", "x y z"),
        ("same words here", "same  words  here"),
    ],
)
def test_both_sides_can_be_rebuilt(old: str, new: str) -> None:
    parts = diff_words(old, new)
    assert old_text_of(parts) == old
    assert new_text_of(parts) == new
