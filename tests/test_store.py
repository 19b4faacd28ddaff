import pytest

from tandem.history import VersionLedger
from tandem.store import TranslationStore


def _history(ledger: VersionLedger, sentence_id: str, *texts: str):
    for text in texts:
        ledger.append(sentence_id, text, "m1")
    return ledger.history(sentence_id)


def test_record_requires_a_version() -> None:
    store = TranslationStore()
    with pytest.raises(ValueError):
        store.record("s1", "text", 0, VersionLedger().history("s1"))
    assert "s1" not in store


def test_record_updates_existing_entry_in_place() -> None:
    ledger = VersionLedger()
    store = TranslationStore()
    first = store.record("s1", "one", 0, _history(ledger, "s1", "one"))
    store.set_approved("s1", True)
    second = store.record("s1", "two", 0, _history(ledger, "s1", "two"))

    assert first is second
    assert second.text == "two"
    assert second.version_count == 2
    assert second.approved is True
    assert len(store) == 1


def test_restore_is_tracked_until_next_version() -> None:
    ledger = VersionLedger()
    store = TranslationStore()
    record = store.record("s1", "two", 0, _history(ledger, "s1", "one", "two"))
    store.set_approved("s1", True)
    assert record.is_restored is False

    store.restore("s1", 0, "one")
    assert record.text == "one"
    assert record.restored_index == 0
    assert record.approved is False

    store.record("s1", "three", 0, _history(ledger, "s1", "three"))
    assert record.is_restored is False


def test_set_text_does_not_mark_restore() -> None:
    ledger = VersionLedger()
    store = TranslationStore()
    record = store.record("s1", "one", 0, _history(ledger, "s1", "one"))
    store.set_text("s1", "draft")
    assert record.text == "draft"
    assert record.is_restored is False


def test_unknown_ids_raise_key_error() -> None:
    store = TranslationStore()
    with pytest.raises(KeyError):
        store.set_text("missing", "x")
    with pytest.raises(KeyError):
        store.restore("missing", 0, "x")
    with pytest.raises(KeyError):
        store.set_approved("missing", True)
    assert store.is_approved("missing") is False


def test_for_page_and_approved_ids() -> None:
    ledger = VersionLedger()
    store = TranslationStore()
    store.record("s1", "бір", 0, _history(ledger, "s1", "бір"))
    store.record("s2", "екі", 0, _history(ledger, "s2", "екі"))
    store.record("s3", "үш", 1, _history(ledger, "s3", "үш"))
    store.set_approved("s2", True)

    assert store.for_page(0) == {"s1": "бір", "s2": "екі"}
    assert store.for_page(1) == {"s3": "үш"}
    assert store.approved_ids() == {"s2"}
    assert store.ids() == ["s1", "s2", "s3"]
