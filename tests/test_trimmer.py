import pytest

from relaywriter.trimmer import MAX_OVERLAP_WORDS, seam_overlap, trim


def test_removes_whole_document_prefix() -> None:
    """A reply that restates the whole document keeps only what follows it."""
    doc = "Once upon a time there was a fox."
    assert trim(doc, doc + " hello world") == "hello world"


def test_removes_seam_overlap() -> None:
    """'cat sat' ends the document and starts the reply, so it is dropped."""
    assert trim("the cat sat", "cat sat on the mat") == "on the mat"


def test_overlap_is_case_insensitive() -> None:
    assert trim("The quick Brown Fox", "brown fox jumps over") == "jumps over"


def test_overlap_is_punctuation_sensitive() -> None:
    assert trim("the cat sat.", "sat on the mat") == "sat on the mat"


def test_overlap_window_is_bounded() -> None:
    """Overlaps longer than the window are not detected."""
    doc = "x one two three four five six"
    raw = "one two three four five six seven"
    assert MAX_OVERLAP_WORDS == 5
    assert trim(doc, raw) == raw


def test_largest_overlap_wins() -> None:
    doc = "we went to the the"
    assert seam_overlap(doc, "the the end")[0] == 2
    assert trim(doc, "the the end") == "end"


def test_strips_repeated_role_labels() -> None:
    assert trim("Hello.", "Assistant: Assistant:  and then") == "and then"
    assert trim("Hello.", "assistant:ASSISTANT: more") == "more"


def test_role_label_only_at_start() -> None:
    raw = "She said Assistant: hi"
    assert trim("Hello.", raw) == raw


def test_untouched_reply_is_returned_verbatim() -> None:
    raw = "  a new line\n\nwith breaks "
    assert trim("the story", raw) == raw


def test_empty_and_fully_repeated_replies() -> None:
    assert trim("the end", "") == ""
    assert trim("the end", "the end") == ""
    assert trim("the end", "The End") == ""


def test_remainder_keeps_internal_formatting() -> None:
    assert trim("the cat sat", "cat sat\n\nThen it slept,  soundly.") == "Then it slept,  soundly."


@pytest.mark.parametrize(
    "doc,raw",
    [
        ("the cat sat", "cat sat on the mat"),
        ("a b", "b b b c"),
        ("Story start", "Story start Story start more"),
        ("Hello.", "Assistant: Hello. Assistant: there"),
        ("one two", "nothing shared"),
        ("x", ""),
    ],
)
def test_trim_is_idempotent(doc: str, raw: str) -> None:
    once = trim(doc, raw)
    assert trim(doc, once) == once


def test_trim_is_deterministic() -> None:
    doc, raw = "It was late", "was late and the rain kept falling"
    assert trim(doc, raw) == trim(doc, raw) == "and the rain kept falling"


def test_repeated_seam_words_are_trimmed_until_stable() -> None:
    assert trim("a b", "b b b c") == "c"
