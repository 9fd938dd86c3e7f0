import pytest

from app.cgl_prep.utils import answers_match, extract_choice_letter, generate_id, merge_updates

OPTIONS = ["Dr. Rajendra Prasad", "A.P.J. Abdul Kalam", "Zakir Hussain", "V. V. Giri"]


@pytest.mark.parametrize(
    "user, correct, expected",
    [
        ("A", "A", True),
        ("a", "A", True),
        ("A) Dr. Rajendra Prasad", "A", True),
        ("dr. rajendra prasad", "A", True),
        ("A.P.J. Abdul Kalam", "B", True),
        ("A.P.J. Abdul Kalam", "A", False),
        ("C", "Zakir Hussain", True),
        ("B", "A", False),
        ("", "A", False),
        ("Somebody else", "A", False),
    ],
)
def test_answers_match(user, correct, expected):
    assert answers_match(user, correct, OPTIONS) is expected


def test_answers_match_without_options():
    assert answers_match("B. Kosi", "B") is True
    assert answers_match("C", "B") is False
    assert answers_match("Kosi", "Kosi") is True


def test_extract_choice_letter():
    assert extract_choice_letter(" d ") == "D"
    assert extract_choice_letter("C: Article 17") == "C"
    assert extract_choice_letter("Article 17") == ""
    assert extract_choice_letter(None) == ""


def test_merge_updates_keeps_id():
    record = {"id": "abc123def", "learned": False, "word": "Laconic"}

    merged = merge_updates(record, {"id": "other", "learned": True, "note": "tricky"})

    assert merged == {"id": "abc123def", "learned": True, "word": "Laconic", "note": "tricky"}
    assert record["learned"] is False


def test_generate_id_is_short_and_unique():
    ids = {generate_id() for _ in range(50)}
    assert len(ids) == 50
    assert all(len(i) == 9 for i in ids)
