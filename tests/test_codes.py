import pytest

from codepool.config import settings
from codepool.errors import InvalidInput
from codepool.services.codes import normalize_codes, normalize_name


def test_normalize_codes_strips_and_keeps_order():
    assert normalize_codes([" B2", "A1 ", "C3"]) == ["B2", "A1", "C3"]


def test_empty_list_rejected_unless_allowed():
    with pytest.raises(InvalidInput) as exc:
        normalize_codes([])
    assert exc.value.field == "codes"
    assert normalize_codes([], allow_empty=True) == []


@pytest.mark.parametrize("codes", [["A", "A"], ["A", " A "]])
def test_duplicates_rejected(codes):
    with pytest.raises(InvalidInput, match="duplicate"):
        normalize_codes(codes)


@pytest.mark.parametrize("bad", ["", "   ", None, 42])
def test_blank_or_non_string_codes_rejected(bad):
    with pytest.raises(InvalidInput, match="non-empty"):
        normalize_codes(["OK", bad])


def test_over_length_code_rejected():
    with pytest.raises(InvalidInput, match="characters or less"):
        normalize_codes(["X" * (settings.max_code_length + 1)])
    assert normalize_codes(["X" * settings.max_code_length])


def test_code_length_bound_is_configurable(monkeypatch):
    monkeypatch.setattr(settings, "max_code_length", 3)
    with pytest.raises(InvalidInput):
        normalize_codes(["ABCD"])


def test_too_many_codes_rejected(monkeypatch):
    monkeypatch.setattr(settings, "max_codes_per_pool", 2)
    with pytest.raises(InvalidInput, match="Maximum"):
        normalize_codes(["A", "B", "C"])


def test_pool_name_rules():
    assert normalize_name("  Summer drop ") == "Summer drop"
    with pytest.raises(InvalidInput) as exc:
        normalize_name("   ")
    assert exc.value.field == "name"
    with pytest.raises(InvalidInput):
        normalize_name("n" * (settings.max_pool_name_length + 1))
