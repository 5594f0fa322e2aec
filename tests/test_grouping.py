from catalog.services.common import int_to_roman, is_roman_numeral, natural_key
from catalog.services.grouping import group_rows, manuscript_key, sort_groups
from catalog.services.records import RowRecord


def _row(key, index):
    return RowRecord.from_mapping({"Main text": f"text {index}"}, key, "s", index)


def test_manuscript_key_uses_abbreviations():
    abbreviations = {"Bayerische Staatsbibliothek": "BSB"}
    assert manuscript_key(" Bayerische Staatsbibliothek ", "Clm 2 ", abbreviations) == "BSB||Clm 2"
    assert manuscript_key("ÖNB", "Cod. 10") == "ÖNB||Cod. 10"


def test_group_rows_keeps_first_seen_order():
    rows = [_row("B||2", 0), _row("A||1", 1), _row("B||2", 2), _row("A||1", 3)]
    groups = group_rows(rows)

    assert [g.key for g in groups] == ["B||2", "A||1"]
    assert [r.source_row_index for r in groups[0].rows] == [0, 2]
    assert [r.source_row_index for r in groups[1].rows] == [1, 3]


def test_group_rows_empty_input():
    assert group_rows([]) == []


def test_degenerate_group_is_kept():
    groups = group_rows([_row(manuscript_key("", ""), 0)])
    assert len(groups) == 1
    assert groups[0].is_degenerate
    assert not group_rows([_row("A||1", 0)])[0].is_degenerate


def test_sort_groups_is_natural_and_leaves_rows_alone():
    groups = group_rows([_row("M||Cod. 10", 0), _row("M||Cod. 2", 1), _row("A||Cod. 9", 2)])
    ordered = sort_groups(groups)

    assert [g.shelf_mark for g in ordered] == ["Cod. 9", "Cod. 2", "Cod. 10"]
    assert [g.key for g in groups] == ["M||Cod. 10", "M||Cod. 2", "A||Cod. 9"]


def test_natural_key():
    assert sorted(["Cod. 10", "cod. 2", "Cod. 1a"], key=natural_key) == ["Cod. 1a", "cod. 2", "Cod. 10"]


def test_roman_numeral_form():
    assert is_roman_numeral("XIV")
    assert is_roman_numeral("iv")
    assert not is_roman_numeral("IIII")
    assert not is_roman_numeral("VX")
    assert int_to_roman(1994) == "MCMXCIV"
