from catalog.services.records import Degradation, RowRecord
from catalog.services.spans import MergeRange, Span, SpanMap, build_span_map


def _rows(count, source_id="s", indices=None):
    indices = indices if indices is not None else range(count)
    return [
        RowRecord.from_mapping({"Depository": "D", "Name": f"n{i}"}, "D||1", source_id, i)
        for i in indices
    ]


def _assert_consistent(span_map: SpanMap, height: int):
    """Every covered cell lies in exactly one origin rectangle and nothing leaves the grid."""
    rectangles = [SpanMap.rectangle(o, s) for o, s in span_map.origins.items()]
    for i, first in enumerate(rectangles):
        for second in rectangles[i + 1:]:
            assert not first & second
    union = set().union(*rectangles) if rectangles else set()
    assert union == set(span_map.origins) | span_map.covered
    assert not set(span_map.origins) & span_map.covered
    for row, col in union:
        assert 0 <= row < height
        assert 0 <= col < len(span_map.columns)


def test_three_row_manuscript_end_to_end():
    columns = ["Depository", "Name"]
    merges = {"s": [MergeRange(0, 2, "Depository", "Depository"), MergeRange(0, 1, "Name", "Name")]}

    span_map = build_span_map(_rows(3), "s", columns, columns, merges)

    assert span_map.origins == {(0, 0): Span(3, 1), (0, 1): Span(2, 1)}
    assert span_map.covered == {(1, 0), (2, 0), (1, 1)}
    # Row 2 of "Name" is drawn as its own cell.
    assert span_map.origin_at(2, 1) is None
    assert not span_map.is_covered(2, 1)
    _assert_consistent(span_map, 3)


def test_no_metadata_for_source_returns_none():
    columns = ["Depository"]
    assert build_span_map(_rows(2), "s", columns, columns, None) is None
    assert build_span_map(_rows(2), "s", columns, columns, {"other": []}) is None


def test_empty_metadata_gives_empty_map():
    span_map = build_span_map(_rows(2), "s", ["Depository"], ["Depository"], {"s": []})
    assert span_map is not None
    assert span_map.origins == {}
    assert span_map.covered == set()


def test_range_outside_block_is_never_applied():
    columns = ["Depository", "Name"]
    merges = {"s": [MergeRange(1, 3, "Depository", "Depository")]}

    span_map = build_span_map(_rows(3), "s", columns, columns, merges)

    assert span_map.origins == {}
    assert span_map.covered == set()
    assert span_map.skipped == [(0, Degradation.RANGE_OUT_OF_BOUNDS)]


def test_non_contiguous_source_rows_are_skipped():
    columns = ["Depository", "Name"]
    merges = {"s": [MergeRange(0, 1, "Depository", "Depository")]}

    span_map = build_span_map(_rows(3, indices=[0, 2, 1]), "s", columns, columns, merges)

    assert span_map.origins == {}
    assert span_map.skipped == [(0, Degradation.RANGE_OUT_OF_BOUNDS)]


def test_unresolvable_columns_are_skipped():
    columns = ["Depository", "Name"]
    merges = {"s": [
        MergeRange(0, 1, "Nope", "Name"),
        MergeRange(0, 1, 0, 7),
        MergeRange(0, 1, 1, 1),
    ]}

    span_map = build_span_map(_rows(2), "s", columns, columns, merges)

    assert span_map.skipped == [(0, Degradation.UNRESOLVABLE_COLUMN), (1, Degradation.UNRESOLVABLE_COLUMN)]
    assert span_map.origins == {(0, 1): Span(2, 1)}


def test_hidden_columns_shrink_the_span():
    full = ["A", "B", "C"]
    merges = {"s": [MergeRange(0, 1, "A", "C")]}
    rows = _rows(2)

    both_ends = build_span_map(rows, "s", full, ["A", "C"], merges)
    assert both_ends.origins == {(0, 0): Span(2, 2)}
    assert both_ends.covered == {(0, 1), (1, 0), (1, 1)}

    middle_only = build_span_map(rows, "s", full, ["Name", "B"], merges)
    assert middle_only.origins == {(0, 1): Span(2, 1)}

    none_visible = build_span_map(rows, "s", full, ["Name"], merges)
    assert none_visible.origins == {}
    assert none_visible.skipped == []


def test_excluded_columns_are_left_out():
    full = ["A", "B", "Literature"]
    merges = {"s": [MergeRange(0, 1, "B", "Literature")]}

    span_map = build_span_map(_rows(2), "s", full, full, merges, excluded_columns=["Literature"])

    assert span_map.origins == {(0, 1): Span(2, 1)}


def test_excluded_column_inside_range_splits_it():
    columns = ["Size", "Literature", "Scribe"]
    merges = {"s": [MergeRange(0, 1, "Size", "Scribe")]}

    span_map = build_span_map(_rows(2), "s", columns, columns, merges, excluded_columns=["Literature"])

    assert span_map.origins == {(0, 0): Span(2, 1), (0, 2): Span(2, 1)}
    assert span_map.covered == {(1, 0), (1, 2)}
    assert 1 not in span_map.claimed_columns()
    _assert_consistent(span_map, 2)


def test_single_cell_ranges_are_ignored():
    columns = ["Depository"]
    span_map = build_span_map(_rows(2), "s", columns, columns, {"s": [MergeRange(1, 1, 0, 0)]})
    assert span_map.origins == {}
    assert span_map.skipped == []


def test_later_range_on_same_origin_wins():
    columns = ["Depository"]
    rows = _rows(3)

    grown = build_span_map(rows, "s", columns, columns, {"s": [MergeRange(0, 1, 0, 0), MergeRange(0, 2, 0, 0)]})
    assert grown.origins == {(0, 0): Span(3, 1)}
    assert grown.covered == {(1, 0), (2, 0)}
    assert grown.conflicts == [1]

    shrunk = build_span_map(rows, "s", columns, columns, {"s": [MergeRange(0, 2, 0, 0), MergeRange(0, 1, 0, 0)]})
    assert shrunk.origins == {(0, 0): Span(2, 1)}
    assert shrunk.covered == {(1, 0)}
    _assert_consistent(shrunk, 3)


def test_overlapping_range_is_skipped():
    columns = ["A", "B"]
    merges = {"s": [MergeRange(0, 1, "A", "B"), MergeRange(1, 2, "B", "B")]}

    span_map = build_span_map(_rows(3), "s", columns, columns, merges)

    assert span_map.origins == {(0, 0): Span(2, 2)}
    assert span_map.skipped == [(1, Degradation.OVERLAPPING_RANGE)]
    _assert_consistent(span_map, 3)


def test_rows_from_other_sources_do_not_resolve():
    columns = ["Depository"]
    rows = _rows(2, source_id="other")
    span_map = build_span_map(rows, "s", columns, columns, {"s": [MergeRange(0, 1, 0, 0)]})
    assert span_map.origins == {}
    assert span_map.skipped == [(0, Degradation.RANGE_OUT_OF_BOUNDS)]


def test_to_dict_lists_cells_in_order():
    columns = ["Depository", "Name"]
    merges = {"s": [MergeRange(0, 2, "Depository", "Depository"), MergeRange(5, 6, 0, 0)]}

    payload = build_span_map(_rows(3), "s", columns, columns, merges).to_dict()

    assert payload["columns"] == columns
    assert payload["origins"] == [{"row": 0, "col": 0, "row_span": 3, "col_span": 1, "text": None}]
    assert payload["covered"] == [{"row": 1, "col": 0}, {"row": 2, "col": 0}]
    assert payload["skipped"] == [{"range": 1, "reason": "range_out_of_bounds"}]
