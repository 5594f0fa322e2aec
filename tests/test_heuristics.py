from catalog.services.heuristics import aggregate_values, build_heuristic_span_map, production_unit_runs
from catalog.services.records import RowRecord
from catalog.services.spans import Span

COLUMNS = ["Depository", "Production Unit", "Scribe", "Literature"]


def _rows(*rows):
    return [RowRecord.from_mapping(values, "D||1", "s", i) for i, values in enumerate(rows)]


def _manuscript():
    return _rows(
        {"Depository": "D", "Production Unit": "I", "Scribe": "A", "Literature": "Hermann 1926"},
        {"Depository": "D ", "Production Unit": "", "Scribe": "A", "Literature": ""},
        {"Depository": "D", "Production Unit": "II", "Scribe": "B", "Literature": "Pächt 1974"},
    )


def test_production_unit_runs_inherit_blank_cells():
    rows = _manuscript()
    assert production_unit_runs(rows) == [(0, 2), (2, 1)]
    # Run detection never rewrites the stored cell.
    assert rows[1].get("Production Unit") == ""


def test_production_unit_runs_leading_blank():
    rows = _rows({"Production Unit": ""}, {"Production Unit": "I"}, {"Production Unit": "I"})
    assert production_unit_runs(rows) == [(0, 1), (1, 2)]


def test_heuristic_spans():
    span_map = build_heuristic_span_map(_manuscript(), COLUMNS)

    assert span_map.origins == {
        (0, 0): Span(3, 1),
        (0, 1): Span(2, 1),
        (0, 2): Span(2, 1),
        (0, 3): Span(3, 1, text="Hermann 1926\nPächt 1974"),
    }
    assert span_map.covered == {(1, 0), (2, 0), (1, 1), (1, 2), (1, 3), (2, 3)}


def test_placeholder_dot_counts_as_empty():
    rows = _rows({"Scribe": "."}, {"Scribe": ""})
    span_map = build_heuristic_span_map(rows, ["Scribe"])
    assert span_map.origins == {(0, 0): Span(2, 1)}


def test_empty_aggregated_columns_still_merge():
    rows = _rows({"Literature": "", "Links to Database": "x"}, {"Literature": "", "Links to Database": "x"})
    span_map = build_heuristic_span_map(rows, ["Literature", "Links to Database"])
    assert span_map.origins == {(0, 0): Span(2, 1), (0, 1): Span(2, 1)}


def test_single_row_manuscript_has_no_spans():
    span_map = build_heuristic_span_map(_rows({"Depository": "D"}), ["Depository"])
    assert span_map.origins == {}
    assert span_map.covered == set()


def test_columns_filter():
    span_map = build_heuristic_span_map(_manuscript(), COLUMNS, columns=["Literature"])
    assert list(span_map.origins) == [(0, 3)]


def test_aggregate_values():
    assert aggregate_values(["a", "", "b", "a"]) == "a\nb"
