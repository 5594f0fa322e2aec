from pathlib import Path

import orjson
import pytest

from catalog.services.data_loader import build_snapshot
from catalog.services.records import RowRecord
from catalog.store import store

DATA_DIR = Path(__file__).resolve().parent.parent / "data"


def _read(name):
    return orjson.loads((DATA_DIR / name).read_bytes())


@pytest.fixture
def make_row():
    """Factory for a RowRecord in a given manuscript and source."""
    def _make(values, key="D||1", source_id="s", index=0):
        return RowRecord.from_mapping(values, key, source_id, index)
    return _make


@pytest.fixture
def sample_documents():
    return _read("metadata.json")


@pytest.fixture
def sample_merges():
    return _read("metadata.merges.json")


@pytest.fixture
def sample_abbreviations():
    return _read("depositories.json")


@pytest.fixture
def snapshot(sample_documents, sample_merges, sample_abbreviations):
    return build_snapshot("metadata", sample_documents, sample_merges, sample_abbreviations)


@pytest.fixture
def ready_store(snapshot):
    store.swap_cache(snapshot)
    yield store
    store.mark_loading()
    store.cache.clear()
    store.span_cache.clear()
