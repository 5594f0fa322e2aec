# catalog/routes.py

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import ORJSONResponse

from catalog.config import DATASETS
from catalog.models import SearchQuery, SpanRequest
from catalog.store import store
from catalog.services.data_loader import load_dataset
from catalog.services.search import get_manuscript_details, get_span_plan, get_tree, run_search

router = APIRouter()

NOT_READY_DETAIL = "Data is still being loaded. Please try again later."


def _ensure_ready() -> None:
    if not store.is_ready:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=NOT_READY_DETAIL
        )

@router.get("/health/ready", tags=["Health"])
def get_readiness_status():
    """
    Readiness probe to check if the dataset load is complete.
    """
    if store.is_ready:
        return {"status": "ready", "dataset": store.cache.get("dataset_id")}
    return ORJSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "loading_data"}
    )

@router.get("/facets/options", tags=["Metadata"])
def get_facet_options():
    """
    Returns the selectable options of every facet.
    """
    _ensure_ready()
    return store.cache.get("facet_options", {})

@router.post("/records/search", tags=["Records"])
def search_records(query: SearchQuery):
    """
    Filters rows or manuscripts and returns live facet counts.
    """
    _ensure_ready()
    try:
        return run_search(query)
    except RuntimeError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e)
        )

@router.get("/manuscripts/{key}", tags=["Manuscripts"])
def get_manuscript(key: str):
    """
    Retrieves every row of one manuscript.
    """
    _ensure_ready()
    try:
        return get_manuscript_details(key)
    except KeyError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.args[0])

@router.post("/manuscripts/{key}/spans", tags=["Manuscripts"])
def get_manuscript_spans(key: str, request: SpanRequest):
    """
    Returns which cells of the manuscript's table span several rows or
    columns and which are covered.
    """
    _ensure_ready()
    try:
        return get_span_plan(key, request.visible_columns)
    except KeyError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.args[0])

@router.get("/tree", tags=["Manuscripts"])
def get_hierarchy_tree():
    """
    Manuscript -> production unit -> content tree.
    """
    _ensure_ready()
    return get_tree()

@router.post("/datasets/{dataset_id}/load", tags=["Datasets"], status_code=status.HTTP_202_ACCEPTED)
async def reload_dataset(dataset_id: str, refresh: bool = False):
    """
    Starts loading a configured dataset in the background. The service
    reports 503 until the new snapshot is in place.
    """
    if dataset_id not in DATASETS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Dataset '{dataset_id}' not found")
    store.mark_loading()
    store.run_in_background(load_dataset(dataset_id, refresh=refresh))
    return {"status": "loading_data", "dataset": dataset_id}
