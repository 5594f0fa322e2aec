from enum import Enum
from typing import Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, model_validator

from catalog.services.facets import FACET_FIELDS_BY_NAME, FacetSelection

# -ENUMS for validation and type safety
class Mode(str, Enum):
    ROW = "row"
    MANUSCRIPT = "manuscript"

# --- PYDANTIC MODELS for API requests

class FacetSelectionModel(BaseModel):
    values: List[str] = Field(default_factory=list)
    minimum: Optional[float] = None
    maximum: Optional[float] = None

    def to_selection(self) -> FacetSelection:
        return FacetSelection(values=frozenset(self.values), minimum=self.minimum, maximum=self.maximum)


class SearchQuery(BaseModel):
    mode: Mode = Mode.MANUSCRIPT
    selections: Dict[str, FacetSelectionModel] = Field(default_factory=dict)
    query: str = ""
    limit: int = Field(500, ge=1, le=10000)
    offset: int = Field(0, ge=0)
    counts: bool = Field(True, description="If true, returns live per-facet option counts.")

    @model_validator(mode='before')
    @classmethod
    def check_facet_names(cls, values):
        if isinstance(values, dict):
            unknown = sorted(set(values.get('selections') or {}) - set(FACET_FIELDS_BY_NAME))
            if unknown:
                raise ValueError(f"Unknown facet field(s): {', '.join(unknown)}")
        return values

    def facet_selections(self) -> Dict[str, FacetSelection]:
        return {name: selection.to_selection() for name, selection in self.selections.items()}


class SpanRequest(BaseModel):
    visible_columns: Optional[List[str]] = Field(
        None, description="Columns in display order; defaults to every column of the dataset."
    )

# --- MERGE METADATA (validated on load)

class MergeRangeModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    min_row: int = Field(..., alias="minRow", ge=0)
    max_row: int = Field(..., alias="maxRow", ge=0)
    min_col: Union[int, str] = Field(..., alias="minCol")
    max_col: Union[int, str] = Field(..., alias="maxCol")
