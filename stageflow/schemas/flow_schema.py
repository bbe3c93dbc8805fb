from pydantic import BaseModel, Field
from typing import List, Literal, Any


class ImportFlowRequest(BaseModel):
    """Flow definition: the exported array of {id, type, description, data}"""
    stages: List[Any] = Field(default_factory=list)
    mode: Literal["replace", "append"] = "replace"


class SuggestionRequest(BaseModel):
    prompt: str = Field(..., min_length=1)
    apply: bool = False  # materialize accepted stages right away
