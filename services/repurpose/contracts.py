"""
Highlight Analysis Contracts
============================
Pydantic schemas for the model's highlight analysis reply.

The model is asked for ``{"segments": [...], "summary", "viralPotential"}``;
a bare array of segments is accepted too, as is a reply wrapped in markdown
code fences.
"""

import json
from typing import Any, List, Optional, Union

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class ContractValidationError(Exception):
    """Raised when the model reply does not match the analysis contract."""

    def __init__(self, contract_name: str, errors: list):
        self.contract_name = contract_name
        self.errors = errors
        super().__init__(f"Validation failed for {contract_name}: {errors}")


class SegmentPayload(BaseModel):
    """One highlight as proposed by the model. Every field is optional."""
    model_config = ConfigDict(extra="ignore")

    start: Optional[float] = None
    end: Optional[float] = None
    score: Optional[float] = None
    keywords: Optional[List[str]] = None
    transcript: Optional[str] = None
    reason: Optional[str] = None

    @field_validator("keywords", mode="before")
    @classmethod
    def split_keyword_string(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [k.strip() for k in value.split(",") if k.strip()]
        return value


class AnalysisPayload(BaseModel):
    """Whole analysis reply."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    segments: List[SegmentPayload] = Field(default_factory=list)
    summary: Optional[str] = None
    viral_potential: Optional[float] = Field(default=None, alias="viralPotential")


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json ... ``` (or bare ```) fence."""
    if "```json" in text:
        return text.split("```json", 1)[1].split("```", 1)[0].strip()
    if "```" in text:
        return text.split("```", 1)[1].split("```", 1)[0].strip()
    return text.strip()


def parse_analysis(text: Union[str, dict, list]) -> AnalysisPayload:
    """
    Validate a model reply against AnalysisPayload.

    Args:
        text: Raw reply text, or already-decoded JSON

    Returns:
        Validated AnalysisPayload

    Raises:
        ContractValidationError: On invalid JSON or a schema violation
    """
    data = text
    if isinstance(text, str):
        try:
            data = json.loads(strip_code_fences(text))
        except json.JSONDecodeError as e:
            raise ContractValidationError("AnalysisPayload", [f"invalid JSON: {e}"])

    if isinstance(data, list):
        data = {"segments": data}
    if not isinstance(data, dict):
        raise ContractValidationError("AnalysisPayload", [f"expected object or array, got {type(data).__name__}"])

    try:
        payload = AnalysisPayload.model_validate(data)
    except ValidationError as e:
        raise ContractValidationError("AnalysisPayload", e.errors())

    logger.debug(f"✓ Analysis contract passed: {len(payload.segments)} segments")
    return payload
