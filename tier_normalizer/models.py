from __future__ import annotations

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from .rules import BRANCHES_KEY, BRANCHES_NAME, STRUCTURE_SEPARATOR, tier_key, tier_name


class TierChain(BaseModel):
    """Original tier names in discovery order, root first."""

    original_names: List[str] = Field(default_factory=list)

    @property
    def tier_count(self) -> int:
        # The deepest tier is Branches and is not counted; an empty chain gives -1.
        return len(self.original_names) - 1

    @property
    def canonical_names(self) -> List[str]:
        last = len(self.original_names) - 1
        return [
            BRANCHES_NAME if index == last else tier_name(index + 1)
            for index in range(len(self.original_names))
        ]

    @property
    def structure(self) -> str:
        return STRUCTURE_SEPARATOR.join(self.canonical_names)

    @property
    def key_map(self) -> Dict[str, str]:
        """Original tier name -> canonical key. A repeated name keeps its first position."""
        last = len(self.original_names) - 1
        mapping: Dict[str, str] = {}
        for index, name in enumerate(self.original_names):
            mapping.setdefault(name, BRANCHES_KEY if index == last else tier_key(index + 1))
        return mapping


class TierAnalysis(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tier_count: int = Field(alias="tierCount")
    tier_names: List[str] = Field(default_factory=list, alias="tierNames")
    original_tier_names: List[str] = Field(default_factory=list, alias="originalTierNames")
    structure: str = ""
    transformed_data: Any = Field(default=None, alias="transformedData")


class EncodingReport(BaseModel):
    detected: Optional[str] = Field(default=None, examples=[None])
    decode_used: str
    decode_fallback: bool = False


class SourceReport(BaseModel):
    sha256: str
    size_bytes: int
    encoding: EncodingReport


class NormalizeResponse(BaseModel):
    analysis: TierAnalysis
    source: SourceReport


class HealthResponse(BaseModel):
    ok: bool = True
