"""Pydantic models for redistribution requests."""

from datetime import date
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from ..exceptions import InvalidDestinationError, RedistributionError
from ..redistribution.models import (
    Destination,
    DestinationPriority,
    DestinationStrategy,
    ImportBatchPayload,
    LeadFilters,
    Selection,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FiltersPayload(CamelModel):
    reason: Optional[str] = None
    owner: Optional[str] = None
    previous_queue: Optional[str] = None
    tag: Optional[str] = None
    status: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    search: Optional[str] = None

    def to_domain(self) -> LeadFilters:
        return LeadFilters(**self.model_dump())


class SelectionPayload(CamelModel):
    mode: Literal["ids", "all"] = "ids"
    ids: List[str] = Field(default_factory=list)
    filters: FiltersPayload = Field(default_factory=FiltersPayload)
    excluded_ids: List[str] = Field(default_factory=list)

    def to_domain(self) -> Selection:
        if self.mode == "ids":
            return Selection.by_ids(self.ids)
        return Selection.matching(self.filters.to_domain(), self.excluded_ids)


class DestinationPayload(CamelModel):
    strategy: DestinationStrategy = DestinationStrategy.QUEUE
    target_id: str
    target_name: str = ""
    priority: DestinationPriority = DestinationPriority.BALANCED
    preserve_ownership: bool = False
    notify_owners: bool = True
    notes: str = ""

    @field_validator("target_id")
    @classmethod
    def target_required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("targetId is required")
        return v

    def to_domain(self) -> Destination:
        return Destination(**self.model_dump())


class ImportBatchRequest(CamelModel):
    destination: DestinationPayload
    quantity: int = 20
    name: str = ""
    source: str = "Import"
    reason: str = "New batch"

    def to_domain(self, csv_text: Optional[str] = None) -> ImportBatchPayload:
        return ImportBatchPayload(
            destination=self.destination.to_domain(),
            quantity=self.quantity,
            name=self.name,
            source=self.source,
            reason=self.reason,
            csv_text=csv_text,
        )


def parse_selection(data: Dict[str, Any]) -> Selection:
    try:
        return SelectionPayload.model_validate(data).to_domain()
    except ValidationError as e:
        raise RedistributionError(f"Invalid selection: {e}")


def parse_destination(data: Dict[str, Any]) -> Destination:
    try:
        return DestinationPayload.model_validate(data).to_domain()
    except ValidationError as e:
        raise InvalidDestinationError(f"Invalid destination: {e}")
