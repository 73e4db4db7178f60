from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.core.enums import AgeGroup


class Guest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    age_group: AgeGroup = Field(alias="Age Group")


class VendorRequest(BaseModel):
    """Request body in the vendor's wire schema"""
    model_config = ConfigDict(populate_by_name=True)

    unit_type_id: int = Field(alias="Unit Type ID")
    arrival: str = Field(alias="Arrival")
    departure: str = Field(alias="Departure")
    guests: List[Guest] = Field(alias="Guests")

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class DateRange(BaseModel):
    arrival: str
    departure: str
    nights: int


class Quote(BaseModel):
    unit_name: str
    rate: Optional[float] = None
    currency: str
    availability: bool
    date_range: DateRange
    original_response: Any = None


class RateFragment(BaseModel):
    """Normalized view of a vendor response, before it is tied to a request"""
    rate: Optional[float] = None
    currency: str
    availability: bool
    availability_known: bool = False
    raw: Any = None
    note: Optional[str] = None
