from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

LeadStatus = Literal["New", "Contacted", "Offer Made", "Under Contract", "Sold"]

LEAD_STATUSES: tuple[str, ...] = ("New", "Contacted", "Offer Made", "Under Contract", "Sold")
DEFAULT_STATUS = "New"


class LeadAnalysis(BaseModel):
    """Structured investment analysis returned by the model for one property."""

    model_config = ConfigDict(populate_by_name=True)

    detailed_property_summary: str = Field(alias="detailedPropertySummary")
    suggested_offer_range: str = Field(alias="suggestedOfferRange")  # e.g. "$150,000 - $180,000"
    buyer_profiles: list[str] = Field(alias="buyerProfiles")
    seller_outreach_angles: list[str] = Field(alias="sellerOutreachAngles")
    due_diligence_checklist: list[str] = Field(alias="dueDiligenceChecklist")


class GeneratedLead(BaseModel):
    """One item of an automated lead search: a property plus its analysis."""

    model_config = ConfigDict(populate_by_name=True)

    property_details: str = Field(alias="propertyDetails", min_length=1)
    latitude: float | None = None
    longitude: float | None = None
    generated_results: LeadAnalysis = Field(alias="generatedResults")


class Lead(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str | None = None
    property_details: str = Field(alias="propertyDetails", min_length=1)
    latitude: float | None = None
    longitude: float | None = None
    generated_results: str | None = Field(default=None, alias="generatedResults")  # serialized LeadAnalysis
    status: LeadStatus = DEFAULT_STATUS
    source: str | None = None  # county, ai
    tax_amount: float | None = Field(default=None, alias="taxAmount")
    property_type: str | None = Field(default=None, alias="propertyType")
    timestamp: datetime | None = None
    user_id: str | None = Field(default=None, alias="userId")

    def analysis(self) -> LeadAnalysis | None:
        if not self.generated_results:
            return None
        return LeadAnalysis.model_validate_json(self.generated_results)

    def to_document(self) -> dict:
        """Store representation: camelCase keys, no id, no unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True, exclude={"id", "timestamp"})
