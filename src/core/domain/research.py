"""Modelos de investigación de donantes y verificación de antecedentes."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import Field

from core.domain.base import DomainModel


class ScreeningRequest(DomainModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: str | None = None
    address: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""

    def vendor_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "address": {"line1": self.address, "city": self.city, "state": self.state, "zip": self.zip},
        }
        if self.email:
            body["email"] = self.email
        return body


class Screening(DomainModel):
    individual_id: str = ""
    giving_capacity: str
    income_range: str
    net_worth_range: str
    confidence_score: float = 0
    cost: float


class WealthProfile(DomainModel):
    individual_id: str = ""
    income_range: str
    net_worth_range: str
    real_estate_value: float = 0.0
    business_affiliations: list[Any] = Field(default_factory=list)
    stock_holdings: list[Any] = Field(default_factory=list)
    age_range: str = ""
    education: list[Any] = Field(default_factory=list)
    employment_history: list[Any] = Field(default_factory=list)
    social_profiles: list[Any] = Field(default_factory=list)
    interests: list[Any] = Field(default_factory=list)
    cost: float


class CapacityRating(DomainModel):
    rating: str
    capacity_range: str
    rating_factors: list[Any] = Field(default_factory=list)
    confidence_score: float = 0
    cost: float


class PhilanthropicHistory(DomainModel):
    donations: list[Any] = Field(default_factory=list)
    board_affiliations: list[Any] = Field(default_factory=list)
    political_contributions: float = 0.0
    political_parties: list[Any] = Field(default_factory=list)
    estimated_lifetime: float = 0.0
    cost: float


class RealEstateHoldings(DomainModel):
    properties: list[dict[str, Any]] = Field(default_factory=list)
    total_value: float = 0.0
    property_count: int = 0
    cost: float


class BusinessAffiliations(DomainModel):
    affiliations: list[Any] = Field(default_factory=list)
    cost: float


class ResearchMatch(DomainModel):
    found: bool
    individual_id: str = ""
    first_name: str = ""
    last_name: str = ""
    city: str = ""
    state: str = ""
    matches: list[dict[str, Any]] = Field(default_factory=list)
    cost: float


class UsageStats(DomainModel):
    calls_used: int = 0
    calls_limit: int = 0
    calls_remaining: int = 0
    reset_date: str = ""
    total_cost: float = 0.0


class CandidateRequest(DomainModel):
    email: str = Field(..., min_length=3)
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    phone: str = ""
    dob: date | None = None
    ssn_last_4: str = Field(default="", max_length=4)
    zipcode: str = ""


class Candidate(DomainModel):
    id: str
    portal_url: str = ""


class Invitation(DomainModel):
    id: str
    invitation_url: str = ""
    expires_at: str = ""


class CheckPackage(DomainModel):
    package_id: str
    name: str
    description: str
    components: list[str]
    price: float
    turnaround: str


class BackgroundCheck(DomainModel):
    check_id: str
    status: str
    overall_result: str = "pending"
    completion_percentage: int = 0
    estimated_completion: str = ""
    completed_at: str = ""
    component_results: dict[str, Any] = Field(default_factory=dict)
    report_url: str = ""
    candidate_portal_url: str = ""
    cost: float | None = None


class CheckCancellation(DomainModel):
    check_id: str
    status: str = "cancelled"
    refund_issued: bool = False
    refund_amount: float = 0.0


class AdverseAction(DomainModel):
    id: str
    notice_sent_at: str = ""
    dispute_period_ends: datetime


class FcraDisclosure(DomainModel):
    disclosure_text: str
    authorization_text: str
    summary_rights: str
    version: str
