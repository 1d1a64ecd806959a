"""Adaptador de wealth screening: WealthEngine (API v1).

Por qué los costes viven aquí:
- WealthEngine cobra por consulta; cada resultado lleva su `cost` para que
  la app pueda imputar el gasto al donante investigado.
- Los tramos de ingresos/patrimonio se normalizan a etiquetas legibles.
"""

from __future__ import annotations

from typing import Any

import httpx

from adapters.http_client import HttpTransport, dig
from core.config import AppSettings
from core.domain.base import Bag, parse_request
from core.domain.common import ConnectionStatus
from core.domain.research import (
    BusinessAffiliations,
    CapacityRating,
    PhilanthropicHistory,
    RealEstateHoldings,
    ResearchMatch,
    Screening,
    ScreeningRequest,
    UsageStats,
    WealthProfile,
)
from core.result import Failure, Ok, not_configured

API_URL = "https://api.wealthengine.com/v1"

COSTS: dict[str, float] = {
    "screen": 2.50,
    "profile": 5.00,
    "capacity": 3.00,
    "philanthropy": 4.00,
    "real_estate": 3.50,
    "business": 3.00,
    "search_email": 1.00,
    "search_name": 1.50,
}

# (umbral mínimo, etiqueta), de mayor a menor.
CAPACITY_RATINGS: tuple[tuple[float, str], ...] = ((9, "A+"), (7, "A"), (5, "B"), (3, "C"))
CAPACITY_RANGES = {
    "A+": "$100K+",
    "A": "$50K-$100K",
    "B": "$10K-$50K",
    "C": "$1K-$10K",
    "D": "Under $1K",
}
INCOME_RANGES: tuple[tuple[float, str], ...] = (
    (1_000_000, "$1M+"),
    (500_000, "$500K-$1M"),
    (250_000, "$250K-$500K"),
    (100_000, "$100K-$250K"),
    (50_000, "$50K-$100K"),
)
NET_WORTH_RANGES: tuple[tuple[float, str], ...] = (
    (10_000_000, "$10M+"),
    (5_000_000, "$5M-$10M"),
    (1_000_000, "$1M-$5M"),
    (500_000, "$500K-$1M"),
    (100_000, "$100K-$500K"),
)


def _tier(value: Any, tiers: tuple[tuple[float, str], ...], default: str) -> str:
    amount = _number(value)
    for threshold, label in tiers:
        if amount >= threshold:
            return label
    return default


def _number(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def capacity_rating(score: Any) -> str:
    return _tier(score, CAPACITY_RATINGS, "D")


def income_range(income: Any) -> str:
    return _tier(income, INCOME_RANGES, "Under $50K")


def net_worth_range(net_worth: Any) -> str:
    return _tier(net_worth, NET_WORTH_RANGES, "Under $100K")


class WealthEngineAdapter:
    provider_id = "wealthengine"

    def __init__(
        self,
        api_key: str | None = None,
        *,
        api_url: str = API_URL,
        settings: AppSettings | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._api_key = api_key or ""
        self._http = HttpTransport(
            self.provider_id,
            base_url=api_url,
            settings=settings,
            headers={"Authorization": f"Bearer {self._api_key}"},
            transport=transport,
            error_message=lambda body: dig(body, "error") if isinstance(dig(body, "error"), str) else None,
        )

    def _call(self, method: str, path: str, *, json: Any = None) -> Ok[dict[str, Any]] | Failure:
        if not self._api_key:
            return not_configured("WealthEngine", "api_key")
        result = self._http.request(method, path, json=json)
        if isinstance(result, Failure):
            return result
        # 2xx sin cuerpo -> sin datos.
        return Ok(result.value if isinstance(result.value, dict) else {})

    def _lookup(self, path: str, request: ScreeningRequest | Bag) -> Ok[dict[str, Any]] | Failure:
        parsed = parse_request(ScreeningRequest, request)
        if isinstance(parsed, Failure):
            return parsed
        return self._call("POST", path, json=parsed.value.vendor_body())

    def screen_individual(self, request: ScreeningRequest | Bag) -> Ok[Screening] | Failure:
        result = self._lookup("/profile/basic", request)
        if isinstance(result, Failure):
            return result
        data = result.value
        return Ok(
            Screening(
                individual_id=str(data.get("individual_id") or ""),
                giving_capacity=capacity_rating(data.get("wealth_capacity_rating")),
                income_range=income_range(data.get("estimated_income")),
                net_worth_range=net_worth_range(data.get("estimated_net_worth")),
                confidence_score=_number(data.get("confidence_code")),
                cost=COSTS["screen"],
            )
        )

    def get_profile(self, request: ScreeningRequest | Bag) -> Ok[WealthProfile] | Failure:
        result = self._lookup("/profile/full", request)
        if isinstance(result, Failure):
            return result
        data = result.value
        return Ok(
            WealthProfile(
                individual_id=str(data.get("individual_id") or ""),
                income_range=income_range(data.get("estimated_income")),
                net_worth_range=net_worth_range(data.get("estimated_net_worth")),
                real_estate_value=_number(data.get("real_estate_value")),
                business_affiliations=data.get("business_affiliations") or [],
                stock_holdings=data.get("stock_holdings") or [],
                age_range=data.get("age_range") or "",
                education=data.get("education") or [],
                employment_history=data.get("employment_history") or [],
                social_profiles=data.get("social_profiles") or [],
                interests=data.get("interests") or [],
                cost=COSTS["profile"],
            )
        )

    def get_capacity_rating(self, request: ScreeningRequest | Bag) -> Ok[CapacityRating] | Failure:
        result = self._lookup("/wealth/capacity", request)
        if isinstance(result, Failure):
            return result
        data = result.value
        rating = capacity_rating(data.get("wealth_capacity_rating"))
        return Ok(
            CapacityRating(
                rating=rating,
                capacity_range=CAPACITY_RANGES.get(rating, "Unknown"),
                rating_factors=data.get("rating_factors") or [],
                confidence_score=_number(data.get("confidence_code")),
                cost=COSTS["capacity"],
            )
        )

    def get_philanthropic_history(self, request: ScreeningRequest | Bag) -> Ok[PhilanthropicHistory] | Failure:
        result = self._lookup("/philanthropy/history", request)
        if isinstance(result, Failure):
            return result
        data = result.value
        return Ok(
            PhilanthropicHistory(
                donations=data.get("donations") or [],
                board_affiliations=data.get("board_memberships") or [],
                political_contributions=_number(data.get("political_donations_total")),
                political_parties=data.get("political_affiliations") or [],
                estimated_lifetime=_number(data.get("estimated_lifetime_giving")),
                cost=COSTS["philanthropy"],
            )
        )

    def get_real_estate_holdings(self, request: ScreeningRequest | Bag) -> Ok[RealEstateHoldings] | Failure:
        result = self._lookup("/wealth/real-estate", request)
        if isinstance(result, Failure):
            return result
        properties = [item for item in result.value.get("properties") or [] if isinstance(item, dict)]
        return Ok(
            RealEstateHoldings(
                properties=properties,
                total_value=sum(_number(item.get("assessed_value")) for item in properties),
                property_count=len(properties),
                cost=COSTS["real_estate"],
            )
        )

    def get_business_affiliations(self, request: ScreeningRequest | Bag) -> Ok[BusinessAffiliations] | Failure:
        result = self._lookup("/business/affiliations", request)
        if isinstance(result, Failure):
            return result
        return Ok(BusinessAffiliations(affiliations=result.value.get("affiliations") or [], cost=COSTS["business"]))

    def search_by_email(self, email: str) -> Ok[ResearchMatch] | Failure:
        result = self._call("POST", "/search/email", json={"email": email})
        if isinstance(result, Failure):
            return result
        data = result.value
        return Ok(
            ResearchMatch(
                found=bool(data),
                individual_id=str(data.get("individual_id") or ""),
                first_name=data.get("first_name") or "",
                last_name=data.get("last_name") or "",
                city=data.get("city") or "",
                state=data.get("state") or "",
                cost=COSTS["search_email"],
            )
        )

    def search_by_name(
        self, first_name: str, last_name: str, *, city: str = "", state: str = "", zip: str = ""
    ) -> Ok[ResearchMatch] | Failure:
        payload: dict[str, Any] = {"first_name": first_name, "last_name": last_name}
        if city or state or zip:
            payload["location"] = {"city": city, "state": state, "zip": zip}

        result = self._call("POST", "/search/name", json=payload)
        if isinstance(result, Failure):
            return result
        matches = [item for item in result.value.get("matches") or [] if isinstance(item, dict)]
        return Ok(
            ResearchMatch(
                found=bool(matches),
                first_name=first_name,
                last_name=last_name,
                city=city,
                state=state,
                matches=matches,
                cost=COSTS["search_name"],
            )
        )

    def get_usage_stats(self) -> Ok[UsageStats] | Failure:
        result = self._call("GET", "/account/usage")
        if isinstance(result, Failure):
            return result
        data = result.value
        return Ok(
            UsageStats(
                calls_used=int(_number(data.get("calls_used"))),
                calls_limit=int(_number(data.get("calls_limit"))),
                calls_remaining=int(_number(data.get("calls_remaining"))),
                reset_date=data.get("reset_date") or "",
                total_cost=_number(data.get("total_cost")),
            )
        )

    def calculate_cost(self, operation: str) -> float:
        return COSTS.get(operation, 0.0)

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        usage = self.get_usage_stats()
        if isinstance(usage, Failure):
            return usage
        return Ok(ConnectionStatus(provider=self.provider_id, details=usage.value.model_dump()))
