"""Adaptador de verificación de antecedentes: Checkr (API v1).

- Basic auth con la API key como usuario y contraseña vacía.
- Los paquetes internos (volunteer/staff/board) se traducen a paquetes Checkr.
- Webhooks firmados con HMAC-SHA256 (hex) del cuerpo crudo.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

import httpx

from adapters.http_client import HttpTransport, dig
from core.config import AppSettings
from core.domain.base import Bag, parse_datetime, parse_request
from core.domain.common import ConnectionStatus
from core.domain.payments import WebhookEvent
from core.domain.research import (
    AdverseAction,
    BackgroundCheck,
    Candidate,
    CandidateRequest,
    CheckCancellation,
    CheckPackage,
    FcraDisclosure,
    Invitation,
)
from core.result import Failure, Ok, not_configured
from core.signatures import constant_time_equals, hmac_digest

API_URL = "https://api.checkr.com/v1"
DISPUTE_PERIOD = timedelta(days=7)

PACKAGES: tuple[CheckPackage, ...] = (
    CheckPackage(
        package_id="basic",
        name="Basic Package",
        description="Criminal records check (county, state, federal)",
        components=["criminal"],
        price=35.00,
        turnaround="1-3 days",
    ),
    CheckPackage(
        package_id="standard",
        name="Standard Package",
        description="Criminal records + Motor vehicle records",
        components=["criminal", "mvr"],
        price=50.00,
        turnaround="2-4 days",
    ),
    CheckPackage(
        package_id="premium",
        name="Premium Package",
        description="Criminal + MVR + Education + Employment verification",
        components=["criminal", "mvr", "education", "employment"],
        price=75.00,
        turnaround="3-5 days",
    ),
)
PACKAGE_PRICES = {package.package_id: package.price for package in PACKAGES}
PACKAGE_ALIASES = {"volunteer": "basic", "staff": "standard", "board": "premium"}

STATUS_MAP = {
    "pending": "pending",
    "consider": "in_progress",
    "complete": "completed",
    "suspended": "suspended",
    "canceled": "cancelled",
}
RESULT_MAP = {
    "engaged": "consider",
    "pre_adverse": "consider",
    "adverse": "suspended",
    "approved": "clear",
}
COMPONENTS = ("criminal", "mvr", "education", "employment")

DISCLOSURE_VERSION = "2025-01-01"
DISCLOSURE_TEXT = (
    "DISCLOSURE REGARDING BACKGROUND INVESTIGATION\n\n"
    "In connection with your application for employment or volunteering, we may obtain one or more "
    "reports regarding your driving and/or criminal history, and other background information about you "
    "from a consumer reporting agency for employment purposes. This includes, but is not limited to, "
    "verification of Social Security number; current and previous residences; employment history, "
    "including all personnel files; education; references; credit history and reports; criminal history, "
    "including records from any criminal justice agency in any or all federal, state, or county "
    "jurisdictions; birth records; motor vehicle records, including traffic citations and registration; "
    "and any other public records.\n\n"
    "The consumer reporting agency that will prepare the report may contact you to verify the information "
    "you provided on this form. You must provide additional information as requested by the consumer "
    "reporting agency and/or the organization to complete this process. Please be aware that the "
    "information you provide on this form will be transmitted to a consumer reporting agency."
)
AUTHORIZATION_TEXT = (
    "AUTHORIZATION FOR BACKGROUND CHECK\n\n"
    "I acknowledge receipt of the DISCLOSURE REGARDING BACKGROUND INVESTIGATION and A SUMMARY OF YOUR "
    "RIGHTS UNDER THE FAIR CREDIT REPORTING ACT and certify that I have read and understand both of those "
    "documents. I hereby authorize the obtaining of \"consumer reports\" and/or \"investigative consumer "
    "reports\" by the Company or organization at any time after receipt of this authorization and "
    "throughout my employment or volunteer service, if applicable. To this end, I hereby authorize, "
    "without reservation, any law enforcement agency, administrator, state or federal agency, institution, "
    "school or university (public or private), information service bureau, employer, or insurance company "
    "to furnish any and all background information requested by Checkr, Inc., another consumer reporting "
    "agency (\"CRA\"), or the Company itself. I agree that a facsimile (\"fax\"), electronic or photographic "
    "copy of this Authorization shall be as valid as the original."
)
SUMMARY_OF_RIGHTS = (
    "A SUMMARY OF YOUR RIGHTS UNDER THE FAIR CREDIT REPORTING ACT\n\n"
    "The federal Fair Credit Reporting Act (FCRA) promotes the accuracy, fairness, and privacy of "
    "information in the files of consumer reporting agencies. For more information, including information "
    "about additional rights, go to www.consumerfinance.gov/learnmore.\n\n"
    "- You must be told if information in your file has been used against you.\n"
    "- You have the right to know what is in your file.\n"
    "- You have the right to ask for a credit score.\n"
    "- You have the right to dispute incomplete or inaccurate information.\n"
    "- Consumer reporting agencies must correct or delete inaccurate, incomplete, or unverifiable information.\n"
    "- Consumer reporting agencies may not report outdated negative information.\n"
    "- Access to your file is limited.\n"
    "- You must give your consent for reports to be provided to employers.\n"
    "- You may limit \"prescreened\" offers of credit and insurance you get based on information in your "
    "credit report.\n"
    "- You may seek damages from violators.\n"
    "- Identity theft victims and active duty military personnel have additional rights."
)


def resolve_package(package: str) -> str:
    key = package.strip().lower()
    return PACKAGE_ALIASES.get(key, key)


def completion_percentage(status: str) -> int:
    if status == "complete":
        return 100
    if status == "pending":
        return 0
    return 50


class CheckrAdapter:
    provider_id = "checkr"

    def __init__(
        self,
        api_key: str | None = None,
        *,
        webhook_secret: str | None = None,
        api_url: str = API_URL,
        settings: AppSettings | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._api_key = api_key or ""
        self._webhook_secret = webhook_secret or ""
        self._http = HttpTransport(
            self.provider_id,
            base_url=api_url,
            settings=settings,
            auth=(self._api_key, ""),
            transport=transport,
            error_message=lambda body: dig(body, "error") if isinstance(dig(body, "error"), str) else None,
        )

    def _missing_credentials(self) -> Failure | None:
        if not self._api_key:
            return not_configured("Checkr", "api_key")
        return None

    def _call(self, method: str, path: str, *, json: Any = None) -> Ok[Any] | Failure:
        missing = self._missing_credentials()
        if missing is not None:
            return missing
        return self._http.request(method, path, json=json)

    def create_candidate(self, candidate: CandidateRequest | Bag) -> Ok[Candidate] | Failure:
        parsed = parse_request(CandidateRequest, candidate)
        if isinstance(parsed, Failure):
            return parsed
        req = parsed.value

        payload = {
            "email": req.email,
            "first_name": req.first_name,
            "last_name": req.last_name,
            "phone": req.phone,
            "dob": req.dob.isoformat() if req.dob else "",
            "ssn": req.ssn_last_4,
            "zipcode": req.zipcode,
        }
        result = self._call("POST", "/candidates", json=payload)
        if isinstance(result, Failure):
            return result
        body = result.value
        return Ok(Candidate(id=str(body.get("id", "")), portal_url=body.get("candidate_portal_url") or ""))

    def create_invitation(
        self, candidate_id: str, package: str, *, custom_message: str | None = None, return_url: str | None = None
    ) -> Ok[Invitation] | Failure:
        payload: dict[str, Any] = {"candidate_id": candidate_id, "package": resolve_package(package)}
        if custom_message:
            payload["custom_message"] = custom_message
        if return_url:
            payload["redirect_url"] = return_url

        result = self._call("POST", "/invitations", json=payload)
        if isinstance(result, Failure):
            return result
        body = result.value
        return Ok(
            Invitation(
                id=str(body.get("id", "")),
                invitation_url=body.get("invitation_url") or "",
                expires_at=body.get("expires_at") or "",
            )
        )

    def create_check(
        self, candidate_id: str, package: str, *, components: list[str] | None = None
    ) -> Ok[BackgroundCheck] | Failure:
        payload: dict[str, Any] = {"candidate_id": candidate_id, "package": resolve_package(package)}
        if components:
            payload["screenings"] = components

        result = self._call("POST", "/reports", json=payload)
        if isinstance(result, Failure):
            return result
        body = result.value
        return Ok(
            BackgroundCheck(
                check_id=str(body.get("id", "")),
                status=STATUS_MAP.get(body.get("status", ""), "pending"),
                estimated_completion=body.get("eta") or "",
                cost=self.calculate_cost(package),
            )
        )

    def get_check_status(self, check_id: str) -> Ok[BackgroundCheck] | Failure:
        result = self._call("GET", f"/reports/{check_id}")
        if isinstance(result, Failure):
            return result
        body = result.value
        status = body.get("status", "")
        return Ok(
            BackgroundCheck(
                check_id=str(body.get("id", check_id)),
                status=STATUS_MAP.get(status, "pending"),
                completion_percentage=completion_percentage(status),
                overall_result=RESULT_MAP.get(body.get("adjudication") or "", "pending"),
                component_results={name: dig(body, "screenings", name) or {} for name in COMPONENTS},
                completed_at=body.get("completed_at") or "",
                report_url=body.get("report_url") or "",
                candidate_portal_url=body.get("candidate_portal_url") or "",
            )
        )

    def get_report(self, check_id: str) -> Ok[dict[str, Any]] | Failure:
        result = self._call("GET", f"/reports/{check_id}")
        if isinstance(result, Failure):
            return result
        body = result.value
        criminal = dig(body, "screenings", "criminal") or {}
        mvr = dig(body, "screenings", "mvr") or {}
        return Ok(
            {
                "check_id": str(body.get("id", check_id)),
                "status": STATUS_MAP.get(body.get("status", ""), "pending"),
                "overall_result": RESULT_MAP.get(body.get("adjudication") or "", "pending"),
                "criminal_records": {
                    "records_found": bool(criminal.get("records")),
                    "records": criminal.get("records") or [],
                    "status": criminal.get("status") or "pending",
                },
                "motor_vehicle": {
                    "license_status": mvr.get("license_status") or "",
                    "violations": mvr.get("violations") or [],
                },
                "education_verification": dig(body, "screenings", "education") or {},
                "employment_verification": dig(body, "screenings", "employment") or {},
                "report_url": body.get("report_url") or "",
                "candidate_portal_url": body.get("candidate_portal_url") or "",
            }
        )

    def get_packages(self) -> list[CheckPackage]:
        return [package.model_copy() for package in PACKAGES]

    def cancel_check(self, check_id: str, reason: str = "") -> Ok[CheckCancellation] | Failure:
        result = self._call("PATCH", f"/reports/{check_id}", json={"status": "canceled", "reason": reason})
        if isinstance(result, Failure):
            return result
        # Checkr gestiona los reembolsos por su cuenta.
        return Ok(CheckCancellation(check_id=check_id))

    def validate_webhook(self, payload: bytes | str, signature: str | None) -> bool:
        if not self._webhook_secret or not signature:
            return False
        expected = hmac_digest(self._webhook_secret, payload, algorithm="sha256", encoding="hex")
        return constant_time_equals(expected, signature)

    def process_webhook(self, payload: Mapping[str, Any]) -> WebhookEvent:
        data = dict(payload.get("data") or {})
        check_id = dig(data, "object", "id") or ""
        data["check_id"] = check_id
        return WebhookEvent(
            id=str(payload["id"]) if payload.get("id") is not None else None,
            type=str(payload.get("type") or ""),
            created=parse_datetime(payload.get("created_at")),
            data=data,
        )

    def get_fcra_disclosure(self, check_type: str = "employment") -> FcraDisclosure:
        return FcraDisclosure(
            disclosure_text=DISCLOSURE_TEXT,
            authorization_text=AUTHORIZATION_TEXT,
            summary_rights=SUMMARY_OF_RIGHTS,
            version=DISCLOSURE_VERSION,
        )

    def initiate_adverse_action(self, check_id: str, *, pre_adverse: bool = True) -> Ok[AdverseAction] | Failure:
        payload = {
            "report_id": check_id,
            "pre_notice": pre_adverse,
            "post_notice": not pre_adverse,
            "individualized_assessment_engaged": False,
        }
        result = self._call("POST", "/adverse_actions", json=payload)
        if isinstance(result, Failure):
            return result
        body = result.value
        return Ok(
            AdverseAction(
                id=str(body.get("id", "")),
                notice_sent_at=body.get("created_at") or "",
                dispute_period_ends=datetime.now(timezone.utc) + DISPUTE_PERIOD,
            )
        )

    def calculate_cost(self, package: str) -> float:
        return PACKAGE_PRICES.get(resolve_package(package), PACKAGE_PRICES["basic"])

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        result = self._call("GET", "/candidates")
        if isinstance(result, Failure):
            return result
        return Ok(ConnectionStatus(provider=self.provider_id))
