from __future__ import annotations

import xml.etree.ElementTree as ET
from datetime import date, datetime, timezone
from decimal import Decimal

import httpx
import pytest

from adapters.crm.donorperfect import DonorPerfectAdapter, build_request_xml, parse_reply
from adapters.crm.hubspot import DEAL_TO_CONTACT, NOTE_TO_CONTACT, HubSpotAdapter
from adapters.crm.salesforce import SalesforceAdapter, soql_quote
from core.result import Failure, FailureKind, Ok


def _hubspot(settings, recorder) -> HubSpotAdapter:
    return HubSpotAdapter("pat-123", settings=settings, transport=recorder.transport)


def test_hubspot_create_contact_maps_properties(settings, recorder_factory) -> None:
    recorder = recorder_factory(lambda r: httpx.Response(201, json={"id": "501"}))

    result = _hubspot(settings, recorder).sync_contact(
        {"first_name": "Ada", "last_name": "Lovelace", "email": "ada@example.org", "zip": "02139", "custom_fields": {"donor_level": "gold"}}
    )

    assert result.value.id == "501"
    assert recorder.paths() == ["POST /crm/v3/objects/contacts"]
    assert recorder.last_json() == {
        "properties": {
            "firstname": "Ada",
            "lastname": "Lovelace",
            "email": "ada@example.org",
            "zip": "02139",
            "donor_level": "gold",
        }
    }


def test_hubspot_update_uses_patch(settings, recorder_factory) -> None:
    recorder = recorder_factory(lambda r: httpx.Response(200, json={"id": "501"}))
    _hubspot(settings, recorder).sync_contact({"id": "501", "phone": "555"})
    assert recorder.paths() == ["PATCH /crm/v3/objects/contacts/501"]


def test_hubspot_donation_associates_contact(settings, recorder_factory) -> None:
    recorder = recorder_factory(lambda r: httpx.Response(201, json={"id": "9001"}))

    result = _hubspot(settings, recorder).sync_donation(
        {"contact_id": "501", "amount": "250.00", "date": "2025-03-01", "description": "Spring gala"}
    )

    assert result.value.id == "9001"
    assert result.value.status == "closedwon"
    body = recorder.last_json()
    assert body["properties"]["closedate"] == "2025-03-01T00:00:00Z"
    assert body["properties"]["amount"] == "250.00"
    assert body["associations"][0]["types"][0]["associationTypeId"] == DEAL_TO_CONTACT


def test_hubspot_get_donation(settings, recorder_factory) -> None:
    recorder = recorder_factory(
        lambda r: httpx.Response(
            200,
            json={
                "id": "9001",
                "properties": {"amount": "250", "closedate": "2025-03-01T00:00:00Z", "dealstage": "closedwon"},
                "associations": {"contacts": {"results": [{"id": "501", "type": "deal_to_contact"}]}},
            },
        )
    )

    donation = _hubspot(settings, recorder).get_donation("9001").value

    assert donation.amount == Decimal("250")
    assert donation.contact_id == "501"
    assert donation.donation_date == date(2025, 3, 1)


def test_hubspot_note_association(settings, recorder_factory) -> None:
    recorder = recorder_factory(lambda r: httpx.Response(201, json={"id": "77"}))
    result = _hubspot(settings, recorder).add_note({"contact_id": "501", "body": "Called to thank", "subject": "Call"})
    assert result.value.id == "77"
    body = recorder.last_json()
    assert body["properties"]["hs_note_body"] == "<strong>Call</strong><br>Called to thank"
    assert body["associations"][0]["types"][0]["associationTypeId"] == NOTE_TO_CONTACT


def test_hubspot_changes_since_filters_by_millis(settings, recorder_factory) -> None:
    recorder = recorder_factory(
        lambda r: httpx.Response(
            200,
            json={"results": [{"id": "1", "updatedAt": "2025-01-02T00:00:00Z", "properties": {"email": "x@example.org"}}]},
        )
    )
    changes = _hubspot(settings, recorder).get_changes_since(datetime(2025, 1, 1, tzinfo=timezone.utc)).value

    assert changes[0].id == "1"
    assert changes[0].contact.email == "x@example.org"
    assert recorder.last_json()["filterGroups"][0]["filters"][0]["value"] == "1735689600000"


def test_hubspot_errors_and_missing_token(settings, recorder_factory) -> None:
    recorder = recorder_factory(
        lambda r: httpx.Response(409, json={"status": "error", "message": "Contact already exists", "category": "CONFLICT"})
    )
    result = _hubspot(settings, recorder).sync_contact({"email": "dup@example.org"})
    assert result.kind is FailureKind.API_ERROR
    assert result.code == "CONFLICT"
    assert HubSpotAdapter(settings=settings).get_contact("1").kind is FailureKind.NOT_CONFIGURED


def test_hubspot_batch_push(settings, recorder_factory) -> None:
    recorder = recorder_factory(lambda r: httpx.Response(201, json={"id": "1"}))
    batch = _hubspot(settings, recorder).batch_push([{"email": "a@example.org"}, {"email": "b@example.org"}])
    assert batch.succeeded == 2
    assert len(recorder.requests) == 2


def test_salesforce_requires_last_name(settings, recorder_factory) -> None:
    recorder = recorder_factory(lambda r: httpx.Response(500))
    adapter = SalesforceAdapter("cid", "secret", "rt", access_token="tok", instance_url="https://x.my.salesforce.com", settings=settings, transport=recorder.transport)
    result = adapter.sync_contact({"email": "a@example.org"})
    assert result.code == "missing_last_name"
    assert recorder.requests == []


def test_salesforce_search_builds_soql(settings, recorder_factory) -> None:
    recorder = recorder_factory(
        lambda r: httpx.Response(200, json={"records": [{"Id": "003A", "LastName": "O'Brien", "Email": "ob@example.org"}]})
    )
    adapter = SalesforceAdapter("cid", "secret", "rt", access_token="tok", instance_url="https://x.my.salesforce.com", settings=settings, transport=recorder.transport)

    contacts = adapter.search_contacts({"last_name": "O'Brien"}).value

    assert contacts[0].id == "003A"
    assert recorder.last.url.path == "/services/data/v58.0/query"
    soql = recorder.last.url.params["q"]
    assert "LastName = 'O\\'Brien'" in soql
    assert soql.endswith("LIMIT 50")


def test_soql_quote() -> None:
    assert soql_quote("a'b\\c") == "'a\\'b\\\\c'"


def test_donorperfect_request_xml() -> None:
    xml = build_request_xml("KEY", "dp_savegift", {"donor_id": "12", "amount": Decimal("25.00"), "gift_date": date(2025, 5, 1), "skip": None})
    root = ET.fromstring(xml)
    assert root.findtext("apikey") == "KEY"
    assert root.findtext("action") == "dp_savegift"
    fields = {node.get("id"): node.text for node in root.find("record")}
    assert fields == {"donor_id": "12", "amount": "25.00", "gift_date": "2025-05-01"}


def test_donorperfect_error_element_is_api_error() -> None:
    result = parse_reply("<result><error>Invalid API key</error></result>")
    assert isinstance(result, Failure)
    assert result.kind is FailureKind.API_ERROR
    assert result.status_code == 200
    assert parse_reply("<result><unclosed>").kind is FailureKind.PARSE_ERROR


def test_donorperfect_entity_expansion_is_rejected() -> None:
    bomb = (
        '<?xml version="1.0"?>'
        '<!DOCTYPE result [<!ENTITY lol "lol"><!ENTITY lol2 "&lol;&lol;&lol;&lol;">]>'
        "<result><record><donor_id>&lol2;</donor_id></record></result>"
    )

    result = parse_reply(bomb)

    assert isinstance(result, Failure)
    assert result.kind is FailureKind.PARSE_ERROR
    assert result.code == "unsafe_xml"


def test_donorperfect_save_and_get(settings, recorder_factory) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        action = ET.fromstring(request.content).findtext("action")
        if action == "dp_savedonor":
            return httpx.Response(200, text="<result><donor_id>4411</donor_id></result>")
        return httpx.Response(
            200,
            text=(
                "<result><record>"
                '<field id="donor_id" value="4411"/>'
                '<field id="first_name" value="Grace"/>'
                '<field id="last_name" value="Hopper"/>'
                '<field id="zip" value="10001"/>'
                "</record></result>"
            ),
        )

    recorder = recorder_factory(handler)
    adapter = DonorPerfectAdapter("KEY", settings=settings, transport=recorder.transport)

    saved = adapter.sync_contact({"first_name": "Grace", "last_name": "Hopper", "zip": "10001"})
    fetched = adapter.get_contact(saved.value.id)

    assert saved.value.id == "4411"
    assert fetched.value.first_name == "Grace"
    assert fetched.value.postal_code == "10001"
    assert recorder.last.headers["Content-Type"] == "text/xml"


def test_donorperfect_gift_requires_donor(settings) -> None:
    adapter = DonorPerfectAdapter("KEY", settings=settings)
    assert adapter.sync_donation({"amount": 10}).code == "missing_donor"


@pytest.mark.parametrize("operation", ["delete_contact", "add_note"])
def test_donorperfect_unsupported(settings, operation: str) -> None:
    adapter = DonorPerfectAdapter("KEY", settings=settings)
    arg = "1" if operation == "delete_contact" else {"contact_id": "1", "body": "x"}
    result = getattr(adapter, operation)(arg)
    assert result.kind is FailureKind.NOT_SUPPORTED


def test_donorperfect_get_missing_donor(settings, recorder_factory) -> None:
    recorder = recorder_factory(lambda r: httpx.Response(200, text="<result></result>"))
    adapter = DonorPerfectAdapter("KEY", settings=settings, transport=recorder.transport)
    assert adapter.get_contact("999").kind is FailureKind.NOT_FOUND
    assert isinstance(adapter.test_connection(), Ok)
