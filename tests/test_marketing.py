from __future__ import annotations

import hashlib

import httpx

from adapters.marketing.mailchimp import MailchimpAdapter, datacenter_from_key, subscriber_hash
from core.result import FailureKind, Ok


def _mailchimp(settings, recorder) -> MailchimpAdapter:
    return MailchimpAdapter("abc123-us21", from_email="news@example.org", settings=settings, transport=recorder.transport)


def test_datacenter_and_subscriber_hash() -> None:
    assert datacenter_from_key("abc123-us21") == "us21"
    assert datacenter_from_key("nodatacenter") is None
    assert subscriber_hash(" Ada@Example.org ") == hashlib.md5(b"ada@example.org").hexdigest()


def test_key_without_datacenter_is_not_configured(settings) -> None:
    result = MailchimpAdapter("nodc", settings=settings).test_connection()
    assert result.kind is FailureKind.NOT_CONFIGURED


def test_create_audience_uses_datacenter_host(settings, recorder_factory) -> None:
    recorder = recorder_factory(
        lambda r: httpx.Response(200, json={"id": "list1", "name": "Donors", "stats": {"member_count": 0}})
    )
    result = _mailchimp(settings, recorder).create_audience({"segment_name": "Donors", "city": "Boston"})

    assert result.value.id == "list1"
    assert recorder.last.url.host == "us21.api.mailchimp.com"
    assert recorder.last.url.path == "/3.0/lists"
    body = recorder.last_json()
    assert body["contact"]["company"] == "Helping Hands"
    assert body["campaign_defaults"]["from_email"] == "news@example.org"


def test_add_contacts_batch_counts(settings, recorder_factory) -> None:
    recorder = recorder_factory(
        lambda r: httpx.Response(200, json={"new_members": [{}], "updated_members": [{}, {}], "error_count": 1})
    )
    result = _mailchimp(settings, recorder).add_contacts_to_audience(
        "list1", [{"email": "a@example.org", "first_name": "A"}, {"email": "b@example.org"}]
    )

    assert result.value.model_dump() == {"created": 1, "updated": 2, "errors": 1}
    body = recorder.last_json()
    assert body["update_existing"] is True
    assert body["members"][0]["merge_fields"] == {"FNAME": "A", "LNAME": ""}


def test_remove_contact_addresses_member_hash(settings, recorder_factory) -> None:
    recorder = recorder_factory(lambda r: httpx.Response(204))
    assert _mailchimp(settings, recorder).remove_contact_from_audience("list1", "A@example.org") == Ok(True)
    assert recorder.last.url.path == f"/3.0/lists/list1/members/{subscriber_hash('a@example.org')}"


def test_create_campaign_sets_content(settings, recorder_factory) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return httpx.Response(200, json={"id": "c1", "status": "save", "settings": {"title": "Spring"}})
        return httpx.Response(200, json={"html": "<p>Hi</p>"})

    recorder = recorder_factory(handler)
    result = _mailchimp(settings, recorder).create_campaign(
        {"platform_list_id": "list1", "subject": "Spring appeal", "campaign_name": "Spring", "content": "<p>Hi</p>"}
    )

    assert result.value.id == "c1"
    assert recorder.paths() == ["POST /3.0/campaigns", "PUT /3.0/campaigns/c1/content"]


def test_campaign_stats(settings, recorder_factory) -> None:
    recorder = recorder_factory(
        lambda r: httpx.Response(
            200,
            json={
                "emails_sent": 100,
                "opens": {"opens_total": 40, "unique_opens": 30, "open_rate": 0.3},
                "clicks": {"clicks_total": 10, "unique_clicks": 8, "click_rate": 0.08},
                "bounces": {"hard_bounces": 2, "soft_bounces": 1},
                "unsubscribed": 1,
            },
        )
    )
    stats = _mailchimp(settings, recorder).get_campaign_stats("c1").value
    assert stats.unique_opens == 30
    assert stats.bounces == 3
    assert stats.click_rate == 0.08


def test_send_transactional_not_supported(settings) -> None:
    result = MailchimpAdapter("abc-us1", settings=settings).send_transactional({"to": "a@example.org", "subject": "s", "message": "b"})
    assert result.kind is FailureKind.NOT_SUPPORTED


def test_error_detail_is_message(settings, recorder_factory) -> None:
    recorder = recorder_factory(
        lambda r: httpx.Response(400, json={"title": "Member Exists", "status": 400, "detail": "a@example.org is already a list member."})
    )
    result = _mailchimp(settings, recorder).send_campaign("c1")
    assert result.message == "a@example.org is already a list member."
    assert result.code == "Member Exists"
