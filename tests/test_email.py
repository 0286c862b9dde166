import json

import httpx

from splarve.config.settings import Settings
from splarve.modules.notifications.email import EmailService


def _service(handler, api_key="SG.test-key"):
    settings = Settings(
        sendgrid_api_key=api_key,
        sendgrid_from_email="noreply@splarve.test",
        site_url="https://splarve.test/",
    )
    return EmailService(settings=settings, client=httpx.Client(transport=httpx.MockTransport(handler)))


def test_invitation_email_posts_sendgrid_payload():
    captured = []

    def handler(request):
        captured.append(request)
        return httpx.Response(202)

    sent = _service(handler).send_invitation_email(
        recipient_email="new.hire@example.com",
        inviter_name="Olive Owner",
        company_name="Acme",
        company_handle="acme",
        role="HR",
        message="Join us",
        invitation_id="invitation-9",
    )

    assert sent is True
    request = captured[0]
    assert request.headers["Authorization"] == "Bearer SG.test-key"
    payload = json.loads(request.content)
    assert payload["personalizations"][0]["to"] == [{"email": "new.hire@example.com"}]
    assert payload["from"] == {"email": "noreply@splarve.test"}
    assert payload["subject"] == "You've been invited to join Acme on Splarve"
    text = payload["content"][0]["value"]
    assert "https://splarve.test/auth/accept_invite?invitation=invitation-9" in text
    assert "Join us" in text


def test_welcome_email_subject():
    captured = []

    def handler(request):
        captured.append(json.loads(request.content))
        return httpx.Response(202)

    assert _service(handler).send_welcome_email("Pat", "pat@example.com", "personal") is True
    assert captured[0]["subject"] == "Welcome to Splarve, Pat!"


def test_delivery_failure_returns_false():
    def handler(request):
        return httpx.Response(500, json={"errors": [{"message": "boom"}]})

    assert _service(handler).send_welcome_email("Pat", "pat@example.com", "company") is False


def test_unconfigured_service_skips_sending():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(202)

    service = _service(handler, api_key=None)

    assert service.is_configured() is False
    assert service.send_welcome_email("Pat", "pat@example.com", "personal") is False
    assert calls == []


def test_invitation_html_escapes_user_supplied_text():
    captured = []

    def handler(request):
        captured.append(json.loads(request.content))
        return httpx.Response(202)

    sent = _service(handler).send_invitation_email(
        recipient_email="new.hire@example.com",
        inviter_name="<b>Mallory</b>",
        company_name="Acme & Sons",
        company_handle="acme",
        role="HR",
        message='<script>alert(1)</script><a href="https://evil.test">Claim bonus</a>',
        invitation_id="invitation-9",
    )

    assert sent is True
    html_body = captured[0]["content"][1]["value"]
    assert "<script>" not in html_body
    assert 'href="https://evil.test"' not in html_body
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html_body
    assert "&lt;b&gt;Mallory&lt;/b&gt;" in html_body
    assert "Acme &amp; Sons" in html_body
    assert 'href="https://splarve.test/auth/accept_invite?invitation=invitation-9"' in html_body
    assert "<script>alert(1)</script>" in captured[0]["content"][0]["value"]


def test_welcome_html_escapes_the_name():
    captured = []

    def handler(request):
        captured.append(json.loads(request.content))
        return httpx.Response(202)

    _service(handler).send_welcome_email("<img src=x>", "pat@example.com", "personal")

    assert "&lt;img src=x&gt;" in captured[0]["content"][1]["value"]
