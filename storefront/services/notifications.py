"""Delivery channels for one-time codes (Mailgun/SendGrid email, Twilio or HTTP-gateway SMS).

Every channel exposes send(identifier, message) -> bool and never raises: a
False return is the caller's signal to surface a delivery failure.
"""
from __future__ import annotations

import html
import logging
from typing import Protocol

import httpx

from storefront.config import Settings, get_settings

logger = logging.getLogger(__name__)

MAILGUN_US_BASE = "https://api.mailgun.net"
MAILGUN_EU_BASE = "https://api.eu.mailgun.net"
SMS_GATEWAY_ACCEPTED = 202


class DeliveryChannel(Protocol):
    def send(self, identifier: str, message: str) -> bool:
        ...


def verification_message(name: str | None, code: str, ttl_minutes: int, app_name: str) -> str:
    who = (name or "").strip() or "there"
    return f"Hi {who}, your {app_name} verification code is {code}. It expires in {ttl_minutes} minutes."


class EmailChannel:
    """Mailgun when configured, otherwise SendGrid."""

    def __init__(self, settings: Settings | None = None, subject: str | None = None):
        self.settings = settings or get_settings()
        self.subject = subject or f"[{self.settings.app_name}] Your verification code"

    @property
    def configured(self) -> bool:
        s = self.settings
        return bool((s.mailgun_api_key and s.mailgun_domain) or s.sendgrid_api_key)

    def send(self, identifier: str, message: str) -> bool:
        html_content = f"<p>{html.escape(message)}</p>"
        s = self.settings
        if s.mailgun_api_key and s.mailgun_domain:
            return self._send_mailgun(identifier, html_content, message)
        if s.sendgrid_api_key:
            return self._send_sendgrid(identifier, html_content, message)
        logger.warning(
            "[Email] NOT SENT: to=%s. MAILGUN_API_KEY=%s MAILGUN_DOMAIN=%s SENDGRID_API_KEY=%s",
            identifier,
            "set" if s.mailgun_api_key else "MISSING",
            "set" if s.mailgun_domain else "MISSING",
            "set" if s.sendgrid_api_key else "MISSING",
        )
        return False

    def _send_mailgun(self, to_email: str, html_content: str, text_content: str) -> bool:
        s = self.settings
        base = (s.mailgun_base_url or MAILGUN_US_BASE).strip().rstrip("/")
        domain = s.mailgun_domain.lower()
        from_addr = s.mailgun_from_email
        from_domain = from_addr.split("@")[-1].lower() if "@" in from_addr else ""
        if domain and from_domain != domain:
            from_addr = f"noreply@{domain}"
        data = {
            "from": f"{s.mailgun_from_name} <{from_addr}>",
            "to": to_email,
            "subject": self.subject,
            "text": text_content,
            "html": html_content,
        }
        try:
            with httpx.Client(timeout=10.0) as client:
                r = client.post(f"{base}/v3/{domain}/messages", auth=("api", s.mailgun_api_key), data=data)
                if 200 <= r.status_code < 300:
                    logger.info("[Mailgun] API success: to=%s status=%s", to_email, r.status_code)
                    return True
                if r.status_code == 401 and base == MAILGUN_US_BASE:
                    logger.info("[Mailgun] 401 with US endpoint. Retrying with EU endpoint...")
                    r = client.post(
                        f"{MAILGUN_EU_BASE}/v3/{domain}/messages", auth=("api", s.mailgun_api_key), data=data
                    )
                    if 200 <= r.status_code < 300:
                        logger.info("[Mailgun] API success (EU): to=%s", to_email)
                        return True
                logger.warning("[Mailgun] API failed: status=%s to=%s body=%s", r.status_code, to_email, r.text[:500])
                return False
        except httpx.HTTPError as e:
            logger.warning("[Mailgun] Exception: to=%s error=%s: %s", to_email, type(e).__name__, e)
            return False

    def _send_sendgrid(self, to_email: str, html_content: str, text_content: str) -> bool:
        s = self.settings
        try:
            from sendgrid import SendGridAPIClient
            from sendgrid.helpers.mail import Mail

            message = Mail(
                from_email=(s.sendgrid_from_email, s.sendgrid_from_name),
                to_emails=to_email,
                subject=self.subject,
                html_content=html_content,
                plain_text_content=text_content,
            )
            SendGridAPIClient(s.sendgrid_api_key).send(message)
            return True
        except Exception as e:
            logger.warning("[SendGrid] Exception: to=%s error=%s: %s", to_email, type(e).__name__, e)
            return False


class SmsChannel:
    """Twilio when configured, otherwise a JSON HTTP SMS gateway."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    @property
    def configured(self) -> bool:
        s = self.settings
        return bool((s.twilio_account_sid and s.twilio_auth_token) or s.sms_gateway_url)

    def send(self, identifier: str, message: str) -> bool:
        s = self.settings
        if s.twilio_account_sid and s.twilio_auth_token:
            return self._send_twilio(identifier, message)
        if s.sms_gateway_url:
            return self._send_gateway(identifier, message)
        logger.warning("[SMS] NOT SENT: to=%s. Neither Twilio nor SMS_GATEWAY_URL is configured.", identifier)
        return False

    def _send_twilio(self, to_phone: str, body: str) -> bool:
        s = self.settings
        try:
            from twilio.rest import Client

            client = Client(s.twilio_account_sid, s.twilio_auth_token)
            client.messages.create(body=body, from_=s.twilio_from_phone_number, to=to_phone)
            return True
        except Exception as e:
            logger.warning("[Twilio] Exception: to=%s error=%s: %s", to_phone, type(e).__name__, e)
            return False

    def _send_gateway(self, to_phone: str, body: str) -> bool:
        s = self.settings
        payload = {
            "api_key": s.sms_gateway_api_key,
            "type": s.sms_gateway_type,
            "number": to_phone,
            "senderid": s.sms_gateway_sender_id,
            "message": body,
        }
        try:
            with httpx.Client(timeout=10.0) as client:
                r = client.post(s.sms_gateway_url, json=payload)
            result = r.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("[SMS] Gateway exception: to=%s error=%s: %s", to_phone, type(e).__name__, e)
            return False
        if not isinstance(result, dict):
            logger.warning("[SMS] Gateway returned unexpected body: to=%s status=%s", to_phone, r.status_code)
            return False
        if result.get("response_code") == SMS_GATEWAY_ACCEPTED:
            return True
        logger.warning(
            "[SMS] Gateway rejected: to=%s response_code=%s error=%s",
            to_phone,
            result.get("response_code"),
            result.get("error_message"),
        )
        return False
