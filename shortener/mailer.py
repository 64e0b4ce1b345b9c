"""Outbound email delivery for account verification and password resets.

Delivery is best effort: a failed send is logged and never fails the account
operation that triggered it.

Classes:
    EmailSender:  Interface used by the account directory.
    HttpEmailSender:  Posts to a transactional email HTTP API with httpx.
    LoggingEmailSender:  Writes the message to the log, for development.
"""

import logging

import httpx

__all__ = ["EmailSender", "HttpEmailSender", "LoggingEmailSender"]

logger = logging.getLogger("shortener.mailer")


class EmailSender:
    async def send(self, to: str, subject: str, text: str) -> bool:
        raise NotImplementedError


class LoggingEmailSender(EmailSender):
    def __init__(self) -> None:
        self.outbox: list[tuple[str, str, str]] = []

    async def send(self, to: str, subject: str, text: str) -> bool:
        self.outbox.append((to, subject, text))
        logger.info(f"Email to {to} [{subject}]: {text}")
        return True


class HttpEmailSender(EmailSender):
    """Sends ``{from, to, subject, text}`` as JSON with a bearer API key."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        sender: str,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_url = api_url
        self._api_key = api_key
        self._sender = sender
        self._timeout = timeout
        self._transport = transport

    async def send(self, to: str, subject: str, text: str) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(
                    self._api_url,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                    json={"from": self._sender, "to": to, "subject": subject, "text": text},
                )
        except httpx.HTTPError as exc:
            logger.error(f"Failed to send email to {to}: {exc}")
            return False

        if response.is_error:
            logger.error(f"Failed to send email to {to}: {response.status_code} {response.text}")
            return False
        logger.info(f"Email sent to {to}")
        return True
