"""Upload notification emails, sent through the Resend HTTP API.

Runs as a FastAPI background task after the upload response has been sent.
Delivery problems are logged and never raised: a failed email must not turn a
successful upload into an error.
"""

import html
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional
from zoneinfo import ZoneInfo

import httpx

from ..core.config import Settings
from ..schemas.folder import FolderHierarchy

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
DISPLAY_TIMEZONE = ZoneInfo("Australia/Sydney")


@dataclass(frozen=True)
class UploadNotification:
    """Everything the email needs, captured while the request is still open."""
    recipients: List[str]
    document_id: str
    document_name: str
    revision_number: str
    uploader_name: str
    uploaded_at: datetime
    has_ess_design: bool
    has_third_party_design: bool
    hierarchy: FolderHierarchy = field(default_factory=FolderHierarchy)
    description: Optional[str] = None


class UploadNotifier:
    """Sends one email per recipient.

    Disabled (logs and returns) when no API key is configured.
    """

    def __init__(
        self,
        api_key: str,
        from_email: str,
        from_name: str,
        app_base_url: str,
        client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
    ):
        self.api_key = api_key
        self.sender = f"{from_name} <{from_email}>"
        self.app_base_url = app_base_url.rstrip("/")
        self._client = client or httpx.Client(timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings) -> "UploadNotifier":
        return cls(
            api_key=settings.resend_api_key,
            from_email=settings.notification_from_email,
            from_name=settings.notification_from_name,
            app_base_url=settings.app_base_url,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def send_upload_notification(self, notification: UploadNotification) -> int:
        """Send the notification. Returns the number of emails accepted by Resend."""
        if not notification.recipients:
            logger.warning("No recipients provided for upload notification")
            return 0
        if not self.is_configured:
            logger.warning("Email is not configured (RESEND_API_KEY empty), skipping notification")
            return 0

        subject = f"New Document Upload: {notification.document_name} - Rev {notification.revision_number}"
        body = self.render_html(notification)

        sent = 0
        for recipient in notification.recipients:
            try:
                resp = self._client.post(
                    RESEND_API_URL,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={
                        "from": self.sender,
                        "to": [recipient],
                        "subject": subject,
                        "html": body,
                    },
                )
                resp.raise_for_status()
            except httpx.HTTPError as e:
                logger.error(
                    "Failed to send upload notification",
                    extra={"document_id": notification.document_id, "error": str(e)},
                )
                continue
            sent += 1

        logger.info(
            "Sent upload notifications",
            extra={"document_id": notification.document_id, "sent": sent,
                   "recipients": len(notification.recipients)},
        )
        return sent

    def download_link(self, document_id: str, variant: str) -> str:
        return f"{self.app_base_url}/api/folders/documents/{document_id}/download/{variant}?redirect=true"

    def render_html(self, n: UploadNotification) -> str:
        esc = html.escape
        local_time = n.uploaded_at.astimezone(DISPLAY_TIMEZONE)
        rows = [
            ("Document", n.document_name),
            ("Revision", f"Rev {n.revision_number}"),
            ("Uploaded By", n.uploader_name),
            ("Upload Date", local_time.strftime("%B %d, %Y at %I:%M %p %Z")),
            ("Client", n.hierarchy.client),
            ("Project", n.hierarchy.project),
            ("Scaffold", n.hierarchy.scaffold),
        ]
        info = "".join(
            f"<tr><td style='font-weight:600;padding:4px 12px 4px 0'>{label}:</td>"
            f"<td>{esc(value)}</td></tr>"
            for label, value in rows if value
        )

        parts = [
            "<!DOCTYPE html><html><head><meta charset='utf-8'></head>",
            "<body style='font-family:Arial,sans-serif;color:#333'>",
            "<h1>New Document Uploaded</h1>",
            "<p>A new design document has been uploaded to the ESS Design System.</p>",
            f"<table>{info}</table>",
        ]
        if n.description and n.description.strip():
            parts.append(
                "<h3>Change Description</h3>"
                f"<p style='white-space:pre-wrap'>{esc(n.description)}</p>"
            )
        parts.append("<p><strong>View Documents:</strong></p><p>")
        if n.has_ess_design:
            parts.append(f"<a href='{esc(self.download_link(n.document_id, 'ess'))}'>View ESS Design</a> ")
        if n.has_third_party_design:
            parts.append(
                f"<a href='{esc(self.download_link(n.document_id, 'thirdparty'))}'>View Third-Party Design</a>"
            )
        parts.append("</p>")
        parts.append(
            "<p style='font-size:12px;color:#6b7280'>"
            "This is an automated notification from the ESS Design System.</p>"
            "</body></html>"
        )
        return "".join(parts)

    def close(self) -> None:
        self._client.close()
