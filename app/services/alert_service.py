"""Alert service for job failures and missed executions (Slack webhook + Resend email).

Delivery problems are logged and reported as False; they never fail the job
that raised the alert.
"""

import asyncio
import html
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

import httpx

from app.config import settings

logger = logging.getLogger(__name__)

SEVERITY_STYLE = {
    "info": (":information_source:", "#0099ff"),
    "warning": (":warning:", "#ff9900"),
    "critical": (":rotating_light:", "#dc3545"),
}


@dataclass
class AlertPayload:
    subject: str
    message: str
    severity: str = "critical"
    job_name: Optional[str] = None
    fields: Dict[str, str] = field(default_factory=dict)


def _should_skip_alerts() -> bool:
    """No outbound alerts from the test environment."""
    return settings.ENVIRONMENT == "test"


def build_slack_blocks(payload: AlertPayload) -> dict:
    emoji, color = SEVERITY_STYLE.get(payload.severity, SEVERITY_STYLE["info"])
    blocks: List[dict] = [
        {"type": "header", "text": {"type": "plain_text", "text": f"{emoji} {payload.subject}"}},
        {"type": "section", "text": {"type": "mrkdwn", "text": payload.message}},
    ]
    if payload.fields:
        blocks.append({
            "type": "section",
            "fields": [
                {"type": "mrkdwn", "text": f"*{label}:*\n{value}"}
                for label, value in payload.fields.items()
            ],
        })
    return {"attachments": [{"color": color, "blocks": blocks}]}


def build_email_html(payload: AlertPayload) -> str:
    rows = "".join(
        f"<tr><td style=\"padding: 4px 12px 4px 0; color: #666;\">{html.escape(label)}</td>"
        f"<td style=\"padding: 4px 0;\">{html.escape(value)}</td></tr>"
        for label, value in payload.fields.items()
    )
    return f"""
<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{html.escape(payload.subject)}</title></head>
<body style="font-family: sans-serif; line-height: 1.6; color: #333; max-width: 560px; margin: 0 auto; padding: 20px;">
  <h2 style="color: #dc3545;">{html.escape(payload.subject)}</h2>
  <p>{html.escape(payload.message)}</p>
  <table>{rows}</table>
  <p style="margin-top: 24px;"><a href="{settings.DASHBOARD_URL}">Open dashboard</a></p>
</body>
</html>
"""


class AlertService:
    """Fans an alert out to every configured channel."""

    def __init__(
        self,
        slack_webhook_url: Optional[str] = None,
        email_recipients: Optional[List[str]] = None,
        http_client_factory: Callable[..., httpx.AsyncClient] = httpx.AsyncClient,
    ):
        self.slack_webhook_url = settings.SLACK_WEBHOOK_URL if slack_webhook_url is None else slack_webhook_url
        self.email_recipients = settings.alert_recipients if email_recipients is None else email_recipients
        self.http_client_factory = http_client_factory

    async def send_slack(self, payload: AlertPayload) -> bool:
        if not self.slack_webhook_url:
            logger.info("Slack alert skipped (SLACK_WEBHOOK_URL not set): %s", payload.subject)
            return False
        try:
            async with self.http_client_factory(timeout=10.0) as client:
                response = await client.post(self.slack_webhook_url, json=build_slack_blocks(payload))
                response.raise_for_status()
            logger.info("Slack alert sent: %s", payload.subject)
            return True
        except httpx.HTTPError as e:
            logger.exception("Failed to send Slack alert %s: %s", payload.subject, e)
            return False

    def send_email(self, payload: AlertPayload) -> bool:
        if not settings.RESEND_API_KEY or not self.email_recipients:
            logger.info("Email alert skipped (RESEND_API_KEY or ALERT_EMAIL_TO not set): %s", payload.subject)
            return False
        try:
            import resend

            resend.api_key = settings.RESEND_API_KEY
            resend.Emails.send(
                {
                    "from": settings.EMAIL_FROM,
                    "to": self.email_recipients,
                    "subject": payload.subject,
                    "html": build_email_html(payload),
                }
            )
            logger.info("Email alert sent to %s", ", ".join(self.email_recipients))
            return True
        except Exception as e:
            logger.exception("Failed to send email alert %s: %s", payload.subject, e)
            return False

    async def send(self, payload: AlertPayload) -> Dict[str, bool]:
        """Deliver to Slack and email; returns per-channel delivery flags."""
        if _should_skip_alerts():
            logger.info("Alert skipped (test env): %s", payload.subject)
            return {"slack": False, "email": False}

        logger.error(payload.message, extra={"alert_subject": payload.subject})
        slack_sent = await self.send_slack(payload)
        email_sent = await asyncio.to_thread(self.send_email, payload)
        return {"slack": slack_sent, "email": email_sent}

    async def job_failed(
        self,
        job_name: str,
        job_id,
        error_message: str,
        failed_agencies: int = 0,
        total_agencies: int = 0,
    ) -> Dict[str, bool]:
        return await self.send(
            AlertPayload(
                subject=f"ALERT: {job_name} failed",
                message=f"The scheduled job \"{job_name}\" failed: {error_message}",
                severity="critical",
                job_name=job_name,
                fields={
                    "Job ID": str(job_id),
                    "Failed agencies": f"{failed_agencies}/{total_agencies}",
                    "Environment": settings.ENVIRONMENT,
                },
            )
        )

    async def job_missed(self, job_name: str, last_run, hours_since_last_run: Optional[float]) -> Dict[str, bool]:
        hours = "never" if hours_since_last_run is None else f"{hours_since_last_run:.1f}"
        return await self.send(
            AlertPayload(
                subject=f"ALERT: {job_name} Missed Execution",
                message=(
                    f"The scheduled job \"{job_name}\" has not run in {hours} hours. "
                    f"Expected daily execution. Last run: {last_run or 'Never'}"
                ),
                severity="critical",
                job_name=job_name,
                fields={"Last run": str(last_run or "Never"), "Hours since last run": hours},
            )
        )
