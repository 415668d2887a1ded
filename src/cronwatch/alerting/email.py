from __future__ import annotations

import asyncio
import html
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import structlog

from cronwatch.alerting.base import (
    AlertChannel,
    AlertEvent,
    format_interval,
    format_last_ping,
)
from cronwatch.schemas.alert_log import ChannelType
from cronwatch.utils.exceptions import AlertDeliveryError

logger = structlog.get_logger(__name__)

DOWN_COLOR = "#dc3545"
RECOVERED_COLOR = "#22c55e"


def render_subject(event: AlertEvent) -> str:
    if event.is_down:
        return f"Monitor DOWN: {event.monitor.name}"
    return f"Monitor RECOVERED: {event.monitor.name}"


def render_html(event: AlertEvent) -> str:
    """
    Create HTML email body.

    Every user-supplied value is escaped before interpolation.
    """
    monitor = event.monitor
    safe_name = html.escape(monitor.name)
    safe_slug = html.escape(monitor.slug)
    safe_dashboard = html.escape(event.dashboard_url or "", quote=True)
    color = DOWN_COLOR if event.is_down else RECOVERED_COLOR
    badge = "Monitor Down" if event.is_down else "Monitor Recovered"
    lead = (
        "This monitor has not received a ping within its expected window."
        if event.is_down
        else "This monitor is back online and pinging normally."
    )
    button = (
        f'<a href="{safe_dashboard}" class="button">View Dashboard</a>'
        if event.dashboard_url
        else ""
    )

    return f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <style>
        body {{
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            line-height: 1.6;
            color: #333;
            max-width: 600px;
            margin: 0 auto;
            padding: 20px;
        }}
        .header {{
            background-color: {color};
            color: white;
            padding: 20px;
            text-align: center;
            border-radius: 8px 8px 0 0;
        }}
        .content {{
            padding: 30px;
            border: 1px solid #dee2e6;
            border-top: none;
        }}
        .label {{
            font-weight: 600;
            color: #6c757d;
            font-size: 14px;
            text-transform: uppercase;
        }}
        .value {{
            font-size: 16px;
            margin-bottom: 15px;
        }}
        .button {{
            display: inline-block;
            padding: 10px 20px;
            background-color: #4f46e5;
            color: white;
            text-decoration: none;
            border-radius: 4px;
        }}
    </style>
</head>
<body>
    <div class="header">
        <h1>{badge}</h1>
    </div>
    <div class="content">
        <p>{lead}</p>
        <div class="label">Monitor</div>
        <div class="value">{safe_name}</div>
        <div class="label">Monitor ID</div>
        <div class="value"><code>{safe_slug}</code></div>
        <div class="label">Expected</div>
        <div class="value">{format_interval(monitor.interval_seconds)}</div>
        <div class="label">Last Ping</div>
        <div class="value">{format_last_ping(monitor.last_ping_at)}</div>
        {button}
    </div>
</body>
</html>
"""


def render_plain(event: AlertEvent) -> str:
    """Create plain text email body."""
    monitor = event.monitor
    headline = "MONITOR DOWN" if event.is_down else "MONITOR RECOVERED"
    dashboard = f"Dashboard: {event.dashboard_url}" if event.dashboard_url else ""
    return f"""
{headline}

Monitor: {monitor.name}
Monitor ID: {monitor.slug}
Expected: {format_interval(monitor.interval_seconds)}
Last Ping: {format_last_ping(monitor.last_ping_at)}

{dashboard}
"""


class EmailAlertChannel(AlertChannel):
    """Send alerts via SMTP with HTML formatting."""

    channel_type = ChannelType.EMAIL

    def __init__(
        self,
        smtp_host: str,
        smtp_port: int,
        smtp_user: str,
        smtp_password: str,
        from_email: str,
        use_tls: bool = True,
        timeout: float = 5.0,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.from_email = from_email
        self.use_tls = use_tls
        self.timeout = timeout

    def validate_config(self) -> bool:
        """Validate email configuration."""
        if not all(
            [
                self.smtp_host,
                self.smtp_port,
                self.smtp_user,
                self.smtp_password,
                self.from_email,
            ]
        ):
            logger.error("email_missing_required_config")
            return False
        return True

    def build_message(self, event: AlertEvent, recipient: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["From"] = self.from_email
        msg["To"] = recipient
        msg["Subject"] = render_subject(event)
        msg.attach(MIMEText(render_plain(event), "plain"))
        msg.attach(MIMEText(render_html(event), "html"))
        return msg

    async def send(self, event: AlertEvent, target: str) -> None:
        """
        Send alert email asynchronously.

        Args:
            event: Alert data to send
            target: Recipient address

        Raises:
            AlertDeliveryError: If the SMTP exchange failed
        """
        if not self.validate_config():
            raise AlertDeliveryError("email", "Email channel is not configured", event.monitor.id)

        message = self.build_message(event, target)

        # Run synchronous SMTP operations in executor to avoid blocking
        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, self._send_sync, message, event.monitor.id)

        logger.info(
            "email_alert_sent",
            to_email=target,
            monitor=event.monitor.name,
            kind=event.kind.value,
        )

    def _send_sync(self, message: MIMEMultipart, monitor_id: int) -> None:
        """Synchronous email sending (called from executor)."""
        try:
            with smtplib.SMTP(
                self.smtp_host, self.smtp_port, timeout=self.timeout
            ) as server:
                if self.use_tls:
                    server.starttls()
                server.login(self.smtp_user, self.smtp_password)
                server.send_message(message)

        except smtplib.SMTPAuthenticationError as exc:
            logger.error(
                "email_authentication_failed",
                smtp_host=self.smtp_host,
                smtp_user=self.smtp_user,
            )
            raise AlertDeliveryError("email", "SMTP authentication failed", monitor_id) from exc

        except (smtplib.SMTPException, OSError) as exc:
            logger.error(
                "smtp_error",
                error=str(exc),
                smtp_host=self.smtp_host,
            )
            raise AlertDeliveryError("email", str(exc) or exc.__class__.__name__, monitor_id) from exc
