# propertyflow/services/email_client.py
from __future__ import annotations

import logging
import smtplib
import time
from contextlib import contextmanager
from email import encoders
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List, Optional, Tuple

log = logging.getLogger(__name__)

# (filename, content, mime type)
Attachment = Tuple[str, bytes, str]


class EmailClient:
    """SMTP client with retries."""

    def __init__(
        self,
        smtp_host: str,
        smtp_port: int,
        username: Optional[str],
        password: Optional[str],
        use_ssl: bool = False,
        max_retries: int = 3,
        retry_delay: float = 3,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.username = username
        self.password = password
        self.use_ssl = use_ssl
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    @contextmanager
    def _connection(self):
        server = None
        try:
            if self.use_ssl:
                server = smtplib.SMTP_SSL(self.smtp_host, self.smtp_port)
            else:
                server = smtplib.SMTP(self.smtp_host, self.smtp_port)
                server.starttls()
            if self.username:
                server.login(self.username, self.password or "")
            yield server
        finally:
            if server:
                try:
                    server.quit()
                except smtplib.SMTPException as e:
                    log.warning("error closing SMTP connection: %s", e)

    def build_message(
        self,
        sender: str,
        recipients: List[str],
        subject: str,
        text_body: str,
        html_body: Optional[str] = None,
        attachments: Optional[List[Attachment]] = None,
    ) -> MIMEMultipart:
        msg = MIMEMultipart("mixed")
        msg["From"] = sender
        msg["To"] = ", ".join(recipients)
        msg["Subject"] = subject

        body = MIMEMultipart("alternative")
        body.attach(MIMEText(text_body or "", "plain"))
        if html_body:
            body.attach(MIMEText(html_body, "html"))
        msg.attach(body)

        for filename, content, mime in attachments or []:
            maintype, _, subtype = (mime or "application/octet-stream").partition("/")
            part = MIMEBase(maintype, subtype or "octet-stream")
            part.set_payload(content)
            encoders.encode_base64(part)
            part.add_header("Content-Disposition", f'attachment; filename="{filename}"')
            msg.attach(part)
        return msg

    def send_email(
        self,
        sender: str,
        recipients: List[str],
        subject: str,
        text_body: str,
        html_body: Optional[str] = None,
        attachments: Optional[List[Attachment]] = None,
    ) -> bool:
        """Send with retries. Returns False instead of raising once retries are spent."""
        msg = self.build_message(sender, recipients, subject, text_body, html_body, attachments)

        for attempt in range(1, self.max_retries + 1):
            try:
                with self._connection() as server:
                    server.sendmail(sender, recipients, msg.as_string())
                log.info("email sent", extra={"job": "email"})
                return True
            except smtplib.SMTPAuthenticationError:
                log.error("SMTP authentication failed")
                break
            except (smtplib.SMTPException, OSError) as e:
                log.warning("email attempt %s failed: %s", attempt, e)
                if attempt < self.max_retries:
                    time.sleep(self.retry_delay)

        log.error("failed to send email to %s after retries", ", ".join(recipients))
        return False
