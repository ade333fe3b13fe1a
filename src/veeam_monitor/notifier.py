"""Email delivery over SMTP."""

from __future__ import annotations

import logging
import smtplib
from collections.abc import Callable
from email.mime.text import MIMEText

from veeam_monitor.config import MonitorConfig
from veeam_monitor.digest import Digest

SMTPFactory = Callable[[str, int], smtplib.SMTP]


def build_message(digest: Digest, sender: str, recipients: tuple[str, ...] | list[str]) -> MIMEText:
    """Build the plain-text alert with a single joined To header."""
    message = MIMEText(digest.body, "plain", "utf-8")
    message["From"] = sender
    message["To"] = ", ".join(recipients)
    message["Subject"] = digest.subject
    return message


class EmailDispatcher:
    """Send digests through the configured SMTP server.

    Authentication uses SMTP AUTH PLAIN when ``emailPassword`` is set;
    otherwise mail is relayed without logging in.
    """

    def __init__(
        self,
        config: MonitorConfig,
        logger: logging.Logger | None = None,
        smtp_factory: SMTPFactory = smtplib.SMTP,
    ):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.smtp_factory = smtp_factory

    def send(self, digest: Digest) -> bool:
        """
        Deliver ``digest`` to every configured recipient in one message.

        Returns:
            True if the server accepted the message, False otherwise.
        """
        config = self.config
        if not config.email_configured:
            self.logger.error("Email configuration incomplete (smtpServer, emailFrom, emailTo); not sending")
            return False

        message = build_message(digest, config.email_from, config.email_to)

        try:
            with self.smtp_factory(config.smtp_server, config.smtp_port) as server:
                server.ehlo()
                if server.has_extn("starttls"):
                    server.starttls()
                    server.ehlo()
                if config.email_password:
                    server.user, server.password = config.email_from, config.email_password
                    server.auth("PLAIN", server.auth_plain)
                refused = server.sendmail(config.email_from, list(config.email_to), message.as_string())
        except (smtplib.SMTPException, OSError) as e:
            self.logger.error("SMTP error sending alert via %s:%d: %s", config.smtp_server, config.smtp_port, e)
            return False

        if refused:
            self.logger.warning("Some recipients were refused: %s", ", ".join(refused))
        self.logger.info("Email sent to %s: %s", ", ".join(config.email_to), digest.subject)
        return True
