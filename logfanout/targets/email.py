"""Email target sending each exported batch as one SMTP message."""

from __future__ import annotations

import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Any, Optional, Sequence, Tuple

from ..errors import ConfigurationError
from ..message import Message
from .base import Target

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailConfig:
    """SMTP configuration for sending emails."""
    smtp_host: str
    smtp_port: int = 587
    username: Optional[str] = None
    password: Optional[str] = None
    use_tls: bool = True
    from_email: Optional[str] = None
    timeout_seconds: float = 15.0


class EmailTarget(Target):
    """Mail buffered messages to a fixed list of recipients."""

    def __init__(
        self,
        name: str | None = None,
        *,
        config: EmailConfig,
        to: Sequence[str] | str,
        subject: str = "Application log",
        **options: Any,
    ) -> None:
        super().__init__(name, **options)

        to_list = [to] if isinstance(to, str) else list(to)
        if not to_list:
            raise ConfigurationError("email target requires at least one recipient")
        if not config.smtp_host or not config.smtp_port:
            raise ConfigurationError("SMTP host and port are required")

        self.config = config
        self.to = tuple(to_list)
        self.subject = subject

    def export(self, messages: Tuple[Message, ...]) -> None:
        """Send one email containing every message; empty batches send nothing."""

        if not messages:
            return

        msg = self.build_email(messages)
        cfg = self.config
        context = ssl.create_default_context()

        if cfg.use_tls:
            with smtplib.SMTP(cfg.smtp_host, cfg.smtp_port, timeout=cfg.timeout_seconds) as server:
                server.ehlo()
                server.starttls(context=context)
                server.ehlo()
                if cfg.username and cfg.password:
                    server.login(cfg.username, cfg.password)
                server.send_message(msg)
        else:
            with smtplib.SMTP_SSL(
                cfg.smtp_host, cfg.smtp_port, context=context, timeout=cfg.timeout_seconds
            ) as server:
                if cfg.username and cfg.password:
                    server.login(cfg.username, cfg.password)
                server.send_message(msg)

        logger.debug("EmailTarget %s: sent %d messages to %s", self.name, len(messages), self.to)

    def build_email(self, messages: Tuple[Message, ...]) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = self.subject
        msg["To"] = ", ".join(self.to)
        if self.config.from_email:
            msg["From"] = self.config.from_email
        msg["Message-ID"] = make_msgid()
        msg.set_content("\n".join(self.format_message(message) for message in messages))
        return msg
