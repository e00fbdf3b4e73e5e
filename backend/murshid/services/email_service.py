# murshid/services/email_service.py
"""
Outgoing email over SMTP.

The transport configuration is built once from settings at import time and
never mutated; ``send_email`` is stateless and takes the configuration as an
argument (defaulting to the process-wide one).
"""
import logging
import smtplib
from dataclasses import dataclass
from email.mime.text import MIMEText

from starlette.concurrency import run_in_threadpool

from murshid.config import Settings, settings
from murshid.core.errors import EmailDispatchFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailConfig:
    host: str
    port: int
    username: str | None
    password: str | None
    sender: str
    use_tls: bool = True
    timeout: float = 20.0

    @classmethod
    def from_settings(cls, s: Settings) -> "EmailConfig":
        sender = s.email_from or s.email_username or "no-reply@localhost"
        return cls(
            host=s.email_host,
            port=s.email_port,
            username=s.email_username,
            password=s.email_password,
            sender=f'"Murshid" <{sender}>',
            use_tls=s.email_use_tls,
        )


email_config = EmailConfig.from_settings(settings)


def _deliver(config: EmailConfig, msg: MIMEText) -> None:
    if config.port == 465:
        server = smtplib.SMTP_SSL(config.host, config.port, timeout=config.timeout)
    else:
        server = smtplib.SMTP(config.host, config.port, timeout=config.timeout)
    with server:
        if config.use_tls and config.port != 465:
            server.starttls()
        if config.username and config.password:
            server.login(config.username, config.password)
        server.send_message(msg)


async def send_email(to: str, subject: str, message: str, config: EmailConfig | None = None) -> None:
    """
    Send a plain-text email.

    Raises:
        EmailDispatchFailure: if the SMTP exchange fails for any reason
    """
    config = config or email_config
    msg = MIMEText(message)
    msg["Subject"] = subject
    msg["From"] = config.sender
    msg["To"] = to

    try:
        await run_in_threadpool(_deliver, config, msg)
    except (smtplib.SMTPException, OSError) as exc:
        logger.error("[email] sending '%s' to %s failed: %s", subject, to, exc)
        raise EmailDispatchFailure() from exc
    logger.info("[email] sent '%s' to %s", subject, to)
