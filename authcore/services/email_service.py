"""Email service for sending emails via SMTP."""
import smtplib
import logging
import re
from typing import Optional, Dict, Any, Tuple
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from email.utils import make_msgid
from jinja2 import (
    Environment,
    PackageLoader,
    TemplateNotFound as Jinja2TemplateNotFound,
)

logger = logging.getLogger(__name__)


class EmailConfigError(Exception):
    """Raised when email configuration is invalid."""

    pass


class TemplateNotFoundError(Exception):
    """Raised when email template is not found."""

    pass


class EmailResult:
    """Result of an email operation."""

    def __init__(
        self,
        success: bool,
        error: Optional[str] = None,
        message_id: Optional[str] = None,
    ):
        """
        Initialize email result.

        Args:
            success: Whether the operation succeeded.
            error: Error message if failed.
            message_id: Message-ID header of the sent message.
        """
        self.success = success
        self.error = error
        self.message_id = message_id


class EmailService:
    """Service for sending emails via SMTP."""

    # Email validation pattern
    EMAIL_REGEX = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

    def __init__(
        self,
        smtp_host: str,
        smtp_port: int,
        smtp_user: str,
        smtp_password: str,
        from_email: str,
        from_name: str = "Authcore",
        use_tls: bool = True,
        template_env: Optional[Environment] = None,
    ):
        """
        Initialize email service.

        Args:
            smtp_host: SMTP server hostname.
            smtp_port: SMTP server port.
            smtp_user: SMTP authentication username.
            smtp_password: SMTP authentication password.
            from_email: Default sender email address.
            from_name: Default sender name.
            use_tls: Upgrade the connection with STARTTLS.
            template_env: Jinja2 environment, defaults to the packaged templates.

        Raises:
            EmailConfigError: If configuration is invalid.
        """
        self._validate_config(
            smtp_host, smtp_port, smtp_user, smtp_password, from_email
        )

        self._smtp_host = smtp_host
        self._smtp_port = smtp_port
        self._smtp_user = smtp_user
        self._smtp_password = smtp_password
        self._from_email = from_email
        self._from_name = from_name
        self._use_tls = use_tls

        self._template_env = template_env or Environment(
            loader=PackageLoader("authcore", "templates/email"), autoescape=True
        )

    def _validate_config(
        self,
        smtp_host: str,
        smtp_port: int,
        smtp_user: str,
        smtp_password: str,
        from_email: str,
    ) -> None:
        """Validate SMTP configuration."""
        errors = []

        if not smtp_host:
            errors.append("smtp_host is required")
        if not smtp_port:
            errors.append("smtp_port is required")
        if not smtp_user:
            errors.append("smtp_user is required")
        if not smtp_password:
            errors.append("smtp_password is required")
        if not from_email:
            errors.append("from_email is required")

        if errors:
            raise EmailConfigError(f"Invalid configuration: {', '.join(errors)}")

    def _validate_email(self, email: str) -> bool:
        """Validate email address format."""
        if not email:
            return False
        return bool(self.EMAIL_REGEX.match(email))

    def send_email(
        self,
        to_email: str,
        subject: str,
        body_text: str,
        body_html: Optional[str] = None,
    ) -> EmailResult:
        """
        Send email via SMTP.

        Args:
            to_email: Recipient email address.
            subject: Email subject.
            body_text: Plain text body.
            body_html: Optional HTML body.

        Returns:
            EmailResult with success status and Message-ID.
        """
        if not self._validate_email(to_email):
            return EmailResult(success=False, error="Invalid recipient email address")

        try:
            msg = MIMEMultipart("alternative")
            msg["From"] = f"{self._from_name} <{self._from_email}>"
            msg["To"] = to_email
            msg["Subject"] = subject
            message_id = make_msgid(domain=self._from_email.split("@")[-1])
            msg["Message-ID"] = message_id

            msg.attach(MIMEText(body_text, "plain", "utf-8"))
            if body_html:
                msg.attach(MIMEText(body_html, "html", "utf-8"))

            with smtplib.SMTP(self._smtp_host, self._smtp_port) as server:
                if self._use_tls:
                    server.starttls()
                server.login(self._smtp_user, self._smtp_password)
                server.sendmail(self._from_email, to_email, msg.as_string())

            logger.info(f"Email sent successfully to {to_email}")
            return EmailResult(success=True, message_id=message_id)

        except (smtplib.SMTPException, OSError) as e:
            error_msg = str(e)
            logger.error(f"Failed to send email to {to_email}: {error_msg}")
            return EmailResult(success=False, error=error_msg)

    def render_template(
        self, template_name: str, context: Dict[str, Any]
    ) -> Tuple[str, str]:
        """
        Render email template.

        Args:
            template_name: Name of the template (without extension).
            context: Template context variables.

        Returns:
            Tuple of (plain_text, html).

        Raises:
            TemplateNotFoundError: If template is not found.
        """
        try:
            text_template = self._template_env.get_template(f"{template_name}.txt")
            text_content = text_template.render(**context)
        except Jinja2TemplateNotFound:
            raise TemplateNotFoundError(f"Template '{template_name}.txt' not found")

        try:
            html_template = self._template_env.get_template(f"{template_name}.html")
            html_content = html_template.render(**context)
        except Jinja2TemplateNotFound:
            raise TemplateNotFoundError(f"Template '{template_name}.html' not found")

        return text_content, html_content

    def send_password_reset(
        self, to_email: str, reset_url: str, expires_in: str = "1 hour"
    ) -> EmailResult:
        """
        Send the password reset link.

        Args:
            to_email: Recipient email address.
            reset_url: Link carrying the plaintext token.
            expires_in: Human readable validity shown in the mail.

        Returns:
            EmailResult with success status.
        """
        try:
            context = {"reset_url": reset_url, "expires_in": expires_in}
            text_body, html_body = self.render_template("password_reset", context)

            return self.send_email(
                to_email=to_email,
                subject="Reset your password",
                body_text=text_body,
                body_html=html_body,
            )
        except TemplateNotFoundError as e:
            logger.error(f"Template error: {e}")
            return EmailResult(success=False, error=str(e))

    def send_password_changed(self, to_email: str) -> EmailResult:
        """
        Send confirmation that the password was changed.

        Args:
            to_email: Recipient email address.

        Returns:
            EmailResult with success status.
        """
        try:
            text_body, html_body = self.render_template("password_changed", {})

            return self.send_email(
                to_email=to_email,
                subject="Your password was changed",
                body_text=text_body,
                body_html=html_body,
            )
        except TemplateNotFoundError as e:
            logger.error(f"Template error: {e}")
            return EmailResult(success=False, error=str(e))
