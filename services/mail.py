from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
import smtplib
import ssl
import time
import logging
from typing import Dict, Any, Optional

from config import (
    SMTP_SERVER,
    SMTP_PORT,
    SMTP_USER,
    SMTP_PASSWORD,
    SMTP_TIMEOUT_SECONDS,
    MAIL_FROM_NAME,
    OTP_EXPIRE_MINUTES,
)

logger = logging.getLogger(__name__)


def _result(status: str, message: str, to_email: str, **extra) -> Dict[str, Any]:
    return {
        "status": status,
        "message": message,
        "recipient": to_email,
        "timestamp": time.strftime("%Y-%m-%d %H:%M:%S"),
        **extra,
    }


def send_mail(to_email: str, subject: str, html_content: str, max_retries: int = 2) -> Dict[str, Any]:
    """
    Send an HTML email over SMTP_SSL with a bounded timeout and a short retry loop.

    ALWAYS returns a dictionary; callers decide whether a failure matters.
    """
    if not all([to_email, subject, html_content]):
        return _result("error", "Missing required parameters: to_email, subject, or html_content", to_email)

    if not all([SMTP_SERVER, SMTP_PORT, SMTP_USER, SMTP_PASSWORD]):
        logger.warning(f"SMTP not configured; skipping email '{subject}' to {to_email}")
        return _result("error", "Missing SMTP configuration parameters", to_email)

    msg = MIMEMultipart("alternative")
    msg["From"] = f"{MAIL_FROM_NAME} <{SMTP_USER}>"
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.attach(MIMEText(_wrap_html(subject, html_content), "html", "utf-8"))

    last_error = None
    for attempt in range(max_retries):
        try:
            context = ssl.create_default_context()
            with smtplib.SMTP_SSL(SMTP_SERVER, int(SMTP_PORT), context=context,
                                  timeout=SMTP_TIMEOUT_SECONDS) as server:
                server.login(SMTP_USER, SMTP_PASSWORD)
                rejected = server.send_message(msg)

            if rejected:
                logger.warning(f"Some recipients were rejected: {rejected}")
                return _result("partial_success", f"Email sent but some recipients rejected: {rejected}",
                               to_email, attempt=attempt + 1)
            logger.info(f"Email '{subject}' sent to {to_email}")
            return _result("success", "Email sent successfully!", to_email, attempt=attempt + 1)

        except (smtplib.SMTPAuthenticationError, smtplib.SMTPRecipientsRefused, smtplib.SMTPSenderRefused) as e:
            # Retrying cannot fix these
            logger.error(f"SMTP rejected email to {to_email}: {e}")
            return _result("error", "SMTP rejected the message", to_email, error=str(e), attempt=attempt + 1)

        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP error on attempt {attempt + 1} sending to {to_email}: {e}")
            last_error = e
            if attempt < max_retries - 1:
                time.sleep(attempt + 1)

    return _result("error", f"Failed to send email after {max_retries} attempts", to_email,
                   error=str(last_error) if last_error else "Unknown error")


def _wrap_html(subject: str, body: str) -> str:
    return f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{escape(subject)}</title>
</head>
<body style="margin:0;padding:0;background-color:#f4f6f8;font-family:Arial,Helvetica,sans-serif;">
    {body}
</body>
</html>
    """


def send_otp_email(to_email: str, otp: str) -> Dict[str, Any]:
    body = f"""
    <table width="100%" cellpadding="0" cellspacing="0">
        <tr><td align="center" style="padding:40px 0;">
            <table width="480" cellpadding="0" cellspacing="0"
                   style="background:#ffffff;border-radius:12px;padding:32px;">
                <tr><td style="font-size:20px;font-weight:600;color:#111827;">Password Reset Request</td></tr>
                <tr><td style="padding-top:12px;font-size:14px;color:#374151;">
                    Use the OTP below to reset your password. This code is valid for {OTP_EXPIRE_MINUTES} minutes.
                </td></tr>
                <tr><td align="center" style="padding:28px 0;">
                    <div style="display:inline-block;padding:14px 26px;font-size:28px;font-weight:700;
                                letter-spacing:6px;color:#111827;background:#f3f4f6;border-radius:8px;">
                        {escape(otp)}
                    </div>
                </td></tr>
                <tr><td style="font-size:13px;color:#6b7280;">
                    If you did not request a password reset, you can safely ignore this email.
                </td></tr>
            </table>
        </td></tr>
    </table>
    """
    return send_mail(to_email, "Password Reset OTP", body)


def send_task_assignment_email(to_email: str, task, assigned_by: Optional[str] = None) -> Dict[str, Any]:
    due = task.due_date.strftime("%d %b %Y") if task.due_date else "No due date"
    body = f"""
    <table width="100%" cellpadding="0" cellspacing="0">
        <tr><td align="center" style="padding:40px 0;">
            <table width="520" cellpadding="0" cellspacing="0"
                   style="background:#ffffff;border-radius:12px;padding:32px;">
                <tr><td style="font-size:20px;font-weight:600;color:#111827;">New Task Assigned</td></tr>
                <tr><td style="padding-top:12px;font-size:14px;color:#374151;">
                    {escape(assigned_by or "A teammate")} assigned you a task.
                </td></tr>
                <tr><td style="padding-top:20px;font-size:16px;font-weight:600;color:#111827;">
                    {escape(task.title or "Untitled")}
                </td></tr>
                <tr><td style="padding-top:8px;font-size:14px;color:#374151;">
                    {escape(task.description or "")}
                </td></tr>
                <tr><td style="padding-top:16px;font-size:13px;color:#6b7280;">
                    Priority: {escape(task.priority or "Normal")} &middot; Status: {escape(task.status or "Not Started")}
                    &middot; Due: {due}
                </td></tr>
            </table>
        </td></tr>
    </table>
    """
    return send_mail(to_email, f"New Task Assigned: {task.title}", body)
