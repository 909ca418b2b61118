import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from flask import current_app

logger = logging.getLogger(__name__)


def send_email(recipient, subject, body):
    """Send an HTML mail with the MAIL_* settings. Returns False when mail is not configured."""
    config = current_app.config
    if not config.get('MAIL_USERNAME') or not config.get('MAIL_PASSWORD'):
        logger.warning("Mail is not configured; not sending %r to %s", subject, recipient)
        return False

    msg = MIMEMultipart()
    msg['From'] = config['MAIL_DEFAULT_SENDER']
    msg['To'] = recipient
    msg['Subject'] = subject
    msg.attach(MIMEText(body, 'html'))

    try:
        with smtplib.SMTP(config['MAIL_SERVER'], config['MAIL_PORT']) as server:
            if config.get('MAIL_USE_TLS'):
                server.starttls()
            server.login(config['MAIL_USERNAME'], config['MAIL_PASSWORD'])
            server.sendmail(config['MAIL_DEFAULT_SENDER'], recipient, msg.as_string())
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Email to %s failed: %s", recipient, e)
        return False
    return True


def send_password_reset_email(user, token):
    reset_url = f"{current_app.config['PASSWORD_RESET_URL']}?token={token}"
    body = (
        f"<p>Hello {user.display_name or user.email},</p>"
        f"<p>Use the link below to choose a new password. It expires in "
        f"{current_app.config['PASSWORD_RESET_MAX_AGE'] // 60} minutes.</p>"
        f'<p><a href="{reset_url}">{reset_url}</a></p>'
        f"<p>If you did not ask for this, you can ignore this email.</p>"
    )
    return send_email(user.email, "Reset your GarageMap password", body)
