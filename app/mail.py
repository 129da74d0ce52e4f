"""
Outgoing e-mail.

The application only sends one kind of message: the password reset link. Mail
is handed to an SMTP server configured through `MAIL_*` settings and is sent
from a background thread so the request that triggered it is not held up by a
slow mail server.
"""
import smtplib
from email.mime.text import MIMEText
from flask import current_app, render_template
from utils.context_runner import run_in_app_context


def send_email(subject, body, to_email):
    """
    Sends a plain-text e-mail using the SMTP settings in the app config.

    Failures are logged, not raised: by the time this runs the user has
    already been told the message is on its way.

    Args:
        subject (str): The subject line of the email.
        body (str): The plain text body content of the email.
        to_email (str): The recipient's email address.
    """
    logger = current_app.logger
    config = current_app.config
    log_extra = {
        'recipient_email': to_email,
        'subject': subject,
        'smtp_server': config['MAIL_SERVER'],
        'smtp_port': config['MAIL_PORT'],
        'use_tls': config['MAIL_USE_TLS'],
    }

    if not config['MAIL_SERVER'] or not config['MAIL_DEFAULT_SENDER']:
        logger.warning("Email skipped: MAIL_SERVER or MAIL_DEFAULT_SENDER is not configured.", extra=log_extra)
        return

    try:
        msg = MIMEText(body, 'plain', 'utf-8')
        msg['Subject'] = subject
        msg['From'] = config['MAIL_DEFAULT_SENDER']
        msg['To'] = to_email

        with smtplib.SMTP(config['MAIL_SERVER'], config['MAIL_PORT'], timeout=15) as server:
            if config['MAIL_USE_TLS']:
                server.starttls()
            if config['MAIL_USERNAME'] and config['MAIL_PASSWORD']:
                server.login(config['MAIL_USERNAME'], config['MAIL_PASSWORD'])
            server.send_message(msg)

        logger.info("Email sent successfully.", extra=log_extra)
    except (smtplib.SMTPException, OSError):
        logger.error("Failed to send email.", extra=log_extra, exc_info=True)


def send_password_reset(user, reset_url):
    """
    E-mails `user` a link to reset their password.

    With `MAIL_SUPPRESS_SEND` enabled the message is only logged.
    """
    subject = 'Password Reset'
    body = render_template('email/password_reset.txt', user=user, reset_url=reset_url)

    if current_app.config['MAIL_SUPPRESS_SEND']:
        current_app.logger.info(
            "Email sending suppressed; password reset message not delivered.",
            extra={'recipient_email': user['email'], 'subject': subject}
        )
        return

    app = current_app._get_current_object()
    run_in_app_context(app, send_email, subject, body, user['email'])
