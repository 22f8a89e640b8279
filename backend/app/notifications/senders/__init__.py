from app.notifications.senders.base import NotificationSender
from app.notifications.senders.email import EmailSender
from app.notifications.senders.smtp import SmtpTransport


def get_default_sender() -> NotificationSender:
    return EmailSender()
