"""
Service d'envoi d'emails pour les alertes de sécurité
En développement, les messages sont seulement journalisés
"""
from typing import List, Optional
from dataclasses import dataclass
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
import html
import logging
import smtplib

from settings import Settings

logger = logging.getLogger(__name__)


@dataclass
class EmailRecipient:
    """Destinataire d'un email"""
    email: str
    name: Optional[str] = None


@dataclass
class EmailMessage:
    """Message email"""
    subject: str
    text_content: str
    html_content: Optional[str] = None


class EmailService:
    """Service d'envoi d'emails via SMTP (désactivé par défaut pour le dev)"""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.enabled = settings.email_enabled
        if not self.enabled:
            logger.info("EmailService initialisé en mode développement (envois désactivés)")

    def send_email(self, recipients: List[EmailRecipient], message: EmailMessage) -> bool:
        """
        Envoie un email aux destinataires
        Retourne False en cas d'échec sans lever d'exception
        """
        if not self.enabled:
            logger.info(
                "[DEV MODE] Email non envoyé à %s : %s",
                [r.email for r in recipients], message.subject
            )
            return True

        sender = self.settings.smtp_user
        msg = MIMEMultipart('alternative')
        msg['Subject'] = message.subject
        msg['From'] = f"Rentverse Security <{sender}>"
        msg['To'] = ", ".join(r.email for r in recipients)
        msg.attach(MIMEText(message.text_content, 'plain'))
        if message.html_content:
            msg.attach(MIMEText(message.html_content, 'html'))

        try:
            with smtplib.SMTP(self.settings.smtp_host, self.settings.smtp_port, timeout=10) as server:
                server.starttls()
                if self.settings.smtp_user and self.settings.smtp_password:
                    server.login(self.settings.smtp_user, self.settings.smtp_password)
                server.sendmail(sender, [r.email for r in recipients], msg.as_string())
        except (smtplib.SMTPException, OSError):
            logger.exception("Erreur lors de l'envoi d'email: %s", message.subject)
            return False

        return True

    def send_security_alert(self, subject: str, text: str) -> bool:
        """Alerte de sécurité adressée à l'administrateur"""
        html_body = (
            '<p style="font-size: 16px; line-height: 1.5;">'
            + html.escape(text).replace("\n", "<br>")
            + "</p>"
        )
        return self.send_email(
            [EmailRecipient(email=self.settings.admin_email)],
            EmailMessage(subject=f"[Sécurité] {subject}", text_content=text, html_content=html_body)
        )
