import logging
from io import BytesIO
from typing import Any, Dict, List, Optional

from fastapi import UploadFile
from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType
from starlette.datastructures import Headers

from ..core.config import Config
from ..mails import MESSAGE_TEMPLATE_PATH
from ..models import Order
from ..models.base import utcnow


logger = logging.getLogger(__name__)


mail = FastMail(
    ConnectionConfig(
        MAIL_USERNAME=Config.MAIL_USERNAME,
        MAIL_PASSWORD=Config.MAIL_PASSWORD,
        MAIL_FROM=Config.MAIL_FROM,
        MAIL_PORT=Config.MAIL_PORT,
        MAIL_SERVER=Config.MAIL_SERVER,
        MAIL_FROM_NAME=Config.MAIL_FROM_NAME,
        MAIL_STARTTLS=Config.MAIL_STARTTLS,
        MAIL_SSL_TLS=Config.MAIL_SSL_TLS,
        USE_CREDENTIALS=Config.USE_CREDENTIALS,
        VALIDATE_CERTS=Config.VALIDATE_CERTS,
        SUPPRESS_SEND=Config.SUPPRESS_SEND,
        TEMPLATE_FOLDER=MESSAGE_TEMPLATE_PATH,
    )
)


class EmailService:

    async def send_template_email(
        self,
        to_email: str,
        subject: str,
        template_name: str,
        context: Dict[str, Any],
        attachments: Optional[List[UploadFile]] = None,
    ) -> bool:
        """
        Sends an email using a template with provided context.

        Args:
            to_email (str): Recipient email address
            subject (str): Email subject
            template_name (str): Name of the template file (e.g., "invoice-email.html")
            context (Dict[str, Any]): Context variables for the template
            attachments (List[UploadFile], optional): Files attached to the message

        Returns:
            bool: True if email was sent successfully, False otherwise
        """
        try:
            message = MessageSchema(
                subject=subject,
                recipients=[to_email],
                template_body=context,
                subtype=MessageType.html,
                attachments=attachments or [],
            )

            await mail.send_message(message, template_name=template_name)
            return True

        except Exception:
            logger.exception("Failed to send email '%s' to %s", subject, to_email)
            return False

    async def send_invoice_email(
        self,
        order: Order,
        pdf_bytes: bytes,
        recipient_name: str,
        recipient_email: str,
    ) -> bool:
        """
        Sends the order confirmation with the invoice PDF attached.

        Args:
            order (Order): The committed order
            pdf_bytes (bytes): Rendered invoice
            recipient_name (str): Name used in the greeting (the card holder)
            recipient_email (str): Purchaser's email address

        Returns:
            bool: True if email was sent successfully, False otherwise
        """
        attachment = UploadFile(
            file=BytesIO(pdf_bytes),
            filename=f"invoice-{order.invoice_number}.pdf",
            headers=Headers({"content-type": "application/pdf"}),
        )
        context = {
            "customer_name": recipient_name,
            "order": {
                "invoice_number": order.invoice_number,
                "total_amount": order.total_amount,
                "status": order.status.value,
            },
            "current_year": utcnow().year,
        }

        sent = await self.send_template_email(
            to_email=recipient_email,
            subject=f"Perfume Point - Order Confirmation #{order.invoice_number}",
            template_name="invoice-email.html",
            context=context,
            attachments=[attachment],
        )
        if sent:
            logger.info("Invoice email sent to %s for order %s", recipient_email, order.id)
        return sent
