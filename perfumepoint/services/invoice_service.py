import asyncio
from io import BytesIO

from jinja2 import Environment, FileSystemLoader, select_autoescape
from xhtml2pdf import pisa

from ..mails import MESSAGE_TEMPLATE_PATH
from ..models import Order, User


class InvoiceRenderError(Exception):
    """ Raised when the invoice HTML could not be converted to PDF. """
    pass


class InvoiceService:
    """
    Renders the invoice attached to order confirmation emails.

    The HTML comes from the `invoice.html` Jinja2 template next to the email
    templates; xhtml2pdf turns it into a PDF off the event loop.
    """

    def __init__(self, template_dir=MESSAGE_TEMPLATE_PATH):
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(["html"]),
        )

    def render_invoice_html(self, order: Order, user: User) -> str:
        items = [
            {
                "name": item.perfume.name if item.perfume else f"Perfume #{item.perfume_id}",
                "volume": item.volume,
                "quantity": item.quantity,
                "price": item.discounted_unit_price,
                "total_price": item.total_price,
            }
            for item in order.items
        ]
        template = self.env.get_template("invoice.html")
        return template.render(order=order, items=items, customer_name=user.full_name)

    async def generate_invoice_pdf(self, order: Order, user: User) -> bytes:
        html = self.render_invoice_html(order, user)
        return await asyncio.to_thread(self._html_to_pdf, html)

    @staticmethod
    def _html_to_pdf(html: str) -> bytes:
        buffer = BytesIO()
        result = pisa.CreatePDF(html, dest=buffer, encoding="utf-8")
        if result.err:
            raise InvoiceRenderError(f"Failed to render invoice PDF ({result.err} errors)")
        return buffer.getvalue()
