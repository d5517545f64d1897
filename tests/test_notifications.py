from email.utils import parseaddr

from perfumepoint.services.email_service import EmailService, mail
from perfumepoint.services.invoice_service import InvoiceService

from conftest import add_to_cart, create_discount, place_order


async def test_invoice_lists_items_and_totals(db, order_service, customer, perfume):
    await create_discount(db, [perfume], rate=20)
    await add_to_cart(db, customer, perfume, volume=50, quantity=2)
    order = await place_order(db, order_service, customer)

    html = InvoiceService().render_invoice_html(order, customer)

    assert order.invoice_number in html
    assert "Bleu de Chanel" in html
    assert "Jane Doe" in html
    assert "$160.00" in html
    assert "-$40.00" in html
    assert "**** **** **** 1111" in html


async def test_invoice_pdf(db, order_service, customer, perfume):
    await add_to_cart(db, customer, perfume, volume=50, quantity=1)
    order = await place_order(db, order_service, customer)

    pdf_bytes = await InvoiceService().generate_invoice_pdf(order, customer)

    assert pdf_bytes.startswith(b"%PDF")


async def test_invoice_email_has_pdf_attached(db, order_service, customer, perfume):
    await add_to_cart(db, customer, perfume, volume=50, quantity=1)
    order = await place_order(db, order_service, customer)

    with mail.record_messages() as outbox:
        sent = await EmailService().send_invoice_email(order, b"%PDF-1.4", "Jane Doe", customer.email)

    assert sent is True
    assert len(outbox) == 1
    assert parseaddr(outbox[0]["To"])[1] == "jane@example.com"
    assert order.invoice_number in outbox[0]["Subject"]
