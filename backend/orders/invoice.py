"""
PDF invoice renderer
Draws the invoice with Pillow and embeds a Code128 barcode of the order id
"""
import io
import logging
from PIL import Image, ImageDraw, ImageFont
import barcode
from barcode.writer import ImageWriter

logger = logging.getLogger(__name__)

STORE_NAME = 'Storefront'

# A4 at 100 DPI
PAGE_WIDTH = 827
PAGE_HEIGHT = 1169
MARGIN = 50
ROWS_PER_PAGE = 30


def _load_fonts():
    try:
        return (
            ImageFont.truetype('/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf', 22),
            ImageFont.truetype('/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf', 13),
            ImageFont.truetype('/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf', 12),
        )
    except (OSError, IOError):
        default = ImageFont.load_default()
        return default, default, default


def render_barcode(value, width, height):
    """Code128 barcode for ``value`` scaled to fit width x height"""
    code128 = barcode.get_barcode_class('code128')
    barcode_img = code128(value, writer=ImageWriter()).render({
        'write_text': False,
        'module_width': 0.3,
        'module_height': 15.0,
        'quiet_zone': 2.0,
        'background': 'white',
        'foreground': 'black',
    })
    img_width, img_height = barcode_img.size
    scale = min(width / img_width, height / img_height)
    return barcode_img.resize(
        (int(img_width * scale), int(img_height * scale)),
        Image.Resampling.BILINEAR,
    )


def _text_right(draw, x_right, y, text, font):
    bbox = draw.textbbox((0, 0), text, font=font)
    draw.text((x_right - (bbox[2] - bbox[0]), y), text, fill='black', font=font)


def _new_page():
    page = Image.new('RGB', (PAGE_WIDTH, PAGE_HEIGHT), color='white')
    return page, ImageDraw.Draw(page)


def _draw_header(page, draw, order, fonts):
    font_title, font_bold, font_body = fonts
    draw.text((MARGIN, MARGIN), f'{STORE_NAME} - Invoice', fill='black', font=font_title)

    try:
        code_img = render_barcode(order.order_id, 260, 60)
        page.paste(code_img, (PAGE_WIDTH - MARGIN - code_img.size[0], MARGIN))
    except Exception as e:
        logger.error(f"Barcode generation failed for '{order.order_id}': {str(e)}")
        _text_right(draw, PAGE_WIDTH - MARGIN, MARGIN, order.order_id, font_bold)

    y = MARGIN + 80
    draw.text((MARGIN, y), f'Order ID: {order.order_id}', fill='black', font=font_body)
    draw.text((MARGIN, y + 18), f'Date: {order.created_at:%Y-%m-%d}', fill='black', font=font_body)
    draw.text((MARGIN, y + 36), f'Customer: {order.user.email}', fill='black', font=font_body)
    draw.text((MARGIN, y + 54), f'Payment: {order.get_payment_method_display()} ({order.payment_status})', fill='black', font=font_body)
    return y + 90


def _draw_address(draw, x, y, heading, address, fonts):
    _, font_bold, font_body = fonts
    draw.text((x, y), heading, fill='black', font=font_bold)
    lines = [
        address['full_name'],
        address['address_line1'],
        address['address_line2'],
        f"{address['city']}, {address['state']} {address['postal_code']}",
        address['country'],
        f"Phone: {address['phone']}" if address['phone'] else '',
    ]
    y += 20
    for line in lines:
        if line:
            draw.text((x, y), line, fill='black', font=font_body)
            y += 16
    return y


def _draw_table_header(draw, y, fonts):
    _, font_bold, _ = fonts
    draw.text((MARGIN, y), 'Item', fill='black', font=font_bold)
    draw.text((MARGIN + 330, y), 'SKU', fill='black', font=font_bold)
    _text_right(draw, MARGIN + 560, y, 'Qty', font_bold)
    _text_right(draw, MARGIN + 640, y, 'Price', font_bold)
    _text_right(draw, PAGE_WIDTH - MARGIN, y, 'Total', font_bold)
    draw.line((MARGIN, y + 20, PAGE_WIDTH - MARGIN, y + 20), fill='black', width=1)
    return y + 28


def generate_invoice_pdf(order):
    """Render ``order`` as PDF bytes"""
    fonts = _load_fonts()
    _, font_bold, font_body = fonts
    pages = []

    page, draw = _new_page()
    pages.append(page)
    y = _draw_header(page, draw, order, fonts)
    end_left = _draw_address(draw, MARGIN, y, 'Shipping Address', order.address('shipping'), fonts)
    end_right = _draw_address(draw, PAGE_WIDTH // 2, y, 'Billing Address', order.address('billing'), fonts)
    y = _draw_table_header(draw, max(end_left, end_right) + 20, fonts)

    for index, item in enumerate(order.items.all()):
        if index and index % ROWS_PER_PAGE == 0:
            page, draw = _new_page()
            pages.append(page)
            y = _draw_table_header(draw, MARGIN, fonts)
        name = item.item_name
        extras = ' / '.join(value for value in (item.color, item.option_value) if value)
        if extras:
            name = f'{name} ({extras})'
        if len(name) > 45:
            name = name[:45] + '...'
        draw.text((MARGIN, y), name, fill='black', font=font_body)
        draw.text((MARGIN + 330, y), item.sku[:20], fill='black', font=font_body)
        _text_right(draw, MARGIN + 560, y, str(item.quantity), font_body)
        _text_right(draw, MARGIN + 640, y, f'{item.unit_price:.2f}', font_body)
        _text_right(draw, PAGE_WIDTH - MARGIN, y, f'{item.line_total:.2f}', font_body)
        y += 20

    y += 10
    draw.line((MARGIN + 400, y, PAGE_WIDTH - MARGIN, y), fill='black', width=1)
    y += 10
    totals = [
        ('Subtotal', order.subtotal),
        ('Shipping', order.shipping_total),
    ]
    if order.discount_amount:
        code = order.discount.code if order.discount_id else ''
        totals.append((f'Discount {code}'.strip(), -order.discount_amount))
    totals.append(('Total', order.total_amount))
    for label, amount in totals:
        draw.text((MARGIN + 400, y), label, fill='black', font=font_bold)
        _text_right(draw, PAGE_WIDTH - MARGIN, y, f'{amount:.2f}', font_bold)
        y += 20

    draw.text((MARGIN, PAGE_HEIGHT - MARGIN - 20), f'Thank you for shopping with {STORE_NAME}!', fill='black', font=font_body)

    buffer = io.BytesIO()
    pages[0].save(buffer, format='PDF', resolution=100.0, save_all=True, append_images=pages[1:])
    content = buffer.getvalue()
    buffer.close()
    for rendered in pages:
        rendered.close()
    return content
