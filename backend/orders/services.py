"""
Order placement and stock bookkeeping shared by cart checkout and direct orders
"""
import logging
import uuid
from decimal import Decimal

from django.db import transaction
from django.db.models import F
from backend.catalog.models import Product, ProductVariant, VariantOption
from backend.core.cache_utils import invalidate_products_cache
from backend.core.exceptions import InsufficientStock, StorefrontError, DiscountInvalid, OrderStateError
from backend.pricing.models import Discount
from .models import Order, OrderItem, ADDRESS_FIELDS

logger = logging.getLogger(__name__)


def generate_order_id():
    order_id = f"ORD-{str(uuid.uuid4())[:8].upper()}"
    while Order.objects.filter(order_id=order_id).exists():
        order_id = f"ORD-{str(uuid.uuid4())[:8].upper()}"
    return order_id


def resolve_line(product_id, variant_id=None, option_id=None, quantity=1, lock=False):
    """
    Find what a cart or order line points at and check it can be sold.

    Returns a dict with the stock holder (product, variant or option row) and
    the snapshot fields for an OrderItem. With ``lock`` the stock holder row
    is selected for update, so call it inside a transaction.
    """
    products = Product.objects.select_for_update() if lock else Product.objects
    product = products.filter(pk=product_id).first()
    if product is None:
        raise StorefrontError(f'Product not found: {product_id}')
    if not product.is_active:
        raise StorefrontError(f'Product is not available: {product.title}')

    variant = None
    option = None
    if option_id:
        options = VariantOption.objects.select_for_update() if lock else VariantOption.objects
        option = options.select_related('variant').filter(
            pk=option_id, variant__product_id=product.pk
        ).first()
        if option is None or (variant_id and option.variant_id != int(variant_id)):
            raise StorefrontError('Selected option does not belong to this product')
        variant = option.variant
        holder, variant_type = option, option.kind
        price, discount_price = option.price, option.discount_price
    elif variant_id:
        variants = ProductVariant.objects.select_for_update() if lock else ProductVariant.objects
        variant = variants.filter(pk=variant_id, product_id=product.pk).first()
        if variant is None:
            raise StorefrontError('Selected variant does not belong to this product')
        if variant.options.exists():
            raise StorefrontError(f'Select an option for {product.title} - {variant.color}')
        holder, variant_type = variant, 'color'
        price, discount_price = variant.price, variant.discount_price
    else:
        if product.variants.exists():
            raise StorefrontError(f'Select a variant for {product.title}')
        holder, variant_type = product, 'simple'
        price, discount_price = product.price, product.discount_price

    if price is None:
        raise StorefrontError(f'No price set for {product.title}')
    if holder.stock < quantity:
        raise InsufficientStock(
            f'Insufficient stock for {product.title}',
            detail={'product_id': product.pk, 'available': holder.stock, 'requested': quantity},
        )

    image = None
    if variant is not None and variant.images:
        first = variant.images[0]
        image = first.get('url') if isinstance(first, dict) else first
    return {
        'holder': holder,
        'product': product,
        'variant': variant,
        'option': option,
        'variant_type': variant_type,
        'item_name': product.title,
        'item_image': image or product.main_image or '',
        'sku': holder.sku or product.sku,
        'color': variant.color if variant is not None else product.color,
        'option_value': option.value if option is not None else '',
        'price': price,
        'discount_price': discount_price,
        'quantity': quantity,
        'shipping_cost': product.shipping_cost * quantity,
    }


def _adjust_stock(holder_model, pk, delta):
    holder_model.objects.filter(pk=pk).update(stock=F('stock') + delta)


def check_combined_stock(resolved):
    """Lines that resolve to the same stock row must fit its stock together"""
    requested = {}
    for line in resolved:
        holder = line['holder']
        key = (type(holder), holder.pk)
        requested[key] = requested.get(key, 0) + line['quantity']
        if requested[key] > holder.stock:
            product = line['product']
            raise InsufficientStock(
                f'Insufficient stock for {product.title}',
                detail={'product_id': product.pk, 'available': holder.stock, 'requested': requested[key]},
            )


def _address_fields(prefix, address):
    address = address or {}
    return {f'{prefix}_{field}': address.get(field, '') or '' for field in ADDRESS_FIELDS}


def place_order(user, lines, shipping_address, billing_address=None, payment_method='cash_on_delivery',
                discount_code=None, customer_notes=''):
    """
    Create an order from ``lines`` and take the stock.

    Each line is a dict with product_id, quantity and optional variant_id and
    option_id. Everything happens in one transaction: a failed stock or
    discount check leaves no order behind and no stock taken.
    """
    if not lines:
        raise StorefrontError('Order must contain at least one item')

    with transaction.atomic():
        resolved = [
            resolve_line(
                line['product_id'], line.get('variant_id'), line.get('option_id'),
                line['quantity'], lock=True,
            )
            for line in lines
        ]
        check_combined_stock(resolved)

        subtotal = sum(
            ((line['discount_price'] if line['discount_price'] is not None else line['price']) * line['quantity']
             for line in resolved),
            Decimal('0.00'),
        )
        shipping_total = sum((line['shipping_cost'] for line in resolved), Decimal('0.00'))

        discount = None
        discount_amount = Decimal('0.00')
        if discount_code:
            discount = Discount.objects.filter(code=discount_code.strip().upper()).first()
            if discount is None:
                raise DiscountInvalid('Invalid discount code')
            discount_amount = discount.calculate(subtotal, [line['product'].pk for line in resolved])

        order = Order(
            order_id=generate_order_id(),
            user=user,
            subtotal=subtotal,
            shipping_total=shipping_total,
            discount=discount,
            discount_amount=discount_amount,
            payment_method=payment_method,
            billing_same_as_shipping=not billing_address,
            customer_notes=customer_notes or '',
            **_address_fields('shipping', shipping_address),
            **_address_fields('billing', billing_address),
        )
        order.save()

        items = []
        for line in resolved:
            holder = line.pop('holder')
            _adjust_stock(type(holder), holder.pk, -line['quantity'])
            items.append(OrderItem(order=order, **line))
        OrderItem.objects.bulk_create(items)

        if discount is not None:
            discount.record_use()

        # Stock moved through update(), which sends no signals
        transaction.on_commit(invalidate_products_cache)

    logger.info(f"Order {order.order_id} placed by user {user.pk}: {len(items)} items, total {order.total_amount}")
    return order


def restore_stock(order):
    """Put an order's quantities back on the shelf; a no-op the second time"""
    with transaction.atomic():
        locked = Order.objects.select_for_update().get(pk=order.pk)
        if locked.stock_restored:
            return False
        for item in locked.items.all():
            if item.option_id:
                _adjust_stock(VariantOption, item.option_id, item.quantity)
            elif item.variant_id:
                _adjust_stock(ProductVariant, item.variant_id, item.quantity)
            elif item.product_id:
                _adjust_stock(Product, item.product_id, item.quantity)
        Order.objects.filter(pk=order.pk).update(stock_restored=True)
        transaction.on_commit(invalidate_products_cache)
    order.stock_restored = True
    logger.info(f"Stock restored for order {order.order_id}")
    return True


def cancel_order(order):
    """Customer cancellation, allowed only before the order ships"""
    with transaction.atomic():
        locked = Order.objects.select_for_update().get(pk=order.pk)
        if locked.status not in Order.CANCELLABLE_STATUSES:
            order.status = locked.status
            raise OrderStateError(f'Order cannot be cancelled once {locked.status}')
        locked.status = 'cancelled'
        locked.save(update_fields=['status', 'updated_at'])
        restore_stock(locked)
    order.status = locked.status
    order.updated_at = locked.updated_at
    order.stock_restored = locked.stock_restored
    return order


def update_order_status(order, new_status, tracking_number=None, carrier=None, admin_notes=None):
    """Admin status change; any listed status is accepted"""
    valid = {choice[0] for choice in Order.STATUS_CHOICES}
    if new_status not in valid:
        raise OrderStateError(f'Invalid status: {new_status}')

    with transaction.atomic():
        order.status = new_status
        if tracking_number is not None:
            order.tracking_number = tracking_number
        if carrier is not None:
            order.carrier = carrier
        if admin_notes is not None:
            order.admin_notes = admin_notes
        if new_status == 'delivered' and order.payment_method == 'cash_on_delivery':
            order.payment_status = 'paid'
        # stock_restored is owned by restore_stock
        order.save(update_fields=['status', 'tracking_number', 'carrier', 'admin_notes', 'payment_status', 'updated_at'])
        if new_status == 'cancelled':
            restore_stock(order)
    return order


def order_event_payload(order):
    return {
        'order_id': order.order_id,
        'user_id': order.user_id,
        'status': order.status,
        'payment_status': order.payment_status,
        'total_amount': order.total_amount,
        'created_at': order.created_at,
    }
