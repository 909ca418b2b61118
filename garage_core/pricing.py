# garage_core/pricing.py
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENTS = Decimal('0.01')
ZERO = Decimal('0.00')
HUNDRED = Decimal('100')


def to_decimal(value, default='0.00'):
    if value is None or value == '':
        return Decimal(default)
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}")


def money(value):
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass
class LineTotals:
    total_price: Decimal
    tax_amount: Decimal


@dataclass
class SaleTotals:
    subtotal: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal
    effective_tax_rate: Decimal

    def as_floats(self):
        return {
            'subtotal': float(self.subtotal),
            'tax': float(self.tax),
            'discount': float(self.discount),
            'total_amount': float(self.total),
        }


def line_totals(quantity, unit_price, tax_rate=0):
    total_price = to_decimal(quantity) * to_decimal(unit_price)
    tax_amount = total_price * to_decimal(tax_rate) / HUNDRED
    return LineTotals(total_price=money(total_price), tax_amount=money(tax_amount))


def sale_totals(lines, discount_rate=0):
    """Totals for a list of ``LineTotals``; the discount applies to subtotal plus tax."""
    subtotal = sum((line.total_price for line in lines), ZERO)
    tax = sum((line.tax_amount for line in lines), ZERO)
    rate = to_decimal(discount_rate)

    discount = ZERO
    if subtotal > 0 and rate > 0:
        discount = money((subtotal + tax) * rate / HUNDRED)

    total = max(ZERO, subtotal + tax - discount)
    effective_tax_rate = money(tax / subtotal * HUNDRED) if subtotal > 0 else ZERO

    return SaleTotals(
        subtotal=money(subtotal),
        tax=money(tax),
        discount=discount,
        total=money(total),
        effective_tax_rate=effective_tax_rate,
    )


def invoice_totals(work_items, tax=0, discount=0):
    """Subtotal of ``{title, price}`` work items and the resulting invoice total."""
    subtotal = sum((to_decimal(item.get('price')) for item in work_items), ZERO)
    tax = to_decimal(tax)
    discount = to_decimal(discount)
    return {
        'subtotal': float(money(subtotal)),
        'tax': float(money(tax)),
        'discount': float(money(discount)),
        'total': float(money(subtotal + tax - discount)),
    }
