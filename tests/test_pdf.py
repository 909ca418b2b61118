import re
import unittest
from datetime import datetime, timezone

from garage_core.utils.pdf_generator import format_date, generate_invoice_pdf, wrap_text


def page_count(pdf_bytes):
    return len(re.findall(rb'/Type /Page[^s]', pdf_bytes))


def invoice_data(**changes):
    data = {
        'invoice_number': 'INV-20250114-0001',
        'issue_date': datetime(2025, 1, 14, tzinfo=timezone.utc),
        'due_date': None,
        'customer_name': 'Jane Doe',
        'customer_phone': '555-0101',
        'vehicle_info': 'Honda City (2019) - KA01',
        'work_items': [{'title': 'Engine oil x 2 (Tax 5%)', 'price': 20.0}, {'title': 'Oil filter x 1', 'price': 20.0}],
        'subtotal': 40.0,
        'tax': 1.0,
        'discount': 4.1,
        'total': 36.9,
        'tax_rate': 2.5,
        'service_name': 'Main Street Garage',
        'notes': 'Counter sale\nWalk-in Customer: Sam',
    }
    data.update(changes)
    return data


class InvoicePdfTestCase(unittest.TestCase):
    def test_renders_a_pdf(self):
        pdf = generate_invoice_pdf(invoice_data())
        self.assertTrue(pdf.startswith(b'%PDF'))
        self.assertEqual(page_count(pdf), 1)

    def test_long_item_lists_continue_on_new_pages(self):
        items = [{'title': f'Service step {n}', 'price': n} for n in range(120)]
        pdf = generate_invoice_pdf(invoice_data(work_items=items))
        self.assertGreater(page_count(pdf), 1)

    def test_preview_and_empty_invoice(self):
        pdf = generate_invoice_pdf(invoice_data(work_items=[], subtotal=0, tax=0, discount=0, total=0, notes=None),
                                   preview=True)
        self.assertTrue(pdf.startswith(b'%PDF'))


class FormattingTestCase(unittest.TestCase):
    def test_format_date(self):
        self.assertEqual(format_date(datetime(2025, 1, 14, 8, 30)), '14 Jan 2025')
        self.assertEqual(format_date('2025-01-14T08:30:00Z'), '14 Jan 2025')
        self.assertEqual(format_date('next week'), 'next week')
        self.assertEqual(format_date(None), 'N/A')

    def test_wrap_text(self):
        self.assertEqual(wrap_text('abcdef', 4), ['abcd', 'ef'])
        self.assertEqual(wrap_text('one\n\ntwo', 10), ['one', '', 'two'])
        self.assertEqual(wrap_text(None), [''])


if __name__ == '__main__':
    unittest.main()
