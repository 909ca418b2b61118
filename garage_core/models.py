# garage_core/models.py
import secrets
import string
from datetime import date, datetime

from flask_login import UserMixin

from garage_core import db
from garage_core.utils.timestamps import isoformat, utcnow

ID_ALPHABET = string.ascii_letters + string.digits
ID_LENGTH = 20

STOCK_STATUSES = ('active', 'inactive', 'out-of-stock', 'low-stock')


def generate_id():
    """Random 20-character document ID."""
    return ''.join(secrets.choice(ID_ALPHABET) for _ in range(ID_LENGTH))


class RecordMixin:
    """Columns and serialization shared by every stored record."""

    ID_FIELD = None
    PRIVATE_FIELDS = ()

    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def record_id(self):
        return getattr(self, self.ID_FIELD)

    def to_dict(self):
        data = {}
        for column in self.__table__.columns:
            if column.key in self.PRIVATE_FIELDS:
                continue
            value = getattr(self, column.key)
            if isinstance(value, (datetime, date)):
                value = isoformat(value)
            data[column.key] = value
        return data


class User(RecordMixin, UserMixin, db.Model):
    __tablename__ = 'users'
    ID_FIELD = 'uid'
    PRIVATE_FIELDS = ('password',)

    uid = db.Column(db.String(128), primary_key=True, default=generate_id)
    email = db.Column(db.String(255), unique=True, nullable=True)
    password = db.Column(db.String(200), nullable=True)
    display_name = db.Column(db.String(120))
    owner_name = db.Column(db.String(120))
    service_id = db.Column(db.String(128), index=True)
    user_role = db.Column(db.String(20))  # owner, member
    photo_url = db.Column(db.String(500))
    email_verified = db.Column(db.Boolean, default=False, nullable=False)

    def get_id(self):
        return self.uid

    def __repr__(self):
        return f"<User {self.email}>"


class Service(RecordMixin, db.Model):
    __tablename__ = 'services'
    ID_FIELD = 'service_id'

    service_id = db.Column(db.String(128), primary_key=True)
    owner_id = db.Column(db.String(128), nullable=False, index=True)
    service_type = db.Column(db.String(20))  # garage, service
    service_name = db.Column(db.String(120))
    member_count = db.Column(db.Integer)
    phone_number = db.Column(db.String(30))
    address = db.Column(db.Text)
    service_gst_number = db.Column(db.String(30))

    def __repr__(self):
        return f"<Service {self.service_name}>"


class Customer(RecordMixin, db.Model):
    __tablename__ = 'customers'
    ID_FIELD = 'customer_id'

    customer_id = db.Column(db.String(20), primary_key=True, default=generate_id)
    service_id = db.Column(db.String(128), nullable=False, index=True)
    customer_status = db.Column(db.String(20))  # active, inactive, blocked
    customer_name = db.Column(db.String(120))
    customer_email = db.Column(db.String(255))
    customer_phone = db.Column(db.String(30))
    customer_address = db.Column(db.Text)
    job_count = db.Column(db.Integer, default=0)
    job_id = db.Column(db.String(20))
    customer_type = db.Column(db.String(20))  # individual, company
    customer_notes = db.Column(db.Text)
    customer_gst_number = db.Column(db.String(30))
    customer_gender = db.Column(db.String(10))  # male, female, other

    def __repr__(self):
        return f"<Customer {self.customer_name}>"


class Vehicle(RecordMixin, db.Model):
    __tablename__ = 'vehicles'
    ID_FIELD = 'vehicle_id'

    vehicle_id = db.Column(db.String(20), primary_key=True, default=generate_id)
    customer_id = db.Column(db.String(20), nullable=False, index=True)
    service_id = db.Column(db.String(128), nullable=False, index=True)
    vehicle_name = db.Column(db.String(120))
    vehicle_year = db.Column(db.Integer)
    vehicle_company = db.Column(db.String(120))
    vehicle_model = db.Column(db.String(120))
    vehicle_color = db.Column(db.String(50))
    vehicle_number = db.Column(db.String(30))
    vehicle_type = db.Column(db.String(10))  # car, bike, other

    def describe(self):
        parts = [self.vehicle_company, self.vehicle_model,
                 str(self.vehicle_year) if self.vehicle_year else None, self.vehicle_number]
        return ' '.join(p for p in parts if p) or 'Unknown Vehicle'

    def __repr__(self):
        return f"<Vehicle {self.vehicle_number}>"


class Job(RecordMixin, db.Model):
    __tablename__ = 'jobs'
    ID_FIELD = 'job_id'

    job_id = db.Column(db.String(20), primary_key=True, default=generate_id)
    service_id = db.Column(db.String(128), nullable=False, index=True)
    customer_id = db.Column(db.String(20), nullable=False, index=True)
    vehicle_id = db.Column(db.String(20), nullable=False, index=True)
    job_title = db.Column(db.String(200))
    job_description = db.Column(db.Text)
    job_status = db.Column(db.String(20))  # pending, in-progress, completed, cancelled
    job_type = db.Column(db.String(20))  # service, repair, maintenance, other
    job_amount = db.Column(db.Float)
    job_due_date = db.Column(db.DateTime(timezone=True))
    job_start_date = db.Column(db.DateTime(timezone=True))
    job_end_date = db.Column(db.DateTime(timezone=True))
    job_list = db.Column(db.Text)  # JSON-encoded list of work items
    job_notes = db.Column(db.Text)

    def __repr__(self):
        return f"<Job {self.job_title} [{self.job_status}]>"


class StockRecordMixin(RecordMixin):
    """Columns shared by inventory items and parts."""

    service_id = db.Column(db.String(128), nullable=False, index=True)
    category = db.Column(db.String(100))
    description = db.Column(db.Text)
    quantity = db.Column(db.Integer, default=0, nullable=False)
    unit = db.Column(db.String(30))
    cost_price = db.Column(db.Float)
    selling_price = db.Column(db.Float)
    min_stock_level = db.Column(db.Integer)
    max_stock_level = db.Column(db.Integer)
    supplier = db.Column(db.String(120))
    location = db.Column(db.String(100))
    status = db.Column(db.String(20), default='active')

    def total_value(self):
        return (self.quantity or 0) * (self.cost_price or 0)


class InventoryItem(StockRecordMixin, db.Model):
    __tablename__ = 'inventory'
    ID_FIELD = 'item_id'

    item_id = db.Column(db.String(20), primary_key=True, default=generate_id)
    item_name = db.Column(db.String(200))
    item_code = db.Column(db.String(100))

    def __repr__(self):
        return f"<InventoryItem {self.item_name} x{self.quantity}>"


class Part(StockRecordMixin, db.Model):
    __tablename__ = 'parts'
    ID_FIELD = 'part_id'

    part_id = db.Column(db.String(20), primary_key=True, default=generate_id)
    part_name = db.Column(db.String(200))
    part_number = db.Column(db.String(100))
    make = db.Column(db.String(100))
    model = db.Column(db.String(100))
    vehicle_type = db.Column(db.String(10))

    def __repr__(self):
        return f"<Part {self.part_name} x{self.quantity}>"


class MenuItem(RecordMixin, db.Model):
    __tablename__ = 'menu'
    ID_FIELD = 'menu_id'

    menu_id = db.Column(db.String(20), primary_key=True, default=generate_id)
    service_id = db.Column(db.String(128), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    price = db.Column(db.Float, default=0.0, nullable=False)
    category = db.Column(db.String(100))
    description = db.Column(db.Text)
    inventory_item_id = db.Column(db.String(20))
    quantity = db.Column(db.Float)
    status = db.Column(db.String(20), default='active')  # active, inactive

    def __repr__(self):
        return f"<MenuItem {self.title}>"


class Sale(RecordMixin, db.Model):
    __tablename__ = 'sales'
    ID_FIELD = 'sale_id'

    sale_id = db.Column(db.String(20), primary_key=True, default=generate_id)
    service_id = db.Column(db.String(128), nullable=False, index=True)
    customer_id = db.Column(db.String(20), index=True)  # None for walk-in sales
    sale_date = db.Column(db.DateTime(timezone=True))
    sale_items = db.Column(db.JSON, default=list, nullable=False)
    subtotal = db.Column(db.Float, default=0.0)
    tax = db.Column(db.Float, default=0.0)
    discount = db.Column(db.Float, default=0.0)
    total_amount = db.Column(db.Float, default=0.0)
    payment_method = db.Column(db.String(20))  # cash, card, upi, bank-transfer, other
    status = db.Column(db.String(20), default='completed')  # pending, completed, cancelled, refunded
    notes = db.Column(db.Text)

    def __repr__(self):
        return f"<Sale {self.sale_id} {self.total_amount}>"


class Invoice(RecordMixin, db.Model):
    __tablename__ = 'invoices'
    __table_args__ = (
        db.UniqueConstraint('service_id', 'invoice_number', name='uq_invoices_service_number'),
    )
    ID_FIELD = 'invoice_id'

    invoice_id = db.Column(db.String(20), primary_key=True, default=generate_id)
    service_id = db.Column(db.String(128), nullable=False, index=True)
    invoice_number = db.Column(db.String(30), nullable=False)
    job_id = db.Column(db.String(40), index=True)
    customer_id = db.Column(db.String(20), index=True)
    vehicle_id = db.Column(db.String(20))
    work_items = db.Column(db.JSON, default=list, nullable=False)
    subtotal = db.Column(db.Float, default=0.0)
    tax = db.Column(db.Float, default=0.0)
    discount = db.Column(db.Float, default=0.0)
    total = db.Column(db.Float, default=0.0)
    status = db.Column(db.String(20), default='draft')  # draft, sent, paid, overdue, cancelled
    issue_date = db.Column(db.DateTime(timezone=True))
    due_date = db.Column(db.DateTime(timezone=True))
    paid_date = db.Column(db.DateTime(timezone=True))
    notes = db.Column(db.Text)
    pdf_url = db.Column(db.String(500))

    def __repr__(self):
        return f"<Invoice {self.invoice_number} [{self.status}]>"
