# garage_core/forms.py
from decimal import Decimal

from flask_babel import lazy_gettext as _
from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict
from wtforms import (
    BooleanField, DecimalField, FieldList, FloatField, Form, FormField,
    IntegerField, PasswordField, SelectField, StringField, TextAreaField,
)
from wtforms.validators import DataRequired, Email, InputRequired, Length, NumberRange, Optional, ValidationError

from garage_core.errors import FormValidationError
from garage_core.utils.timestamps import as_utc

SKIP_FIELDS = ('csrf_token', 'submit')


def _choices(*values):
    return [(value, value.replace('-', ' ').title()) for value in values]


class TimestampField(StringField):
    """Accepts ISO-8601 text (``Z`` suffix included) and yields an aware UTC datetime."""

    def process_formdata(self, valuelist):
        if not valuelist or not valuelist[0]:
            self.data = None
            return
        try:
            self.data = as_utc(valuelist[0])
        except (TypeError, ValueError):
            self.data = None
            raise ValueError(self.gettext('Not a valid date/time value.'))


# -------------------
# JSON body helpers
# -------------------

def json_formdata(payload, prefix=''):
    """Flatten a JSON object into the MultiDict a browser form post would produce.

    Nested lists become ``items-0-quantity`` style keys so FieldList/FormField
    validate them the same way they validate a rendered form.
    """
    formdata = MultiDict()

    def add(name, value):
        if isinstance(value, dict):
            for key, item in value.items():
                add(f"{name}-{key}" if name else key, item)
        elif isinstance(value, (list, tuple)):
            for index, item in enumerate(value):
                add(f"{name}-{index}", item)
        elif value is None or value is False:
            formdata.add(name, '')
        elif value is True:
            formdata.add(name, 'y')
        else:
            formdata.add(name, str(value))

    add(prefix, payload)
    return formdata


def _clean(value):
    if isinstance(value, str) and value == '':
        return None
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, dict):
        return {key: _clean(item) for key, item in value.items() if key not in SKIP_FIELDS}
    if isinstance(value, list):
        return [_clean(item) for item in value]
    return value


def form_values(form, names=None):
    """Field data as plain JSON-ready values; empty strings become None."""
    fields = names if names is not None else [n for n in form._fields if n not in SKIP_FIELDS]
    return {name: _clean(form[name].data) for name in fields}


def validate_partial(form, names):
    """Run the validators of the submitted fields only (partial updates)."""
    success = True
    for name in names:
        field = form._fields[name]
        inline = getattr(form.__class__, f"validate_{name}", None)
        extra = [inline] if inline is not None else []
        if not field.validate(form, extra):
            success = False
    return success


def load_form(form_class, payload, partial=False):
    """Validate a JSON body with ``form_class`` and return the cleaned values.

    Raises FormValidationError carrying the per-field errors.
    """
    if not isinstance(payload, dict):
        raise FormValidationError({}, "Expected a JSON object.")

    form = form_class(formdata=json_formdata(payload), meta={'csrf': False})
    if partial:
        names = [name for name in payload if name in form._fields and name not in SKIP_FIELDS]
        valid = validate_partial(form, names)
    else:
        names = None
        valid = form.validate()

    if not valid:
        raise FormValidationError(form.errors)
    return form_values(form, names)


# -------------------
# Authentication Forms
# -------------------

class RegisterForm(FlaskForm):
    email = StringField(_("Email"), validators=[DataRequired(), Email()])
    password = PasswordField(_("Password"), validators=[DataRequired(), Length(min=6)])
    display_name = StringField(_("Display Name"), validators=[Optional(), Length(max=120)])
    owner_name = StringField(_("Owner Name"), validators=[Optional(), Length(max=120)])
    service_name = StringField(_("Service Name"), validators=[DataRequired(), Length(max=120)])
    service_type = SelectField(_("Service Type"), choices=_choices('garage', 'service'), default='garage')
    phone_number = StringField(_("Phone"), validators=[Optional(), Length(max=30)])
    address = TextAreaField(_("Address"), validators=[Optional()])
    service_gst_number = StringField(_("GSTIN"), validators=[Optional(), Length(max=30)])


class LoginForm(FlaskForm):
    email = StringField(_("Email"), validators=[DataRequired(), Email()])
    password = PasswordField(_("Password"), validators=[DataRequired()])


class PasswordResetRequestForm(FlaskForm):
    email = StringField(_("Email"), validators=[DataRequired(), Email()])


class PasswordResetForm(FlaskForm):
    password = PasswordField(_("New Password"), validators=[DataRequired(), Length(min=6)])


# -------------------
# Service & members
# -------------------

class ServiceForm(FlaskForm):
    service_name = StringField(_("Service Name"), validators=[DataRequired(), Length(max=120)])
    service_type = SelectField(_("Service Type"), choices=_choices('garage', 'service'), validators=[Optional()])
    member_count = IntegerField(_("Members"), validators=[Optional(), NumberRange(min=0)])
    phone_number = StringField(_("Phone"), validators=[Optional(), Length(max=30)])
    address = TextAreaField(_("Address"), validators=[Optional()])
    service_gst_number = StringField(_("GSTIN"), validators=[Optional(), Length(max=30)])


class MemberForm(FlaskForm):
    email = StringField(_("Email"), validators=[DataRequired(), Email()])
    password = PasswordField(_("Password"), validators=[DataRequired(), Length(min=6)])
    display_name = StringField(_("Display Name"), validators=[Optional(), Length(max=120)])
    user_role = SelectField(_("Role"), choices=_choices('member', 'owner'), default='member')
    photo_url = StringField(_("Photo URL"), validators=[Optional(), Length(max=500)])


class MemberUpdateForm(FlaskForm):
    display_name = StringField(_("Display Name"), validators=[Optional(), Length(max=120)])
    user_role = SelectField(_("Role"), choices=_choices('member', 'owner'), validators=[DataRequired()])
    photo_url = StringField(_("Photo URL"), validators=[Optional(), Length(max=500)])
    password = PasswordField(_("Password"), validators=[Optional(), Length(min=6)])


# -------------------
# Customers & vehicles
# -------------------

class CustomerForm(FlaskForm):
    customer_name = StringField(_("Customer Name"), validators=[DataRequired(), Length(max=120)])
    customer_email = StringField(_("Email"), validators=[Optional(), Email()])
    customer_phone = StringField(_("Phone"), validators=[Optional(), Length(max=30)])
    customer_address = TextAreaField(_("Address"), validators=[Optional()])
    customer_status = SelectField(
        _("Status"), choices=_choices('active', 'inactive', 'blocked'), default='active'
    )
    customer_type = SelectField(
        _("Type"), choices=_choices('individual', 'company'), validators=[Optional()]
    )
    customer_notes = TextAreaField(_("Notes"), validators=[Optional()])
    customer_gst_number = StringField(_("GSTIN"), validators=[Optional(), Length(max=30)])
    customer_gender = SelectField(
        _("Gender"), choices=_choices('male', 'female', 'other'), validators=[Optional()]
    )


class VehicleForm(FlaskForm):
    customer_id = StringField(_("Customer"), validators=[DataRequired()])
    vehicle_name = StringField(_("Name"), validators=[Optional(), Length(max=120)])
    vehicle_year = IntegerField(_("Year"), validators=[Optional(), NumberRange(min=1886, max=2100)])
    vehicle_company = StringField(_("Company"), validators=[Optional(), Length(max=120)])
    vehicle_model = StringField(_("Model"), validators=[Optional(), Length(max=120)])
    vehicle_color = StringField(_("Color"), validators=[Optional(), Length(max=50)])
    vehicle_number = StringField(_("Registration Number"), validators=[Optional(), Length(max=30)])
    vehicle_type = SelectField(_("Type"), choices=_choices('car', 'bike', 'other'), validators=[Optional()])


# -------------------
# Jobs
# -------------------

class JobForm(FlaskForm):
    customer_id = StringField(_("Customer"), validators=[DataRequired()])
    vehicle_id = StringField(_("Vehicle"), validators=[DataRequired()])
    job_title = StringField(_("Title"), validators=[DataRequired(), Length(max=200)])
    job_description = TextAreaField(_("Description"), validators=[Optional()])
    job_status = SelectField(
        _("Status"), choices=_choices('pending', 'in-progress', 'completed', 'cancelled'), default='pending'
    )
    job_type = SelectField(
        _("Type"), choices=_choices('service', 'repair', 'maintenance', 'other'), validators=[Optional()]
    )
    job_amount = FloatField(_("Amount"), validators=[Optional(), NumberRange(min=0)])
    job_due_date = TimestampField(_("Due Date"), validators=[Optional()])
    job_start_date = TimestampField(_("Start Date"), validators=[Optional()])
    job_end_date = TimestampField(_("End Date"), validators=[Optional()])
    job_notes = TextAreaField(_("Notes"), validators=[Optional()])

    def validate_job_end_date(self, field):
        start = self.job_start_date.data
        if field.data and start and field.data < start:
            raise ValidationError(_("End date cannot be before the start date."))


class JobInvoiceForm(FlaskForm):
    paid_date = TimestampField(_("Paid Date"), validators=[Optional()])


# -------------------
# Inventory & parts
# -------------------

STOCK_STATUS_CHOICES = _choices('active', 'inactive', 'out-of-stock', 'low-stock')


class StockRecordForm(FlaskForm):
    category = StringField(_("Category"), validators=[Optional(), Length(max=100)])
    description = TextAreaField(_("Description"), validators=[Optional()])
    quantity = IntegerField(_("Quantity"), default=0, validators=[Optional(), NumberRange(min=0)])
    unit = StringField(_("Unit"), validators=[Optional(), Length(max=30)])
    cost_price = FloatField(_("Cost Price"), validators=[Optional(), NumberRange(min=0)])
    selling_price = FloatField(_("Selling Price"), validators=[Optional(), NumberRange(min=0)])
    min_stock_level = IntegerField(_("Minimum Stock"), validators=[Optional(), NumberRange(min=0)])
    max_stock_level = IntegerField(_("Maximum Stock"), validators=[Optional(), NumberRange(min=0)])
    supplier = StringField(_("Supplier"), validators=[Optional(), Length(max=120)])
    location = StringField(_("Location"), validators=[Optional(), Length(max=100)])
    status = SelectField(_("Status"), choices=STOCK_STATUS_CHOICES, validators=[Optional()])


class InventoryItemForm(StockRecordForm):
    item_name = StringField(_("Item Name"), validators=[DataRequired(), Length(max=200)])
    item_code = StringField(_("Item Code"), validators=[Optional(), Length(max=100)])


class PartForm(StockRecordForm):
    part_name = StringField(_("Part Name"), validators=[DataRequired(), Length(max=200)])
    part_number = StringField(_("Part Number"), validators=[Optional(), Length(max=100)])
    make = StringField(_("Make"), validators=[Optional(), Length(max=100)])
    model = StringField(_("Model"), validators=[Optional(), Length(max=100)])
    vehicle_type = SelectField(_("Vehicle Type"), choices=_choices('car', 'bike', 'other'), validators=[Optional()])


class AdjustQuantityForm(FlaskForm):
    delta = IntegerField(_("Change"), validators=[InputRequired()])


class MenuItemForm(FlaskForm):
    title = StringField(_("Title"), validators=[DataRequired(), Length(max=200)])
    price = FloatField(_("Price"), validators=[InputRequired(), NumberRange(min=0)])
    category = StringField(_("Category"), validators=[Optional(), Length(max=100)])
    description = TextAreaField(_("Description"), validators=[Optional()])
    inventory_item_id = StringField(_("Inventory Item"), validators=[Optional()])
    quantity = FloatField(_("Used Quantity"), validators=[Optional(), NumberRange(min=0)])
    status = SelectField(_("Status"), choices=_choices('active', 'inactive'), default='active')


# -------------------
# Sales & invoices
# -------------------

PAYMENT_METHODS = _choices('cash', 'card', 'upi', 'bank-transfer', 'other')


class SaleLineForm(Form):
    inventory_item_id = StringField(_("Item"), validators=[DataRequired()])
    quantity = IntegerField(_("Quantity"), validators=[InputRequired()])
    unit_price = DecimalField(_("Unit Price"), places=2, validators=[Optional()])
    tax_rate = DecimalField(_("Tax Rate (%)"), default=0, validators=[Optional()])


class CheckoutForm(FlaskForm):
    customer_id = StringField(_("Customer"))
    walk_in = BooleanField(_("Walk-in Customer"))
    walk_in_customer_name = StringField(_("Walk-in Customer Name"), validators=[Optional(), Length(max=120)])
    walk_in_customer_gst = StringField(_("Walk-in GSTIN"), validators=[Optional(), Length(max=30)])
    payment_method = SelectField(_("Payment Method"), choices=PAYMENT_METHODS, default='cash')
    discount_rate = DecimalField(_("Discount (%)"), default=0, validators=[Optional(), NumberRange(min=0, max=100)])
    notes = TextAreaField(_("Notes"), validators=[Optional()])
    items = FieldList(FormField(SaleLineForm), min_entries=0)

    def validate_customer_id(self, field):
        if not self.walk_in.data and not field.data:
            raise ValidationError(_("Select a customer or mark the sale as walk-in."))


class SaleUpdateForm(FlaskForm):
    status = SelectField(
        _("Status"), choices=_choices('pending', 'completed', 'cancelled', 'refunded'), validators=[Optional()]
    )
    payment_method = SelectField(_("Payment Method"), choices=PAYMENT_METHODS, validators=[Optional()])
    notes = TextAreaField(_("Notes"), validators=[Optional()])


class WorkItemForm(Form):
    title = StringField(_("Title"), validators=[DataRequired()])
    price = DecimalField(_("Price"), places=2, default=0, validators=[Optional(), NumberRange(min=0)])


INVOICE_STATUSES = _choices('draft', 'sent', 'paid', 'overdue', 'cancelled')


class InvoiceForm(FlaskForm):
    job_id = StringField(_("Job"), validators=[Optional()])
    customer_id = StringField(_("Customer"), validators=[Optional()])
    vehicle_id = StringField(_("Vehicle"), validators=[Optional()])
    work_items = FieldList(FormField(WorkItemForm), min_entries=0)
    tax = DecimalField(_("Tax"), places=2, default=0, validators=[Optional(), NumberRange(min=0)])
    discount = DecimalField(_("Discount"), places=2, default=0, validators=[Optional(), NumberRange(min=0)])
    status = SelectField(_("Status"), choices=INVOICE_STATUSES, default='draft')
    issue_date = TimestampField(_("Issue Date"), validators=[Optional()])
    due_date = TimestampField(_("Due Date"), validators=[Optional()])
    paid_date = TimestampField(_("Paid Date"), validators=[Optional()])
    notes = TextAreaField(_("Notes"), validators=[Optional()])

    def validate_work_items(self, field):
        if not field.entries:
            raise ValidationError(_("Add at least one work item."))
