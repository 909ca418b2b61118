# garage_core/listing.py
"""In-memory search, filter and summary helpers for list endpoints."""

ALL = 'all'


def _field(record, name):
    if isinstance(record, dict):
        return record.get(name)
    return getattr(record, name, None)


def matches_search(record, query, fields):
    if not query:
        return True
    needle = query.strip().lower()
    if not needle:
        return True
    for name in fields:
        value = _field(record, name)
        if value is not None and needle in str(value).lower():
            return True
    return False


def matches_choice(value, selected):
    if selected in (None, '', ALL):
        return True
    return value == selected


def filter_records(records, query=None, fields=(), **choices):
    return [
        record for record in records
        if matches_search(record, query, fields)
        and all(matches_choice(_field(record, name), selected) for name, selected in choices.items())
    ]


def count_by(records, field, values):
    counts = {value: 0 for value in values}
    for record in records:
        value = _field(record, field)
        if value in counts:
            counts[value] += 1
    return counts


def sum_of(records, field):
    return sum((_field(record, field) or 0) for record in records)
