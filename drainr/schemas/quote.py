# drainr/schemas/quote.py
"""
Request schemas for quote generation.

Incoming quote JSON is loosely shaped (numbers arrive as strings, money with
currency symbols, optional keys missing entirely). These models turn it into a
fully populated, typed representation before anything is priced or stored.
Numeric fields never fail: unreadable values become 0 and negatives are
clamped. Identity fields are checked separately so the error can name them.
"""

import math
import re
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError
from ..services.pricing import MAX_METERS, non_negative, parse_optional_money, round2

REQUIRED_FIELDS = ('job_number', 'customer_name')

_SIZE_PATTERN = re.compile(r'^\s*(\d+)\s*(mm)?\s*$', re.IGNORECASE)


def _as_text(value):
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class PipeLineIn(BaseModel):
    model_config = ConfigDict(extra='ignore')

    id: Optional[str] = None
    size: str
    meters: float = 0.0
    junctions: int = 0

    @field_validator('id', mode='before')
    @classmethod
    def _id_text(cls, v):
        return _as_text(v)

    @field_validator('size', mode='before')
    @classmethod
    def _normalize_size(cls, v):
        # "100", 100 and "100 MM" all mean "100mm"
        match = _SIZE_PATTERN.match(str(v)) if v is not None else None
        if not match:
            raise ValueError("size must look like '100mm' or '150mm'")
        return f"{int(match.group(1))}mm"

    @field_validator('meters', mode='before')
    @classmethod
    def _meters(cls, v):
        return min(non_negative(v), MAX_METERS)

    @field_validator('junctions', mode='before')
    @classmethod
    def _junctions(cls, v):
        return math.floor(non_negative(v))


class ExtraItemIn(BaseModel):
    model_config = ConfigDict(extra='ignore')

    id: Optional[str] = None
    note: str = ''
    amount: float = 0.0

    @field_validator('id', mode='before')
    @classmethod
    def _id_text(cls, v):
        return _as_text(v)

    @field_validator('note', mode='before')
    @classmethod
    def _note(cls, v):
        return _as_text(v) or ''

    @field_validator('amount', mode='before')
    @classmethod
    def _amount(cls, v):
        return round2(non_negative(v))


class QuoteIn(BaseModel):
    model_config = ConfigDict(extra='ignore')

    job_number: Optional[str] = None
    job_uuid: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    job_address: Optional[str] = None
    job_description: Optional[str] = None
    scope_of_works: Optional[str] = None
    technician_name: Optional[str] = None

    pipe_lines: List[PipeLineIn] = Field(default_factory=list)
    digging_enabled: bool = False
    digging_hours: float = 0.0
    extras: List[ExtraItemIn] = Field(default_factory=list)
    extras_total: Optional[float] = None

    @model_validator(mode='before')
    @classmethod
    def _flatten_digging(cls, data):
        # Accept {"digging": {"enabled": .., "hours": ..}} as well as flat keys
        if isinstance(data, dict) and isinstance(data.get('digging'), dict):
            data = dict(data)
            digging = data.pop('digging')
            data.setdefault('digging_enabled', digging.get('enabled', False))
            data.setdefault('digging_hours', digging.get('hours', 0))
        return data

    @field_validator('job_number', 'job_uuid', 'customer_name', 'customer_email', 'customer_phone',
                     'customer_address', 'job_address', 'job_description', 'scope_of_works',
                     'technician_name', mode='before')
    @classmethod
    def _text(cls, v):
        return _as_text(v)

    @field_validator('pipe_lines', 'extras', mode='before')
    @classmethod
    def _list_or_empty(cls, v):
        return [] if v is None else v

    @field_validator('digging_enabled', mode='before')
    @classmethod
    def _enabled(cls, v):
        return False if v is None or v == '' else v

    @field_validator('digging_hours', mode='before')
    @classmethod
    def _hours(cls, v):
        return non_negative(v)

    @field_validator('extras_total', mode='before')
    @classmethod
    def _extras_total(cls, v):
        # Unreadable totals count as not supplied so the extras are summed
        number = parse_optional_money(v)
        return None if number is None else max(number, 0.0)

    def missing_fields(self):
        return [name for name in REQUIRED_FIELDS if not getattr(self, name)]


def unwrap_payload(body):
    """Accept either the quote object itself or ``{"payload": {...}}``."""
    if isinstance(body, dict) and isinstance(body.get('payload'), dict):
        return body['payload']
    return body


def parse_quote_payload(body) -> QuoteIn:
    """
    Validate a quote generation request body.

    Raises:
        ValidationError: body is not an object, has a malformed shape, or is
            missing job_number / customer_name
    """
    data = unwrap_payload(body)
    if not isinstance(data, dict):
        raise ValidationError('invalid_body', 'Request body must be a JSON object')

    try:
        quote = QuoteIn.model_validate(data)
    except PydanticValidationError as e:
        fields = sorted({'.'.join(str(part) for part in err['loc']) for err in e.errors()})
        raise ValidationError('invalid_payload', 'The quote payload has invalid fields', fields=fields)

    missing = quote.missing_fields()
    if missing:
        raise ValidationError(
            'missing_fields',
            'Missing required fields',
            needs=list(REQUIRED_FIELDS),
            missing=missing,
            got={'job_number': quote.job_number, 'customer_name': quote.customer_name},
        )
    return quote
