"""Tests for quote request validation."""
import pytest

from drainr.errors import ValidationError
from drainr.schemas.quote import PipeLineIn, QuoteIn, parse_quote_payload, unwrap_payload

from conftest import sample_quote


class TestPipeLine:
    @pytest.mark.parametrize('raw', ['100mm', '100', 100, '100 MM', ' 100mm '])
    def test_size_normalised(self, raw):
        assert PipeLineIn(size=raw).size == '100mm'

    def test_meters_parsed_and_clamped(self):
        assert PipeLineIn(size='100mm', meters='12.5m').meters == 12.5
        assert PipeLineIn(size='100mm', meters=-3).meters == 0.0
        assert PipeLineIn(size='100mm', meters=80).meters == 50.0
        assert PipeLineIn(size='100mm', meters=None).meters == 0.0

    def test_junctions_floored(self):
        assert PipeLineIn(size='100mm', junctions='2.9').junctions == 2
        assert PipeLineIn(size='100mm', junctions=-1).junctions == 0


class TestQuoteIn:
    def test_nested_digging_flattened(self):
        quote = QuoteIn.model_validate({'digging': {'enabled': True, 'hours': '3'}})
        assert quote.digging_enabled is True
        assert quote.digging_hours == 3.0

    def test_flat_digging_keys_take_precedence(self):
        quote = QuoteIn.model_validate({'digging': {'enabled': True, 'hours': 3}, 'digging_hours': 1})
        assert quote.digging_hours == 1.0

    def test_text_fields_trimmed(self):
        quote = QuoteIn.model_validate({'job_number': 1001, 'customer_name': '  Jane  ', 'job_address': '   '})
        assert quote.job_number == '1001'
        assert quote.customer_name == 'Jane'
        assert quote.job_address is None

    def test_null_lists_become_empty(self):
        quote = QuoteIn.model_validate({'pipe_lines': None, 'extras': None})
        assert quote.pipe_lines == []
        assert quote.extras == []

    def test_extras_total_blank_means_not_supplied(self):
        assert QuoteIn.model_validate({'extras_total': ''}).extras_total is None
        assert QuoteIn.model_validate({'extras_total': None}).extras_total is None
        assert QuoteIn.model_validate({'extras_total': '$200'}).extras_total == 200.0

    @pytest.mark.parametrize('raw', ['n/a', 'TBC', '$', float('nan'), True])
    def test_unreadable_extras_total_means_not_supplied(self, raw):
        assert QuoteIn.model_validate({'extras_total': raw}).extras_total is None

    def test_negative_extras_total_clamped(self):
        assert QuoteIn.model_validate({'extras_total': '-40'}).extras_total == 0.0

    def test_client_totals_ignored(self):
        quote = QuoteIn.model_validate({'grand_total': 1, 'gst': 0})
        assert not hasattr(quote, 'grand_total')


class TestParseQuotePayload:
    def test_valid(self):
        quote = parse_quote_payload(sample_quote())
        assert quote.job_number == 'J1001'
        assert quote.pipe_lines[0].size == '100mm'

    def test_wrapped_payload(self):
        body = {'payload': sample_quote()}
        assert unwrap_payload(body) == sample_quote()
        assert parse_quote_payload(body).customer_name == 'Jane Citizen'

    @pytest.mark.parametrize('body', [None, [], 'quote', 42])
    def test_non_object_body(self, body):
        with pytest.raises(ValidationError) as exc:
            parse_quote_payload(body)
        assert exc.value.code == 'invalid_body'
        assert exc.value.status_code == 400

    def test_missing_identity_fields(self):
        with pytest.raises(ValidationError) as exc:
            parse_quote_payload(sample_quote(customer_name='  '))
        assert exc.value.code == 'missing_fields'
        assert exc.value.extra['needs'] == ['job_number', 'customer_name']
        assert exc.value.extra['missing'] == ['customer_name']
        assert exc.value.extra['got'] == {'job_number': 'J1001', 'customer_name': None}

    def test_bad_pipe_size_reports_field(self):
        body = sample_quote(pipe_lines=[{'size': 'huge', 'meters': 2}])
        with pytest.raises(ValidationError) as exc:
            parse_quote_payload(body)
        assert exc.value.code == 'invalid_payload'
        assert 'pipe_lines.0.size' in exc.value.extra['fields']

    def test_pipe_lines_must_be_a_list(self):
        with pytest.raises(ValidationError) as exc:
            parse_quote_payload(sample_quote(pipe_lines='12m of 100mm'))
        assert exc.value.code == 'invalid_payload'
