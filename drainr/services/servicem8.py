# drainr/services/servicem8.py
"""ServiceM8 job lookups used to pre-fill a quote."""

import logging
from typing import Optional

import requests

from ..errors import NotFound, UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = 'https://api.servicem8.com/api_1.0'


class ServiceM8Client:
    """Thin client for the ServiceM8 REST API (API-key auth)."""

    def __init__(self, api_key: str, api_base: str = DEFAULT_API_BASE, timeout: float = 15,
                 session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.api_base = (api_base or DEFAULT_API_BASE).rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request(self, endpoint: str, params: Optional[dict] = None):
        if not self.api_key:
            raise UpstreamError('servicem8_not_configured', 'ServiceM8 API key is not configured', status_code=500)

        url = f"{self.api_base}/{endpoint.lstrip('/')}"
        try:
            resp = self.session.get(url, params=params, headers={
                'X-API-Key': self.api_key,
                'Accept': 'application/json',
            }, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"ServiceM8 request to {endpoint} failed: {e}")
            raise UpstreamError('servicem8_error', 'Failed to reach ServiceM8', detail=type(e).__name__)

        if resp.status_code == 404:
            return None
        if not resp.ok:
            logger.error(f"ServiceM8 API error on {endpoint}: {resp.status_code} {resp.reason}")
            raise UpstreamError('servicem8_error', 'ServiceM8 request failed', detail=f"HTTP {resp.status_code}")

        try:
            return resp.json()
        except ValueError:
            logger.error(f"ServiceM8 returned non-JSON body for {endpoint}")
            raise UpstreamError('servicem8_error', 'ServiceM8 returned an invalid response', detail='invalid_json')

    @staticmethod
    def _filter(field, value):
        value = str(value).replace("'", "''")
        return {'$filter': f"{field} eq '{value}'"}

    def get_job(self, job_number: str) -> dict:
        jobs = self._request('job.json', params=self._filter('generated_job_id', job_number))
        if not jobs:
            raise NotFound('job_not_found', f"Job {job_number} not found")
        return jobs[0]

    def get_company(self, company_uuid: str) -> Optional[dict]:
        if not company_uuid:
            return None
        company = self._request(f'company/{company_uuid}.json')
        if isinstance(company, list):
            return company[0] if company else None
        return company

    def get_job_contact(self, job_uuid: str) -> Optional[dict]:
        """The job's site contact, falling back to whichever contact is listed first."""
        contacts = self._request('jobcontact.json', params=self._filter('job_uuid', job_uuid)) or []
        active = [c for c in contacts if str(c.get('active', 1)) != '0']
        for contact in active:
            if (contact.get('type') or '').upper() == 'JOB':
                return contact
        return active[0] if active else None

    def get_staff(self, staff_uuid: str) -> Optional[dict]:
        if not staff_uuid:
            return None
        staff = self._request(f'staff/{staff_uuid}.json')
        if isinstance(staff, list):
            return staff[0] if staff else None
        return staff

    def get_job_data(self, job_number: str) -> dict:
        """
        Collect everything needed to start a quote for a job.

        Returns:
            dict: job, company, contact, technician and quote_defaults
        """
        job = self.get_job(job_number)
        company = self.get_company(job.get('company_uuid'))
        contact = self.get_job_contact(job.get('uuid'))
        technician = self.get_staff(job.get('created_by_staff_uuid'))

        logger.info(f"Fetched ServiceM8 job {job_number} ({job.get('uuid')})")
        return {
            'job': job,
            'company': company,
            'contact': contact,
            'technician': technician,
            'quote_defaults': quote_defaults(job, company, contact, technician),
        }


def _full_name(person):
    if not person:
        return None
    name = f"{person.get('first') or ''} {person.get('last') or ''}".strip()
    return name or None


def quote_defaults(job, company=None, contact=None, technician=None):
    """Map ServiceM8 records onto quote fields"""
    company = company or {}
    contact = contact or {}
    return {
        'job_number': job.get('generated_job_id'),
        'job_uuid': job.get('uuid'),
        'job_address': job.get('job_address'),
        'job_description': job.get('job_description'),
        'customer_name': company.get('name') or _full_name(contact),
        'customer_email': contact.get('email') or company.get('email'),
        'customer_phone': contact.get('mobile') or contact.get('phone') or company.get('phone'),
        'customer_address': company.get('address') or job.get('billing_address') or job.get('job_address'),
        'technician_name': _full_name(technician),
    }
