# drainr/services/mux.py
"""Mux direct uploads for CCTV footage.

The service only asks Mux for a one-off upload URL; the browser PUTs the file
straight to that URL, so video bytes never pass through this application.
"""

import json
import logging
from typing import Optional

import requests

from ..errors import UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = 'https://api.mux.com'


class MuxClient:
    def __init__(self, token_id: str, token_secret: str, api_base: str = DEFAULT_API_BASE,
                 cors_origin: str = '*', timeout: float = 15, session: Optional[requests.Session] = None):
        self.token_id = token_id
        self.token_secret = token_secret
        self.api_base = (api_base or DEFAULT_API_BASE).rstrip('/')
        self.cors_origin = cors_origin or '*'
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def configured(self):
        return bool(self.token_id and self.token_secret)

    def create_upload(self, passthrough: dict) -> dict:
        """
        Create a direct upload whose asset will carry ``passthrough``.

        Returns:
            dict: {'upload_id': str, 'upload_url': str}
        """
        if not self.configured:
            raise UpstreamError('mux_not_configured', 'Mux credentials are not configured', status_code=500)

        body = {
            'cors_origin': self.cors_origin,
            'new_asset_settings': {
                'playback_policy': ['public'],
                'passthrough': json.dumps(passthrough, separators=(',', ':')),
            },
        }

        try:
            resp = self.session.post(f"{self.api_base}/video/v1/uploads", json=body,
                                     auth=(self.token_id, self.token_secret), timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Mux upload creation failed: {e}")
            raise UpstreamError('mux_error', 'Failed to reach Mux', detail=type(e).__name__)

        if not resp.ok:
            logger.error(f"Mux upload creation returned {resp.status_code}")
            raise UpstreamError('mux_error', 'Mux rejected the upload request', detail=f"HTTP {resp.status_code}")

        try:
            data = resp.json().get('data') or {}
        except ValueError:
            raise UpstreamError('mux_error', 'Mux returned an invalid response', detail='invalid_json')

        if not data.get('id') or not data.get('url'):
            raise UpstreamError('mux_error', 'Mux response did not include an upload URL', detail='missing_upload')

        return {'upload_id': data['id'], 'upload_url': data['url']}
