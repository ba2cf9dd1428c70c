"""
Client for the external certification issuer.

The issuer records a certificate hash against an address and answers with
the transaction id it produced. That id is stored exactly as returned.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import requests
from django.conf import settings

from core.exceptions import GatewayTimeoutError, GatewayUnavailableError

logger = logging.getLogger(__name__)


@dataclass
class CertificationOutcome:
    status: str
    tx_id: Optional[str] = None

    @property
    def is_issued(self):
        return self.status != 'failed' and bool(self.tx_id)


class CertificationGateway:

    def __init__(self, base_url, token, timeout):
        self.base_url = base_url.rstrip('/')
        self.token = token
        self.timeout = timeout

    def _headers(self):
        return {
            'Authorization': f'Bearer {self.token.strip()}',
            'Content-Type': 'application/json'
        }

    def issue(self, skill, certificate_hash, address):
        payload = {'skill_name': skill, 'certificate_hash': certificate_hash, 'address': address}
        try:
            response = requests.post(
                f"{self.base_url}/certifications", json=payload, headers=self._headers(), timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.Timeout:
            logger.error(f"Certification issuer timed out after {self.timeout}s for '{skill}'")
            raise GatewayTimeoutError('Certification issuer did not answer in time.')
        except requests.exceptions.RequestException as e:
            logger.error(f"Certification issuer request failed for '{skill}': {str(e)}")
            raise GatewayUnavailableError('Certification issuer is unavailable.')
        except ValueError:
            logger.error(f"Certification issuer returned a non-JSON body for '{skill}'")
            raise GatewayUnavailableError('Certification issuer answered unreadably.')
        logger.info(f"Issuer answered {data.get('status')} for '{skill}' at {address}")
        return CertificationOutcome(status=data.get('status', 'failed'), tx_id=data.get('tx_id'))

    def lookup(self, address, skill):
        """Return ``{'certificate_hash', 'timestamp'}`` for a recorded certification, or None."""
        try:
            response = requests.get(
                f"{self.base_url}/certifications/{address}/{skill}", headers=self._headers(), timeout=self.timeout
            )
            if response.status_code == 404:
                return None
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.Timeout:
            raise GatewayTimeoutError('Certification issuer did not answer in time.')
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"Certification lookup failed for '{skill}' at {address}: {str(e)}")
            raise GatewayUnavailableError('Certification issuer is unavailable.')
        if not data.get('certificate_hash'):
            return None
        return data


def get_certification_gateway():
    if not settings.CERTIFICATION_ISSUER_URL or not settings.CERTIFICATION_ISSUER_TOKEN:
        raise GatewayUnavailableError('Certification service not configured')
    return CertificationGateway(
        settings.CERTIFICATION_ISSUER_URL,
        settings.CERTIFICATION_ISSUER_TOKEN,
        settings.GATEWAY_TIMEOUT_SECONDS,
    )
