# File: seismic/services/transport.py
import time
from dataclasses import dataclass
from typing import Optional

import requests
from flask import current_app


@dataclass
class DeliveryResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class WhatsAppTransport:
    """
    Sends text messages through a WhatsApp HTTP API.
    Without an API url and token every send is simulated as a success.
    """
    channel = 'whatsapp'

    def __init__(self, api_url=None, token=None, timeout=10, session=None):
        self.api_url = api_url
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config):
        return cls(
            api_url=config.get('WHATSAPP_API_URL'),
            token=config.get('WHATSAPP_TOKEN'),
            timeout=config.get('WHATSAPP_TIMEOUT_SECONDS', 10),
        )

    @property
    def simulated(self):
        return not (self.api_url and self.token)

    def send(self, recipient, message):
        if self.simulated:
            current_app.logger.info('[SIMULATED] WhatsApp to %s: %s', recipient, message.splitlines()[0])
            return DeliveryResult(success=True, message_id=f'sim_{int(time.time() * 1000)}')

        try:
            response = self.session.post(
                self.api_url,
                json={'to': recipient, 'message': message, 'type': 'text'},
                headers={'Authorization': f'Bearer {self.token}'},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            return DeliveryResult(success=False, error=str(e))

        if not response.ok:
            return DeliveryResult(success=False, error=f'HTTP {response.status_code}: {response.text[:200]}')

        try:
            body = response.json()
        except ValueError:
            body = {}
        return DeliveryResult(success=True, message_id=body.get('message_id') or f'wa_{int(time.time() * 1000)}')


def get_transport():
    return current_app.extensions['delivery_transport']
