"""
Client for the credential broker that issues temporary object store credentials.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests

from shared.constants import CREDENTIAL_SUCCESS_CODE, CREDENTIAL_TOKEN_PATH, DEFAULT_NETWORK_TIMEOUT
from shared.exceptions import CredentialError
from shared.models import TemporaryCredentials

logger = logging.getLogger(__name__)


def parse_expiration(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO 8601 expiration timestamp.

    Naive timestamps are taken as UTC. Empty values mean no expiration.

    Raises:
        CredentialError: If the timestamp is not ISO 8601
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise CredentialError(f"Malformed credential expiration: {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _pick(data: Dict[str, Any], *names: str) -> str:
    for name in names:
        value = data.get(name)
        if value:
            return str(value)
    return ""


class CredentialBroker:
    """
    Fetches temporary credentials with the app key and secret.

    One call per pipeline invocation; failures are not retried.
    """

    def __init__(self, base_url: str, app_key: str, app_secret: str,
                 timeout: float = DEFAULT_NETWORK_TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.app_key = app_key
        self._app_secret = app_secret
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config, session: Optional[requests.Session] = None) -> 'CredentialBroker':
        return cls(config.broker_url, config.app_key, config.app_secret,
                   timeout=config.network_timeout, session=session)

    @property
    def token_url(self) -> str:
        return self.base_url + CREDENTIAL_TOKEN_PATH

    def fetch(self, now: Optional[datetime] = None) -> TemporaryCredentials:
        """
        Request temporary credentials.

        Raises:
            CredentialError: Broker unreachable, non-success response, or
                empty/expired credentials
        """
        payload = {'appKey': self.app_key, 'appSecret': self._app_secret}
        try:
            response = self.session.post(self.token_url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise CredentialError(f"Credential request failed: {e}") from e

        logger.debug("Credential broker %s answered HTTP %s", self.token_url, response.status_code)

        try:
            body = response.json()
        except ValueError as e:
            raise CredentialError(
                f"Credential response is not JSON (HTTP {response.status_code})",
                code=response.status_code,
            ) from e

        if not isinstance(body, dict):
            raise CredentialError("Credential response is not a JSON object")

        code = body.get('code')
        if not body.get('success') or code != CREDENTIAL_SUCCESS_CODE:
            raise CredentialError(
                f"Credential request denied: {body.get('message') or 'no message'}",
                code=code if isinstance(code, int) else None,
            )

        data = body.get('data') or {}
        if not isinstance(data, dict):
            raise CredentialError("Credential response carries no data object")

        credentials = TemporaryCredentials(
            access_key_id=_pick(data, 'AccessKeyId', 'access_key_id', 'accessKeyId'),
            access_key_secret=_pick(data, 'AccessKeySecret', 'access_key_secret', 'accessKeySecret'),
            security_token=_pick(data, 'SecurityToken', 'security_token', 'securityToken'),
            expiration=parse_expiration(_pick(data, 'Expiration', 'expiration')),
        )

        if not (credentials.access_key_id and credentials.access_key_secret and credentials.security_token):
            raise CredentialError("Credential response is missing key, secret or security token")
        if credentials.is_expired(now):
            raise CredentialError(f"Credentials already expired at {credentials.expiration.isoformat()}")

        logger.info("Obtained temporary credentials %s (expires %s)",
                    credentials.access_key_id, credentials.expiration or "never")
        return credentials
