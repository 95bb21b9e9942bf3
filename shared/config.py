"""
Immutable configuration for the transfer pipeline.

A :class:`TransferConfig` is built once (from the environment or from the
saved config file) and passed explicitly to every pipeline invocation.
Fetched credentials never get written back into it.
"""

import dataclasses
import json
import os
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from shared.constants import (
    CONFIG_FILENAME,
    DEFAULT_BROKER_URL,
    DEFAULT_BUCKET_NAME,
    DEFAULT_CONFIG_DIR,
    DEFAULT_MULTIPART_PART_SIZE,
    DEFAULT_NETWORK_TIMEOUT,
    DEFAULT_PACING_DELAY_SECONDS,
    DEFAULT_SPLIT_PART_DATA_SIZE,
    DEFAULT_STORE_ENDPOINT,
    DEFAULT_TRANSPORT_PART_SIZE,
    DEFAULT_URL_TTL_SECONDS,
    ENV_PREFIX,
)
from shared.crypto import CredentialManager
from shared.models import StorageProvider


@dataclass(frozen=True)
class TransferConfig:
    """
    Settings for one or more pipeline invocations.

    Attributes:
        app_key: Application key presented to the credential broker
        app_secret: Application secret presented to the credential broker
        broker_url: Base URL of the credential broker
        provider: Object store implementation
        endpoint: Object store endpoint URL (or base directory for LOCAL)
        bucket: Bucket name
        region: Region name passed to the S3 client
        transport_part_size: Part size for resample-and-upload multipart transfers
        multipart_part_size: Part size for plain multipart uploads
        split_part_data_size: Audio data bytes per logical split part
        url_ttl_seconds: Validity window of signed URLs
        pacing_delay_seconds: Sleep between part uploads
        scratch_dir: Parent directory for temporary files (system default if None)
        network_timeout: Timeout for broker requests, in seconds
    """
    app_key: str
    app_secret: str = dataclasses.field(repr=False)
    broker_url: str = DEFAULT_BROKER_URL
    provider: StorageProvider = StorageProvider.ALIYUN_OSS
    endpoint: str = DEFAULT_STORE_ENDPOINT
    bucket: str = DEFAULT_BUCKET_NAME
    region: Optional[str] = None
    transport_part_size: int = DEFAULT_TRANSPORT_PART_SIZE
    multipart_part_size: int = DEFAULT_MULTIPART_PART_SIZE
    split_part_data_size: int = DEFAULT_SPLIT_PART_DATA_SIZE
    url_ttl_seconds: int = DEFAULT_URL_TTL_SECONDS
    pacing_delay_seconds: float = DEFAULT_PACING_DELAY_SECONDS
    scratch_dir: Optional[str] = None
    network_timeout: float = DEFAULT_NETWORK_TIMEOUT

    def __post_init__(self):
        for name in ('transport_part_size', 'multipart_part_size', 'split_part_data_size', 'url_ttl_seconds'):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.pacing_delay_seconds < 0:
            raise ValueError("pacing_delay_seconds must not be negative")

    def with_overrides(self, **changes: Any) -> 'TransferConfig':
        """Return a copy with some fields replaced."""
        return dataclasses.replace(self, **changes)

    def to_dict(self, encrypt: bool = True) -> Dict[str, Any]:
        """Convert config to dictionary, encrypting the app secret by default."""
        data = asdict(self)
        data['provider'] = self.provider.value
        if encrypt:
            data['app_secret'] = CredentialManager.encrypt(self.app_secret)
        data['is_encrypted'] = encrypt
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TransferConfig':
        """Create config from dictionary, decrypting the app secret if needed."""
        field_names = {f.name for f in dataclasses.fields(cls)}
        filtered_data = {k: v for k, v in data.items() if k in field_names}

        if 'provider' in filtered_data:
            filtered_data['provider'] = StorageProvider(filtered_data['provider'])

        if data.get('is_encrypted', False):
            secret = CredentialManager.decrypt(filtered_data.get('app_secret', ''))
            if secret is None:
                raise ValueError("Stored app secret cannot be decrypted on this machine")
            filtered_data['app_secret'] = secret

        return cls(**filtered_data)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, json_str: str) -> 'TransferConfig':
        return cls.from_dict(json.loads(json_str))

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> 'TransferConfig':
        """
        Build config from VOICEDROP_* environment variables.

        A .env file is loaded first if present (variables already set win).

        Raises:
            ValueError: If VOICEDROP_APP_KEY or VOICEDROP_APP_SECRET is missing
        """
        load_dotenv(env_file)

        def env(name: str, default: Optional[str] = None) -> Optional[str]:
            return os.getenv(ENV_PREFIX + name, default)

        app_key = env('APP_KEY')
        app_secret = env('APP_SECRET')
        if not app_key or not app_secret:
            raise ValueError(f"{ENV_PREFIX}APP_KEY and {ENV_PREFIX}APP_SECRET must be set")

        kwargs: Dict[str, Any] = {'app_key': app_key, 'app_secret': app_secret}
        string_fields = {
            'BROKER_URL': 'broker_url',
            'ENDPOINT': 'endpoint',
            'BUCKET': 'bucket',
            'REGION': 'region',
            'SCRATCH_DIR': 'scratch_dir',
        }
        int_fields = {
            'TRANSPORT_PART_SIZE': 'transport_part_size',
            'MULTIPART_PART_SIZE': 'multipart_part_size',
            'SPLIT_PART_DATA_SIZE': 'split_part_data_size',
            'URL_TTL_SECONDS': 'url_ttl_seconds',
        }
        float_fields = {
            'PACING_DELAY_SECONDS': 'pacing_delay_seconds',
            'NETWORK_TIMEOUT': 'network_timeout',
        }
        for var, name in string_fields.items():
            value = env(var)
            if value:
                kwargs[name] = value
        for var, name in int_fields.items():
            value = env(var)
            if value:
                kwargs[name] = int(value)
        for var, name in float_fields.items():
            value = env(var)
            if value:
                kwargs[name] = float(value)

        provider = env('PROVIDER')
        if provider:
            kwargs['provider'] = StorageProvider(provider.lower())

        return cls(**kwargs)


def default_config_path() -> Path:
    return Path(DEFAULT_CONFIG_DIR).expanduser() / CONFIG_FILENAME


def load_config(path: Optional[Path] = None) -> TransferConfig:
    """
    Load config from a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist
    """
    config_path = Path(path) if path else default_config_path()
    with open(config_path, 'r') as f:
        return TransferConfig.from_json(f.read())


def save_config(config: TransferConfig, path: Optional[Path] = None) -> Path:
    """Write config to a JSON file with the app secret encrypted."""
    config_path = Path(path) if path else default_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, 'w') as f:
        f.write(config.to_json())
    return config_path
