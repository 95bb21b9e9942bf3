"""
Factory for creating object store instances.

Simplifies provider selection and connection with temporary credentials.
"""

from shared.config import TransferConfig
from shared.models import StorageProvider, TemporaryCredentials
from .storage_provider import ObjectStore
from .s3_provider import S3StorageProvider
from .local_provider import LocalStorageProvider


class StorageProviderFactory:
    """Factory for creating object store instances."""

    @staticmethod
    def create(config: TransferConfig, credentials: TemporaryCredentials) -> ObjectStore:
        """
        Create an object store for one pipeline invocation.

        Args:
            config: Transfer configuration (provider, endpoint, bucket, region)
            credentials: Temporary credentials from the broker

        Returns:
            Connected object store

        Raises:
            ValueError: If provider type is not supported
        """
        provider_type = config.provider

        if provider_type == StorageProvider.LOCAL:
            return LocalStorageProvider(config.endpoint, config.bucket)

        if provider_type == StorageProvider.ALIYUN_OSS:
            # OSS only accepts virtual-hosted style requests
            return S3StorageProvider.connect(
                credentials, config.bucket,
                endpoint_url=config.endpoint,
                region=config.region,
                addressing_style='virtual',
            )

        if provider_type == StorageProvider.CLOUDFLARE_R2:
            return S3StorageProvider.connect(
                credentials, config.bucket,
                endpoint_url=config.endpoint,
                region=config.region or 'auto',
            )

        if provider_type == StorageProvider.AWS_S3:
            return S3StorageProvider.connect(
                credentials, config.bucket,
                endpoint_url=config.endpoint or None,
                region=config.region,
            )

        raise ValueError(f"Unknown provider type: {provider_type}")

    @staticmethod
    def get_provider_name(provider_type: StorageProvider) -> str:
        """Get human-readable provider name."""
        names = {
            StorageProvider.AWS_S3: "Amazon S3",
            StorageProvider.CLOUDFLARE_R2: "Cloudflare R2",
            StorageProvider.ALIYUN_OSS: "Aliyun OSS",
            StorageProvider.LOCAL: "Local filesystem",
        }
        return names.get(provider_type, "Unknown")
