"""Factory classes for creating configured service instances."""

from typing import Any, Optional
import boto3

from .catalog import DynamoDBCatalogStore
from .config import PipelineConfig
from .observability import StructuredLogger
from .protocols import (
    CatalogStoreProtocol,
    EmailClientProtocol,
    LoggerProtocol,
    S3ClientProtocol,
)
from .services import (
    ConfirmationNotifier,
    ImageCatalogService,
    Mailer,
    MetadataUpdater,
    RejectionHandler,
)


class LoggerFactory:
    """Factory for creating logger instances."""

    @staticmethod
    def create_logger(name: str, level: Optional[str] = None) -> LoggerProtocol:
        """Create a configured structured logger."""
        return StructuredLogger(name, level)


class AWSClientFactory:
    """Factory for creating boto3 clients."""

    @staticmethod
    def create_client(service_name: str, region: Optional[str] = None, **kwargs: Any) -> Any:
        """Create a boto3 client with optional configuration."""
        session = boto3.Session(region_name=region)
        return session.client(service_name, **kwargs)

    @classmethod
    def create_s3_client(cls, **kwargs: Any) -> S3ClientProtocol:
        return cls.create_client("s3", **kwargs)

    @classmethod
    def create_ses_client(cls, region: Optional[str] = None) -> EmailClientProtocol:
        return cls.create_client("ses", region=region)


class ServiceFactory:
    """Builds the pipeline services, creating AWS-backed collaborators on demand."""

    def __init__(self, config: PipelineConfig, logger: Optional[LoggerProtocol] = None):
        self._config = config
        self._logger = logger or LoggerFactory.create_logger("photo-pipeline")

    @property
    def config(self) -> PipelineConfig:
        return self._config

    def create_catalog_store(self, dynamodb_client: Any = None) -> CatalogStoreProtocol:
        if dynamodb_client is None:
            dynamodb_client = AWSClientFactory.create_client("dynamodb")
        return DynamoDBCatalogStore(dynamodb_client, self._config.table_name)

    def create_mailer(self, email_client: Optional[EmailClientProtocol] = None) -> Mailer:
        if email_client is None:
            email_client = AWSClientFactory.create_ses_client(self._config.region)
        return Mailer(
            email_client,
            sender=self._config.email_from,
            recipient=self._config.email_to,
            sender_name=self._config.sender_name,
        )

    def create_image_catalog_service(
        self,
        s3_client: Optional[S3ClientProtocol] = None,
        catalog: Optional[CatalogStoreProtocol] = None,
    ) -> ImageCatalogService:
        if s3_client is None:
            s3_client = AWSClientFactory.create_s3_client()
        if catalog is None:
            catalog = self.create_catalog_store()
        return ImageCatalogService(s3_client, catalog, self._logger)

    def create_confirmation_notifier(
        self, email_client: Optional[EmailClientProtocol] = None
    ) -> ConfirmationNotifier:
        return ConfirmationNotifier(self.create_mailer(email_client), self._logger)

    def create_rejection_handler(
        self, email_client: Optional[EmailClientProtocol] = None
    ) -> RejectionHandler:
        return RejectionHandler(self.create_mailer(email_client), self._logger)

    def create_metadata_updater(
        self, catalog: Optional[CatalogStoreProtocol] = None
    ) -> MetadataUpdater:
        if catalog is None:
            catalog = self.create_catalog_store()
        return MetadataUpdater(catalog, self._logger)
