"""Main entry point for the Document Upload Pipeline."""

import logging
import sys

import hydra
from omegaconf import DictConfig

from docupload_pipeline.cli.commands import (
    dry_run_command,
    status_command,
    upload_command,
)
from docupload_pipeline.clients.exceptions import UploadClientError
from docupload_pipeline.clients.http_upload_client import HttpUploadClient
from docupload_pipeline.domain.config import (
    AppConfig,
    ConfigError,
    RetryConfig,
    ServerConfig,
    UploadConfig,
    register_configs,
)
from docupload_pipeline.utils.logging import setup_logging


def build_app_config(cfg: DictConfig) -> AppConfig:
    """Convert the Hydra DictConfig into the structured AppConfig.

    Raises:
        ConfigError: If a configuration group fails validation.
    """
    return AppConfig(
        server=ServerConfig(**cfg.server),
        upload=UploadConfig(**cfg.upload),
        retry=RetryConfig(**cfg.get("retry", {})),
        mode=cfg.get("mode", "upload"),
    )


def initialize_client(cfg: AppConfig, logger: logging.Logger) -> HttpUploadClient:
    """Initialize the upload client from configuration.

    Args:
        cfg: Application configuration object
        logger: Logger instance

    Returns:
        Initialized HttpUploadClient
    """
    logger.info("Initializing upload client...")
    client = HttpUploadClient(cfg.server)
    logger.info("Upload client initialized successfully")
    return client


@hydra.main(version_base=None, config_path="conf", config_name="config")
def main(cfg: DictConfig) -> int:
    """Main entry point for the pipeline.

    Args:
        cfg: Hydra configuration object

    Returns:
        Exit code: 0 for success, 1 for cancellation, 2 for upload failure,
        3 for configuration or fatal errors
    """
    register_configs()
    logger = setup_logging()

    try:
        app_cfg = build_app_config(cfg)

        if app_cfg.mode == "dry_run":
            return dry_run_command(app_cfg, logger)

        client = initialize_client(app_cfg, logger)
        try:
            if app_cfg.mode == "status":
                return status_command(app_cfg, logger, client)
            return upload_command(app_cfg, logger, client)
        finally:
            client.close()

    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return 3
    except UploadClientError as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 3
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 3


if __name__ == "__main__":
    sys.exit(main())  # type: ignore[call-arg]
