"""
Configuration dataclasses for the Document Upload Pipeline.

This module defines type-safe configuration schemas using Python dataclasses.
These schemas are registered with Hydra to enable validation and IDE autocomplete
support for configuration values.
"""

from dataclasses import dataclass, field

from hydra.core.config_store import ConfigStore


class ConfigError(Exception):
    """Configuration error for the Document Upload Pipeline.

    Raised when configuration values are invalid or inconsistent, and when the
    pipeline is constructed without a connection or with an unknown upload
    type. Using a dedicated exception type makes it easier to distinguish
    configuration problems from other runtime errors.
    """


VALID_MODES = ("upload", "status", "dry_run")


@dataclass
class ServerConfig:
    """Configuration for the remote ingestion service.

    Session handling is delegated to the service: either a bearer token or an
    existing session id obtained by a separate login step is sent along with
    every request.
    """

    base_url: str = ""
    """Base URL of the REST API, e.g. https://transkribus.eu/TrpServer/rest"""

    api_token: str = ""
    """Bearer token sent in the Authorization header. Leave empty to use
    session_id instead."""

    session_id: str = ""
    """Session id sent as JSESSIONID cookie. Ignored when api_token is set."""

    timeout: int = 60
    """Timeout in seconds for a single HTTP request. Page uploads carry full
    resolution images, so this is larger than a typical API timeout."""

    def __post_init__(self) -> None:
        """Validate that base_url is set and timeout is positive."""
        if not self.base_url or not self.base_url.strip():
            raise ConfigError(
                "server.base_url is required and cannot be empty. "
                "Set it to the REST endpoint of the ingestion service."
            )
        if self.timeout <= 0:
            raise ConfigError("server.timeout must be greater than 0")


@dataclass
class RetryConfig:
    """Configuration for per-page retry behavior.

    The defaults reproduce the immediate fixed-count retry of the upload loop:
    three retries (four attempts in total) with no delay in between. Setting
    initial_delay > 0 switches to exponential backoff.
    """

    max_retries: int = 3
    """Number of retries after the first failed attempt of a page upload."""

    initial_delay: float = 0.0
    """Delay in seconds before the first retry. 0 retries immediately."""

    backoff_multiplier: float = 1.0
    """Multiplier applied to the delay on each further retry."""

    max_delay: float = 0.0
    """Maximum delay cap in seconds. Ignored when initial_delay is 0."""

    def __post_init__(self) -> None:
        """Validate retry configuration parameters."""
        if self.max_retries < 0:
            raise ConfigError("max_retries must be greater than or equal to 0")
        if self.initial_delay < 0:
            raise ConfigError("initial_delay must be greater than or equal to 0")
        if self.backoff_multiplier <= 0:
            raise ConfigError("backoff_multiplier must be greater than 0")
        if self.initial_delay > 0 and self.max_delay < self.initial_delay:
            raise ConfigError(
                "max_delay must be greater than or equal to initial_delay"
            )


@dataclass
class UploadConfig:
    """Configuration for a single document upload."""

    collection_id: int = 0
    """Target collection id on the ingestion service."""

    document_dir: str = ""
    """Local staging folder of the document. Images are read from this folder,
    transcripts from its page/ subfolder, and upload.xml is written here on
    failure or cancellation."""

    upload_type: str = "METS"
    """Structural encoding sent when opening the upload session.
    Options: 'METS', 'JSON'. 'NoStructure' is declared but not implemented."""

    compute_checksums: bool = True
    """Whether to compute MD5 checksums of all page files before uploading."""

    show_progress: bool = True
    """Whether to render a progress bar in the terminal."""

    upload_id: int | None = None
    """Upload id to query in status mode. When unset, the id stored in the
    document's upload.xml is used."""

    def __post_init__(self) -> None:
        """Validate upload configuration parameters."""
        if not self.document_dir or not self.document_dir.strip():
            raise ConfigError(
                "upload.document_dir is required and cannot be empty. "
                "Point it to the local staging folder of the document."
            )


@dataclass
class AppConfig:
    """Top-level application configuration.

    Combines all configuration groups into a single type-safe configuration
    object.
    """

    server: ServerConfig
    """Remote ingestion service configuration."""

    upload: UploadConfig
    """Document upload configuration."""

    retry: RetryConfig = field(default_factory=RetryConfig)
    """Per-page retry configuration."""

    mode: str = "upload"
    """Command to run. Options: 'upload', 'status', 'dry_run'."""

    def __post_init__(self) -> None:
        """Validate the selected mode."""
        if self.mode not in VALID_MODES:
            raise ConfigError(
                f"Unknown mode '{self.mode}'. "
                f"Valid modes: {', '.join(VALID_MODES)}"
            )


def register_configs() -> None:
    """Register structured configs with Hydra.

    This function must be called before Hydra initializes to enable type-safe
    configuration validation and IDE autocomplete support.
    """
    cs = ConfigStore.instance()

    cs.store(group="server", name="default", node=ServerConfig)
    cs.store(group="upload", name="default", node=UploadConfig)
    cs.store(group="retry", name="default", node=RetryConfig)
