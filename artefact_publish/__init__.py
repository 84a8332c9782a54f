"""Public interface for the archive and publish helpers."""

from .archiver import (
    ArchiveFormat,
    ArchiveRequest,
    ArchiveResult,
    create_archive,
    delete_archive,
    package_directory,
)
from .config import ArchiveConfig, PublishConfig, load_publish_config
from .errors import (
    ArchiveError,
    CascadeExhausted,
    DeletionFailed,
    NoBackendAvailable,
    OtherPublishFailure,
    PublishToolError,
    StagingError,
    VerificationFailed,
)
from .orchestrator import PublishOrchestrator, PublishRequest, PublishState
from .publisher import FailureKind, PublishAttempt, classify, publish
from .staging import staging_area, with_staging
from .versioning import SemanticVersion, fallback_sequence, primary_version

__all__ = [
    "ArchiveConfig",
    "ArchiveError",
    "ArchiveFormat",
    "ArchiveRequest",
    "ArchiveResult",
    "CascadeExhausted",
    "classify",
    "create_archive",
    "delete_archive",
    "DeletionFailed",
    "FailureKind",
    "fallback_sequence",
    "load_publish_config",
    "NoBackendAvailable",
    "OtherPublishFailure",
    "package_directory",
    "primary_version",
    "publish",
    "PublishAttempt",
    "PublishConfig",
    "PublishOrchestrator",
    "PublishRequest",
    "PublishState",
    "PublishToolError",
    "SemanticVersion",
    "StagingError",
    "staging_area",
    "VerificationFailed",
    "with_staging",
]
