"""Public package entrypoint for the binary build pipeline."""

__version__ = "1.0.0"

from .backends import InProcessBackend, PackagerBackend, PkgBackend  # noqa: E402
from .clean import CleanReport, clean_output_dir  # noqa: E402
from .config import (  # noqa: E402
    BuildConfig,
    BuildSettings,
    OutputPolicy,
    PlatformSpec,
    RuntimeSpec,
    load_config,
    parse_config,
)
from .errors import (  # noqa: E402
    BackendExecutionError,
    BinmatrixError,
    ConfigError,
    ManifestError,
    ManifestNotFoundError,
    OutputNotFoundError,
    PackagingError,
    PlanEmptyError,
)
from .executor import BuildExecutor  # noqa: E402
from .manifest import Manifest, ManifestEntry, read_manifest, write_manifest  # noqa: E402
from .models import ArtifactMeta, BuildJob, BuildResult, RunSummary  # noqa: E402
from .packaging import Packager, archive_name  # noqa: E402
from .pipeline import BuildPipeline, BuildRun  # noqa: E402
from .planner import plan_jobs  # noqa: E402
from .verify import (  # noqa: E402
    VerificationReport,
    VerificationResult,
    verify_digest,
    verify_directory,
    verify_manifest,
    verify_sidecar,
)

__all__ = [
    "ArtifactMeta",
    "BackendExecutionError",
    "BinmatrixError",
    "BuildConfig",
    "BuildExecutor",
    "BuildJob",
    "BuildPipeline",
    "BuildResult",
    "BuildRun",
    "BuildSettings",
    "CleanReport",
    "ConfigError",
    "InProcessBackend",
    "Manifest",
    "ManifestEntry",
    "ManifestError",
    "ManifestNotFoundError",
    "OutputNotFoundError",
    "OutputPolicy",
    "PackagerBackend",
    "Packager",
    "PackagingError",
    "PkgBackend",
    "PlanEmptyError",
    "PlatformSpec",
    "RunSummary",
    "RuntimeSpec",
    "VerificationReport",
    "VerificationResult",
    "archive_name",
    "clean_output_dir",
    "load_config",
    "parse_config",
    "plan_jobs",
    "read_manifest",
    "verify_digest",
    "verify_directory",
    "verify_manifest",
    "verify_sidecar",
    "write_manifest",
]
