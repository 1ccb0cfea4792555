from .config import Settings, load_settings
from .errors import (
    BuildError,
    ConfigError,
    EEPipelineError,
    PublishError,
    ScanError,
    StageError,
    TestFailure,
    ToolError,
    stage_error_from_exc,
)
from .fs import atomic_write_text, ensure_parent, safe_unlink, scratch_dir
from .hashing import FileDigest, sha256_file
from .json import atomic_write_json, to_jsonable
from .logging import ILogger, bind, clear_bindings, configure_logging, get_logger
from .process import CommandResult, CommandRunner, SubprocessRunner
from .provenance import RunProvenance, Timer, new_run_id
from .time import monotonic_ms, utc_now_iso

__all__ = [
    "Settings",
    "load_settings",
    "EEPipelineError",
    "ConfigError",
    "ToolError",
    "BuildError",
    "TestFailure",
    "ScanError",
    "PublishError",
    "StageError",
    "stage_error_from_exc",
    "atomic_write_text",
    "ensure_parent",
    "safe_unlink",
    "scratch_dir",
    "FileDigest",
    "sha256_file",
    "atomic_write_json",
    "to_jsonable",
    "ILogger",
    "bind",
    "clear_bindings",
    "configure_logging",
    "get_logger",
    "CommandResult",
    "CommandRunner",
    "SubprocessRunner",
    "RunProvenance",
    "Timer",
    "new_run_id",
    "monotonic_ms",
    "utc_now_iso",
]
