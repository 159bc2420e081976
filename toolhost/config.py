import functools
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from toolhost.sandbox.approval import ToolExecutionMode
from toolhost.sandbox.permissions import SandboxLevel, SandboxPermissions

if TYPE_CHECKING:
    from toolhost.tools.context import ToolContext

# Default location of the user-defined tools document
USER_TOOLS_PATH = str(Path.home() / ".toolhost" / "tools.yaml")


class PtySettings(BaseModel):
    """PTY session limits and timeouts."""

    yield_time_ms: int = 5000
    max_output_bytes: int = 100_000
    max_sessions: int = 32
    idle_timeout: float = 1800.0  # 30 minutes
    cleanup_interval: float = 60.0
    rows: int = 24
    cols: int = 120

    @field_validator("yield_time_ms", "max_output_bytes", "max_sessions", "rows", "cols")
    @classmethod
    def validate_positive(cls, v: int, info) -> int:
        """Ensure sizes and counts are positive integers."""
        if v <= 0:
            raise ValueError(f"{info.field_name} must be a positive integer, got {v}")
        return v

    @field_validator("idle_timeout", "cleanup_interval")
    @classmethod
    def validate_positive_float(cls, v: float, info) -> float:
        """Ensure timeout values are positive."""
        if v <= 0:
            raise ValueError(f"{info.field_name} must be positive, got {v}")
        return v


class ToolLimits(BaseModel):
    """Tool execution limits."""

    timeout_ms: int = 120_000  # 0 disables the post-call timeout check
    search_timeout: float = 30.0
    change_history: int = 100

    @field_validator("timeout_ms")
    @classmethod
    def validate_non_negative(cls, v: int, info) -> int:
        """Zero is allowed and means unbounded."""
        if v < 0:
            raise ValueError(f"{info.field_name} must not be negative, got {v}")
        return v

    @field_validator("search_timeout")
    @classmethod
    def validate_positive_float(cls, v: float, info) -> float:
        """Ensure timeout values are positive."""
        if v <= 0:
            raise ValueError(f"{info.field_name} must be positive, got {v}")
        return v


class ParallelLimits(BaseModel):
    """Concurrency limits for batched tool calls."""

    max_concurrent_reads: int = 8
    max_concurrent_writes: int = 1

    @field_validator("max_concurrent_reads", "max_concurrent_writes")
    @classmethod
    def validate_positive(cls, v: int, info) -> int:
        """Ensure limits are positive integers."""
        if v <= 0:
            raise ValueError(f"{info.field_name} must be a positive integer, got {v}")
        return v


class RuntimeSettings(BaseModel):
    """Grouped runtime settings."""

    pty: PtySettings = Field(default_factory=PtySettings)
    tools: ToolLimits = Field(default_factory=ToolLimits)
    parallel: ParallelLimits = Field(default_factory=ParallelLimits)


class Config(BaseSettings):
    """
    Application configuration.

    Priority (highest to lowest):
    1. Init arguments
    2. Environment variables
    3. .env file
    4. Default values
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    DEFAULT_WORKING_DIR: str = Field(default_factory=lambda: str(Path.cwd()))
    DEFAULT_SHELL: str = "/bin/bash"

    # Approval behaviour for tool calls
    TOOL_EXECUTION_MODE: str = "ask"

    # Tools - stored as comma-separated strings, converted to lists via properties
    TOOLS_ENABLED_STR: str = Field(default="", alias="TOOLS_ENABLED")
    TOOLS_ALLOWED_PATHS_STR: str = Field(default="", alias="TOOLS_ALLOWED_PATHS")
    TOOL_TIMEOUT_MS: int = 120_000
    SEARCH_TIMEOUT_SECONDS: float = 30.0
    CHANGE_HISTORY_LIMIT: int = 100
    USER_TOOLS_FILE: str = USER_TOOLS_PATH

    # Sandbox
    SANDBOX_LEVEL: str = "workspace-write"
    WORKSPACE_ROOT: Optional[str] = None

    # PTY overrides from environment
    PTY_YIELD_TIME_MS: int = 5000
    PTY_MAX_OUTPUT_BYTES: int = 100_000
    PTY_MAX_SESSIONS: int = 32
    PTY_IDLE_TIMEOUT: float = 1800.0
    PTY_CLEANUP_INTERVAL: float = 60.0

    # Parallel execution overrides from environment
    MAX_CONCURRENT_READS: int = 8
    MAX_CONCURRENT_WRITES: int = 1

    LOG_LEVEL: str = "INFO"

    @property
    def TOOLS_ENABLED(self) -> list[str]:
        """Parse TOOLS_ENABLED from comma-separated string."""
        return _split_csv(self.TOOLS_ENABLED_STR)

    @property
    def TOOLS_ALLOWED_PATHS(self) -> list[str]:
        """Parse TOOLS_ALLOWED_PATHS from comma-separated string."""
        return _split_csv(self.TOOLS_ALLOWED_PATHS_STR)

    @functools.cached_property
    def settings(self) -> RuntimeSettings:
        """Build RuntimeSettings from environment variables."""
        return RuntimeSettings(
            pty=PtySettings(
                yield_time_ms=self.PTY_YIELD_TIME_MS,
                max_output_bytes=self.PTY_MAX_OUTPUT_BYTES,
                max_sessions=self.PTY_MAX_SESSIONS,
                idle_timeout=self.PTY_IDLE_TIMEOUT,
                cleanup_interval=self.PTY_CLEANUP_INTERVAL,
            ),
            tools=ToolLimits(
                timeout_ms=self.TOOL_TIMEOUT_MS,
                search_timeout=self.SEARCH_TIMEOUT_SECONDS,
                change_history=self.CHANGE_HISTORY_LIMIT,
            ),
            parallel=ParallelLimits(
                max_concurrent_reads=self.MAX_CONCURRENT_READS,
                max_concurrent_writes=self.MAX_CONCURRENT_WRITES,
            ),
        )

    @property
    def execution_mode(self) -> ToolExecutionMode:
        return ToolExecutionMode.parse(self.TOOL_EXECUTION_MODE)

    def build_sandbox(self) -> SandboxPermissions:
        """Sandbox permissions for the configured level.

        The workspace root falls back to the default working directory.
        """
        root = self.WORKSPACE_ROOT or self.DEFAULT_WORKING_DIR
        return SandboxPermissions(
            level=SandboxLevel.parse(self.SANDBOX_LEVEL),
            workspace_root=str(Path(root).expanduser().resolve()),
        )

    def build_tool_context(self, working_dir: Optional[str] = None) -> "ToolContext":
        """Build the per-turn tool context from configuration."""
        from toolhost.tools.context import ToolContext

        return ToolContext(
            working_dir=str(Path(working_dir or self.DEFAULT_WORKING_DIR).expanduser()),
            timeout_ms=self.settings.tools.timeout_ms,
            allowed_paths=tuple(self.TOOLS_ALLOWED_PATHS),
            sandbox=self.build_sandbox(),
        )

    def validate_required(self) -> list[str]:
        """Validate configuration values that pydantic cannot check alone."""
        errors = []
        try:
            ToolExecutionMode.parse(self.TOOL_EXECUTION_MODE)
        except ValueError as e:
            errors.append(str(e))
        try:
            SandboxLevel.parse(self.SANDBOX_LEVEL)
        except ValueError as e:
            errors.append(str(e))
        if not Path(self.DEFAULT_WORKING_DIR).expanduser().is_dir():
            errors.append(f"DEFAULT_WORKING_DIR is not a directory: {self.DEFAULT_WORKING_DIR}")
        try:
            self.settings
        except ValueError as e:
            errors.append(str(e))
        return errors


def _split_csv(raw: str) -> list[str]:
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


config = Config()
