"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

import shlex

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_DEST_ROOT = "/usr/local"
DEFAULT_REDIRECT_LIMIT = 10


class BootkitConfig(BaseModel):
    """A validated configuration model for the application."""

    # Installation
    dest_root: str = DEFAULT_DEST_ROOT
    elevate_command: str = "sudo --"
    record_installs: bool = True
    dry_run: bool = False

    # Download Settings
    redirect_limit: int = DEFAULT_REDIRECT_LIMIT
    poll_interval: float = 1.0
    chunk_size: int = 65536
    connect_timeout: float = 15.0
    read_timeout: float = 90.0
    open_html_in_browser: bool = True

    # Verification
    gpg_binary: str = "gpg"

    # Internal fields not loaded from INI file
    config_path: str = Field("", repr=False)

    model_config = ConfigDict(validate_assignment=True, str_strip_whitespace=True)

    @field_validator("dest_root")
    @classmethod
    def validate_dest_root(cls, v: str) -> str:
        """The destination root must be an absolute path."""
        if not v:
            raise ValueError("Destination root cannot be empty.")
        if not v.startswith("/") and not v.startswith("~"):
            raise ValueError(f"Destination root must be absolute, got: {v}")
        return v

    @field_validator("redirect_limit")
    @classmethod
    def validate_redirect_limit(cls, v: int) -> int:
        if v < 0 or v > 50:
            raise ValueError("Redirect limit must be between 0 and 50.")
        return v

    @field_validator("poll_interval")
    @classmethod
    def validate_poll_interval(cls, v: float) -> float:
        """Keeps the progress poll between a tenth of a second and a minute."""
        if v < 0.1 or v > 60:
            raise ValueError("Poll interval must be between 0.1 and 60 seconds.")
        return v

    @field_validator("chunk_size")
    @classmethod
    def validate_chunk_size(cls, v: int) -> int:
        if v < 1024 or v > 16 * 1024 * 1024:
            raise ValueError("Chunk size must be between 1 KB and 16 MB.")
        return v

    @field_validator("connect_timeout", "read_timeout")
    @classmethod
    def validate_timeouts(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeouts must be positive.")
        return v

    @field_validator("elevate_command")
    @classmethod
    def validate_elevate_command(cls, v: str) -> str:
        """Ensures the elevation prefix parses as a shell-style word list."""
        try:
            shlex.split(v)
        except ValueError as e:
            raise ValueError(f"Elevation command cannot be parsed: {e}") from e
        return v

    @property
    def elevate_argv(self) -> list[str]:
        """The elevation prefix as an argv list (empty means run unprivileged)."""
        return shlex.split(self.elevate_command)

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
