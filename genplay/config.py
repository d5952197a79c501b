"""Playground configuration."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import Field, field_validator

from genplay import env
from genplay.compile.plugin_cache import DEFAULT_CAPACITY
from genplay.compile.plugin_compiler import GENERATOR_FILE_NAME
from genplay.compile.program_compiler import PROGRAM_FILE_NAME
from genplay.data.utils import BaseModelWithDocstrings, NonEmptyString
from genplay.execution.entry_point import ENTRY_METHOD_NAME, ENTRY_TYPE_NAME
from genplay.references.sources import DEFAULT_LIBRARIES


class PlaygroundConfig(BaseModelWithDocstrings):
    """Configuration of a :class:`~genplay.runner.Runner`.

    All fields have defaults; :meth:`from_env` overrides them from ``GENPLAY_*`` variables.
    """

    plugin_cache_capacity: int = Field(default=DEFAULT_CAPACITY, ge=1)
    """Number of distinct plugin sources whose generators are kept."""
    execution_mode: Literal["in_process", "subprocess"] = "in_process"
    """Where programs run: in the current process or in a worker process per run."""
    execution_timeout: Optional[float] = Field(default=None, gt=0)
    """Seconds a program may run. Only enforced in subprocess mode."""
    entry_type_name: NonEmptyString = ENTRY_TYPE_NAME
    """Name of the type declaring the entry point."""
    entry_method_name: NonEmptyString = ENTRY_METHOD_NAME
    """Name of the static entry method."""
    generator_file_name: NonEmptyString = GENERATOR_FILE_NAME
    """Logical file name of the plugin."""
    program_file_name: NonEmptyString = PROGRAM_FILE_NAME
    """Logical file name of the program."""
    libraries: List[str] = Field(default_factory=lambda: list(DEFAULT_LIBRARIES))
    """Libraries compiled code may import, used by the local library source."""
    reference_manifest_url: Optional[str] = None
    """Base URL of a hosted reference manifest. Replaces the local library source."""
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    """Level of the ``genplay`` logger."""

    @field_validator("generator_file_name", "program_file_name")
    @classmethod
    def _check_file_name(cls, value: str) -> str:
        if not value.endswith(".py") or not value[:-3].isidentifier():
            raise ValueError(f"Invalid logical file name: {value}")
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value

    @classmethod
    def from_env(cls) -> "PlaygroundConfig":
        """Build a configuration from the ``GENPLAY_*`` environment variables.

        Raises
        ------
        pydantic.ValidationError
            If a variable holds an invalid value.
        ValueError
            If a numeric variable cannot be parsed.
        """
        overrides = {
            "plugin_cache_capacity": env.get_genplay_plugin_cache_capacity(),
            "execution_mode": env.get_genplay_execution_mode(),
            "execution_timeout": env.get_genplay_execution_timeout(),
            "libraries": env.get_genplay_libraries(),
            "reference_manifest_url": env.get_genplay_reference_url(),
            "log_level": env.get_genplay_log_level(),
        }
        return cls(**{k: v for k, v in overrides.items() if v is not None})
