"""Generic metadata-backed run loop shared by package build tools."""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import ExitStack
from dataclasses import dataclass
from enum import Enum
from types import TracebackType
from typing import Generic, Optional, Type, TypeVar

from ..config import BuildConfig
from ..logging import get_logger
from .metadata import PackageMetadata, load_metadata, save_metadata

ArgsT = TypeVar("ArgsT")


class PipelineState(Enum):
    START = "start"
    METADATA_LOADED = "metadata_loaded"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ToolResult:
    """Outcome of a pipeline run."""

    success: bool
    state: PipelineState
    message: str = ""
    metadata_saved: bool = False

    @classmethod
    def failed(cls, message: str) -> "ToolResult":
        return cls(False, PipelineState.FAILED, message)


class PackagePipeline(ABC, Generic[ArgsT]):
    """Loads package metadata, runs :meth:`execute` and persists metadata on success.

    Instances are single use. Resources entered through :attr:`resources` are
    released when the run finishes, whatever its outcome.
    """

    def __init__(self, config: BuildConfig) -> None:
        self.config = config
        self.state = PipelineState.START
        self.resources = ExitStack()
        self._metadata: Optional[PackageMetadata] = None
        self.logger = get_logger(f"build.{type(self).__name__.lower()}")

    @property
    def metadata(self) -> PackageMetadata:
        if self._metadata is None:
            raise RuntimeError("Package metadata has not been loaded")
        return self._metadata

    def run(self, args: ArgsT) -> ToolResult:
        if self.state is not PipelineState.START:
            raise RuntimeError(f"{type(self).__name__} has already run")

        with self.resources:
            metadata_path = self.config.paths.metadata
            self.logger.info("Loading package metadata from '%s'", metadata_path)
            metadata = load_metadata(metadata_path)
            if metadata is None:
                self.state = PipelineState.FAILED
                return ToolResult.failed(f"Could not load package metadata from {metadata_path}")
            self._metadata = metadata
            self.state = PipelineState.METADATA_LOADED

            self.state = PipelineState.EXECUTING
            try:
                succeeded = self.execute(args)
            except Exception:
                self.state = PipelineState.FAILED
                raise
            if not succeeded:
                self.state = PipelineState.FAILED
                self.logger.error("%s failed; package metadata left untouched", type(self).__name__)
                return ToolResult.failed("Execution failed")

            saved = False
            if metadata.changed:
                self.logger.info("Saving package metadata to '%s'", metadata_path)
                if not save_metadata(metadata, metadata_path):
                    self.state = PipelineState.FAILED
                    return ToolResult.failed(f"Could not save package metadata to {metadata_path}")
                saved = True
            else:
                self.logger.info("Package metadata unchanged")

            self.state = PipelineState.COMPLETED
            return ToolResult(True, self.state, "Completed", metadata_saved=saved)

    @abstractmethod
    def execute(self, args: ArgsT) -> bool:
        """Perform the tool's work against :attr:`metadata`; return ``False`` on failure."""

    def close(self) -> None:
        self.resources.close()

    def __enter__(self) -> "PackagePipeline[ArgsT]":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()


__all__ = ["PackagePipeline", "PipelineState", "ToolResult"]
