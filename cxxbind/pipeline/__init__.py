"""Pipeline orchestration and configuration."""

from .config import DEFAULT_NAMESPACE, DEFAULT_TEMPLATE, Options, load_options
from .generator import CodeGenerator, PipelineState, RunResult

__all__ = [
    "CodeGenerator",
    "DEFAULT_NAMESPACE",
    "DEFAULT_TEMPLATE",
    "Options",
    "PipelineState",
    "RunResult",
    "load_options",
]
