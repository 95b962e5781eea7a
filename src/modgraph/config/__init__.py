"""Configuration parsing modules for modgraph."""

from .module_loader import ModuleDescriptor, ModuleLoader, ModuleLoadError
from .project_config import ProjectConfig, ProjectSection

__all__ = [
    "ModuleDescriptor",
    "ModuleLoader",
    "ModuleLoadError",
    "ProjectConfig",
    "ProjectSection",
]
