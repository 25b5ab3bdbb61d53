"""s4 — build environment manager for seL4 projects.

Resolves layered build settings for a project/platform/architecture
combination, validates flag dependencies, and keeps track of workspaces and
build directories on disk.  Container, checkout, CMake and hardware-queue
tools are driven as external commands.
"""

__version__ = "0.1.0"
