"""Helpers for locating and invoking the external tools s4 drives.

- ``repo`` checks out project manifests.  It is taken from ``PATH`` or
  downloaded once to a per-user temporary path and reused afterwards.
- ``docker`` (or podman's docker shim) runs the build tools image.  The
  flavour is detected from ``docker --version``.
- ``mq.sh`` is the optional hardware machine-queue client.

Every tool is looked up lazily, so commands only require the tools they
actually use.
"""

from __future__ import annotations

import contextlib
import getpass
import os
import shlex
import shutil
import stat
import subprocess
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from pathlib import Path, PurePosixPath

from rich.console import Console
from rich.markup import escape

from s4.config import Defaults
from s4.errors import ExternalFailureError
from s4.project import Repository
from s4.workspace import Context

_NETWORK_TIMEOUT_S = 30

WORKSPACE_DOCKER_DIR = PurePosixPath("/workspace")
BUILD_DOCKER_DIR = PurePosixPath("/build")
HOST_DOCKER_DIR = PurePosixPath("/host")

_console = Console(stderr=True, highlight=False)


class DockerImpl(Enum):
    DOCKER = "docker"
    PODMAN = "podman"


def detect_docker_impl(version_output: str) -> DockerImpl:
    return DockerImpl.PODMAN if "podman" in version_output.lower() else DockerImpl.DOCKER


def run_command(cmd: list[str], *, cwd: Path | None = None, echo: bool = True) -> int:
    """Run an external command with inherited stdio and return its exit code."""
    if echo:
        _console.print(f"[dim]$ {escape(shlex.join(cmd))}[/dim]")
    try:
        return subprocess.run(cmd, cwd=cwd).returncode
    except OSError as e:
        raise ExternalFailureError(f"Could not run {cmd[0]}: {e}") from e


def capture_command(cmd: list[str]) -> str:
    """Run an external command and return its stdout; non-zero exit is an error."""
    try:
        result = subprocess.run(
            cmd, capture_output=True, text=True, stdin=subprocess.DEVNULL, check=False
        )
    except OSError as e:
        raise ExternalFailureError(f"Could not run {cmd[0]}: {e}") from e
    if result.returncode != 0:
        raise ExternalFailureError(
            f"{shlex.join(cmd)} exited with status {result.returncode}",
            context={"stderr": result.stderr.strip()},
        )
    return result.stdout


def find_app(app: str) -> Path | None:
    found = shutil.which(app)
    return Path(found) if found else None


def tmp_app_path(app: str) -> Path:
    """Per-user location for a downloaded copy of *app*."""
    try:
        user = getpass.getuser()
    except (OSError, KeyError):
        user = str(os.geteuid())
    return Path(os.environ.get("TMPDIR", "/tmp")) / f"{user}-s4-{Path(app).name}"


def download_app(url: str, dest: Path) -> None:
    """Download a script to *dest* and make it executable."""
    try:
        with urllib.request.urlopen(url, timeout=_NETWORK_TIMEOUT_S) as resp:
            payload = resp.read()
    except urllib.error.URLError as e:
        raise ExternalFailureError(
            f"Could not download {dest.name} from {url}: {e}", context={"url": url}
        ) from e
    dest.parent.mkdir(parents=True, exist_ok=True)
    # dest only ever holds a complete download
    tmp_path = dest.with_name(dest.name + ".tmp")
    try:
        tmp_path.write_bytes(payload)
        tmp_path.chmod(stat.S_IRWXU | stat.S_IRGRP | stat.S_IXGRP | stat.S_IROTH | stat.S_IXOTH)
        os.replace(tmp_path, dest)
    except BaseException:
        with contextlib.suppress(OSError):
            tmp_path.unlink()
        raise


def find_or_download(app: str, url: str) -> Path:
    """Find *app* on ``PATH``, else reuse or fetch a temporary copy."""
    found = find_app(app)
    if found is not None:
        return found
    dest = tmp_app_path(app)
    if not dest.exists():
        download_app(url, dest)
    return dest


@dataclass
class Apps:
    """The external tools used by s4, resolved on first use."""

    defaults: Defaults

    @cached_property
    def repo(self) -> Path:
        return find_or_download("repo", self.defaults.repo_download_url())

    @cached_property
    def docker(self) -> Path:
        docker = find_app("docker")
        if docker is None:
            raise ExternalFailureError("docker or podman-docker must be installed")
        return docker

    @cached_property
    def docker_impl(self) -> DockerImpl:
        return detect_docker_impl(capture_command([str(self.docker), "--version"]))

    @cached_property
    def machine_queue(self) -> Path | None:
        return find_app("mq.sh")

    def require_machine_queue(self) -> Path:
        if self.machine_queue is None:
            raise ExternalFailureError("No mq.sh available")
        return self.machine_queue

    # ------------------------------------------------------------------
    # repo
    # ------------------------------------------------------------------

    def repo_init_command(self, repository: Repository) -> list[str]:
        cmd = [str(self.repo), "init", "--manifest-url", self.defaults.git_repo_url(repository)]
        if self.defaults.repo_branch:
            cmd += ["--manifest-branch", self.defaults.repo_branch]
        if self.defaults.repo_manifest:
            cmd += ["--manifest-name", self.defaults.repo_manifest]
        return cmd

    def repo_init(self, repository: Repository, cwd: Path) -> None:
        if run_command(self.repo_init_command(repository), cwd=cwd) != 0:
            raise ExternalFailureError("Failed to initialise project", context={"path": cwd})

    def repo_sync(self, cwd: Path) -> None:
        if run_command([str(self.repo), "sync"], cwd=cwd) != 0:
            raise ExternalFailureError("Failed to sync project", context={"path": cwd})

    # ------------------------------------------------------------------
    # docker
    # ------------------------------------------------------------------

    def container(self, host_dir: Path | None = None) -> Container:
        host = (host_dir if host_dir is not None else Path.cwd()).resolve()
        return Container(self, {HOST_DOCKER_DIR: host})

    def pull_command(self) -> list[str]:
        return [str(self.docker), "pull", self.defaults.docker_image_name()]

    def pull(self) -> None:
        if run_command(self.pull_command()) != 0:
            raise ExternalFailureError(
                f"Failed to update docker image: {self.defaults.docker_image_name()}"
            )


@dataclass
class Container:
    """A ``docker run`` invocation being assembled."""

    apps: Apps
    mounts: dict[PurePosixPath, Path] = field(default_factory=dict)
    work_dir: PurePosixPath = HOST_DOCKER_DIR

    def mount(self, internal: PurePosixPath | str, external: Path) -> Container:
        self.mounts[PurePosixPath(internal)] = Path(external).resolve()
        return self

    def in_dir(self, path: PurePosixPath | str) -> Container:
        """Set the working directory; relative paths are inside ``/host``."""
        self.work_dir = HOST_DOCKER_DIR / path
        return self

    def run_command(self, program: str, *args: str) -> list[str]:
        cmd = [
            str(self.apps.docker),
            "run",
            "-it",
            "--rm",
            "--hostname",
            "s4",
            "--volume",
            "/etc/localtime:/etc/localtime:ro",
        ]
        if self.apps.docker_impl is DockerImpl.PODMAN:
            cmd.append("--userns=keep-id")
        else:
            cmd += ["--user", f"{os.geteuid()}:{os.getegid()}"]
        for internal, external in sorted(self.mounts.items()):
            cmd += ["--volume", f"{external}:{internal}:z"]
        cmd += ["--workdir", str(self.work_dir)]
        cmd.append(self.apps.defaults.docker_image_name())
        cmd.append(program)
        cmd.extend(args)
        return cmd


def docker_for(context: Context, apps: Apps) -> Container:
    """Container with the workspace (and build directory, if any) mounted."""
    container = apps.container().mount(WORKSPACE_DOCKER_DIR, context.workspace_root)
    if context.build_root is not None:
        container.mount(BUILD_DOCKER_DIR, context.build_root)
    return container
