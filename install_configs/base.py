"""Base installation configuration and utilities for the OpenVoice environment."""

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from command_runner import CommandRunner, CommandError

logger = logging.getLogger(__name__)


@dataclass
class CheckpointSpec:
    """A pretrained checkpoint archive and the directory it unpacks into."""

    name: str
    url: str
    archive_name: str
    extract_dir: str
    description: str = ""

    # Optional HuggingFace mirror. With hf_subfolder set, only that folder of
    # the repo is fetched and it lands at <repo_dir>/<hf_subfolder>.
    hf_repo: Optional[str] = None
    hf_subfolder: Optional[str] = None


@dataclass
class LauncherSpec:
    """A generated shell wrapper that starts one end-user process."""

    filename: str
    command: str
    description: str = ""


@dataclass
class InstallConfig:
    """Configuration for an OpenVoice-style deployment."""

    name: str = ""
    display_name: str = ""
    description: str = ""

    conda_env_name: str = ""
    python_version: str = ""
    miniconda_url: str = ""

    repo_url: str = ""
    repo_dir: str = ""
    repo_branch: str = "main"

    # apt package names
    apt_packages: List[str] = field(default_factory=list)

    # Package installation steps - each item is a pip install command args
    # e.g., ["torch", "torchaudio", "--index-url", "https://..."]
    pip_packages: List[List[str]] = field(default_factory=list)

    # Whether the cloned repo itself is installed with pip install -e
    install_repo_editable: bool = True

    # Packages installed straight from git after the repo itself
    git_packages: List[str] = field(default_factory=list)

    # `python -m <module> <args>` runs after the pip steps, e.g. ["unidic", "download"]
    post_install_modules: List[List[str]] = field(default_factory=list)

    # Key package to check for verification (pip distribution name)
    verify_package: str = ""

    # Modules imported by the smoke test
    verify_imports: List[str] = field(default_factory=list)

    checkpoints: List[CheckpointSpec] = field(default_factory=list)
    launchers: List[LauncherSpec] = field(default_factory=list)

    expected_os_name: str = ""
    expected_os_version: str = ""
    expected_cuda: str = ""

    # (label, command) pairs shown in the final usage summary
    usage_commands: List[Tuple[str, str]] = field(default_factory=list)

    # System dependencies or notes to display
    system_notes: str = ""

    def get_install_steps(self) -> List[dict]:
        """Return list of installation steps with descriptions."""
        steps = []

        # Add pip package installations
        for pkg_args in self.pip_packages:
            desc = f"Installing {pkg_args[0] if pkg_args else 'packages'}"
            steps.append({
                "type": "pip",
                "description": desc,
                "args": ["install"] + pkg_args
            })

        if self.install_repo_editable:
            steps.append({
                "type": "pip_editable",
                "description": f"Installing {self.display_name or self.repo_dir}",
                "args": ["install", "-e", "."]
            })

        for git_url in self.git_packages:
            repo_name = git_url.rstrip("/").split("/")[-1].replace(".git", "")
            steps.append({
                "type": "pip",
                "description": f"Installing {repo_name}",
                "args": ["install", git_url]
            })

        for module_args in self.post_install_modules:
            steps.append({
                "type": "python_module",
                "description": f"Running {' '.join(module_args)}",
                "args": ["-m"] + module_args
            })

        return steps


def run_pip_install(
    runner: CommandRunner,
    python_path: str,
    args: List[str],
    cwd: Optional[str] = None,
    log_callback: Optional[Callable[[str], None]] = None
):
    """
    Run pip through the given interpreter.

    Args:
        runner: Command runner used to execute pip
        python_path: Interpreter whose pip should be used
        args: Arguments for pip (e.g., ["install", "torch"])
        cwd: Working directory (matters for editable installs of ".")
        log_callback: Optional callback for logging output

    Returns:
        CommandResult of the pip invocation

    Raises:
        CommandError: If pip exits non-zero
    """
    # python -m pip targets the right environment even when pip is not on PATH
    cmd = [str(python_path), "-m", "pip"] + list(args)
    return runner.run(cmd, cwd=cwd, log_callback=log_callback)


def run_git_clone(
    runner: CommandRunner,
    url: str,
    clone_path: Path,
    confirm: Callable[[str], bool],
    branch: str = "main",
) -> bool:
    """
    Clone a git repository, or update it when it is already present.

    An existing checkout is only deleted when `confirm` approves re-cloning;
    otherwise it is pulled and reused.

    Returns:
        True if a fresh clone was made, False if the existing one was reused.
    """
    clone_path = Path(clone_path)

    if clone_path.exists():
        logger.warning("%s directory already exists", clone_path.name)
        if confirm("Do you want to remove and re-clone it?"):
            logger.info("Removing %s...", clone_path)
            shutil.rmtree(clone_path)
        else:
            logger.info("Using existing repository, pulling latest...")
            runner.run(["git", "-C", str(clone_path), "pull", "origin", branch])
            return False

    logger.info("Cloning %s to %s", url, clone_path)
    runner.run(["git", "clone", url, str(clone_path)])
    return True


def check_package_installed(runner: CommandRunner, python_path: str, package_name: str) -> bool:
    """Check if a package is installed in the environment."""
    try:
        result = runner.run(
            [str(python_path), "-m", "pip", "show", package_name],
            log_callback=logger.debug,
            check=False,
        )
    except CommandError:
        return False
    return result.ok
