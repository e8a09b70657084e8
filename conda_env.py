"""Conda environment management - locate or install Miniconda, create/reuse the named env."""

import json
import logging
import tempfile
from pathlib import Path
from typing import Callable, List, Optional

from command_runner import CommandRunner, DeployError
from config import SUCCESS, miniconda_prefix
from install_configs import InstallConfig

logger = logging.getLogger(__name__)


class CondaEnvironment:
    """Represents the conda environment OpenVoice is installed into."""

    def __init__(self, config: InstallConfig, runner: CommandRunner, home: Optional[Path] = None):
        self.config = config
        self.runner = runner
        self.home = Path(home) if home else Path.home()
        self.name = config.conda_env_name
        self._base_prefix: Optional[Path] = None
        self._env_prefix: Optional[Path] = None

    @property
    def miniconda_prefix(self) -> Path:
        return miniconda_prefix(self.home)

    @property
    def conda_path(self) -> Optional[str]:
        """conda on PATH first, then a Miniconda install under $HOME."""
        found = self.runner.which("conda")
        if found:
            return found
        local_conda = self.miniconda_prefix / "bin" / "conda"
        if local_conda.exists():
            return str(local_conda)
        return None

    def is_available(self) -> bool:
        return self.conda_path is not None

    def _conda(self, *args: str, quiet: bool = False):
        conda = self.conda_path
        if not conda:
            raise DeployError("conda executable not found")
        return self.runner.run([conda, *args], log_callback=logger.debug if quiet else None)

    def version(self) -> str:
        return self._conda("--version", quiet=True).output.strip()

    @property
    def base_prefix(self) -> Path:
        if self._base_prefix is None:
            output = self._conda("info", "--base", quiet=True).output
            lines = [line for line in output.splitlines() if line.strip()]
            self._base_prefix = Path(lines[-1].strip()) if lines else self.miniconda_prefix
        return self._base_prefix

    @property
    def env_prefix(self) -> Path:
        """Where conda actually put the env, which may be outside the base prefix."""
        if self._env_prefix is None:
            self._env_prefix = self.find_env() or self.base_prefix / "envs" / self.name
        return self._env_prefix

    @property
    def python_path(self) -> Path:
        return self.env_prefix / "bin" / "python"

    def install_miniconda(self, downloader, tmp_dir: Optional[Path] = None):
        """Download and run the Miniconda installer non-interactively."""
        logger.info("Installing Miniconda...")
        tmp_dir = Path(tmp_dir) if tmp_dir else Path(tempfile.gettempdir())
        installer = tmp_dir / "miniconda_installer.sh"

        logger.info("Downloading Miniconda installer...")
        downloader.fetch(self.config.miniconda_url, installer)
        try:
            installer.chmod(0o755)

            logger.info("Running Miniconda installer...")
            self.runner.run(["bash", str(installer), "-b", "-p", str(self.miniconda_prefix)])

            logger.info("Initializing conda...")
            self.runner.run([str(self.miniconda_prefix / "bin" / "conda"), "init", "bash"])
        finally:
            installer.unlink(missing_ok=True)

        self._base_prefix = None
        self._env_prefix = None
        logger.log(SUCCESS, "Miniconda installed successfully")

    def list_envs(self) -> List[Path]:
        output = self._conda("env", "list", "--json", quiet=True).output
        # conda may print warnings before the JSON document
        start = output.find("{")
        try:
            data = json.loads(output[start:]) if start >= 0 else {}
        except ValueError as e:
            raise DeployError(f"Could not parse `conda env list` output: {e}") from e
        return [Path(p) for p in data.get("envs", [])]

    def find_env(self) -> Optional[Path]:
        for path in self.list_envs():
            if path.name == self.name:
                return path
        return None

    def env_exists(self) -> bool:
        return self.find_env() is not None

    def create(self, confirm: Callable[[str], bool]) -> bool:
        """
        Create the environment, or reuse it if it already exists.

        An existing environment is only removed when `confirm` approves.

        Returns:
            True if a new environment was created, False if an existing one is reused.
        """
        logger.info("Creating conda environment: %s", self.name)
        self._env_prefix = None

        if self.env_exists():
            logger.warning("Environment %s already exists", self.name)
            if confirm("Do you want to remove and recreate it?"):
                logger.info("Removing existing environment...")
                self._conda("env", "remove", "-n", self.name, "-y")
            else:
                logger.info("Using existing environment")
                return False

        logger.info("Creating new conda environment with Python %s...", self.config.python_version)
        self._conda("create", "-n", self.name, f"python={self.config.python_version}", "-y")
        self._env_prefix = None
        logger.log(SUCCESS, "Conda environment created successfully")
        return True

    def run_python(self, args: List[str], cwd: Optional[Path] = None):
        """Run the environment's interpreter."""
        return self.runner.run([str(self.python_path), *args], cwd=cwd)
