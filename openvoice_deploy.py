"""
OpenVoice Deployment

Provisions an Ubuntu 22.04 / CUDA 12.1 machine for OpenVoice V1 and V2:
conda environment, system packages, source checkout, Python dependencies,
model checkpoints, a smoke test and launcher scripts.
"""

import argparse
import logging
import sys
from dataclasses import dataclass, field
from functools import cached_property
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from rich.console import Console

import launchers
import preflight
import system_packages
from command_runner import CommandRunner, DeployError
from conda_env import CondaEnvironment
from config import OS_RELEASE_PATH, SUCCESS, default_use_sudo, setup_logging
from download_checkpoints import Downloader, download_checkpoint, download_checkpoint_from_hub
from install_configs import (
    ALL_CONFIGS, InstallConfig,
    run_pip_install, run_git_clone, check_package_installed,
)

logger = logging.getLogger(__name__)

MODE_FULL = "full"
MODE_NO_MODELS = "no_models"
MODE_TEST_ONLY = "test_only"

SMOKE_TEST_TEMPLATE = """\
import torch
{imports}
print(f'PyTorch version: {{torch.__version__}}')
print(f'CUDA available: {{torch.cuda.is_available()}}')
if torch.cuda.is_available():
    print(f'CUDA version: {{torch.version.cuda}}')
    print(f'GPU count: {{torch.cuda.device_count()}}')
print('{display_name} imported successfully!')
"""


def prompt_yes_no(question: str) -> bool:
    """Ask on stdin. Only an answer starting with y/Y counts as yes."""
    try:
        reply = input(f"{question} (y/N): ")
    except EOFError:
        return False
    return reply.strip()[:1] in ("y", "Y")


def answer_no(question: str) -> bool:
    logger.info("%s (y/N): N [non-interactive]", question)
    return False


@dataclass
class DeployContext:
    """Everything a stage needs: configuration plus the injected collaborators."""

    config: InstallConfig
    runner: CommandRunner
    downloader: Downloader
    confirm: Callable[[str], bool]
    work_dir: Path
    home: Path
    os_release_path: Path = OS_RELEASE_PATH
    use_sudo: bool = True
    from_hub: bool = False
    console: Console = field(default_factory=Console)

    @property
    def repo_dir(self) -> Path:
        return self.work_dir / self.config.repo_dir

    @cached_property
    def conda(self) -> CondaEnvironment:
        return CondaEnvironment(self.config, self.runner, self.home)


@dataclass
class ProvisioningState:
    """What the stages found and did during one run."""

    os_info: Optional[preflight.OSInfo] = None
    cuda_version: Optional[str] = None
    conda_path: Optional[str] = None
    conda_installed: bool = False
    env_created: bool = False
    env_python: Optional[Path] = None
    repo_cloned: bool = False
    checkpoints_downloaded: List[str] = field(default_factory=list)
    checkpoints_skipped: List[str] = field(default_factory=list)
    launchers: List[Path] = field(default_factory=list)
    completed_stages: List[str] = field(default_factory=list)


Stage = Callable[[DeployContext, ProvisioningState], ProvisioningState]


# ============================================================
# Stages
# ============================================================
def check_os(ctx: DeployContext, state: ProvisioningState) -> ProvisioningState:
    state.os_info = preflight.check_os(
        ctx.os_release_path, ctx.config.expected_os_name, ctx.config.expected_os_version
    )
    return state


def check_cuda(ctx: DeployContext, state: ProvisioningState) -> ProvisioningState:
    state.cuda_version = preflight.check_cuda(ctx.runner, ctx.config.expected_cuda)
    return state


def ensure_conda(ctx: DeployContext, state: ProvisioningState) -> ProvisioningState:
    """Install Miniconda unless a conda executable is already reachable."""
    logger.info("Checking for conda installation...")
    if ctx.conda.is_available():
        logger.log(SUCCESS, "Found %s", ctx.conda.version())
    else:
        logger.warning("Conda not found")
        ctx.conda.install_miniconda(ctx.downloader)
        state.conda_installed = True
    state.conda_path = ctx.conda.conda_path
    return state


def resolve_conda(ctx: DeployContext, state: ProvisioningState) -> ProvisioningState:
    """Locate conda without installing it."""
    if not ctx.conda.is_available():
        raise DeployError("conda not found. Run the full deployment first.")
    state.conda_path = ctx.conda.conda_path
    state.env_python = ctx.conda.python_path
    return state


def install_system_deps(ctx: DeployContext, state: ProvisioningState) -> ProvisioningState:
    system_packages.install_system_deps(ctx.runner, ctx.config.apt_packages, ctx.use_sudo)
    return state


def create_conda_env(ctx: DeployContext, state: ProvisioningState) -> ProvisioningState:
    state.env_created = ctx.conda.create(ctx.confirm)
    state.env_python = ctx.conda.python_path
    return state


def clone_repository(ctx: DeployContext, state: ProvisioningState) -> ProvisioningState:
    logger.info("Cloning %s repository...", ctx.config.display_name)
    state.repo_cloned = run_git_clone(
        ctx.runner, ctx.config.repo_url, ctx.repo_dir, ctx.confirm, ctx.config.repo_branch
    )
    if state.repo_cloned:
        logger.log(SUCCESS, "Repository cloned successfully")
    return state


def install_openvoice(ctx: DeployContext, state: ProvisioningState) -> ProvisioningState:
    """Run the config's pip/module steps with the environment's interpreter."""
    logger.info("Installing %s dependencies...", ctx.config.display_name)
    python_path = str(state.env_python or ctx.conda.python_path)

    for step in ctx.config.get_install_steps():
        logger.info("%s...", step["description"])
        if step["type"] in ("pip", "pip_editable"):
            run_pip_install(ctx.runner, python_path, step["args"], cwd=str(ctx.repo_dir))
        elif step["type"] == "python_module":
            ctx.conda.run_python(step["args"], cwd=ctx.repo_dir)
        else:
            raise DeployError(f"Unknown install step type: {step['type']}")

    logger.log(SUCCESS, "%s dependencies installed successfully", ctx.config.display_name)
    return state


def download_models(ctx: DeployContext, state: ProvisioningState) -> ProvisioningState:
    logger.info("Downloading model checkpoints...")
    for spec in ctx.config.checkpoints:
        if ctx.from_hub:
            downloaded = download_checkpoint_from_hub(spec, ctx.repo_dir)
        else:
            downloaded = download_checkpoint(spec, ctx.repo_dir, ctx.downloader)
        if downloaded:
            state.checkpoints_downloaded.append(spec.name)
        else:
            state.checkpoints_skipped.append(spec.name)
    return state


def test_installation(ctx: DeployContext, state: ProvisioningState) -> ProvisioningState:
    """Import torch and the installed package inside the environment."""
    logger.info("Testing %s installation...", ctx.config.display_name)
    if not ctx.repo_dir.is_dir():
        raise DeployError(f"{ctx.repo_dir} not found. Run the full deployment first.")

    python_path = state.env_python or ctx.conda.python_path
    if ctx.config.verify_package and not check_package_installed(
        ctx.runner, str(python_path), ctx.config.verify_package
    ):
        logger.warning("pip does not report %s as installed", ctx.config.verify_package)

    ctx.conda.run_python(["-c", build_smoke_test(ctx.config)], cwd=ctx.repo_dir)
    logger.log(SUCCESS, "Installation test completed successfully")
    return state


def create_launchers(ctx: DeployContext, state: ProvisioningState) -> ProvisioningState:
    state.launchers = launchers.write_launchers(ctx.work_dir, ctx.config)
    return state


def print_usage(ctx: DeployContext, state: ProvisioningState) -> ProvisioningState:
    config = ctx.config
    console = ctx.console

    console.print()
    logger.log(SUCCESS, "%s deployment completed successfully!", config.display_name)
    console.print()
    console.print("[green]=== Usage Instructions ===[/green]")
    console.print()
    console.print("1. Activate the conda environment:")
    console.print(f"   conda activate {config.conda_env_name}")
    console.print()
    console.print(f"2. Navigate to {config.display_name} directory:")
    console.print(f"   cd {config.repo_dir}")
    console.print()
    console.print("3. Run demos:")
    for label, command in config.usage_commands:
        console.print(f"   - {label}: {command}")
    console.print()
    console.print("4. Or use the launcher scripts:")
    for spec in config.launchers:
        console.print(f"   - ./{spec.filename}")
    console.print()
    console.print("[yellow]=== Available Models ===[/yellow]")
    for spec in config.checkpoints:
        console.print(f"- {spec.description}: {spec.extract_dir}/")
    if config.system_notes:
        console.print()
        console.print(f"[blue]{config.system_notes}[/blue]")
    console.print()
    return state


def remind_models_skipped(ctx: DeployContext, state: ProvisioningState) -> ProvisioningState:
    logger.warning("Skipped model download. Run without --no-models to download models.")
    return state


def build_smoke_test(config: InstallConfig) -> str:
    imports = "\n".join(f"import {name}" for name in config.verify_imports if name != "torch")
    return SMOKE_TEST_TEMPLATE.format(imports=imports, display_name=config.display_name)


# ============================================================
# Pipeline
# ============================================================
def build_stages(mode: str = MODE_FULL) -> List[Tuple[str, Stage]]:
    """Compose the ordered stage list for a run mode."""
    if mode == MODE_TEST_ONLY:
        return [
            ("resolve_conda", resolve_conda),
            ("test_installation", test_installation),
        ]

    stages = [
        ("check_os", check_os),
        ("check_cuda", check_cuda),
        ("ensure_conda", ensure_conda),
        ("install_system_deps", install_system_deps),
        ("create_conda_env", create_conda_env),
        ("clone_repository", clone_repository),
        ("install_openvoice", install_openvoice),
        ("download_models", download_models),
        ("test_installation", test_installation),
        ("create_launchers", create_launchers),
        ("print_usage", print_usage),
    ]
    if mode == MODE_NO_MODELS:
        skipped = {"download_models", "print_usage"}
        stages = [s for s in stages if s[0] not in skipped]
        stages.append(("remind_models_skipped", remind_models_skipped))
    elif mode != MODE_FULL:
        raise ValueError(f"Unknown mode: {mode}")
    return stages


def run_pipeline(
    ctx: DeployContext,
    stages: List[Tuple[str, Stage]],
    state: Optional[ProvisioningState] = None,
) -> ProvisioningState:
    """Run stages in order. The first failure propagates and ends the run."""
    state = state or ProvisioningState()
    for name, stage in stages:
        logger.debug("Stage: %s", name)
        state = stage(ctx, state)
        state.completed_stages.append(name)
    return state


# ============================================================
# CLI
# ============================================================
HELP_EPILOG = """\
This script will:
1. Check system requirements (Ubuntu 22.04, CUDA 12.1)
2. Install conda if not present
3. Install system dependencies
4. Create OpenVoice conda environment
5. Clone OpenVoice repository
6. Install OpenVoice and dependencies
7. Download model checkpoints
8. Test installation
9. Create launcher scripts
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="openvoice-deploy",
        description="OpenVoice Deployment Script",
        epilog=HELP_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--test-only", action="store_true", help="Only run installation test")
    mode.add_argument("--no-models", action="store_true", help="Skip model download")
    parser.add_argument("--non-interactive", action="store_true",
                        help="Answer 'no' to every prompt (reuse existing env and checkout)")
    parser.add_argument("--from-hub", action="store_true",
                        help="Download checkpoints from HuggingFace instead of the zip archives")
    parser.add_argument("--work-dir", type=Path, default=None,
                        help="Directory to deploy into (default: current directory)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    return parser


def main(
    argv=None,
    runner: Optional[CommandRunner] = None,
    downloader: Optional[Downloader] = None,
    confirm: Optional[Callable[[str], bool]] = None,
    home: Optional[Path] = None,
    os_release_path: Optional[Path] = None,
    use_sudo: Optional[bool] = None,
) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    if args.test_only:
        mode = MODE_TEST_ONLY
    elif args.no_models:
        mode = MODE_NO_MODELS
    else:
        mode = MODE_FULL

    if confirm is None:
        confirm = answer_no if args.non_interactive else prompt_yes_no

    config = ALL_CONFIGS["openvoice"]
    ctx = DeployContext(
        config=config,
        runner=runner or CommandRunner(),
        downloader=downloader or Downloader(),
        confirm=confirm,
        work_dir=(args.work_dir or Path.cwd()).resolve(),
        home=Path(home) if home else Path.home(),
        os_release_path=Path(os_release_path) if os_release_path else OS_RELEASE_PATH,
        use_sudo=default_use_sudo() if use_sudo is None else use_sudo,
        from_hub=args.from_hub,
    )

    if mode == MODE_FULL:
        ctx.console.print()
        ctx.console.print(f"[blue]=== {config.display_name} Deployment Script ===[/blue]")
        ctx.console.print(
            f"[blue]Target: NVIDIA/CUDA {config.expected_cuda} "
            f"{config.expected_os_name} {config.expected_os_version}[/blue]"
        )
        ctx.console.print()

    try:
        run_pipeline(ctx, build_stages(mode))
    except DeployError as e:
        logger.error("%s", e)
        return 1
    except OSError as e:
        logger.error("Filesystem error: %s", e)
        return 1
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
