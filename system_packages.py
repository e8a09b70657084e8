"""System package installation via apt."""

import logging
from typing import List

from command_runner import CommandRunner
from config import SUCCESS

logger = logging.getLogger(__name__)


def apt_command(args: List[str], use_sudo: bool = True) -> List[str]:
    cmd = ["apt"] + list(args)
    return ["sudo"] + cmd if use_sudo else cmd


def install_system_deps(runner: CommandRunner, packages: List[str], use_sudo: bool = True):
    """Refresh the package list and install `packages`."""
    logger.info("Installing system dependencies...")

    runner.run(apt_command(["update"], use_sudo))
    if packages:
        runner.run(apt_command(["install", "-y"] + list(packages), use_sudo))

    logger.log(SUCCESS, "System dependencies installed")
