"""Launcher script generation - small wrappers that activate the env and start a process."""

import logging
from pathlib import Path
from typing import List

from config import SUCCESS
from install_configs import InstallConfig, LauncherSpec

logger = logging.getLogger(__name__)

LAUNCHER_TEMPLATE = """#!/bin/bash
source $HOME/miniconda3/etc/profile.d/conda.sh || source $(conda info --base)/etc/profile.d/conda.sh
conda activate {env_name}
cd {repo_dir}
{command}
"""


def render_launcher(spec: LauncherSpec, config: InstallConfig) -> str:
    return LAUNCHER_TEMPLATE.format(
        env_name=config.conda_env_name,
        repo_dir=config.repo_dir,
        command=spec.command,
    )


def write_launchers(work_dir: Path, config: InstallConfig) -> List[Path]:
    """Write every launcher of `config` into `work_dir` and mark them executable."""
    logger.info("Creating launcher scripts...")
    work_dir = Path(work_dir)

    written = []
    for spec in config.launchers:
        path = work_dir / spec.filename
        path.write_text(render_launcher(spec, config), encoding="utf-8")
        path.chmod(0o755)
        written.append(path)

    logger.log(SUCCESS, "Launcher scripts created:")
    for spec in config.launchers:
        logger.info("  - %s: %s", spec.filename, spec.description)
    return written
