"""Preflight checks - OS and CUDA toolkit verification before anything is installed."""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from command_runner import CommandRunner, PrerequisiteError
from config import SUCCESS

logger = logging.getLogger(__name__)

_NVCC_RELEASE_RE = re.compile(r"release (\d+\.\d+)")


@dataclass
class OSInfo:
    name: str
    version_id: str


def parse_os_release(text: str) -> Dict[str, str]:
    """Parse KEY=value lines of an os-release file, stripping quotes."""
    data = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        data[key.strip()] = value.strip().strip('"').strip("'")
    return data


def check_os(
    os_release_path: Path,
    expected_name: str = "Ubuntu",
    expected_version: str = "22.04",
) -> Optional[OSInfo]:
    """Check the running distribution. Only ever warns."""
    logger.info("Checking operating system...")
    os_release_path = Path(os_release_path)

    if not os_release_path.is_file():
        logger.warning("Cannot determine OS version")
        return None

    data = parse_os_release(os_release_path.read_text(encoding="utf-8", errors="replace"))
    info = OSInfo(name=data.get("NAME", ""), version_id=data.get("VERSION_ID", ""))

    if info.name == expected_name and info.version_id == expected_version:
        logger.log(SUCCESS, "Running on %s %s", expected_name, expected_version)
    else:
        logger.warning("Not running on %s %s. Current OS: %s %s",
                       expected_name, expected_version, info.name, info.version_id)
        logger.warning("Script may still work but is optimized for %s %s",
                       expected_name, expected_version)
    return info


def parse_nvcc_version(output: str) -> Optional[str]:
    """Extract "X.Y" from `nvcc --version` output."""
    match = _NVCC_RELEASE_RE.search(output)
    return match.group(1) if match else None


def check_cuda(runner: CommandRunner, expected: str = "12.1") -> Optional[str]:
    """
    Check for the CUDA toolkit.

    Raises:
        PrerequisiteError: If nvcc is not on PATH. This is the only fatal preflight check.
    """
    logger.info("Checking CUDA installation...")
    nvcc = runner.which("nvcc")
    if not nvcc:
        raise PrerequisiteError(f"CUDA not found. Please install CUDA {expected} first.")

    result = runner.run([nvcc, "--version"], log_callback=logger.debug)
    version = parse_nvcc_version(result.output)
    if version is None:
        logger.warning("Could not parse CUDA version from nvcc output")
        return None

    logger.log(SUCCESS, "CUDA %s detected", version)
    if version == expected:
        logger.log(SUCCESS, "CUDA %s confirmed", expected)
    else:
        logger.warning("Expected CUDA %s, found CUDA %s", expected, version)
    return version
