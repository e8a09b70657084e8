"""
OpenVoice Deploy Configuration

Central defaults for the OpenVoice provisioning tool with dynamic path resolution.
"""
import logging
import os
from pathlib import Path

from rich.logging import RichHandler

# System paths
OS_RELEASE_PATH = Path("/etc/os-release")

# Conda environment
CONDA_ENV_NAME = "openvoice"
PYTHON_VERSION = "3.9"
MINICONDA_URL = "https://repo.anaconda.com/miniconda/Miniconda3-latest-Linux-x86_64.sh"
MINICONDA_DIRNAME = "miniconda3"

# OpenVoice source
OPENVOICE_DIR = "OpenVoice"
REPO_URL = "https://github.com/myshell-ai/OpenVoice.git"
REPO_BRANCH = "main"

# Python packages installed into the environment
TORCH_INDEX_URL = "https://download.pytorch.org/whl/cu121"
MELOTTS_URL = "git+https://github.com/myshell-ai/MeloTTS.git"

# Model download URLs
V1_CHECKPOINT_URL = "https://myshell-public-repo-host.s3.amazonaws.com/openvoice/checkpoints_1226.zip"
V2_CHECKPOINT_URL = "https://myshell-public-repo-host.s3.amazonaws.com/openvoice/checkpoints_v2_0417.zip"

# HuggingFace mirrors of the same checkpoints
V1_HF_REPO = "myshell-ai/OpenVoice"
V2_HF_REPO = "myshell-ai/OpenVoiceV2"

# Target platform
EXPECTED_OS_NAME = "Ubuntu"
EXPECTED_OS_VERSION = "22.04"
EXPECTED_CUDA_VERSION = "12.1"

# System packages
APT_PACKAGES = [
    "git",
    "wget",
    "unzip",
    "build-essential",
    "libsndfile1",
    "ffmpeg",
    "espeak-ng",
    "espeak-ng-data",
]

# Launcher scripts
GRADIO_LAUNCHER = "launch_gradio.sh"
JUPYTER_LAUNCHER = "launch_jupyter.sh"

# Downloads
DOWNLOAD_CHUNK_SIZE = 1024 * 1024
DOWNLOAD_TIMEOUT = 60  # seconds, per socket read

# Custom log level between INFO and WARNING for completed steps
SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")


def miniconda_prefix(home: Path | None = None) -> Path:
    """Default Miniconda install prefix under the user's home."""
    home = Path(home) if home else Path.home()
    return home / MINICONDA_DIRNAME


def _running_as_root() -> bool:
    return hasattr(os, "geteuid") and os.geteuid() == 0


def default_use_sudo() -> bool:
    """apt needs sudo unless we already are root."""
    return not _running_as_root()


def setup_logging(verbose: bool = False):
    """Configure root logging with a rich console handler."""
    handler = RichHandler(
        show_path=False,
        markup=False,
        rich_tracebacks=True,
        log_time_format="[%Y-%m-%d %H:%M:%S]",
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    root = logging.getLogger()
    for existing in list(root.handlers):
        if isinstance(existing, RichHandler):
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)

    # requests/urllib3 are chatty at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)
