# OpenVoice Deployment Installation Configurations
from .base import (
    InstallConfig, CheckpointSpec, LauncherSpec,
    run_pip_install, run_git_clone, check_package_installed,
)
from .openvoice import OpenVoiceConfig

ALL_CONFIGS = {
    "openvoice": OpenVoiceConfig(),
}
