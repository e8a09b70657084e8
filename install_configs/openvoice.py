"""OpenVoice V1/V2 installation configuration."""

from config import (
    CONDA_ENV_NAME, PYTHON_VERSION, MINICONDA_URL,
    OPENVOICE_DIR, REPO_URL, REPO_BRANCH,
    TORCH_INDEX_URL, MELOTTS_URL, APT_PACKAGES,
    V1_CHECKPOINT_URL, V2_CHECKPOINT_URL, V1_HF_REPO, V2_HF_REPO,
    EXPECTED_OS_NAME, EXPECTED_OS_VERSION, EXPECTED_CUDA_VERSION,
    GRADIO_LAUNCHER, JUPYTER_LAUNCHER,
)
from .base import InstallConfig, CheckpointSpec, LauncherSpec


class OpenVoiceConfig(InstallConfig):
    """Configuration for the OpenVoice conda environment."""

    def __init__(self):
        super().__init__()
        self.name = "openvoice"
        self.display_name = "OpenVoice"
        self.description = (
            "OpenVoice by MyShell: instant voice cloning. "
            "V1 offers flexible style control, V2 adds native multi-lingual support via MeloTTS."
        )
        self.verify_package = "MyShell-OpenVoice"
        self.verify_imports = ["torch", "openvoice"]

        self.conda_env_name = CONDA_ENV_NAME
        self.python_version = PYTHON_VERSION
        self.miniconda_url = MINICONDA_URL

        self.repo_url = REPO_URL
        self.repo_dir = OPENVOICE_DIR
        self.repo_branch = REPO_BRANCH

        self.apt_packages = list(APT_PACKAGES)

        # Installation packages in order
        self.pip_packages = [
            # PyTorch with CUDA 12.1
            ["torch", "torchvision", "torchaudio",
             "--index-url", TORCH_INDEX_URL],
        ]
        self.install_repo_editable = True

        # MeloTTS is the base speaker TTS for V2
        self.git_packages = [MELOTTS_URL]

        # MeloTTS needs the unidic Japanese dictionary
        self.post_install_modules = [["unidic", "download"]]

        self.checkpoints = [
            CheckpointSpec(
                name="v1",
                url=V1_CHECKPOINT_URL,
                archive_name="checkpoints_v1.zip",
                extract_dir="checkpoints",
                description="OpenVoice V1 (flexible style control)",
                hf_repo=V1_HF_REPO,
                hf_subfolder="checkpoints",
            ),
            CheckpointSpec(
                name="v2",
                url=V2_CHECKPOINT_URL,
                archive_name="checkpoints_v2.zip",
                extract_dir="checkpoints_v2",
                description="OpenVoice V2 (multi-language support)",
                hf_repo=V2_HF_REPO,
            ),
        ]

        self.launchers = [
            LauncherSpec(
                filename=GRADIO_LAUNCHER,
                command="python -m openvoice_app --share",
                description="Start Gradio web interface",
            ),
            LauncherSpec(
                filename=JUPYTER_LAUNCHER,
                command="jupyter notebook",
                description="Start Jupyter notebook for demos",
            ),
        ]

        self.expected_os_name = EXPECTED_OS_NAME
        self.expected_os_version = EXPECTED_OS_VERSION
        self.expected_cuda = EXPECTED_CUDA_VERSION

        self.usage_commands = [
            ("V1 Flexible Voice Control", "jupyter notebook demo_part1.ipynb"),
            ("V1 Cross-Lingual Cloning", "jupyter notebook demo_part2.ipynb"),
            ("V2 Demo", "jupyter notebook demo_part3.ipynb"),
            ("Gradio Web Interface", "python -m openvoice_app --share"),
        ]

        self.system_notes = "Supported languages (V2): English, Spanish, French, Chinese, Japanese, Korean"
