"""
Test configuration and fixtures for the OpenVoice deployment tool.

Provides a fake command runner and downloader so stages can be exercised
without apt, conda, git or the network.
"""

import io
import zipfile
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest
from rich.console import Console

from command_runner import CommandError, CommandResult
from install_configs import OpenVoiceConfig
from openvoice_deploy import DeployContext

NVCC_OUTPUT = (
    "nvcc: NVIDIA (R) Cuda compiler driver\n"
    "Copyright (c) 2005-2023 NVIDIA Corporation\n"
    "Cuda compilation tools, release 12.1, V12.1.105\n"
)

UBUNTU_2204 = 'NAME="Ubuntu"\nVERSION_ID="22.04"\nID=ubuntu\n'


# =====================================================================
# Fakes
# =====================================================================

class FakeRunner:
    """Records commands and answers them from registered responses.

    Responses are matched on the executable's basename plus the following
    arguments, so "/opt/conda/bin/conda env list" matches ("conda", "env", "list").
    """

    def __init__(self, tools: Optional[Dict[str, str]] = None):
        self.tools = dict(tools or {})
        self.calls: List[List[str]] = []
        self.cwds: List[Optional[str]] = []
        self._responses = []

    def which(self, name: str) -> Optional[str]:
        return self.tools.get(name)

    def on(self, *prefix: str, output: str = "", returncode: int = 0,
           effect: Optional[Callable[[List[str]], None]] = None):
        self._responses.insert(0, (list(prefix), output, returncode, effect))
        return self

    @staticmethod
    def _matches(cmd: List[str], prefix: List[str]) -> bool:
        return (
            len(cmd) >= len(prefix)
            and Path(cmd[0]).name == prefix[0]
            and cmd[1:len(prefix)] == prefix[1:]
        )

    def run(self, cmd, cwd=None, env=None, log_callback=None, check=True):
        cmd = [str(part) for part in cmd]
        self.calls.append(cmd)
        self.cwds.append(str(cwd) if cwd else None)

        output, returncode = "", 0
        for prefix, out, rc, effect in self._responses:
            if self._matches(cmd, prefix):
                output, returncode = out, rc
                if effect:
                    effect(cmd)
                break

        if check and returncode != 0:
            raise CommandError(cmd, returncode, output)
        return CommandResult(cmd, returncode, output)

    def find(self, *prefix: str) -> List[List[str]]:
        return [cmd for cmd in self.calls if self._matches(cmd, list(prefix))]

    def called(self, *prefix: str) -> bool:
        return bool(self.find(*prefix))


def make_zip(members: Dict[str, bytes]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, data in members.items():
            zf.writestr(name, data)
    return buf.getvalue()


class FakeDownloader:
    """Serves registered payloads from memory instead of the network."""

    def __init__(self, payloads: Optional[Dict[str, bytes]] = None):
        self.payloads = dict(payloads or {})
        self.fetched: List[str] = []

    def fetch(self, url: str, dest: Path) -> Path:
        self.fetched.append(url)
        dest = Path(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(self.payloads.get(url, b""))
        return dest


# =====================================================================
# Fixtures
# =====================================================================

@pytest.fixture
def openvoice_config():
    return OpenVoiceConfig()


@pytest.fixture
def os_release(tmp_path):
    path = tmp_path / "os-release"
    path.write_text(UBUNTU_2204, encoding="utf-8")
    return path


@pytest.fixture
def home_dir(tmp_path):
    home = tmp_path / "home"
    home.mkdir()
    return home


@pytest.fixture
def work_dir(tmp_path):
    work = tmp_path / "work"
    work.mkdir()
    return work


@pytest.fixture
def fake_runner():
    """A machine with CUDA 12.1, conda at /opt/conda and no openvoice env yet."""
    runner = FakeRunner(tools={
        "nvcc": "/usr/local/cuda/bin/nvcc",
        "conda": "/opt/conda/bin/conda",
        "git": "/usr/bin/git",
    })
    runner.on("nvcc", "--version", output=NVCC_OUTPUT)
    runner.on("conda", "--version", output="conda 24.1.2")
    runner.on("conda", "info", "--base", output="/opt/conda\n")
    runner.on("conda", "env", "list", "--json", output='{"envs": ["/opt/conda"]}')
    # git clone <url> <path> creates the checkout
    runner.on("git", "clone", effect=lambda cmd: Path(cmd[-1]).mkdir(parents=True))
    return runner


@pytest.fixture
def checkpoint_payloads(openvoice_config):
    """Local zip fixtures standing in for the V1/V2 archive URLs."""
    v1, v2 = openvoice_config.checkpoints
    return {
        v1.url: make_zip({
            "checkpoints/base_speakers/EN/config.json": b"{}",
            "checkpoints/converter/config.json": b"{}",
        }),
        v2.url: make_zip({
            "checkpoints_v2/base_speakers/ses/en-us.pth": b"weights",
            "checkpoints_v2/converter/config.json": b"{}",
        }),
    }


@pytest.fixture
def fake_downloader(checkpoint_payloads):
    return FakeDownloader(checkpoint_payloads)


@pytest.fixture
def deploy_ctx(openvoice_config, fake_runner, fake_downloader, work_dir, home_dir, os_release):
    answers = []

    def confirm(question):
        answers.append(question)
        return False

    ctx = DeployContext(
        config=openvoice_config,
        runner=fake_runner,
        downloader=fake_downloader,
        confirm=confirm,
        work_dir=work_dir,
        home=home_dir,
        os_release_path=os_release,
        use_sudo=True,
        console=Console(file=io.StringIO(), width=120),
    )
    ctx.questions = answers
    return ctx
