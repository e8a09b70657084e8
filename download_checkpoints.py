"""
Download OpenVoice checkpoint archives into an OpenVoice checkout.
Run this script to fetch model weights without re-running the full deployment.
"""

import argparse
import logging
import sys
import zipfile
from pathlib import Path
from typing import Optional

import requests
from huggingface_hub import snapshot_download

from command_runner import DeployError
from config import DOWNLOAD_CHUNK_SIZE, DOWNLOAD_TIMEOUT, OPENVOICE_DIR, SUCCESS, setup_logging
from install_configs import ALL_CONFIGS, CheckpointSpec

logger = logging.getLogger(__name__)


class Downloader:
    """Streams HTTP downloads to disk."""

    def __init__(self, session: Optional[requests.Session] = None,
                 timeout: float = DOWNLOAD_TIMEOUT,
                 chunk_size: int = DOWNLOAD_CHUNK_SIZE):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.chunk_size = chunk_size

    def fetch(self, url: str, dest: Path) -> Path:
        """
        Download `url` to `dest`.

        A failed transfer removes the partial file before raising.

        Raises:
            DeployError: On any HTTP or connection error.
        """
        dest = Path(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)
        logger.debug("GET %s -> %s", url, dest)

        try:
            with self.session.get(url, stream=True, timeout=self.timeout) as resp:
                resp.raise_for_status()
                total = int(resp.headers.get("content-length") or 0)
                written = 0
                with open(dest, "wb") as fh:
                    for chunk in resp.iter_content(chunk_size=self.chunk_size):
                        if chunk:
                            fh.write(chunk)
                            written += len(chunk)
        except requests.RequestException as e:
            dest.unlink(missing_ok=True)
            raise DeployError(f"Download failed for {url}: {e}") from e
        except OSError:
            dest.unlink(missing_ok=True)
            raise

        if total:
            logger.debug("Downloaded %d of %d bytes", written, total)
        return dest


def extract_archive(archive: Path, dest: Path):
    """Unpack a zip archive into `dest`."""
    try:
        with zipfile.ZipFile(archive) as zf:
            zf.extractall(dest)
    except zipfile.BadZipFile as e:
        raise DeployError(f"Corrupt archive {archive}: {e}") from e


def download_checkpoint(spec: CheckpointSpec, repo_dir: Path, downloader: Downloader) -> bool:
    """
    Download and unpack one checkpoint archive into the OpenVoice checkout.

    Returns:
        True if downloaded, False if the extraction directory was already present.
    """
    repo_dir = Path(repo_dir)
    target = repo_dir / spec.extract_dir

    logger.info("Downloading %s checkpoints...", spec.description or spec.name)
    if target.is_dir():
        logger.warning("%s checkpoints directory already exists", spec.name.upper())
        return False

    archive = repo_dir / spec.archive_name
    downloader.fetch(spec.url, archive)
    try:
        extract_archive(archive, repo_dir)
    finally:
        archive.unlink(missing_ok=True)

    if not target.is_dir():
        raise DeployError(
            f"Archive {spec.archive_name} did not contain the expected '{spec.extract_dir}' directory"
        )

    logger.log(SUCCESS, "%s checkpoints downloaded and extracted", spec.name.upper())
    return True


def download_checkpoint_from_hub(spec: CheckpointSpec, repo_dir: Path) -> bool:
    """Fetch a checkpoint from its HuggingFace mirror instead of the zip archive."""
    repo_dir = Path(repo_dir)
    target = repo_dir / spec.extract_dir

    if not spec.hf_repo:
        raise DeployError(f"Checkpoint '{spec.name}' has no HuggingFace mirror")

    logger.info("Downloading %s checkpoints from %s...", spec.description or spec.name, spec.hf_repo)
    if target.is_dir():
        logger.warning("%s checkpoints directory already exists", spec.name.upper())
        return False

    if spec.hf_subfolder:
        local_dir = repo_dir
        allow_patterns = [f"{spec.hf_subfolder}/*"]
    else:
        local_dir = target
        allow_patterns = None

    try:
        snapshot_download(
            repo_id=spec.hf_repo,
            local_dir=str(local_dir),
            allow_patterns=allow_patterns,
        )
    except Exception as e:
        raise DeployError(f"HuggingFace download failed for {spec.hf_repo}: {e}") from e

    if not target.is_dir():
        raise DeployError(f"{spec.hf_repo} did not provide the expected '{spec.extract_dir}' directory")

    logger.log(SUCCESS, "%s checkpoints downloaded to %s", spec.name.upper(), target)
    return True


def main(argv=None) -> int:
    config = ALL_CONFIGS["openvoice"]
    checkpoints = {spec.name: spec for spec in config.checkpoints}

    parser = argparse.ArgumentParser(description="Download OpenVoice checkpoints")
    parser.add_argument("--model", "-m", help="Specific checkpoint to download (or 'all')")
    parser.add_argument("--list", "-l", action="store_true", help="List available checkpoints")
    parser.add_argument("--repo-dir", default=OPENVOICE_DIR,
                        help=f"OpenVoice checkout to download into (default: {OPENVOICE_DIR})")
    parser.add_argument("--from-hub", action="store_true",
                        help="Download from HuggingFace instead of the zip archives")
    args = parser.parse_args(argv)

    setup_logging()

    if args.list:
        print("Available checkpoints:")
        for key, spec in checkpoints.items():
            print(f"  {key}: {spec.description} -> {spec.extract_dir}/")
        return 0

    if args.model and args.model != "all":
        if args.model not in checkpoints:
            print(f"Unknown checkpoint: {args.model}")
            print(f"Available: {', '.join(checkpoints.keys())}")
            return 1
        selected = [checkpoints[args.model]]
    else:
        selected = list(checkpoints.values())

    repo_dir = Path(args.repo_dir)
    if not repo_dir.is_dir():
        logger.error("OpenVoice checkout not found at %s", repo_dir)
        return 1

    downloader = Downloader()
    try:
        for spec in selected:
            if args.from_hub:
                download_checkpoint_from_hub(spec, repo_dir)
            else:
                download_checkpoint(spec, repo_dir, downloader)
    except DeployError as e:
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
