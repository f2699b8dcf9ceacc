from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Optional

import requests
from tqdm import tqdm

CHUNK_SIZE = 1024 * 1024


def sha256_file(path: Path) -> str:
    hasher = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(CHUNK_SIZE), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def download_file(
    url: str,
    destination: Path,
    expected_sha256: Optional[str] = None,
    chunk_size: int = CHUNK_SIZE,
    timeout: float = 60,
) -> Path:
    """
    Stream a model artifact into the cache directory.

    The payload is written to ``<destination>.tmp`` and renamed into place
    once complete, so an interrupted download never leaves a truncated model
    behind.

    Parameters
    ----------
    url: str
        Remote URL to download.
    destination: Path
        Local destination path. Parent directories are created.
    expected_sha256: Optional[str]
        Optional SHA-256 hex digest checked after the download.
    chunk_size: int
        Streaming chunk size in bytes. Defaults to 1 MiB.
    timeout: float
        Connect/read timeout in seconds.
    """

    destination.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = destination.with_suffix(destination.suffix + ".tmp")

    with requests.get(url, stream=True, timeout=timeout) as response:
        response.raise_for_status()
        total = int(response.headers.get("content-length", 0)) or None
        try:
            with tmp_path.open("wb") as handle, tqdm(
                total=total,
                unit="B",
                unit_scale=True,
                desc=f"Downloading {destination.name}",
            ) as progress:
                for chunk in response.iter_content(chunk_size=chunk_size):
                    if not chunk:
                        continue
                    handle.write(chunk)
                    progress.update(len(chunk))
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

    if expected_sha256 and sha256_file(tmp_path) != expected_sha256.lower():
        tmp_path.unlink(missing_ok=True)
        raise ValueError(f"Checksum mismatch for {destination}. Expected {expected_sha256}.")

    tmp_path.replace(destination)
    return destination
