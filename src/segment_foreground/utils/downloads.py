from __future__ import annotations

import logging
from pathlib import Path

import requests
from tqdm import tqdm

logger = logging.getLogger(__name__)


def download_file(
    url: str,
    destination: Path,
    chunk_size: int = 1 << 20,
    timeout: float = 60,
) -> Path:
    """
    Fetch ``url`` into ``destination`` with a progress bar.

    Bytes go to a sibling ``.part`` file that is renamed on completion, so
    a failed transfer never leaves a truncated ``.onnx`` where the weights
    lookup would pick it up.
    """
    destination = Path(destination)
    partial = destination.with_name(destination.name + ".part")
    destination.parent.mkdir(parents=True, exist_ok=True)

    logger.info("Fetching weights %s -> %s", url, destination)
    try:
        with requests.get(url, stream=True, timeout=timeout) as response:
            response.raise_for_status()
            size = int(response.headers.get("content-length", 0)) or None
            with partial.open("wb") as handle, tqdm(
                total=size, unit="B", unit_scale=True, desc=destination.name
            ) as bar:
                for chunk in response.iter_content(chunk_size=chunk_size):
                    bar.update(handle.write(chunk))
    except BaseException:
        partial.unlink(missing_ok=True)
        raise

    partial.replace(destination)
    return destination
