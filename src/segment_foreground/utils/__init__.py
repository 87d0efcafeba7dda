from .downloads import download_file
from .weights import candidate_paths, ensure_weights, resolve_weights_path

__all__ = [
    "download_file",
    "candidate_paths",
    "ensure_weights",
    "resolve_weights_path",
]
