from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Protocol, Sequence, Union

import onnxruntime as ort

from .errors import InferenceExecutionError, ModelLoadError
from .models import ModelSpec
from .tensor import Tensor

__all__ = [
    "InferenceSession",
    "InferenceBackend",
    "OnnxRuntimeBackend",
    "open_session",
    "run",
]

logger = logging.getLogger(__name__)

DEFAULT_THREADS = 4


@dataclass
class InferenceSession:
    """
    Loaded model graph bound to one :class:`ModelSpec`.

    Not safe for concurrent ``run`` calls; use one session per thread or
    serialize access externally.
    """

    spec: ModelSpec
    handle: Any
    input_name: str
    output_name: str
    weights_path: Optional[Path] = None
    providers: List[str] = field(default_factory=list)

    @property
    def closed(self) -> bool:
        return self.handle is None

    def release(self) -> None:
        if self.handle is not None:
            logger.debug("Releasing %s session", self.spec.name)
        self.handle = None

    def __enter__(self) -> "InferenceSession":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()


class InferenceBackend(Protocol):
    """Capability interface for anything that can execute a model graph."""

    def open(self, spec: ModelSpec, weights_path: Union[str, Path]) -> InferenceSession:
        ...

    def run(self, session: InferenceSession, tensor: Tensor) -> Tensor:
        ...


def _spatial_dims_conflict(shape: Sequence[Any], size: int) -> bool:
    return any(isinstance(dim, int) and dim != size for dim in shape[-2:])


class OnnxRuntimeBackend:
    """ONNX Runtime implementation of :class:`InferenceBackend` (CPU provider)."""

    PROVIDERS = ["CPUExecutionProvider"]

    def __init__(self, threads: int = DEFAULT_THREADS) -> None:
        self.threads = max(1, int(threads))

    def _session_options(self) -> ort.SessionOptions:
        options = ort.SessionOptions()
        options.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_ALL
        options.intra_op_num_threads = self.threads
        return options

    def open(self, spec: ModelSpec, weights_path: Union[str, Path]) -> InferenceSession:
        path = Path(weights_path)
        if not path.is_file():
            raise ModelLoadError(
                f"Model weights not found at {path}", details={"path": str(path)}
            )
        if not os.access(path, os.R_OK):
            raise ModelLoadError(
                f"Model weights at {path} are not readable", details={"path": str(path)}
            )

        try:
            handle = ort.InferenceSession(
                path.as_posix(),
                sess_options=self._session_options(),
                providers=self.PROVIDERS,
            )
        except Exception as exc:
            raise ModelLoadError(
                f"Failed to load ONNX model {path}: {exc}", details={"path": str(path)}
            ) from exc

        inputs = handle.get_inputs()
        outputs = handle.get_outputs()
        if not inputs or not outputs:
            raise ModelLoadError(f"Model {path} declares no inputs or outputs.")

        input_shape = list(inputs[0].shape or [])
        output_shape = list(outputs[0].shape or [])
        self._check_shapes(spec, path, input_shape, output_shape)

        session = InferenceSession(
            spec=spec,
            handle=handle,
            input_name=inputs[0].name,
            output_name=outputs[0].name,
            weights_path=path,
            providers=list(handle.get_providers()),
        )
        logger.info(
            "Loaded %s from %s (input %s %s, output %s %s, threads=%d)",
            spec.display_name,
            path,
            session.input_name,
            input_shape,
            session.output_name,
            output_shape,
            self.threads,
        )
        return session

    @staticmethod
    def _check_shapes(
        spec: ModelSpec,
        path: Path,
        input_shape: Sequence[Any],
        output_shape: Sequence[Any],
    ) -> None:
        details = {
            "path": str(path),
            "input_shape": list(input_shape),
            "output_shape": list(output_shape),
            "input_size": spec.input_size,
        }
        if input_shape:
            channels = input_shape[1] if len(input_shape) == 4 else None
            if (
                len(input_shape) != 4
                or (isinstance(channels, int) and channels != 3)
                or _spatial_dims_conflict(input_shape, spec.input_size)
            ):
                raise ModelLoadError(
                    f"Model input shape {input_shape} is incompatible with "
                    f"{spec.display_name} (expected Nx3x{spec.input_size}x{spec.input_size}).",
                    details=details,
                )
        if output_shape:
            if len(output_shape) not in (3, 4) or _spatial_dims_conflict(
                output_shape, spec.input_size
            ):
                raise ModelLoadError(
                    f"Model output shape {output_shape} is incompatible with "
                    f"{spec.display_name} (expected spatial size {spec.input_size}).",
                    details=details,
                )

    def run(self, session: InferenceSession, tensor: Tensor) -> Tensor:
        if session.closed:
            raise InferenceExecutionError(f"{session.spec.display_name} session has been released.")

        try:
            outputs = session.handle.run(
                [session.output_name], {session.input_name: tensor.numpy()}
            )
        except Exception as exc:
            raise InferenceExecutionError(
                f"{session.spec.display_name} inference failed: {exc}",
                details={"input_shape": list(tensor.shape)},
            ) from exc

        if not outputs:
            raise InferenceExecutionError(f"{session.spec.display_name} returned no outputs.")
        try:
            return Tensor.from_numpy(outputs[0])
        except (TypeError, ValueError) as exc:
            raise InferenceExecutionError(
                f"{session.spec.display_name} returned an unusable output: {exc}"
            ) from exc


_DEFAULT_BACKEND = OnnxRuntimeBackend()


def open_session(
    spec: ModelSpec,
    weights_path: Union[str, Path],
    threads: int = DEFAULT_THREADS,
) -> InferenceSession:
    backend = _DEFAULT_BACKEND if threads == DEFAULT_THREADS else OnnxRuntimeBackend(threads)
    return backend.open(spec, weights_path)


def run(session: InferenceSession, tensor: Tensor) -> Tensor:
    return _DEFAULT_BACKEND.run(session, tensor)
