from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from . import postprocessing, preprocessing
from .backend import DEFAULT_THREADS, InferenceBackend, InferenceSession, OnnxRuntimeBackend
from .errors import InferenceExecutionError, ModelLoadError, SegmentationError
from .image import Image, MatteResult, load_image, save_matte
from .models import ModelSpec, get_model_spec
from .utils.weights import DEFAULT_MODELS_DIR, ensure_weights

logger = logging.getLogger(__name__)


class PipelineState(enum.Enum):
    IDLE = "idle"
    PREPROCESSING = "preprocessing"
    INFERRING = "inferring"
    POSTPROCESSING = "postprocessing"
    DONE = "done"
    FAILED = "failed"


class SegmentationPipeline:
    """
    Runs preprocess -> inference -> postprocess for one model spec.

    Each ``segment`` call walks IDLE -> PREPROCESSING -> INFERRING ->
    POSTPROCESSING -> DONE. A failing stage moves the pipeline to FAILED,
    stores the error on ``self.error`` and re-raises it. Nothing is retried.
    """

    def __init__(
        self,
        spec: ModelSpec,
        session: InferenceSession,
        backend: Optional[InferenceBackend] = None,
    ) -> None:
        if session.spec != spec:
            raise ModelLoadError(
                f"Session was opened for {session.spec.display_name}, not {spec.display_name}."
            )
        self.spec = spec
        self.session = session
        self.backend: InferenceBackend = backend or OnnxRuntimeBackend()
        self.state = PipelineState.IDLE
        self.error: Optional[SegmentationError] = None

    def _transition(self, state: PipelineState) -> None:
        logger.debug("%s pipeline: %s -> %s", self.spec.name, self.state.value, state.value)
        self.state = state

    def _fail(self, error: SegmentationError) -> SegmentationError:
        self.error = error
        self._transition(PipelineState.FAILED)
        return error

    def segment(self, image: Image) -> MatteResult:
        self.state = PipelineState.IDLE
        self.error = None

        self._transition(PipelineState.PREPROCESSING)
        try:
            tensor = preprocessing.prepare(image, self.spec)
        except SegmentationError as exc:
            raise self._fail(exc)
        except Exception as exc:
            raise self._fail(SegmentationError(f"Preprocessing failed: {exc}")) from exc

        self._transition(PipelineState.INFERRING)
        try:
            output = self.backend.run(self.session, tensor)
        except SegmentationError as exc:
            raise self._fail(exc)
        except Exception as exc:
            raise self._fail(InferenceExecutionError(f"Inference failed: {exc}")) from exc

        self._transition(PipelineState.POSTPROCESSING)
        try:
            matte = postprocessing.finalize(output, self.spec, image.width, image.height)
        except SegmentationError as exc:
            raise self._fail(exc)
        except Exception as exc:
            raise self._fail(SegmentationError(f"Postprocessing failed: {exc}")) from exc

        self._transition(PipelineState.DONE)
        return matte


def segment(
    image: Image,
    spec: ModelSpec,
    session: InferenceSession,
    backend: Optional[InferenceBackend] = None,
) -> MatteResult:
    return SegmentationPipeline(spec, session, backend).segment(image)


@dataclass
class SegmentationConfig:
    model_name: str = "modnet"
    models_dir: Path = field(default_factory=lambda: DEFAULT_MODELS_DIR)
    threads: int = DEFAULT_THREADS
    download: bool = False

    def model_spec(self) -> ModelSpec:
        return get_model_spec(self.model_name)


class ForegroundSegmenter:
    """Binds a :class:`SegmentationConfig` to a loaded session and file I/O."""

    def __init__(
        self,
        config: SegmentationConfig,
        backend: Optional[InferenceBackend] = None,
    ) -> None:
        self.config = config
        self.spec = config.model_spec()
        self.backend: InferenceBackend = backend or OnnxRuntimeBackend(config.threads)

        weights = ensure_weights(self.spec, config.models_dir, download=config.download)
        self.session = self.backend.open(self.spec, weights)
        self.pipeline = SegmentationPipeline(self.spec, self.session, self.backend)

    def segment(self, image: Image) -> MatteResult:
        return self.pipeline.segment(image)

    def segment_file(
        self,
        input_path: Union[str, Path],
        output_path: Union[str, Path],
    ) -> MatteResult:
        image = load_image(input_path)

        start = time.perf_counter()
        matte = self.segment(image)
        elapsed = time.perf_counter() - start

        save_matte(matte, output_path)
        logger.info(
            "Segmented %s (%dx%d) with %s in %.3fs",
            input_path,
            image.width,
            image.height,
            self.spec.display_name,
            elapsed,
        )
        return matte

    def close(self) -> None:
        self.session.release()

    def __enter__(self) -> "ForegroundSegmenter":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
