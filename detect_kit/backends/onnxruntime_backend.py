from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

import numpy as np

from ..tensor import TensorLayout


PathLike = Union[str, Path]


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    providers: Optional[Sequence[str]] = None
    input_name: Optional[str] = None
    output_name: Optional[str] = None


class OnnxRuntimeBackend:
    """
    Wraps an `onnxruntime.InferenceSession` whose output is the raw
    `(1, 4 + C, N)` detector tensor for `layout`.

    The declared output shape is checked when the backend is built and every
    returned tensor is checked again. Both raise `MalformedTensorError`.
    """

    def __init__(
        self,
        session,
        layout: TensorLayout,
        *,
        input_name: Optional[str] = None,
        output_name: Optional[str] = None,
    ):
        self.session = session
        self.layout = layout
        self.input_name = input_name or session.get_inputs()[0].name

        outputs = {out.name: out for out in session.get_outputs()}
        if output_name is not None and output_name not in outputs:
            raise ValueError(f"Model has no output named {output_name!r} (outputs: {sorted(outputs)})")
        output = outputs[output_name] if output_name is not None else session.get_outputs()[0]
        self.output_name = output.name
        layout.check_shape(output.shape)

    @classmethod
    def load(
        cls,
        model_path: PathLike,
        layout: TensorLayout,
        cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig(),
    ) -> "OnnxRuntimeBackend":
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is required for the ONNX backend. Install it with `pip install onnxruntime`."
            ) from e

        path = Path(model_path)
        if not path.exists():
            raise FileNotFoundError(str(path))

        providers = list(cfg.providers) if cfg.providers is not None else None
        session = ort.InferenceSession(str(path), providers=providers)
        return cls(session, layout, input_name=cfg.input_name, output_name=cfg.output_name)

    @property
    def providers_in_use(self) -> Sequence[str]:
        return tuple(self.session.get_providers())

    def infer(self, blob: np.ndarray) -> np.ndarray:
        (out,) = self.session.run([self.output_name], {self.input_name: blob})
        out = np.asarray(out)
        self.layout.check_shape(out.shape)
        return out
