"""Render configuration.

A ``RenderConfig`` gathers everything a render needs besides the scene
itself. It can be loaded from a JSON file and then overridden from the
command line.

Example JSON file::

    {
        "width": 400,
        "height": 200,
        "samples": 50,
        "camera": {"look_from": [13, 2, 3], "aperture": 0.0}
    }
"""

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pathtracer.camera.thin_lens import ThinLensCamera

logger = logging.getLogger(__name__)

# Taichi backends accepted for the arch setting
ARCH_CHOICES = ("cpu", "gpu", "cuda", "vulkan", "metal", "opengl")

# Expected JSON type per render setting; scene may also be null
_RENDER_TYPES: dict[str, type] = {
    "width": int,
    "height": int,
    "samples": int,
    "max_depth": int,
    "seed": int,
    "arch": str,
    "output": str,
    "scene": str,
    "batch_size": int,
}
_NULLABLE = frozenset({"scene"})


@dataclass
class CameraConfig:
    """Camera placement; the aspect ratio follows the image size."""

    look_from: tuple[float, float, float] = (13.0, 2.0, 3.0)
    look_at: tuple[float, float, float] = (0.0, 0.0, 0.0)
    vup: tuple[float, float, float] = (0.0, 1.0, 0.0)
    vfov: float = 20.0
    aperture: float = 0.1
    focus_distance: float = 10.0

    def to_camera(self, aspect_ratio: float) -> "ThinLensCamera":
        """Build the ThinLensCamera for an image with the given aspect ratio."""
        # Deferred: the camera module allocates Taichi fields on import
        from pathtracer.camera.thin_lens import ThinLensCamera

        return ThinLensCamera(
            look_from=self.look_from,
            look_at=self.look_at,
            vup=self.vup,
            vfov=self.vfov,
            aspect_ratio=aspect_ratio,
            aperture=self.aperture,
            focus_distance=self.focus_distance,
        )


@dataclass
class RenderConfig:
    """Settings for one render.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        samples: Samples per pixel.
        max_depth: Maximum number of scatter events per path.
        seed: Seed for Taichi's random generator and the random scene layout.
        arch: Taichi backend name.
        output: Output path (.ppm or .png), or ``-`` for PPM on stdout.
        scene: Optional JSON scene file. The random scene is used when unset.
        batch_size: Samples per pixel between progress reports.
        camera: Camera placement.
    """

    width: int = 200
    height: int = 100
    samples: int = 100
    max_depth: int = 50
    seed: int = 0
    arch: str = "cpu"
    output: str = "-"
    scene: str | None = None
    batch_size: int = 10
    camera: CameraConfig = field(default_factory=CameraConfig)

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    def validate(self) -> None:
        """Check that every setting is usable.

        Camera placement is checked when the camera is set up.

        Raises:
            ValueError: If a setting is out of range.
        """
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Image size must be positive, got {self.width}x{self.height}")
        if self.samples <= 0:
            raise ValueError(f"samples must be positive, got {self.samples}")
        if self.max_depth < 0:
            raise ValueError(f"max_depth must be non-negative, got {self.max_depth}")
        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")
        if self.arch not in ARCH_CHOICES:
            raise ValueError(f"Unknown arch {self.arch!r}, expected one of {ARCH_CHOICES}")
        if self.output != "-" and Path(self.output).suffix.lower() not in (".ppm", ".png"):
            raise ValueError(f"Output must end in .ppm or .png, got {self.output!r}")

    def to_dict(self) -> dict[str, Any]:
        """Export the configuration to a JSON-compatible dictionary."""
        data = asdict(self)
        data["camera"] = {
            key: list(value) if isinstance(value, tuple) else value
            for key, value in data["camera"].items()
        }
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RenderConfig":
        """Create a configuration from a dictionary.

        Missing keys keep their defaults.

        Raises:
            ValueError: If the dictionary has unknown keys or invalid values.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown render config keys: {sorted(unknown)}")

        values: dict[str, Any] = {}
        for key, value in data.items():
            if key == "camera":
                continue
            values[key] = _coerce(key, value, _RENDER_TYPES[key])

        config = cls(**values, camera=_camera_from_dict(data.get("camera", {})))
        config.validate()
        return config


def _coerce(key: str, value: Any, kind: type) -> Any:
    """Check a JSON value against the expected type, widening ints to floats."""
    if value is None and key in _NULLABLE:
        return None
    accepted = (int, float) if kind is float else (kind,)
    if isinstance(value, bool) or not isinstance(value, accepted):
        raise ValueError(f"{key} must be of type {kind.__name__}, got {value!r}")
    return kind(value)


def _camera_from_dict(data: Any) -> CameraConfig:
    if not isinstance(data, dict):
        raise ValueError(f"camera must be a JSON object, got {type(data).__name__}")
    known = {f.name for f in fields(CameraConfig)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown camera config keys: {sorted(unknown)}")

    values: dict[str, Any] = {}
    for key, value in data.items():
        if key in ("look_from", "look_at", "vup"):
            if not isinstance(value, (list, tuple)) or len(value) != 3:
                raise ValueError(f"{key} must be a list of 3 numbers, got {value!r}")
            values[key] = tuple(_coerce(key, component, float) for component in value)
        else:
            values[key] = _coerce(key, value, float)
    return CameraConfig(**values)


def load_render_config(path: str | Path) -> RenderConfig:
    """Load a RenderConfig from a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not valid JSON or has invalid settings.
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Render config in {path} must be a JSON object")

    logger.debug("Loaded render config from %s", path)
    return RenderConfig.from_dict(data)
