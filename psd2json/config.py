import json
import logging
import os
from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Optional, Union

logger = logging.getLogger(__name__)

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
SETTINGS_PATH = os.path.join(PROJECT_ROOT, "config", "settings.json")

DEFAULT_SETTINGS: Dict[str, Any] = {
    "log_level": "INFO",
    "flatten_image_path": False,
    "max_resolution": None,
    "resize_mode": "crop",
}


@dataclass(frozen=True)
class MaxResolution:
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass(frozen=True)
class ConvertOptions:
    out_json_dir: str = ""
    out_img_dir: str = ""
    flatten_image_path: bool = False
    max_resolution: Optional[MaxResolution] = None
    resize_mode: str = "crop"


def _axis(value: Any, label: str) -> Optional[int]:
    if value is None or value == 0:
        return None
    value = int(value)
    if value < 0:
        raise ValueError(f"maxResolution.{label} must be positive, got {value}")
    return value


def parse_max_resolution(value: Any) -> Optional[MaxResolution]:
    """Normalize a max resolution given as MaxResolution, mapping or (w, h) pair.

    Returns None when neither axis carries a positive value.
    """
    if value is None:
        return None
    if isinstance(value, MaxResolution):
        width, height = value.width, value.height
    elif isinstance(value, Mapping):
        width, height = value.get("width"), value.get("height")
    else:
        width, height = value
    width = _axis(width, "width")
    height = _axis(height, "height")
    if width is None and height is None:
        return None
    return MaxResolution(width=width, height=height)


def _pick(options: Mapping[str, Any], camel: str, snake: str, default: Any) -> Any:
    if camel in options:
        return options[camel]
    return options.get(snake, default)


def resolve_options(options: Union[None, str, Mapping[str, Any], ConvertOptions] = None) -> ConvertOptions:
    """Turn the user-facing options argument into ConvertOptions.

    A plain string is shorthand for using the same directory for JSON and
    images. Mappings may use camelCase (outJsonDir) or snake_case keys.
    """
    if options is None:
        return ConvertOptions()
    if isinstance(options, ConvertOptions):
        return replace(options, max_resolution=parse_max_resolution(options.max_resolution))
    if isinstance(options, (str, os.PathLike)):
        directory = os.fspath(options)
        return ConvertOptions(out_json_dir=directory, out_img_dir=directory)
    if not isinstance(options, Mapping):
        raise TypeError(f"options must be a path, a mapping or ConvertOptions, got {type(options).__name__}")

    return ConvertOptions(
        out_json_dir=os.fspath(_pick(options, "outJsonDir", "out_json_dir", "") or ""),
        out_img_dir=os.fspath(_pick(options, "outImgDir", "out_img_dir", "") or ""),
        flatten_image_path=bool(_pick(options, "flattenImagePath", "flatten_image_path", False)),
        max_resolution=parse_max_resolution(_pick(options, "maxResolution", "max_resolution", None)),
        resize_mode=_pick(options, "resizeMode", "resize_mode", "crop") or "crop",
    )


def load_settings(path: str = SETTINGS_PATH) -> Dict[str, Any]:
    """Load CLI defaults from config/settings.json, falling back to built-ins."""
    settings = dict(DEFAULT_SETTINGS)
    if not os.path.exists(path):
        logger.debug("Settings file not found at %s, using defaults", path)
        return settings

    try:
        with open(path, "r", encoding="utf-8") as settings_file:
            loaded = json.load(settings_file) or {}
    except (OSError, ValueError) as exc:
        logger.warning("Could not load settings from %s: %s", path, exc)
        return settings

    for key in DEFAULT_SETTINGS:
        if key in loaded:
            settings[key] = loaded[key]
    return settings
