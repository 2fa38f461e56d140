"""Discovery and parsing of the presets file."""

from __future__ import annotations

import logging
import math
import os
import re
import struct
import sys
from typing import Iterable, Iterator, Optional, Sequence

from .models import (
    APP_NAME,
    MAX_LINE_LENGTH,
    MAX_PRESETS,
    PRESETS_FILENAME,
    OutputType,
    PresetDefinition,
)
from .utils import trim_whitespace

log = logging.getLogger(__name__)

_MAX_FOUND_FILES = 5
_HEADER_PREFIX = "[preset:"

_DECIMAL_FLOAT = re.compile(
    r"[+-]?(?:\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?"
    r"|inf(?:inity)?|nan(?:\([0-9A-Za-z_]*\))?)",
    re.IGNORECASE,
)
_HEX_FLOAT = re.compile(
    r"[+-]?0[xX](?:[0-9a-fA-F]+\.?[0-9a-fA-F]*|\.[0-9a-fA-F]+)(?:[pP][+-]?\d+)?"
)

_OUTPUT_TYPES = {
    "raw": OutputType.RAW,
    "wav": OutputType.WAV,
    "wav-rf64": OutputType.WAV_RF64,
}
_BOOLEANS = {"true": True, "false": False}


def default_search_dirs() -> list[str]:
    """Directories searched for the presets file, in search order."""
    dirs: list[str] = []
    if os.name == "nt":
        exe_dir = os.path.dirname(os.path.abspath(sys.argv[0] if sys.argv else "."))
        dirs.append(exe_dir or ".")
        for var in ("APPDATA", "PROGRAMDATA"):
            base = os.environ.get(var)
            if base:
                dirs.append(os.path.join(base, APP_NAME))
        return dirs

    dirs.append(".")
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config_home:
        dirs.append(f"{xdg_config_home}/{APP_NAME}")
    else:
        home = os.environ.get("HOME")
        if home is not None:
            dirs.append(f"{home}/.config/{APP_NAME}")
    dirs.append(f"/etc/{APP_NAME}")
    dirs.append(f"/usr/local/etc/{APP_NAME}")
    return dirs


def _is_readable(path: str) -> bool:
    try:
        with open(path, "rb"):
            return True
    except OSError:
        return False


def find_preset_files(search_dirs: Iterable[Optional[str]]) -> list[str]:
    """Paths of every readable presets file found in ``search_dirs`` (at most five)."""
    found: list[str] = []
    for base_dir in search_dirs:
        if base_dir is None:
            continue
        candidate = f"{base_dir}/{PRESETS_FILENAME}"
        if _is_readable(candidate) and len(found) < _MAX_FOUND_FILES:
            found.append(candidate)
    return found


def _split_long_lines(lines: Iterable[str]) -> Iterator[str]:
    """Yield lines the way a fixed-size line reader sees them."""
    limit = MAX_LINE_LENGTH - 1
    for line in lines:
        while len(line) > limit:
            yield line[:limit]
            line = line[limit:]
        if line:
            yield line


def _parse_c_double(text: str) -> Optional[float]:
    """Parse a whole string as a C floating-point literal; None if it is not one."""
    if _DECIMAL_FLOAT.fullmatch(text):
        return float(text)
    if _HEX_FLOAT.fullmatch(text):
        sign = -1.0 if text.startswith("-") else 1.0
        body = text.lstrip("+-")
        if "p" not in body.lower():
            body += "p0"
        return sign * float.fromhex(body)
    return None


def _to_float32(value: float) -> float:
    try:
        return struct.unpack("<f", struct.pack("<f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def _split_key_value(line: str) -> tuple[Optional[str], Optional[str]]:
    rest = line.lstrip("=")
    if not rest:
        return None, None
    idx = rest.find("=")
    if idx == -1:
        return rest, None
    value = rest[idx + 1:]
    return rest[:idx], (value if value else None)


def _apply_key(preset: PresetDefinition, key: str, value: str, line_num: int) -> None:
    lkey = key.lower()
    lvalue = value.lower()
    if lkey == "description":
        preset.description = value
    elif lkey == "target_rate":
        rate = _parse_c_double(value)
        if rate is None or not math.isfinite(rate) or rate <= 0:
            log.warning(
                "Invalid value for 'target_rate' in preset '%s' at line %d: '%s'",
                preset.name, line_num, value,
            )
            preset.target_rate = 0.0
        else:
            preset.target_rate = rate
    elif lkey == "sample_format_name":
        preset.sample_format_name = value
    elif lkey == "output_type":
        if lvalue in _OUTPUT_TYPES:
            preset.output_type = _OUTPUT_TYPES[lvalue]
        else:
            log.warning(
                "Invalid value for 'output_type' in preset '%s' at line %d: '%s'",
                preset.name, line_num, value,
            )
    elif lkey == "gain":
        parsed = _parse_c_double(value)
        gain = _to_float32(parsed) if parsed is not None else None
        if gain is not None and gain > 0.0 and math.isfinite(gain):
            preset.gain = gain
            preset.gain_provided = True
        else:
            log.warning(
                "Invalid value for 'gain' in preset '%s' at line %d: '%s'",
                preset.name, line_num, value,
            )
    elif lkey in ("dc_block", "iq_correction"):
        if lvalue in _BOOLEANS:
            setattr(preset, f"{lkey}_enable", _BOOLEANS[lvalue])
            setattr(preset, f"{lkey}_provided", True)
        else:
            log.warning(
                "Invalid value for '%s' in preset '%s' at line %d: '%s'. "
                "Use 'true' or 'false'.",
                lkey, preset.name, line_num, value,
            )
    else:
        log.warning("Unknown key '%s' in preset '%s' at line %d.", key, preset.name, line_num)


def parse_presets(lines: Iterable[str]) -> list[PresetDefinition]:
    """Parse preset definitions from the lines of a presets file."""
    presets: list[PresetDefinition] = []
    current: Optional[PresetDefinition] = None

    for line_num, raw_line in enumerate(_split_long_lines(lines), start=1):
        line = trim_whitespace(raw_line) or ""
        if not line or line[0] in "#;":
            continue

        if line[0] == "[" and "preset:" in line:
            if len(presets) >= MAX_PRESETS:
                log.warning(
                    "Maximum number of presets (%d) reached at line %d. "
                    "Ignoring further presets.",
                    MAX_PRESETS, line_num,
                )
                current = None
                continue
            name_part = line[len(_HEADER_PREFIX):]
            end = name_part.find("]")
            if end == -1:
                log.warning("Malformed preset header at line %d: %s", line_num, line)
                current = None
                continue
            current = PresetDefinition(name=trim_whitespace(name_part[:end]) or "")
            presets.append(current)
        elif current is not None and "=" in line:
            key, value = _split_key_value(line)
            if key is None or value is None:
                log.warning("Malformed key-value pair at line %d.", line_num)
                continue
            _apply_key(current, trim_whitespace(key) or "", trim_whitespace(value) or "", line_num)

    return presets


def load_presets(search_dirs: Optional[Sequence[Optional[str]]] = None) -> list[PresetDefinition]:
    """Find the single presets file and parse it.

    Returns an empty list when no file is found or when several conflicting
    files exist. Raises OSError if the found file cannot be read.
    """
    dirs = default_search_dirs() if search_dirs is None else search_dirs
    found = find_preset_files(dirs)

    if len(found) > 1:
        log.warning(
            "Conflicting presets files found. No presets will be loaded. Please resolve "
            "the conflict by keeping only one of the following files:"
        )
        for path in found:
            log.warning("  - %s", path)
        return []
    if not found:
        log.info(
            "No presets file '%s' found in any standard location. "
            "No external presets will be available.",
            PRESETS_FILENAME,
        )
        return []

    with open(found[0], encoding="utf-8", errors="replace", newline="") as fp:
        return parse_presets(fp)