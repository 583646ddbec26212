#
# PROJECT: model-viewer-core
# MODULE: model_viewer/color.py
# STATUS: Level 2 - Implementation
# LOG_REF: 2026-10-19
#


def parse_hex_color(hex_str):
    """
    Parse a hex color string to an (r, g, b) tuple.
    Accepts: '#RRGGBB' or 'RRGGBB' (case-insensitive).
    Returns: (r, g, b) tuple with values 0-255, or None on failure.
    """
    if hex_str is None:
        return None
    val = str(hex_str).strip().lstrip('#')
    if len(val) != 6:
        return None
    try:
        r = int(val[0:2], 16)
        g = int(val[2:4], 16)
        b = int(val[4:6], 16)
        return (r, g, b)
    except ValueError:
        return None


def rgb_to_int(rgb) -> int:
    """Pack an (r, g, b) tuple of 0-255 channels into 0xRRGGBB."""
    r, g, b = (max(0, min(255, int(c))) for c in rgb)
    return (r << 16) | (g << 8) | b


def int_to_rgb(value: int):
    return ((value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF)


def float_rgb_to_int(channels) -> int:
    """Pack linear 0.0-1.0 channels (glTF / FBX style) into 0xRRGGBB."""
    return rgb_to_int(round(max(0.0, min(1.0, float(c))) * 255)
                      for c in list(channels)[:3])


def to_hex(value: int) -> str:
    return f"#{value & 0xFFFFFF:06x}"


def coerce_color(value) -> int:
    """
    Accept either a packed int or a hex string and return 0xRRGGBB.
    Raises ValueError for anything else.
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a color: {value!r}")
    if isinstance(value, int):
        if not 0 <= value <= 0xFFFFFF:
            raise ValueError(f"Color out of range: {value:#x}")
        return value
    rgb = parse_hex_color(value)
    if rgb is None:
        raise ValueError(f"Not a color: {value!r}")
    return rgb_to_int(rgb)
