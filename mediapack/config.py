"""Configuration constants for MediaPack."""

import os

# Default viewport used when no size is given on the command line
DEFAULT_WIDTH = float(os.getenv("MEDIAPACK_DEFAULT_WIDTH", "1280"))
DEFAULT_HEIGHT = float(os.getenv("MEDIAPACK_DEFAULT_HEIGHT", "800"))

# Root font size in px; resolves em/rem inside media queries
DEFAULT_FONT_SIZE = float(os.getenv("MEDIAPACK_FONT_SIZE", "16"))

# CSS reference pixel: 96px per inch
PX_PER_INCH = 96.0
CM_PER_INCH = 2.54

# Widths probed on each side of a breakpoint during a sweep
SWEEP_MARGIN = float(os.getenv("MEDIAPACK_SWEEP_MARGIN", "1"))

# Sweep bounds when no explicit widths are given
SWEEP_MIN_WIDTH = 1.0
SWEEP_MAX_WIDTH = float(os.getenv("MEDIAPACK_SWEEP_MAX_WIDTH", "3840"))

# Versioning for report determinism tracking
TOOL_VERSION = "0.1.0"
SCHEMA_VERSION = 1
