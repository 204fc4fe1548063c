"""MediaPack: media query evaluation and breakpoint checks for stylesheets."""

__version__ = "0.1.0"
