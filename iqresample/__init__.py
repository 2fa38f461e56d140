"""Sample format conversion, presets, frequency shifting, work queues and pipeline stages for I/Q streams."""

__version__ = "0.1.0"