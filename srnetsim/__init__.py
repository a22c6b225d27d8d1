"""Network emulator with a Selective Repeat reliable transport protocol."""

__version__ = "0.1.0"
__all__ = ["packet", "emulator", "sr", "cli"]