"""tidalrelay — drive a live TidalCycles interpreter from your editor or terminal."""

__version__ = "0.1.0"
