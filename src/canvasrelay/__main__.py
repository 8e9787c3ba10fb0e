"""canvas-relay CLI bootstrap."""

from __future__ import annotations

from canvasrelay.cli import app

if __name__ == "__main__":
    app()
