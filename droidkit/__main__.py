"""Allow running droidkit as ``python -m droidkit``."""

from droidkit.cli import app

if __name__ == "__main__":
    app(prog_name="droidkit")
