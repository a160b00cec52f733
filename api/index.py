"""Serverless entrypoint: exposes the FastAPI app from web_server/."""
import sys
from pathlib import Path

web_server_dir = Path(__file__).parent.parent / "web_server"
if str(web_server_dir.absolute()) not in sys.path:
    sys.path.insert(0, str(web_server_dir.absolute()))

from app import app  # noqa: E402,F401
