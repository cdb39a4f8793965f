import os
import sys
import tempfile

# Modules live at the repo root; keep test runs out of the real logs/ dir.
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="deezer2spotify-logs-"))
