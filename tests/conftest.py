import os
import sys
import tempfile
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

# Keep request logs out of the home directory
os.environ.setdefault("PIXELCORE_LOG_DIR", tempfile.mkdtemp(prefix="pixelcore-logs-"))
