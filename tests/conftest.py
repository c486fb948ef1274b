from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Settings are read at import time; keep tests off real AWS resources.
os.environ.setdefault("AWS_REGION", "us-east-1")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ["PROFILE_IMAGE_BUCKET"] = ""
os.environ["JWT_SECRET"] = ""
os.environ.setdefault("LOCAL_UPLOAD_DIR", tempfile.mkdtemp(prefix="account-backend-uploads-"))
os.environ.setdefault("LOG_JSON", "0")
