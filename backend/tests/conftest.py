import sys
from pathlib import Path

# Put the backend root on sys.path so `services`, `domain` and `api` import as top-level packages
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))
