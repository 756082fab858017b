import os
import sys


# Tests import `common`, `adapters`, `api` and `scripts` as top-level packages;
# put `src/backend` first on sys.path so an uninstalled checkout works too.
BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)
