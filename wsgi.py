import sys
from pathlib import Path

# config.py lives next to this file
ROOT = Path(__file__).resolve().parent
sys.path.insert(0, str(ROOT))

from storefront import create_app  # noqa: E402

app = create_app()
