"""Root conftest: puts src/ on the path and shares the Taiga fixtures."""
import sys
from pathlib import Path

src_dir = Path(__file__).parent.parent / "src"
if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))

# mock_taiga_client, mcp_context and the autouse TAIGA_* environment
from fixtures.conftest import *  # noqa: F403, F401
