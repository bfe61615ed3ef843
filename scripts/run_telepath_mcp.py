#!/usr/bin/env python3
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

print(
    f"[mcp] url={os.environ.get('TELEPATH_URL', 'default')} | "
    f"env={os.environ.get('TELEPATH_ENV_NAME', 'XMR-UP-XMN')} | "
    f"binary={os.environ.get('TELEPATH_BROWSER_BINARY', 'auto')} | "
    f"headless={os.environ.get('TELEPATH_HEADLESS', '1')}",
    file=sys.stderr,
)

from mcp_servers.telepath.main import main  # noqa: E402

if __name__ == "__main__":
    main()
