"""
Uvicorn launcher.

    python -m harvest_intake

Binds 0.0.0.0:$PORT (default 8080). Proxy headers are trusted so the
allow-list sees the scanner's address rather than the load balancer's.
"""

from __future__ import annotations

import sys

import uvicorn
from pydantic import ValidationError

from .config import get_settings


def main() -> None:
    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"[FATAL] Invalid configuration:\n{e}", file=sys.stderr)
        sys.exit(1)

    host = "0.0.0.0"
    print(f"listening host={host} port={settings.PORT} env={settings.environment}")

    uvicorn.run(
        "harvest_intake.main:app",
        host=host,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        proxy_headers=True,
        forwarded_allow_ips="*",
    )


if __name__ == "__main__":
    main()
