from __future__ import annotations
import os
import sys
from pathlib import Path
import uvicorn


def main():
    # Ensure project root is on sys.path so we can import app and gaitlab
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))
    from gaitlab.config.settings import settings

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    try:
        workers = max(1, int(os.getenv("WORKERS", "1")))
    except ValueError:
        workers = 1
    log_level = str(settings.log_level).lower()

    # uvicorn only spawns workers from an import string
    if workers > 1:
        target = "app:app"
    else:
        from app import app as target

    uvicorn.run(
        target,
        host=host,
        port=port,
        workers=workers,
        log_level=log_level,
        reload=False,
        proxy_headers=True,
        forwarded_allow_ips="*",
        app_dir=str(root),
    )


if __name__ == "__main__":
    main()
