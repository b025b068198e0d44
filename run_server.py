"""Run the reference status store under Uvicorn.

``STATUS_STORE_HOST``/``STATUS_STORE_PORT`` pick the bind address; set
``UVICORN_RELOAD=true`` while developing.
"""
from __future__ import annotations

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "status_viewer.main:app",
        host=os.getenv("STATUS_STORE_HOST", "0.0.0.0"),
        port=int(os.getenv("STATUS_STORE_PORT", "8000")),
        reload=os.getenv("UVICORN_RELOAD", "false").lower() == "true",
    )


if __name__ == "__main__":
    main()
