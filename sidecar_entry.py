"""Sidecar entry point for the NovelMap engine API.

Usage:
    python sidecar_entry.py --port 12345
"""

import argparse
import logging
import sys


def main() -> None:
    parser = argparse.ArgumentParser(description="NovelMap Engine Sidecar")
    parser.add_argument("--port", type=int, default=8000, help="HTTP port")
    parser.add_argument("--host", type=str, default="127.0.0.1", help="Bind address")
    args = parser.parse_args()

    # PyInstaller frozen environment support
    if getattr(sys, "frozen", False):
        import multiprocessing

        multiprocessing.freeze_support()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    import uvicorn

    uvicorn.run(
        "novelmap.api.main:app",
        host=args.host,
        port=args.port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
