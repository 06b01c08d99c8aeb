"""SCI-learner: dev launcher. Starts the lesson API in watch mode."""

import argparse
import logging
import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "0.0.0.0")
BACKEND_PORT = int(os.getenv("BACKEND_PORT", "13013"))


def main():
    parser = argparse.ArgumentParser(description="SCI-learner dev launcher")
    parser.add_argument("--data-dir", type=Path, default=None,
                        help="Conversation and config directory (default: ./data)")
    parser.add_argument("--port", type=int, default=BACKEND_PORT,
                        help=f"Port to listen on (default: {BACKEND_PORT})")
    parser.add_argument("--no-reload", action="store_true",
                        help="Disable auto-reload on source changes")
    parser.add_argument("--debug", action="store_true",
                        help="Log step execution and LLM calls")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )

    # The app reads DATA_DIR at import, including in reloader subprocesses.
    if args.data_dir:
        os.environ["DATA_DIR"] = str(args.data_dir.resolve())

    print(f"Starting SCI-learner on http://localhost:{args.port} ...")
    uvicorn.run(
        "sci_learner.app:app",
        host=HOST,
        port=args.port,
        reload=not args.no_reload,
        reload_dirs=[str(ROOT / "sci_learner")],
    )


if __name__ == "__main__":
    main()
