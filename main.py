"""Fund Wars launcher. Validates content and starts the API server."""

import argparse
import os
import signal
import subprocess
import sys
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "0.0.0.0")
BACKEND_PORT = os.getenv("BACKEND_PORT", "13013")
DEFAULT_CONTENT_DIR = ROOT / "presets" / "content"


def validate_content(content_dir: Path) -> int:
    """Load every content table and report broken references. Returns an exit code."""
    from pydantic import ValidationError

    from fund_wars.content import ContentRegistry
    from fund_wars.errors import ContentError

    try:
        registry = ContentRegistry.from_directory(content_dir)
    except ContentError as e:
        print(f"Content in {content_dir} is invalid:")
        for problem in e.problems:
            print(f"  - {problem}")
        return 1
    except ValidationError as e:
        print(f"Content in {content_dir} is malformed:\n{e}")
        return 1
    print(
        f"Content OK: {len(registry.list_chapters_in_order())} chapters, "
        f"{len(registry.puzzles)} puzzles, {len(registry.dialogues)} dialogues"
    )
    return 0


def main():
    parser = argparse.ArgumentParser(description="Fund Wars launcher")
    parser.add_argument("--data-dir", type=Path, default=None,
                        help="Save/config directory (default: ./data)")
    parser.add_argument("--content-dir", type=Path, default=None,
                        help="Story content directory (default: ./presets/content)")
    parser.add_argument("--validate", action="store_true",
                        help="Check the content tables and exit")
    parser.add_argument("--reload", action="store_true",
                        help="Restart the server on code changes")
    args = parser.parse_args()

    content_dir = args.content_dir or DEFAULT_CONTENT_DIR
    if args.validate:
        sys.exit(validate_content(content_dir))

    # Build env for the server process so it picks up the same directories
    env = os.environ.copy()
    if args.data_dir:
        env["DATA_DIR"] = str(args.data_dir.resolve())
    if args.content_dir:
        env["CONTENT_DIR"] = str(args.content_dir.resolve())

    cmd = [sys.executable, "-m", "uvicorn", "backend.app:app", "--host", HOST, "--port", BACKEND_PORT]
    if args.reload:
        cmd.append("--reload")

    print(f"Starting backend on http://localhost:{BACKEND_PORT} ...")
    proc = subprocess.Popen(cmd, cwd=ROOT, env=env)

    def shutdown(*_):
        print("\nShutting down...")
        proc.terminate()
        proc.wait()
        sys.exit(0)

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    proc.wait()


if __name__ == "__main__":
    main()
