#!/usr/bin/env python3
"""
Start the routing API (inline dispatch, in-memory stores), run the live webhook tests
against it, then stop the server.
Usage: python scripts/run_tests_live.py [extra pytest args]
(Run from project root with venv activated.)
"""

import os
import subprocess
import sys
import time

# Add project root for imports
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, ROOT)
from tests.http_client import get

HOST = "127.0.0.1"
PORT = 8765
BASE_URL = f"http://{HOST}:{PORT}"


def wait_for_server(timeout=10):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            if get(f"{BASE_URL}/health", timeout=1).status_code == 200:
                return True
        except OSError:
            pass
        time.sleep(0.5)
    return False


def main():
    os.chdir(ROOT)
    server_env = os.environ.copy()
    server_env.update({"DISPATCH_MODE": "inline", "EXECUTION_STORE": "memory", "AUDIT_STORE": "memory"})
    proc = subprocess.Popen(
        [sys.executable, "-m", "uvicorn", "ticket_router.main:app", "--host", HOST, "--port", str(PORT)],
        cwd=ROOT,
        env=server_env,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )
    try:
        if not wait_for_server():
            print(f"Server did not start on {BASE_URL} in time.")
            sys.exit(1)
        test_env = os.environ.copy()
        test_env["BASE_URL"] = BASE_URL
        result = subprocess.run(
            [sys.executable, "-m", "pytest", "tests/test_webhooks_live.py", "-v", *sys.argv[1:]],
            env=test_env,
        )
        sys.exit(result.returncode)
    finally:
        proc.terminate()
        proc.wait(timeout=5)


if __name__ == "__main__":
    main()
