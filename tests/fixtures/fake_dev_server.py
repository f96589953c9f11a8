"""Stand-in for a vite/vue-cli dev server used by the tests.

Run as `fake_dev_server.py <mode> -- --port <port> --host <host>`, which is
what `npm run <mode> -- --port ...` would pass through. Every launch appends
"<mode> <port>" to launches.log in the working directory.
"""

import sys
import time
from pathlib import Path


def main() -> int:
    args = sys.argv[1:]
    mode = args[0] if args else "serve"
    port = args[args.index("--port") + 1] if "--port" in args else "0"
    with Path("launches.log").open("a") as f:
        f.write(f"{mode} {port}\n")

    if mode in ("serve", "serve-once"):
        time.sleep(0.1)
        print("> fake-ui@0.0.0 dev", flush=True)
        print("  VITE v5.0.0  ready in 120 ms", flush=True)
        print(f"  \x1b[32m>\x1b[39m  Local:   http://localhost:{port}/", flush=True)
        print("  >  Network: use --host to expose", flush=True)
        time.sleep(0.2 if mode == "serve-once" else 60)
        return 0
    if mode == "crash":
        print("Error: port in use", file=sys.stderr, flush=True)
        return 1
    if mode == "wrong-port":
        print("  >  Local:   http://localhost:1/", flush=True)
        print("giving up", file=sys.stderr, flush=True)
        return 0
    if mode == "hang":
        time.sleep(60)
        return 0
    print(f"unknown mode {mode}", file=sys.stderr, flush=True)
    return 2


if __name__ == "__main__":
    sys.exit(main())
