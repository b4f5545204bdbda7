"""
CLI for launching the FastAPI server.

Usage:
    poetry run relay-serve
    poetry run relay-serve --port 8080 --host 127.0.0.1
"""

import argparse
import sys

import uvicorn


def main():
    parser = argparse.ArgumentParser(
        description="Launch the job relay FastAPI server"
    )

    parser.add_argument(
        "--host",
        type=str,
        default="0.0.0.0",
        help="Host to bind to",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )

    args = parser.parse_args()

    print(f"Starting job relay on {args.host}:{args.port}")
    print(f"Submission form available at: http://localhost:{args.port}/")

    uvicorn.run(
        "job_relay.api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )

    return 0


if __name__ == "__main__":
    sys.exit(main())
