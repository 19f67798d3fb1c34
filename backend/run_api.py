#!/usr/bin/env python3
"""
Run the FastAPI backend server.

Usage:
    python run_api.py [--host HOST] [--port PORT] [--no-reload]
"""

import argparse

import uvicorn


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the Flyover Track API server")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--no-reload", action="store_true", help="Disable auto-reload")
    args = parser.parse_args()

    print("🚀 Starting Flyover Track API server...")
    print(f"📡 API will be available at: http://localhost:{args.port}")
    print(f"📚 Documentation at: http://localhost:{args.port}/docs")
    print("🛑 Press CTRL+C to stop\n")

    # With reload enabled uvicorn needs the import path, not the app object
    uvicorn.run(
        "api.main:app",
        host=args.host,
        port=args.port,
        reload=not args.no_reload
    )


if __name__ == "__main__":
    main()
