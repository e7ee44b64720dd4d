#!/usr/bin/env python
"""
Mockify - Application Entry Point

Usage:
    python run.py [--host HOST] [--port PORT] [--reload]

Examples:
    python run.py                    # Start with defaults
    python run.py --reload           # Start with auto-reload
    python run.py --port 8080        # Start on custom port
"""
import argparse
import uvicorn


def main():
    parser = argparse.ArgumentParser(
        description="Mockify API Server"
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind (default: 127.0.0.1)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind (default: 8000)"
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development"
    )

    args = parser.parse_args()

    print(f"""
  Mockify API Server
    Host:     {args.host}
    Port:     {args.port}
    Reload:   {'Enabled' if args.reload else 'Disabled'}
    API Docs: http://{args.host}:{args.port}/docs
    ReDoc:    http://{args.host}:{args.port}/redoc
    """)

    uvicorn.run(
        "mockify.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="info"
    )


if __name__ == "__main__":
    main()
