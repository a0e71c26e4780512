#!/usr/bin/env python3
"""
Start the weather records API with uvicorn.
"""

import argparse
import os
import sys
from pathlib import Path

import uvicorn

# Add the parent directory to sys.path to import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))


def main():
    parser = argparse.ArgumentParser(description="Run the weather records API")
    parser.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"), help="Interface to bind")
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "3000")), help="Port to listen on")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes (development)")
    args = parser.parse_args()

    uvicorn.run("src.api.main:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
