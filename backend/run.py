"""
Vault Backend — Uvicorn Launcher

Usage:
    python run.py
    python run.py --port 8080 --reload
    python run.py --log-level debug
"""
import argparse

import uvicorn

from vault.config import get_settings


def main():
    parser = argparse.ArgumentParser(description="Secure Document Vault API server")
    parser.add_argument("--host", default="0.0.0.0", help="Bind host (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes")
    parser.add_argument("--workers", type=int, default=1, help="Worker processes (default: 1)")
    parser.add_argument("--log-level", default="info", choices=["debug", "info", "warning", "error"])
    args = parser.parse_args()

    settings = get_settings()
    print(f"""
    ========================================================
      {settings.APP_NAME} v{settings.APP_VERSION}
      API:      http://{args.host}:{args.port}
      Docs:     http://localhost:{args.port}/docs
      Database: {settings.DATABASE_URL}
      Uploads:  {settings.UPLOAD_DIR}
    ========================================================
    """)

    uvicorn.run(
        "vault.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=args.workers,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
