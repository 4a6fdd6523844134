"""Startup script for production deployment.

Creates any missing planner tables, then serves the API with uvicorn.
"""

import os

import uvicorn

from app.db.session import init_db


def main():
    print("Ensuring planner tables exist...")
    init_db()
    port = int(os.getenv("PORT", "8000"))
    print(f"Serving on port {port}")
    uvicorn.run("app.main:app", host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
