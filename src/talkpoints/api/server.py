"""
ASGI entry point for the talking-points API.

Loads `.env` before the application factory runs so provider keys are in the
environment when the generation service is built.

Usage
-----
    $ python -m talkpoints.api.server
    $ uvicorn talkpoints.api.server:app --reload
"""

import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from talkpoints.api.app import create_app

load_dotenv(dotenv_path=Path(".env"))

app = create_app()


def main() -> None:
    """Run the API server locally for development."""
    print(f"{'[ Key Check ]':=^60}")
    for var_name in ("OPENROUTER_API_KEY", "OPENAI_API_KEY"):
        value = os.getenv(var_name, "")
        status = f"loaded ({value[:8]}...)" if value else "missing"
        print(f"{var_name:<20} : {status}")
    print(f"{'=' * 60}\n")

    uvicorn.run(
        "talkpoints.api.server:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
        log_level="info",
    )


if __name__ == "__main__":
    main()
