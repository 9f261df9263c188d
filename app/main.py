"""
HTTP entry point for the Family Budget API.

Run with:
    python -m app.main

or point any ASGI server at the factory:
    uvicorn familybudget.api:create_app --factory
"""

import uvicorn

from familybudget.config import get_settings


def main():
    settings = get_settings().app
    uvicorn.run(
        "familybudget.api:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug_mode,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
