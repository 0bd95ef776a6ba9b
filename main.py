"""
main.py: Server launcher and entry point.

Run this file to start the booking portal API and open its docs page:

    python main.py

The Streamlit dashboard is started separately:

    streamlit run dashboard/app.py

This file does NOT contain application logic. See app.py for the FastAPI
application and service wiring.

Direct uvicorn usage (without browser auto-open):
    uvicorn app:app --reload
"""

from __future__ import annotations

import threading
import time
import webbrowser

import uvicorn

from backend.utils.config import get_settings


def _open_browser_after_startup(url: str, delay_seconds: float = 2.0) -> None:
    """Open the API docs once uvicorn has had time to bind the port."""
    time.sleep(delay_seconds)
    print(f"\n  Opening API docs → {url}\n")
    webbrowser.open(url)


def main() -> None:
    """Start the booking portal API server."""
    settings = get_settings()
    server_url = f"http://{settings.portal_host}:{settings.portal_port}"
    docs_url = f"{server_url}/docs"

    print("=" * 60)
    print(f"  {settings.app_name} v{settings.app_version}")
    print("=" * 60)
    print(f"  Server      : {server_url}")
    print(f"  API docs    : {docs_url}")
    print(f"  Booking API : {settings.booking_api_base_url}")
    print("  Dashboard   : streamlit run dashboard/app.py")
    print("=" * 60)
    print("  Press CTRL+C to stop\n")

    browser_thread = threading.Thread(
        target=_open_browser_after_startup,
        args=(docs_url,),
        daemon=True,
    )
    browser_thread.start()

    # Blocks until CTRL+C
    uvicorn.run(
        "app:app",
        host=settings.portal_host,
        port=settings.portal_port,
        reload=True,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
