"""
Voice Review Collector - Web Server Entry Point
================================================

Run this to start the webhook server:
    python main.py

Point the Vonage inbound webhook at http://<host>:8000/webhooks/inbound
and the status webhook at http://<host>:8000/webhooks/status.
"""

import os

import uvicorn


def main():
    """Start the web server."""
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))

    print("\n" + "=" * 50)
    print("   Voice Review Collector")
    print("=" * 50)
    print(f"\n   Starting server at http://{host}:{port}")
    print("   Press Ctrl+C to stop\n")

    uvicorn.run(
        "voicereview.web.app:app",
        host=host,
        port=port,
        log_level="info"
    )


if __name__ == "__main__":
    main()
