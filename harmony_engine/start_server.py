#!/usr/bin/env python3
"""
Server startup wrapper for the harmony progress engine.
"""
import sys

from harmony_engine.core.config import settings

if __name__ == "__main__":
    print("[Harmony] Starting progress engine")
    print(f"[Harmony] Server: http://{settings.HOST}:{settings.PORT}")
    print("[Harmony] Press CTRL+C to stop")
    try:
        import uvicorn
        uvicorn.run(
            "harmony_engine.main:app",
            host=settings.HOST,
            port=settings.PORT,
            reload=False,
            log_level="info",
            access_log=True,
        )
    except KeyboardInterrupt:
        print("\n[Harmony] Shutting down...")
        sys.exit(0)
