"""Quick start example for lazyxhr.

This script demonstrates the basic usage of the Client class: lifecycle
events, JSON and binary responses, CSRF headers and cancellation.
"""

import logging
import sys
from pathlib import Path

# Ensure src is in python path for local testing
sys.path.append(str(Path(__file__).parent.parent / "src"))

from lazyxhr import Client, LazyxhrError, RequestAborted, setup_logging

logger = logging.getLogger("lazyxhr.quick_start")


def main() -> None:
    """Run the demonstration."""
    setup_logging(level=logging.DEBUG)

    logger.info("🚀 Initializing lazyxhr Client (Headless Mode)...")
    client = Client(
        base_url="https://httpbin.org",
        profile_dir="./browser_data/quick_start_profile",
        headless=True,
        timeout=10_000,
        csrf_cookie_name="csrftoken",
    )

    # XMLHttpRequest enforces CORS, so start from the target origin.
    client.page.get("https://httpbin.org")

    client.on("progress", lambda e: logger.info(f"   progress {e.loaded}/{e.total}"))
    client.on("done", lambda e: logger.info(f"   done (readyState={e.ready_state})"))

    try:
        logger.info("📡 1. GET /get (decoded as JSON)...")
        response = client.get("/get").result()
        logger.info(f"✅ Status: {response.status_code}")
        logger.info(f"   Origin: {response.body.get('origin')}")

        logger.info("📨 2. POST /post (x-csrf-token attached if the cookie exists)...")
        response = client.post(
            "/post",
            payload='{"mission": "lazy"}',
            headers={"Content-Type": "application/json"},
        ).result()
        logger.info(f"✅ Sent headers: {response.body.get('headers')}")

        logger.info("🖼  3. GET /image/png as arraybuffer...")
        response = client.get("/image/png", response_type="arraybuffer").result()
        logger.info(f"✅ {len(response.body)} bytes, {response.headers.get('content-type')}")

        logger.info("🛑 4. Cancel a slow request...")
        future = client.get("/delay/5")
        future.cancel()
        try:
            future.result()
        except RequestAborted as e:
            logger.info(f"✅ Aborted: {e}")

    except LazyxhrError as e:
        logger.exception(f"🔥 Error: {e}")
    except KeyboardInterrupt:
        logger.warning("\n🛑 Interrupted by user")
    finally:
        logger.info("👋 Closing client...")
        client.close()


if __name__ == "__main__":
    main()
