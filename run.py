import os

import uvicorn

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8000))
    # Each worker holds its own ranking cache; scoring itself is stateless.
    workers = int(os.environ.get("WEB_CONCURRENCY", 1))
    uvicorn.run(
        "casematch.main:app",
        host="0.0.0.0",
        port=port,
        workers=workers,
    )
