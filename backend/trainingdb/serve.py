import logging
import os

import uvicorn


def _truthy(value: str) -> bool:
    return value.lower() in {"1", "true", "yes", "on"}


def main() -> None:
    # Single-operator tool: listen on loopback unless told otherwise.
    host = os.getenv("HOST", "127.0.0.1")
    port = int(os.getenv("PORT", "8000"))
    reload_enabled = _truthy(os.getenv("RELOAD", "false"))
    log_level = os.getenv("LOG_LEVEL", "info")

    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    uvicorn.run(
        "trainingdb.main:app",
        host=host,
        port=port,
        reload=reload_enabled,
        log_level=log_level,
    )


if __name__ == "__main__":
    main()
