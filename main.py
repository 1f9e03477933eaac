import logging

import uvicorn

from console.config import config


def main() -> None:
    # Configure logging for the entire application
    logging.basicConfig(
        level=logging.INFO,
        format="%(levelname)s:     %(name)s - %(message)s",
    )

    # Set log level for our app modules
    logging.getLogger("console").setLevel(logging.INFO)

    uvicorn.run(
        "console.web.server:app",
        host=config.server.host,
        port=config.server.port,
        reload=config.server.reload,
        log_level="info",
    )


if __name__ == "__main__":
    main()
