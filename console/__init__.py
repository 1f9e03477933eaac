import logging

# Configure logging for the console package
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:     %(name)s - %(message)s",
)

logging.getLogger("console").setLevel(logging.INFO)
