import os
import logging
import azure.functions as func

from src.function_blueprints.http_submit_post import bp as posts_bp
from src.shared.logging_utils import LOGGER_NAME

app = func.FunctionApp()


def _configure_logging() -> None:
    lvl = (os.getenv("AZURE_SDK_LOG_LEVEL") or "").upper()
    if lvl:
        level = getattr(logging, lvl, logging.INFO)
        logging.getLogger("azure").setLevel(level)
        logging.getLogger("azure.cosmos").setLevel(level)
        logging.getLogger("azure.storage.blob").setLevel(level)
    logging.getLogger(LOGGER_NAME).setLevel(logging.INFO)


_configure_logging()

app.register_functions(posts_bp)
