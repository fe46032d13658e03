import logging
import logging.handlers

from flask import abort, current_app, has_app_context, request

logger = logging.getLogger("LedgerApp")
initiate_logging_done = False


def logging_initiate(level=logging.DEBUG):
    global logger

    logger.setLevel(level)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)

    format = logging.Formatter('[%(asctime)s] p%(process)s {%(pathname)s:%(lineno)d} %(levelname)s - %(message)s','%m-%d %H:%M:%S')
    stream_handler.setFormatter(format)

    logger.addHandler(stream_handler)
    logger.debug('Ledger: Logging started for Stream logging')


def check_logging_initiate(level=logging.DEBUG):
    global initiate_logging_done

    if not initiate_logging_done:
        logging_initiate(level)
        logger.debug('Initiate logging done')
        initiate_logging_done = True


def config_value(key, default=None):
    """Read a config value from the running app, falling back to `default` outside a request/app context."""
    if has_app_context():
        return current_app.config.get(key, default)
    return default


def require_api_token():
    """Abort with 403 unless the X-Internal-Token header matches API_TOKEN (skipped when unset or API_DEBUG)."""
    expected = config_value("API_TOKEN")
    if not expected or config_value("API_DEBUG", False):
        return
    if request.headers.get("X-Internal-Token") != expected:
        logger.warning(f"Rejected request to {request.path}: bad or missing internal token")
        abort(403)
