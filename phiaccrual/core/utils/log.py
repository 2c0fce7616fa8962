import logging

LOG_FORMAT = '%(asctime)s [%(name)s:%(funcName)s] %(levelname)-8s : %(message)s'


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)
    # asyncio debug chatter drowns the per-keepalive traces
    logging.getLogger("asyncio").setLevel(max(logging.getLevelName(level), logging.INFO))
