"""Entry point for running the NiceGUI sand table dashboard."""

import logging

from sandbot.app import run


if __name__ in {"__main__", "__mp_main__"}:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    run(reload=False, host="0.0.0.0", port=8080)
