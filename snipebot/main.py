from __future__ import annotations

import sys

from snipebot.config import load_settings
from snipebot.domain.errors import ConfigError
from snipebot.infra import get_logger
from snipebot.runtime.app import EXIT_CONFIG, run_main


def main() -> int:
    try:
        settings = load_settings()
    except ConfigError as exc:
        get_logger("snipebot").error("fatal config: %s", exc)
        return EXIT_CONFIG
    return run_main(settings)


if __name__ == "__main__":
    sys.exit(main())
