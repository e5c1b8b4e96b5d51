"""Flask server that stays alive while farms tick in the background."""

from __future__ import annotations

import logging
import sys

from coopclimate import create_app
from coopclimate.config import load_config


def main() -> int:
    if sys.platform == "win32":
        sys.stdout.reconfigure(encoding="utf-8")

    config = load_config()
    app = create_app()

    print(f"CoopClimate starting on http://{config.host}:{config.port}")
    print("Press Ctrl+C to stop\n")
    try:
        app.run(host=config.host, port=config.port, debug=False, use_reloader=False)
    except KeyboardInterrupt:
        print("\nServer stopped by user")
    except OSError:
        logging.getLogger(__name__).error("Server error", exc_info=True)
        return 1
    finally:
        app.config["CONTAINER"].shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
