#!/usr/bin/env python3
import sys

from makeitso import create_app, BIND, PORT
from makeitso.logging_utils import setup_logger
from makeitso.utils import Locations

if __name__ == "__main__":
    home = sys.argv[1] if len(sys.argv) >= 2 else None
    setup_logger(Locations(home).log_dir)
    app = create_app(home=home)
    app.run(host=BIND, port=PORT, debug=False)
