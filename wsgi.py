"""WSGI entry point for production servers (gunicorn, uwsgi).

Runs the full startup sequence at import time; a startup failure raises
so the server process refuses to come up.
"""

import os

from address_book.logging import configure
from address_book.server import bootstrap

configure()
application, _port = bootstrap(os.environ)
