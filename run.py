# run.py
"""
Development entry point: initialise the database, then serve the API with
Flask's built-in server. Use a WSGI server with create_app() in production.
"""
import os

from sitebudget.app_factory import create_app
from sitebudget.db.auto_init import auto_init


def main():
    # create_app binds the engine, auto_init needs it
    app = create_app(os.getenv("SITEBUDGET_ENV", "development"))
    auto_init()

    host = os.getenv("HOST", "127.0.0.1")
    port = int(os.getenv("PORT", 5000))
    debug = os.getenv("FLASK_DEBUG", "0") == "1"

    # threaded: approval streams hold a worker each
    app.run(host=host, port=port, debug=debug, use_reloader=False, threaded=True)


if __name__ == "__main__":
    main()
