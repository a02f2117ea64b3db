"""WSGI entry point for local development and production WSGI servers.

Works with Flask's built-in server or a production WSGI server (Gunicorn).
"""

import os
import sys

from dotenv import load_dotenv

load_dotenv()

if "FLASK_ENV" not in os.environ:
    os.environ["FLASK_ENV"] = "development"
    print(f"FLASK_ENV not set, defaulting to: {os.environ['FLASK_ENV']}", file=sys.stderr)

# Import app after environment is set
from billsplit import create_app  # noqa: E402

app = create_app()
application = app


def run_migrations() -> None:
    """Run database migrations for local development."""
    from flask_migrate import upgrade

    with application.app_context():
        upgrade()
        print("Database migrations applied successfully")


if __name__ == "__main__":
    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "5000"))

    if os.environ.get("FLASK_ENV") == "development":
        try:
            run_migrations()
        except Exception as e:
            print(f"Warning: Could not run migrations: {e}")

    application.run(host=host, port=port, debug=True)
