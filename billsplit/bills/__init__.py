"""Bills blueprint: viewing, splitting and editing a community's bills."""

from flask import Blueprint

bp = Blueprint("bills", __name__)

# Import routes after blueprint creation to avoid circular imports
from . import routes  # noqa: E402, F401
