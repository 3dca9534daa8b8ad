from flask import Blueprint

from ...extensions import csrf

api_bp = Blueprint("api", __name__)
# JSON endpoints are called with fetch(), not form posts
csrf.exempt(api_bp)

from . import jobs        # noqa: E402,F401
from . import functions   # noqa: E402,F401
