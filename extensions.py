# FILE: ecoquiz-backend/extensions.py

from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

limiter = Limiter(
    # The default key is the IP address of the user making the request.
    key_func=get_remote_address,
    # The storage is set in main.py from the environment variable.
    default_limits=["1000 per day", "300 per hour"]
)

# Origins are configured in main.py; the React frontend runs on a different port.
cors = CORS()
