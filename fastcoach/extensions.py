from flask_sqlalchemy import SQLAlchemy
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_cors import CORS

db = SQLAlchemy()

# default limits come from RATELIMIT_DEFAULT in the app config
limiter = Limiter(key_func=get_remote_address)

cors = CORS()
