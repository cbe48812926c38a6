from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()

# Storage comes from RATELIMIT_STORAGE_URI (memory:// locally, redis:// when
# more than one instance serves traffic).
limiter = Limiter(key_func=get_remote_address)
