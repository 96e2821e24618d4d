from flask import jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# ======================
# Database
# ======================
db = SQLAlchemy()
migrate = Migrate()

# ======================
# Login Manager
# ======================
login_manager = LoginManager()


@login_manager.user_loader
def load_user(user_id):
    from docsign.models import User

    return db.session.get(User, int(user_id))


@login_manager.unauthorized_handler
def unauthorized():
    # JSON API: no login page to redirect to
    return jsonify({"msg": "No session, authorization denied"}), 401


# ======================
# Rate Limiter
# ======================
# Storage and default limits come from app.config
# (RATELIMIT_STORAGE_URI / RATELIMIT_DEFAULT).
limiter = Limiter(key_func=get_remote_address)
